"""Shared utilities for credcache."""

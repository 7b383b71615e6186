"""Credential-related exceptions.

This module re-exports credential exceptions from credcache.exceptions
so the credentials package can use short relative imports. New code
outside the package should import directly from credcache.exceptions.
"""

from credcache.exceptions import (
    CredentialError,
    CredentialFormatError,
    InvalidNameError,
    PromptSuppressedError,
    ProtectionError,
    StoreUnavailableError,
    UnreadableCredentialError,
)

__all__ = [
    "CredentialError",
    "InvalidNameError",
    "StoreUnavailableError",
    "UnreadableCredentialError",
    "PromptSuppressedError",
    "CredentialFormatError",
    "ProtectionError",
]

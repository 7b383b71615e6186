"""Configuration for the credential cache.

Key Components:
    - CacheSettings: Settings container with environment and YAML loading

Example:
    >>> from credcache.config import CacheSettings
    >>> settings = CacheSettings.from_yaml("~/.config/credcache/config.yaml")
    >>> settings.store_path
"""

from credcache.config.settings import CacheSettings

__all__ = ["CacheSettings"]

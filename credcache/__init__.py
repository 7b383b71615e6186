"""credcache: a local, per-user credential cache for automation scripts."""

import logging

from credcache.credentials import Credential, CredentialStore, StoreConfig, get_stored_credential

__version__ = "0.1.0"

logging.getLogger("credcache").addHandler(logging.NullHandler())

__all__ = ["Credential", "CredentialStore", "StoreConfig", "get_stored_credential", "__version__"]

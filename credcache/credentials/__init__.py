"""Local per-user credential cache.

This package provides:
- Validation of credential names and resolution of their on-disk artifacts
- A persistence codec keeping the username in plaintext and the secret
  encrypted with a key scoped to the current OS user
- A retrieval policy that reads, stores, resets, deletes, and falls back
  to an interactive prompt

Example usage:

    from credcache.credentials import CredentialStore, StoreConfig, KeyringProtectionProvider

    store = CredentialStore(StoreConfig(protection_provider=KeyringProtectionProvider()))

    # Store a credential
    store.store("vCenter", "admin", "s3cr3t")

    # Read it back, prompting if it is missing or unreadable
    result = store.get("vCenter")
    if result.credential:
        print(result.credential.username)
"""

from .codec import CredentialCodec
from .exceptions import (
    CredentialError,
    CredentialFormatError,
    InvalidNameError,
    PromptSuppressedError,
    ProtectionError,
    StoreUnavailableError,
    UnreadableCredentialError,
)
from .models import ArtifactPaths, Credential, ReadOutcome, RetrievalResult
from .naming import artifact_paths, list_names, resolve_store_dir, validate_name
from .prompt import ClickCredentialPrompt, CredentialPrompt
from .protection import (
    KeyringProtectionProvider,
    PassphraseProtectionProvider,
    ProtectionProvider,
    create_protection_provider,
)
from .store import CredentialStore, StoreConfig, format_diagnostic, get_stored_credential

__all__ = [
    # Models
    "Credential",
    "ArtifactPaths",
    "ReadOutcome",
    "RetrievalResult",
    # Naming
    "validate_name",
    "resolve_store_dir",
    "artifact_paths",
    "list_names",
    # Protection
    "ProtectionProvider",
    "KeyringProtectionProvider",
    "PassphraseProtectionProvider",
    "create_protection_provider",
    # Codec, prompt and store
    "CredentialCodec",
    "CredentialPrompt",
    "ClickCredentialPrompt",
    "CredentialStore",
    "StoreConfig",
    "format_diagnostic",
    "get_stored_credential",
    # Exceptions
    "CredentialError",
    "InvalidNameError",
    "StoreUnavailableError",
    "UnreadableCredentialError",
    "PromptSuppressedError",
    "CredentialFormatError",
    "ProtectionError",
]

"""Per-user secret protection primitives.

Security Model:
- Secrets are encrypted with Fernet (AES-128-CBC + HMAC)
- The Fernet key is scoped to the current OS user: either held in the
  user's OS keyring, or derived from a passphrase only that user knows
- Tokens produced under one key cannot be decrypted under another. Copying a
  store to another account, or replacing the keyring entry, makes existing
  secrets unreadable; this is intended, not a fault
- The credential store never sees key material; providers own it
"""

import base64
import getpass
import logging
import secrets
from pathlib import Path
from typing import TYPE_CHECKING, Protocol

import keyring
from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC
from keyring.errors import KeyringError

from credcache.enums import ProtectionBackend

from .exceptions import ProtectionError

if TYPE_CHECKING:
    from credcache.config.settings import CacheSettings

logger = logging.getLogger(__name__)

SALT_FILE_NAME = ".credcache.salt"


class ProtectionProvider(Protocol):
    """Protocol for the encrypt-for-current-user capability.

    ``protect`` and ``unprotect`` are implicitly scoped to the invoking OS
    user. ``unprotect`` must raise ProtectionError when a token was
    produced under a different identity or key epoch.
    """

    @property
    def name(self) -> str:
        """Provider identifier (e.g., 'keyring', 'passphrase')."""
        ...

    @property
    def available(self) -> bool:
        """Check if this provider can run on the current system."""
        ...

    def protect(self, plaintext: bytes) -> str:
        """Encrypt plaintext into an opaque text token."""
        ...

    def unprotect(self, token: str) -> bytes:
        """Decrypt a token produced by ``protect``."""
        ...


def _decrypt(fernet: Fernet, token: str) -> bytes:
    try:
        return fernet.decrypt(token.strip().encode("ascii"))
    except (InvalidToken, UnicodeEncodeError, ValueError) as e:
        raise ProtectionError(
            "Secret cannot be decrypted with the current user's key",
            suggestion="The store may come from another account, or the key was replaced; "
            "reset the credential to store it again",
        ) from e


class KeyringProtectionProvider:
    """Fernet encryption keyed by a secret held in the OS keyring.

    Platform Support:
    - Linux: Secret Service API (GNOME Keyring, KWallet)
    - macOS: Keychain
    - Windows: Windows Credential Locker

    The key is created in the keyring on the first ``protect`` call.
    ``unprotect`` never creates one, so a missing key is reported as an
    unreadable secret rather than silently minting a new epoch.

    Example:
        >>> provider = KeyringProtectionProvider()
        >>> token = provider.protect(b"s3cr3t")
        >>> provider.unprotect(token)
        b's3cr3t'
    """

    def __init__(self, service: str = "credcache", account: str | None = None) -> None:
        """Initialize keyring protection provider.

        Args:
            service: Keyring service name holding the encryption key
            account: Keyring account; defaults to the OS login name
        """
        self.service = service
        self.account = account or getpass.getuser()
        self._fernet: Fernet | None = None

    @property
    def name(self) -> str:
        return "keyring"

    @property
    def available(self) -> bool:
        """Check if a usable keyring backend is configured.

        Returns False on headless systems where only the fail or null
        backends are present.
        """
        try:
            backend_name = type(keyring.get_keyring()).__name__
        except Exception as e:
            logger.debug(f"Keyring not available: {e}")
            return False

        if "Fail" in backend_name or "Null" in backend_name:
            logger.debug(f"Keyring backend not usable: {backend_name}")
            return False
        return True

    def _load_fernet(self, create: bool) -> Fernet:
        if self._fernet is not None:
            return self._fernet

        try:
            key = keyring.get_password(self.service, self.account)
            if key is None:
                if not create:
                    raise ProtectionError(
                        f"No encryption key in keyring for {self.service}/{self.account}",
                        suggestion="Reset the credential to store it again",
                    )
                key = Fernet.generate_key().decode("ascii")
                keyring.set_password(self.service, self.account, key)
                logger.info(f"Created encryption key in keyring: {self.service}/{self.account}")
        except KeyringError as e:
            raise ProtectionError(
                f"Keyring operation failed: {e}",
                suggestion="Unlock the OS keyring or use the passphrase protection backend",
            ) from e

        try:
            self._fernet = Fernet(key.encode("ascii"))
        except (ValueError, UnicodeEncodeError) as e:
            raise ProtectionError(
                f"Keyring entry {self.service}/{self.account} is not a valid encryption key",
            ) from e
        return self._fernet

    def protect(self, plaintext: bytes) -> str:
        fernet = self._load_fernet(create=True)
        return fernet.encrypt(plaintext).decode("ascii")

    def unprotect(self, token: str) -> bytes:
        fernet = self._load_fernet(create=False)
        return _decrypt(fernet, token)


class PassphraseProtectionProvider:
    """Fernet encryption keyed by a passphrase.

    Suitable for headless systems without keyring support. The salt is
    stored beside the credentials; the passphrase is never persisted.

    The salt file is read on first use and created on the first ``protect``
    call only, so building a provider never touches the filesystem and
    ``unprotect`` without a salt reports an unreadable secret.

    Security Considerations:
    - The passphrase must be protected by the caller (e.g. injected per run)
    - Anyone holding the passphrase and the store can read every secret
    """

    def __init__(self, passphrase: str, salt_path: Path, salt: bytes | None = None) -> None:
        """Initialize passphrase protection provider.

        Args:
            passphrase: Passphrase the key is derived from
            salt_path: File holding the 16-byte salt (created on first protect)
            salt: Cryptographic salt (loaded or generated if not provided)
        """
        if not passphrase:
            raise ValueError("Passphrase cannot be empty")

        self.salt_path = salt_path
        self.salt = salt
        self._passphrase = passphrase
        self._fernet: Fernet | None = None

    @property
    def name(self) -> str:
        return "passphrase"

    @property
    def available(self) -> bool:
        return True

    @staticmethod
    def _create_fernet(passphrase: str, salt: bytes) -> Fernet:
        """Derive encryption key from passphrase.

        Uses PBKDF2-HMAC-SHA256 with 480,000 iterations (OWASP 2023 recommendation).
        """
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=32,
            salt=salt,
            iterations=480_000,
        )
        key = kdf.derive(passphrase.encode("utf-8"))
        return Fernet(base64.urlsafe_b64encode(key))

    def _load_salt(self, create: bool) -> bytes:
        if self.salt_path.exists():
            with open(self.salt_path, "rb") as f:
                return f.read()

        if not create:
            raise ProtectionError(
                f"No passphrase salt at {self.salt_path}",
                suggestion="Reset the credential to store it again",
            )

        salt = secrets.token_bytes(16)
        self.salt_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.salt_path, "wb") as f:
            f.write(salt)

        try:
            self.salt_path.chmod(0o600)
        except OSError as e:
            logger.warning(f"Could not set salt file permissions: {e}")

        logger.info(f"Created passphrase salt: {self.salt_path}")
        return salt

    def _load_fernet(self, create: bool) -> Fernet:
        if self._fernet is not None:
            return self._fernet

        if self.salt is None:
            try:
                self.salt = self._load_salt(create)
            except OSError as e:
                raise ProtectionError(
                    f"Cannot access passphrase salt {self.salt_path}: {e}",
                    suggestion="Check the credential store path and its permissions",
                ) from e

        self._fernet = self._create_fernet(self._passphrase, self.salt)
        return self._fernet

    def protect(self, plaintext: bytes) -> str:
        fernet = self._load_fernet(create=True)
        return fernet.encrypt(plaintext).decode("ascii")

    def unprotect(self, token: str) -> bytes:
        fernet = self._load_fernet(create=False)
        return _decrypt(fernet, token)


def create_protection_provider(settings: "CacheSettings", store_dir: Path) -> ProtectionProvider:
    """Build the protection provider selected by configuration.

    Args:
        settings: Loaded settings
        store_dir: Default store directory (holds the passphrase salt)

    Returns:
        A ProtectionProvider instance

    Raises:
        ProtectionError: If the passphrase backend is selected without a passphrase
    """
    if settings.protection == ProtectionBackend.PASSPHRASE:
        if settings.passphrase is None or not settings.passphrase.get_secret_value():
            raise ProtectionError(
                "Passphrase protection selected but no passphrase configured",
                suggestion="Set CREDCACHE_PASSPHRASE or switch to the keyring backend",
            )
        return PassphraseProtectionProvider(
            settings.passphrase.get_secret_value(),
            salt_path=store_dir / SALT_FILE_NAME,
        )

    return KeyringProtectionProvider(
        service=settings.keyring_service,
        account=settings.keyring_account,
    )

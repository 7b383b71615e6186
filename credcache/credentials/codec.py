"""Persistence codec for credential artifact pairs.

Each credential is persisted as two files sharing a base name:

- ``<name>.username``: the username as a single UTF-8 line
- ``<name>.password``: the text token returned by the protection provider

Each file is replaced atomically on its own, but the pair is not written
atomically: a failure between the two writes leaves the record
inconsistent. Readers treat any inconsistent record as unusable, and no
locking is attempted.
"""

import logging
import os
from pathlib import Path

from .exceptions import (
    CredentialFormatError,
    ProtectionError,
    StoreUnavailableError,
    UnreadableCredentialError,
)
from .models import ArtifactPaths, Credential, ReadOutcome
from .protection import ProtectionProvider

logger = logging.getLogger(__name__)


class CredentialCodec:
    """Read, write and delete credential artifact pairs.

    Example:
        >>> codec = CredentialCodec(KeyringProtectionProvider())
        >>> paths = artifact_paths(store_dir, "vCenter")
        >>> codec.write(paths, "admin", "s3cr3t")
        >>> codec.read(paths).username
        'admin'
    """

    def __init__(self, protection: ProtectionProvider) -> None:
        """Initialize codec.

        Args:
            protection: Provider used to encrypt and decrypt secrets
        """
        self.protection = protection

    @staticmethod
    def _name_of(paths: ArtifactPaths) -> str:
        return paths.username.stem

    @staticmethod
    def _write_text(path: Path, content: str) -> None:
        """Replace a file's content atomically with owner-only permissions.

        The temp file is created 0o600 before anything is written to it and
        removed again if the write or the replace fails.
        """
        temp_file = path.with_name(f"{path.name}.tmp")
        temp_file.unlink(missing_ok=True)

        fd = os.open(temp_file, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        try:
            with os.fdopen(fd, "w", encoding="utf-8", newline="\n") as f:
                f.write(content)
            temp_file.replace(path)
        except OSError:
            temp_file.unlink(missing_ok=True)
            raise

    def write(self, paths: ArtifactPaths, username: str, secret: str) -> None:
        """Persist a credential, overwriting any existing artifacts.

        Args:
            paths: Artifact pair for the credential
            username: Username, stored in plaintext
            secret: Secret, stored as a protection token

        Raises:
            CredentialFormatError: If the username is empty or multi-line, or the secret is empty
            ProtectionError: If the secret cannot be encrypted
            StoreUnavailableError: If an artifact cannot be written
        """
        name = self._name_of(paths)

        # splitlines() also breaks on \x0b, \x0c, \x1c-\x1e, \x85, \u2028 and \u2029
        if not username or username.splitlines() != [username]:
            raise CredentialFormatError(
                "Username must be a single non-empty line",
                reference=name,
            )
        if not secret:
            raise CredentialFormatError("Secret cannot be empty", reference=name)

        token = self.protection.protect(secret.encode("utf-8"))

        try:
            self._write_text(paths.username, f"{username}\n")
            self._write_text(paths.secret, f"{token}\n")
        except OSError as e:
            raise StoreUnavailableError(
                f"Failed to write credential artifacts: {e}",
                reference=name,
            ) from e

        logger.debug(f"Wrote credential artifacts: {paths.username.parent}/{name}")

    def _read_username(self, path: Path) -> str | None:
        with open(path, encoding="utf-8") as f:
            lines = f.read().splitlines()
        if not lines or not lines[0]:
            return None
        return lines[0]

    def inspect(self, paths: ArtifactPaths) -> ReadOutcome:
        """Inspect an artifact pair without raising for missing or corrupt data.

        Args:
            paths: Artifact pair for the credential

        Returns:
            FOUND with the credential, NOT_FOUND when neither artifact
            exists, or UNREADABLE with a reason and any recoverable username
        """
        name = self._name_of(paths)
        has_username, has_secret = paths.exists()

        if not has_username and not has_secret:
            return ReadOutcome.not_found()

        if not has_username:
            return ReadOutcome.unreadable("username artifact is missing")

        try:
            username = self._read_username(paths.username)
        except (OSError, UnicodeDecodeError) as e:
            return ReadOutcome.unreadable(f"cannot read username artifact: {e}")

        if username is None:
            return ReadOutcome.unreadable("username artifact is empty")
        if not has_secret:
            return ReadOutcome.unreadable("password artifact is missing", username=username)

        try:
            with open(paths.secret, encoding="utf-8") as f:
                token = f.read()
        except (OSError, UnicodeDecodeError) as e:
            return ReadOutcome.unreadable(f"cannot read password artifact: {e}", username=username)

        try:
            secret = self.protection.unprotect(token).decode("utf-8")
        except ProtectionError as e:
            return ReadOutcome.unreadable(e.message, username=username)
        except UnicodeDecodeError:
            return ReadOutcome.unreadable("decrypted secret is not valid UTF-8", username=username)

        return ReadOutcome.found(Credential(name=name, username=username, secret=secret))

    def read(self, paths: ArtifactPaths) -> Credential:
        """Read and decrypt a stored credential.

        Args:
            paths: Artifact pair for the credential

        Returns:
            The reconstructed credential

        Raises:
            UnreadableCredentialError: If either artifact is missing or
                unreadable, or the secret cannot be decrypted
        """
        outcome = self.inspect(paths)
        if outcome.credential is None:
            raise UnreadableCredentialError(
                f"Cannot read stored credential: {outcome.reason or 'no artifacts found'}",
                reference=self._name_of(paths),
            )
        return outcome.credential

    def delete(self, paths: ArtifactPaths) -> None:
        """Remove both artifacts, each independently; absence is not an error.

        Raises:
            StoreUnavailableError: If a present artifact cannot be removed;
                raised only after both removals were attempted
        """
        failures: list[str] = []
        for path in (paths.username, paths.secret):
            try:
                path.unlink(missing_ok=True)
            except OSError as e:
                failures.append(f"{path.name}: {e}")

        if failures:
            raise StoreUnavailableError(
                f"Failed to delete credential artifacts ({'; '.join(failures)})",
                reference=self._name_of(paths),
            )

        logger.info(f"Deleted credential artifacts: {paths.username.parent}/{self._name_of(paths)}")

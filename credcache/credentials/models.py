"""
Data models for the credential store.

This module contains the value types passed between the naming, codec and
retrieval stages: the credential itself, the artifact path pair that
persists it, and the tagged outcomes each stage returns.

Example:
    Inspecting a read outcome::

        outcome = codec.inspect(paths)
        if outcome.status == ReadStatus.FOUND:
            print(outcome.credential.username)
        elif outcome.status == ReadStatus.UNREADABLE:
            print(f"corrupt record: {outcome.reason}")
"""

from dataclasses import dataclass, field
from pathlib import Path

from credcache.enums import ReadStatus
from credcache.exceptions import CredentialError

USERNAME_SUFFIX = ".username"
SECRET_SUFFIX = ".password"


@dataclass(frozen=True)
class Credential:
    """A username/secret pair identified by a name.

    The secret is excluded from ``repr()`` so credentials can be logged or
    printed in tracebacks without leaking it.
    """

    name: str
    username: str
    secret: str = field(repr=False)


@dataclass(frozen=True)
class ArtifactPaths:
    """The two on-disk artifacts persisting one credential."""

    username: Path
    secret: Path

    def exists(self) -> tuple[bool, bool]:
        """Return which of the two artifacts are present."""
        return self.username.exists(), self.secret.exists()


@dataclass(frozen=True)
class ReadOutcome:
    """Tagged result of inspecting an artifact pair.

    Attributes:
        status: FOUND, NOT_FOUND or UNREADABLE.
        credential: Reconstructed credential (FOUND only).
        username: Username recoverable from the record, even a partial one.
        reason: Why the record is unusable (UNREADABLE only).
    """

    status: ReadStatus
    credential: Credential | None = None
    username: str | None = None
    reason: str | None = None

    @classmethod
    def found(cls, credential: Credential) -> "ReadOutcome":
        return cls(ReadStatus.FOUND, credential=credential, username=credential.username)

    @classmethod
    def not_found(cls) -> "ReadOutcome":
        return cls(ReadStatus.NOT_FOUND)

    @classmethod
    def unreadable(cls, reason: str, username: str | None = None) -> "ReadOutcome":
        return cls(ReadStatus.UNREADABLE, username=username, reason=reason)


@dataclass(frozen=True)
class RetrievalResult:
    """Result of one pass through the retrieval policy.

    Exactly one of the following holds: a credential was returned, the
    operation ended without one (delete mode or a cancelled prompt), or an
    error was captured.

    Attributes:
        credential: The resolved credential, if any.
        error: The error that stopped the flow, if any.
        cancelled: True when the human dismissed the prompt.
    """

    credential: Credential | None = None
    error: CredentialError | None = None
    cancelled: bool = False

    @property
    def ok(self) -> bool:
        """True when the flow completed without an error."""
        return self.error is None

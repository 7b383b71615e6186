"""Pytest configuration and shared fixtures."""

import base64
from pathlib import Path

import pytest

from credcache.credentials import CredentialStore, StoreConfig, artifact_paths
from credcache.credentials.codec import CredentialCodec
from credcache.exceptions import ProtectionError
from credcache.utils.logging_config import configure_logging


class FakeProtectionProvider:
    """Reversible provider whose tokens only decrypt under the same identity."""

    def __init__(self, identity: str = "alice") -> None:
        self.identity = identity
        self.protected: list[bytes] = []

    @property
    def name(self) -> str:
        return "fake"

    @property
    def available(self) -> bool:
        return True

    def protect(self, plaintext: bytes) -> str:
        self.protected.append(plaintext)
        return f"{self.identity}:{base64.b64encode(plaintext[::-1]).decode('ascii')}"

    def unprotect(self, token: str) -> bytes:
        identity, _, payload = token.strip().partition(":")
        if identity != self.identity or not payload:
            raise ProtectionError("Secret cannot be decrypted with the current user's key")
        return base64.b64decode(payload)[::-1]


class FakePrompt:
    """Prompt returning a scripted answer and recording every call."""

    def __init__(self, answer: tuple[str, str] | None = ("prompted-user", "prompted-secret")) -> None:
        self.answer = answer
        self.calls: list[tuple[str, str | None]] = []

    def __call__(self, message: str, suggested_username: str | None = None) -> tuple[str, str] | None:
        self.calls.append((message, suggested_username))
        return self.answer


@pytest.fixture(scope="session", autouse=True)
def _structured_logging():
    """Let debug events from credcache loggers reach caplog."""
    configure_logging("DEBUG")


@pytest.fixture
def home_dir(tmp_path: Path) -> Path:
    """Temporary home directory (not created until the store needs it)."""
    return tmp_path / "home"


@pytest.fixture
def store_dir(home_dir: Path) -> Path:
    """Default store directory under the temporary home."""
    return home_dir / "Credentials"


@pytest.fixture
def protection() -> FakeProtectionProvider:
    return FakeProtectionProvider()


@pytest.fixture
def prompt() -> FakePrompt:
    return FakePrompt()


@pytest.fixture
def store_config(protection: FakeProtectionProvider, home_dir: Path) -> StoreConfig:
    return StoreConfig(protection_provider=protection, home_directory_resolver=lambda: home_dir)


@pytest.fixture
def store(store_config: StoreConfig, prompt: FakePrompt) -> CredentialStore:
    """CredentialStore over a temporary home with fake protection and prompt."""
    return CredentialStore(store_config, prompt=prompt)


@pytest.fixture
def codec(protection: FakeProtectionProvider) -> CredentialCodec:
    return CredentialCodec(protection)


@pytest.fixture
def stored(store_dir: Path, codec: CredentialCodec):
    """Write a credential directly through the codec; returns its paths."""

    def _stored(name: str = "vCenter", username: str = "admin", secret: str = "s3cr3t"):
        store_dir.mkdir(parents=True, exist_ok=True)
        paths = artifact_paths(store_dir, name)
        codec.write(paths, username, secret)
        return paths

    return _stored


@pytest.fixture
def make_protection():
    """Factory for fake providers bound to a given user identity."""
    return FakeProtectionProvider

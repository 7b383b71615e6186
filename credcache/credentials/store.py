"""Credential store: retrieval policy over the naming and codec layers.

The policy resolves a credential in priority order:

1. delete mode removes both artifacts and returns nothing
2. a caller-supplied credential is written and returned unchanged
3. reset mode skips the read and goes straight to the prompt
4. otherwise the stored record is read; if it is unusable the caller is
   either told prompting is disallowed or the human is prompted, and the
   answer is written back

Every stage reports through ReadOutcome / RetrievalResult values. Errors
raised by the naming or codec layers end the flow and are captured as
``RetrievalResult.error``; ``get_stored_credential`` turns them into a
single printed diagnostic for scripts that expect "credential or nothing".

Example:
    >>> store = CredentialStore.from_settings(CacheSettings.load())
    >>> result = store.retrieve("vCenter", username="admin")
    >>> if result.credential:
    ...     connect(result.credential.username, result.credential.secret)
"""

from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

import click

from credcache.config.settings import CacheSettings
from credcache.enums import ReadStatus
from credcache.exceptions import CredcacheError
from credcache.utils.logging_config import get_logger

from .codec import CredentialCodec
from .exceptions import CredentialError, CredentialFormatError, PromptSuppressedError, StoreUnavailableError
from .models import ArtifactPaths, Credential, RetrievalResult
from .naming import DEFAULT_DIRECTORY_NAME, artifact_paths, list_names, resolve_store_dir, validate_name
from .prompt import ClickCredentialPrompt, CredentialPrompt
from .protection import ProtectionProvider, create_protection_provider

log = get_logger(__name__)

SuppliedCredential = Credential | tuple[str, str]


@dataclass(frozen=True)
class StoreConfig:
    """Ambient dependencies injected into the store once.

    Attributes:
        protection_provider: Encrypt/decrypt capability scoped to the current user
        home_directory_resolver: Returns the current user's home directory
        directory_name: Default store subdirectory of the home directory
        store_path: Default store directory overriding the home-based one
    """

    protection_provider: ProtectionProvider
    home_directory_resolver: Callable[[], Path] = Path.home
    directory_name: str = DEFAULT_DIRECTORY_NAME
    store_path: Path | None = None

    @classmethod
    def from_settings(
        cls,
        settings: CacheSettings,
        home_directory_resolver: Callable[[], Path] = Path.home,
    ) -> "StoreConfig":
        """Build a store configuration from loaded settings.

        Raises:
            ProtectionError: If the configured protection backend cannot be built
            StoreUnavailableError: If the home directory or the current user cannot be determined
        """
        try:
            if settings.store_path:
                default_dir = Path(settings.store_path).expanduser()
            else:
                default_dir = Path(home_directory_resolver()) / settings.directory_name
            provider = create_protection_provider(settings, default_dir)
        except (OSError, RuntimeError, KeyError) as e:
            raise StoreUnavailableError(
                f"Cannot configure credential store: {e}",
                suggestion="Set CREDCACHE_STORE_PATH and CREDCACHE_KEYRING_ACCOUNT explicitly",
            ) from e

        return cls(
            protection_provider=provider,
            home_directory_resolver=home_directory_resolver,
            directory_name=settings.directory_name,
            store_path=settings.store_path,
        )


class CredentialStore:
    """Name, persist, retrieve, invalidate and repair stored credentials.

    Attributes:
        config: Injected store configuration
        codec: Codec reading and writing artifact pairs
        prompt: Collaborator asking a human for a credential
    """

    def __init__(self, config: StoreConfig, prompt: CredentialPrompt | None = None) -> None:
        self.config = config
        self.codec = CredentialCodec(config.protection_provider)
        self.prompt: CredentialPrompt = prompt or ClickCredentialPrompt()

    @classmethod
    def from_settings(cls, settings: CacheSettings, prompt: CredentialPrompt | None = None) -> "CredentialStore":
        return cls(StoreConfig.from_settings(settings), prompt=prompt)

    def _store_dir(self, store_path: str | Path | None) -> Path:
        return resolve_store_dir(
            store_path or self.config.store_path,
            self.config.home_directory_resolver,
            self.config.directory_name,
        )

    def paths_for(self, name: str, store_path: str | Path | None = None) -> ArtifactPaths:
        """Validate a name and resolve its artifact paths.

        Raises:
            InvalidNameError: If the name is invalid (checked before any filesystem access)
            StoreUnavailableError: If the store directory cannot be resolved or created
        """
        validate_name(name)
        return artifact_paths(self._store_dir(store_path), name)

    def retrieve(
        self,
        name: str,
        *,
        store_path: str | Path | None = None,
        credential: SuppliedCredential | None = None,
        username: str | None = None,
        message: str | None = None,
        no_prompt: bool = False,
        reset: bool = False,
        delete: bool = False,
    ) -> RetrievalResult:
        """Run the retrieval policy for one credential.

        Args:
            name: Credential name (word characters and hyphens only)
            store_path: Store directory overriding the configured default
            credential: Ready-made credential to store and return
            username: Username suggested to the prompt
            message: Prompt text; defaults to one naming the credential
            no_prompt: Fail instead of prompting when nothing usable is stored
            reset: Ignore any stored credential and prompt for a new one
            delete: Remove the stored credential

        Returns:
            RetrievalResult carrying the credential, a cancellation, or the error
        """
        try:
            return self._retrieve(
                name,
                store_path=store_path,
                credential=credential,
                username=username,
                message=message,
                no_prompt=no_prompt,
                reset=reset,
                delete=delete,
            )
        except CredentialError as e:
            log.debug("credential_retrieval_failed", name=name, error=e.message, kind=type(e).__name__)
            return RetrievalResult(error=e)
        except OSError as e:
            log.debug("credential_store_io_failed", name=name, error=str(e))
            return RetrievalResult(
                error=StoreUnavailableError(f"Credential store I/O failed: {e}", reference=name),
            )

    def _retrieve(
        self,
        name: str,
        *,
        store_path: str | Path | None,
        credential: SuppliedCredential | None,
        username: str | None,
        message: str | None,
        no_prompt: bool,
        reset: bool,
        delete: bool,
    ) -> RetrievalResult:
        paths = self.paths_for(name, store_path)

        if delete:
            self.codec.delete(paths)
            log.info("credential_deleted", name=name)
            return RetrievalResult()

        if credential is not None:
            supplied = self._as_credential(name, credential)
            self.codec.write(paths, supplied.username, supplied.secret)
            log.info("credential_stored", name=name, source="supplied")
            return RetrievalResult(credential=credential if isinstance(credential, Credential) else supplied)

        recovered_username: str | None = None
        if reset:
            log.info("credential_reset", name=name)
        else:
            outcome = self.codec.inspect(paths)
            if outcome.status == ReadStatus.FOUND:
                log.debug("credential_read", name=name)
                return RetrievalResult(credential=outcome.credential)

            if outcome.status == ReadStatus.UNREADABLE:
                log.warning("credential_unreadable", name=name, reason=outcome.reason)
            else:
                log.debug("credential_not_found", name=name)
            recovered_username = outcome.username

            if no_prompt:
                raise PromptSuppressedError(
                    f"Unable to read stored credential '{name}' "
                    "and prompting for a new credential is not allowed",
                    reference=name,
                    suggestion="Store the credential first with: credcache set " + name,
                )

        return self._prompt_fallback(
            name,
            paths,
            message=message,
            suggested_username=username or recovered_username,
        )

    def _prompt_fallback(
        self,
        name: str,
        paths: ArtifactPaths,
        message: str | None,
        suggested_username: str | None,
    ) -> RetrievalResult:
        prompt_message = message or f"Enter the credential for '{name}'"
        answer = self.prompt(prompt_message, suggested_username)
        if answer is None:
            log.info("credential_prompt_cancelled", name=name)
            return RetrievalResult(cancelled=True)

        entered = Credential(name=name, username=answer[0], secret=answer[1])
        self.codec.write(paths, entered.username, entered.secret)
        log.info("credential_stored", name=name, source="prompt")
        return RetrievalResult(credential=entered)

    @staticmethod
    def _as_credential(name: str, credential: SuppliedCredential) -> Credential:
        if isinstance(credential, Credential):
            if credential.name != name:
                raise CredentialFormatError(
                    f"Supplied credential is named {credential.name!r}, not {name!r}",
                    reference=name,
                )
            return credential

        if (
            not isinstance(credential, tuple | list)
            or len(credential) != 2
            or not all(isinstance(part, str) for part in credential)
        ):
            raise CredentialFormatError(
                "Supplied credential must be a Credential or a (username, secret) pair of strings",
                reference=name,
            )
        username, secret = credential
        return Credential(name=name, username=username, secret=secret)

    def get(self, name: str, **options) -> RetrievalResult:
        """Read a credential, prompting when nothing usable is stored."""
        return self.retrieve(name, **options)

    def store(self, name: str, username: str, secret: str, store_path: str | Path | None = None) -> RetrievalResult:
        """Store a credential, overwriting any existing one."""
        return self.retrieve(name, store_path=store_path, credential=(username, secret))

    def reset(self, name: str, **options) -> RetrievalResult:
        """Prompt for a new credential regardless of what is stored."""
        return self.retrieve(name, reset=True, **options)

    def delete(self, name: str, store_path: str | Path | None = None) -> RetrievalResult:
        """Delete a credential; deleting an absent credential succeeds."""
        return self.retrieve(name, store_path=store_path, delete=True)

    def list_credentials(self, store_path: str | Path | None = None) -> list[tuple[str, bool]]:
        """List stored credential names as ``(name, complete)`` tuples.

        Raises:
            StoreUnavailableError: If the store directory cannot be resolved or read
        """
        store_dir = self._store_dir(store_path)
        try:
            return list_names(store_dir)
        except OSError as e:
            raise StoreUnavailableError(f"Cannot list credential store {store_dir}: {e}") from e


def format_diagnostic(error: CredcacheError) -> str:
    """Render an error as a single human-readable line."""
    line = error.message
    reference = getattr(error, "reference", None)
    if reference and reference not in line:
        line = f"{line} (credential: {reference})"
    return line


def emit_diagnostic(error: CredcacheError) -> None:
    """Print an error as a one-line diagnostic on stderr and log it."""
    line = format_diagnostic(error)
    log.debug("credential_diagnostic", kind=type(error).__name__, diagnostic=line)
    click.echo(click.style(f"Error: {line}", fg="red"), err=True)


def get_stored_credential(
    name: str,
    *,
    store: CredentialStore | None = None,
    settings: CacheSettings | None = None,
    **options,
) -> Credential | None:
    """Retrieve a credential for a script; never raises.

    Accepts the same options as ``CredentialStore.retrieve``. Any failure is
    printed as a single diagnostic line and reported as None, the same as a
    cancelled prompt or delete mode.

    Args:
        name: Credential name
        store: Store to use; built from settings when omitted
        settings: Settings used to build the store; loaded from the environment when omitted

    Returns:
        The resolved credential, or None
    """
    try:
        if store is None:
            store = CredentialStore.from_settings(settings or CacheSettings.load())
        result = store.retrieve(name, **options)
    except CredcacheError as e:
        emit_diagnostic(e)
        return None
    except Exception as e:
        log.debug("credential_adapter_failed", name=name, exc_info=True)
        emit_diagnostic(CredcacheError(f"Unexpected error retrieving credential '{name}': {e}"))
        return None

    if result.error is not None:
        emit_diagnostic(result.error)
        return None
    return result.credential

"""Credential naming rules and store path resolution."""

import logging
import re
from collections.abc import Callable
from pathlib import Path

from .exceptions import InvalidNameError, StoreUnavailableError
from .models import SECRET_SUFFIX, USERNAME_SUFFIX, ArtifactPaths

logger = logging.getLogger(__name__)

# Word characters or hyphens only; keeps the name safe as a path segment
NAME_PATTERN = re.compile(r"[\w-]+")

DEFAULT_DIRECTORY_NAME = "Credentials"


def validate_name(name: str) -> str:
    """Validate a credential name.

    Args:
        name: Logical credential name chosen by the caller

    Returns:
        The name, unchanged

    Raises:
        InvalidNameError: If the name is empty or contains whitespace or
            characters other than word characters and hyphens
    """
    if not isinstance(name, str) or not NAME_PATTERN.fullmatch(name):
        raise InvalidNameError(
            f"Invalid credential name: {name!r}",
            suggestion="Use only letters, digits, underscores and hyphens (e.g. vCenter-prod)",
        )
    return name


def resolve_store_dir(
    store_path: str | Path | None,
    home_directory_resolver: Callable[[], Path],
    directory_name: str = DEFAULT_DIRECTORY_NAME,
) -> Path:
    """Resolve the effective store directory, creating it if absent.

    Args:
        store_path: Explicit store directory; overrides the default
        home_directory_resolver: Returns the current user's home directory
        directory_name: Subdirectory of the home directory used by default

    Returns:
        Path to an existing store directory

    Raises:
        StoreUnavailableError: If the path is not a directory or cannot be created
    """
    try:
        if store_path:
            store_dir = Path(store_path).expanduser()
        else:
            store_dir = Path(home_directory_resolver()) / directory_name
    except (OSError, RuntimeError, KeyError) as e:
        # Path.home() raises RuntimeError/KeyError when no home can be determined
        raise StoreUnavailableError(
            f"Cannot determine credential store location: {e}",
            suggestion="Pass an explicit store path or set CREDCACHE_STORE_PATH",
        ) from e

    if store_dir.exists():
        if not store_dir.is_dir():
            raise StoreUnavailableError(
                f"Credential store path is not a directory: {store_dir}",
            )
        return store_dir

    try:
        store_dir.mkdir(mode=0o700, parents=True, exist_ok=True)
    except OSError as e:
        raise StoreUnavailableError(
            f"Cannot create credential store directory {store_dir}: {e}",
            suggestion="Check permissions on the parent directory",
        ) from e

    logger.info(f"Created credential store directory: {store_dir}")
    return store_dir


def artifact_paths(store_dir: Path, name: str) -> ArtifactPaths:
    """Build the username and secret artifact paths for a credential.

    Args:
        store_dir: Resolved store directory
        name: Validated credential name

    Returns:
        ArtifactPaths for ``<store_dir>/<name>.username`` and ``<name>.password``
    """
    return ArtifactPaths(
        username=store_dir / f"{name}{USERNAME_SUFFIX}",
        secret=store_dir / f"{name}{SECRET_SUFFIX}",
    )


def list_names(store_dir: Path) -> list[tuple[str, bool]]:
    """List credential names present in a store directory.

    Args:
        store_dir: Resolved store directory

    Returns:
        Sorted ``(name, complete)`` tuples; ``complete`` is False when only
        one of the two artifacts exists
    """
    seen: dict[str, set[str]] = {}
    for entry in store_dir.iterdir():
        if not entry.is_file():
            continue
        for suffix in (USERNAME_SUFFIX, SECRET_SUFFIX):
            if entry.name.endswith(suffix):
                name = entry.name[: -len(suffix)]
                if NAME_PATTERN.fullmatch(name):
                    seen.setdefault(name, set()).add(suffix)

    return [(name, len(suffixes) == 2) for name, suffixes in sorted(seen.items())]

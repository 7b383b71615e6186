"""Enumerations for credcache read outcomes and protection backends."""

from enum import Enum


class ReadStatus(str, Enum):
    """Outcome of inspecting a credential's artifact pair.

    Both NOT_FOUND and UNREADABLE mean "no usable stored credential"; they
    are kept apart only so the store can log corrupt records differently
    from records that were never set.
    """

    FOUND = "found"
    NOT_FOUND = "not_found"
    UNREADABLE = "unreadable"

    def __str__(self) -> str:
        return self.value


class ProtectionBackend(str, Enum):
    """Protection providers selectable through configuration.

    - keyring: Fernet key held in the OS keyring of the current user
    - passphrase: Fernet key derived from a passphrase (headless systems)
    """

    KEYRING = "keyring"
    PASSPHRASE = "passphrase"

    def __str__(self) -> str:
        return self.value

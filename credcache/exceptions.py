"""Custom exception hierarchy for credcache.

This module defines a structured exception hierarchy that enables
precise error handling and user-friendly diagnostics throughout the
credential cache.

Exception Hierarchy:
    CredcacheError (base)
    ├── ConfigurationError
    └── CredentialError
        ├── InvalidNameError
        ├── StoreUnavailableError
        ├── UnreadableCredentialError
        ├── PromptSuppressedError
        ├── CredentialFormatError
        └── ProtectionError

Example Usage:
    >>> from credcache.exceptions import ConfigurationError
    >>> try:
    ...     load_config(path)
    ... except FileNotFoundError as e:
    ...     raise ConfigurationError(f"Config file not found: {path}") from e
"""


class CredcacheError(Exception):
    """Base exception for all credcache errors.

    Attributes:
        message: Human-readable error description
    """

    def __init__(self, message: str) -> None:
        """Initialize exception.

        Args:
            message: Error message
        """
        self.message = message
        super().__init__(message)


class ConfigurationError(CredcacheError):
    """Configuration-related errors.

    Examples:
        - Configuration file not found
        - Invalid YAML syntax
        - Invalid configuration values
    """

    pass


class CredentialError(CredcacheError):
    """Credential-related errors.

    This is the base class for every failure of the credential store.

    Attributes:
        message: Human-readable error description
        reference: Name of the credential that failed
        suggestion: Optional suggestion for resolution
    """

    def __init__(
        self,
        message: str,
        reference: str | None = None,
        suggestion: str | None = None,
    ) -> None:
        """Initialize exception.

        Args:
            message: Error message
            reference: Name of the credential that failed
            suggestion: Optional suggestion for resolution
        """
        self.reference = reference
        self.suggestion = suggestion

        full_message = message
        if reference:
            full_message = f"{message} (credential: {reference})"
        if suggestion:
            full_message = f"{full_message}\nSuggestion: {suggestion}"

        super().__init__(full_message)
        # Preserve original message (super sets self.message to full_message)
        self.message = message


class InvalidNameError(CredentialError):
    """Credential name contains whitespace or disallowed characters."""

    pass


class StoreUnavailableError(CredentialError):
    """Store directory cannot be resolved, created, or written."""

    pass


class UnreadableCredentialError(CredentialError):
    """Stored credential is missing, partial, or cannot be decrypted."""

    pass


class PromptSuppressedError(CredentialError):
    """No usable stored credential and prompting is disallowed."""

    pass


class CredentialFormatError(CredentialError):
    """Credential payload cannot be persisted (empty or multi-line username, empty secret)."""

    pass


class ProtectionError(CredentialError):
    """The protection primitive failed to encrypt or decrypt a secret.

    Raised by ``unprotect`` when a token was produced under a different
    user identity or key epoch.
    """

    pass

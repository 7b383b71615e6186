"""Interactive collection of a username/secret pair from a human.

The prompt only collects; persisting the result is the store's job. The
secret is never echoed or logged.
"""

from typing import Protocol

import click

from credcache.utils.logging_config import get_logger

log = get_logger(__name__)


class CredentialPrompt(Protocol):
    """Protocol for the interactive prompt collaborator.

    Returns a ``(username, secret)`` pair, or None when the human cancels.
    """

    def __call__(self, message: str, suggested_username: str | None = None) -> tuple[str, str] | None: ...


class ClickCredentialPrompt:
    """Terminal prompt built on click.

    The message goes to stderr so a script capturing stdout only sees the
    credential it asked for. Ctrl-C, EOF, or an empty secret cancels.

    Example:
        >>> prompt = ClickCredentialPrompt()
        >>> pair = prompt("Enter the credential for 'vCenter'", "admin")
    """

    def __init__(self, confirm_secret: bool = False) -> None:
        """Initialize prompt.

        Args:
            confirm_secret: Ask for the secret twice
        """
        self.confirm_secret = confirm_secret

    def __call__(self, message: str, suggested_username: str | None = None) -> tuple[str, str] | None:
        click.echo(message, err=True)

        try:
            username = click.prompt(
                "Username",
                default=suggested_username,
                err=True,
            ).strip()
            secret = click.prompt(
                "Password",
                hide_input=True,
                confirmation_prompt=self.confirm_secret,
                default="",
                show_default=False,
                err=True,
            )
        except click.Abort:
            click.echo(err=True)
            log.info("credential_prompt_cancelled")
            return None

        if not username or not secret:
            log.info("credential_prompt_cancelled", reason="empty answer")
            return None

        return username, secret

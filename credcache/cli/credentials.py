"""CLI commands for the credential cache.

This module provides the ``credcache`` subcommands for reading, storing,
deleting and listing cached credentials.

Credentials live in a per-user store directory (``~/Credentials`` by
default) as two files per name: ``<name>.username`` in plaintext and
``<name>.password`` encrypted with a key only the current user can use.

Commands:
    - get: Retrieve a credential, prompting when none is usable
    - set: Store a credential, overwriting any existing one
    - delete: Remove a stored credential
    - list: Show stored credential names
    - test: Check the protection backend

Example:
    Store and retrieve a credential::

        $ credcache set vCenter --username admin
        $ credcache get vCenter --no-prompt
        $ credcache delete vCenter --yes
"""

import json
import sys

import click

from credcache.config.settings import CacheSettings
from credcache.credentials import (
    ClickCredentialPrompt,
    Credential,
    CredentialStore,
    RetrievalResult,
    format_diagnostic,
)
from credcache.exceptions import CredcacheError


def _mask(value: str) -> str:
    if len(value) > 8:
        return value[:2] + "*" * (len(value) - 4) + value[-2:]
    return "*" * len(value)


def _report_error(error: CredcacheError) -> None:
    """Print an error (and its suggestion, if any) to stderr."""
    click.echo(click.style(f"Error: {format_diagnostic(error)}", fg="red"), err=True)
    suggestion = getattr(error, "suggestion", None)
    if suggestion:
        click.echo(click.style(f"Suggestion: {suggestion}", fg="yellow"), err=True)


def _build_store(ctx: click.Context, confirm_secret: bool = False) -> CredentialStore:
    """Build a store from the settings loaded by the root command.

    Exits with status 1 if the store cannot be configured.
    """
    obj = ctx.obj or {}
    store_factory = obj.get("store_factory")

    try:
        settings = obj.get("settings") or CacheSettings.load()
        if store_factory is not None:
            return store_factory(settings)
        return CredentialStore.from_settings(settings, prompt=ClickCredentialPrompt(confirm_secret=confirm_secret))
    except CredcacheError as e:
        _report_error(e)
        sys.exit(1)


def _finish(result: RetrievalResult) -> Credential:
    """Exit with status 1 unless the result carries a credential."""
    if result.error is not None:
        _report_error(result.error)
        sys.exit(1)
    if result.credential is None:
        if result.cancelled:
            click.echo(click.style("No credential entered", fg="yellow"), err=True)
        sys.exit(1)
    return result.credential


store_path_option = click.option(
    "--store-path",
    type=click.Path(file_okay=False),
    default=None,
    help="Credential store directory (default: ~/Credentials)",
)


@click.command(name="get")
@click.argument("name")
@store_path_option
@click.option("--username", default=None, help="Username suggested when prompting")
@click.option("--message", default=None, help="Text shown when prompting")
@click.option("--no-prompt", is_flag=True, help="Fail instead of prompting when nothing usable is stored")
@click.option("--reset", is_flag=True, help="Ignore the stored credential and prompt for a new one")
@click.option("--show-secret", is_flag=True, help="Show the full secret (default: masked)")
@click.option("--json", "as_json", is_flag=True, help="Print the credential as JSON")
@click.pass_context
def get_command(
    ctx: click.Context,
    name: str,
    store_path: str | None,
    username: str | None,
    message: str | None,
    no_prompt: bool,
    reset: bool,
    show_secret: bool,
    as_json: bool,
):
    """Retrieve the credential NAME.

    Reads the stored credential. If it is missing or unreadable, prompts for
    a new one and stores it, unless --no-prompt is given.

    Examples:

        credcache get vCenter

        credcache get vCenter --no-prompt --json --show-secret

        credcache get vCenter --reset --username admin
    """
    store = _build_store(ctx, confirm_secret=reset)
    result = store.retrieve(
        name,
        store_path=store_path,
        username=username,
        message=message,
        no_prompt=no_prompt,
        reset=reset,
    )
    credential = _finish(result)

    secret = credential.secret if show_secret else _mask(credential.secret)
    if as_json:
        click.echo(json.dumps({"name": credential.name, "username": credential.username, "secret": secret}))
        return

    click.echo(f"Username: {credential.username}")
    click.echo(f"Secret: {secret}")
    if not show_secret:
        click.echo(click.style("Use --show-secret to display the full secret", fg="yellow"), err=True)


@click.command(name="set")
@click.argument("name")
@store_path_option
@click.option("--username", required=True, help="Username to store")
@click.option(
    "--secret",
    prompt=True,
    hide_input=True,
    confirmation_prompt=True,
    help="Secret to store (will prompt if not provided)",
)
@click.pass_context
def set_command(ctx: click.Context, name: str, store_path: str | None, username: str, secret: str):
    """Store a credential under NAME, overwriting any existing one.

    Examples:

        credcache set vCenter --username admin

        credcache set build-agent --username svc_build --store-path /srv/creds
    """
    store = _build_store(ctx)
    credential = _finish(store.store(name, username, secret, store_path=store_path))

    click.echo(click.style(f"Credential stored: {credential.name}", fg="green"))


@click.command(name="delete")
@click.argument("name")
@store_path_option
@click.confirmation_option(prompt="Are you sure you want to delete this credential?")
@click.pass_context
def delete_command(ctx: click.Context, name: str, store_path: str | None):
    """Delete the credential NAME.

    Deleting a credential that is not stored is not an error.
    """
    store = _build_store(ctx)
    result = store.delete(name, store_path=store_path)
    if result.error is not None:
        _report_error(result.error)
        sys.exit(1)

    click.echo(click.style(f"Credential deleted: {name}", fg="green"))


@click.command(name="list")
@store_path_option
@click.pass_context
def list_command(ctx: click.Context, store_path: str | None):
    """List stored credential names.

    Names whose username or password file is missing are marked incomplete;
    reading them will prompt for a new credential.
    """
    store = _build_store(ctx)
    try:
        entries = store.list_credentials(store_path)
    except CredcacheError as e:
        _report_error(e)
        sys.exit(1)

    if not entries:
        click.echo(click.style("No credentials stored", fg="yellow"), err=True)
        return

    for entry_name, complete in entries:
        if complete:
            click.echo(entry_name)
        else:
            click.echo(f"{entry_name} " + click.style("(incomplete)", fg="yellow"))


@click.command(name="test")
@click.pass_context
def test_command(ctx: click.Context):
    """Test the configured protection backend.

    Checks availability and encrypts then decrypts a sample value.
    """
    store = _build_store(ctx)
    provider = store.config.protection_provider

    click.echo(click.style("Testing protection backend...", bold=True))
    click.echo(f"Backend: {provider.name}")

    click.echo("Availability: ", nl=False)
    if not provider.available:
        click.echo(click.style("Not available", fg="red"))
        click.echo("  Configure an OS keyring, or set CREDCACHE_PROTECTION=passphrase")
        sys.exit(1)
    click.echo(click.style("Available", fg="green"))

    click.echo("Round trip: ", nl=False)
    try:
        token = provider.protect(b"credcache-test")
        if provider.unprotect(token) != b"credcache-test":
            click.echo(click.style("Failed (decrypted value differs)", fg="red"))
            sys.exit(1)
    except CredcacheError as e:
        click.echo(click.style("Failed", fg="red"))
        _report_error(e)
        sys.exit(1)
    click.echo(click.style("OK", fg="green"))

    click.echo()
    click.echo(click.style("All tests passed", fg="green", bold=True))

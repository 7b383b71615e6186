"""CLI commands for credcache.

The CLI is built using Click with the main entry point ``credcache``
(credcache.main). Each command maps onto one mode of the credential store.

Key Commands:
    get: Retrieve a credential, prompting when none is usable
    set: Store a credential
    delete: Remove a credential
    list: Show stored credential names
    test: Check the protection backend

Usage Examples::

    $ credcache set vCenter --username admin
    $ credcache get vCenter --no-prompt --json --show-secret
"""

from credcache.cli.credentials import delete_command, get_command, list_command, set_command, test_command

__all__ = ["get_command", "set_command", "delete_command", "list_command", "test_command"]

"""Tests for the credential store retrieval policy."""

import logging
from pathlib import Path

import pytest
import structlog

from credcache.config.settings import CacheSettings
from credcache.credentials import (
    Credential,
    CredentialStore,
    InvalidNameError,
    KeyringProtectionProvider,
    PassphraseProtectionProvider,
    PromptSuppressedError,
    StoreConfig,
    StoreUnavailableError,
    artifact_paths,
    format_diagnostic,
    get_stored_credential,
)
from credcache.exceptions import CredentialFormatError
from credcache.utils.logging_config import configure_logging


class TestReadPath:
    """Default path: read the stored credential."""

    def test_returns_stored_credential(self, store, stored, prompt):
        stored("vCenter", "admin", "s3cr3t")

        result = store.retrieve("vCenter")

        assert result.ok
        assert result.credential == Credential(name="vCenter", username="admin", secret="s3cr3t")
        assert prompt.calls == []

    def test_round_trip_through_store(self, store, prompt):
        """store() then get() returns identical username and secret."""
        store.store("vCenter", "admin", "s3cr3t")

        result = store.get("vCenter")

        assert (result.credential.username, result.credential.secret) == ("admin", "s3cr3t")
        assert prompt.calls == []

    def test_missing_prompts_and_persists(self, store, prompt, store_dir):
        """Nothing stored: prompt, write the answer, return it."""
        result = store.retrieve("vCenter")

        assert result.credential == Credential("vCenter", "prompted-user", "prompted-secret")
        assert prompt.calls == [("Enter the credential for 'vCenter'", None)]
        assert (store_dir / "vCenter.username").read_text() == "prompted-user\n"

        # Second read is served from disk
        prompt.answer = None
        assert store.retrieve("vCenter").credential.secret == "prompted-secret"

    def test_partial_record_treated_as_missing(self, store, stored, prompt):
        """Only the username artifact left: prompt with the recovered username."""
        paths = stored("vCenter", "admin", "s3cr3t")
        paths.secret.unlink()

        result = store.retrieve("vCenter")

        assert result.credential.username == "prompted-user"
        assert prompt.calls == [("Enter the credential for 'vCenter'", "admin")]

    def test_undecryptable_record_prompts(self, store_config, stored, prompt, make_protection):
        """A record written under another identity is unusable."""
        stored("vCenter", "admin", "s3cr3t")
        foreign = CredentialStore(
            StoreConfig(
                protection_provider=make_protection("mallory"),
                home_directory_resolver=store_config.home_directory_resolver,
            ),
            prompt=prompt,
        )

        result = foreign.retrieve("vCenter")

        assert result.credential.username == "prompted-user"
        assert prompt.calls[0][1] == "admin"

    def test_unreadable_logs_warning(self, store, stored, caplog):
        """Corrupt records are logged as warnings; never-set ones are not."""
        paths = stored("vCenter")
        paths.secret.write_text("garbage")

        with caplog.at_level(logging.DEBUG, logger="credcache"):
            store.retrieve("vCenter")
            store.retrieve("other")

        warnings = [r for r in caplog.records if r.levelno == logging.WARNING]
        assert len(warnings) == 1
        assert "credential_unreadable" in warnings[0].getMessage()

    def test_custom_message_passed_to_prompt(self, store, prompt):
        store.retrieve("vCenter", message="Log in to vCenter")

        assert prompt.calls == [("Log in to vCenter", None)]

    def test_explicit_username_beats_recovered(self, store, stored, prompt):
        """An explicit username is the suggestion even when one is recoverable."""
        paths = stored("vCenter", "admin", "s3cr3t")
        paths.secret.unlink()

        store.retrieve("vCenter", username="operator")

        assert prompt.calls == [("Enter the credential for 'vCenter'", "operator")]

    def test_cancelled_prompt_returns_nothing(self, store, prompt, store_dir):
        """Cancelling returns no credential, raises nothing, writes nothing."""
        prompt.answer = None

        result = store.retrieve("vCenter")

        assert result.ok
        assert result.cancelled
        assert result.credential is None
        assert not (store_dir / "vCenter.username").exists()
        assert not (store_dir / "vCenter.password").exists()

    def test_store_path_override(self, store, prompt, tmp_path):
        custom = tmp_path / "custom"

        store.store("vCenter", "admin", "s3cr3t", store_path=custom)

        assert (custom / "vCenter.username").exists()
        assert store.retrieve("vCenter", store_path=custom).credential.secret == "s3cr3t"


class TestNoPrompt:
    """no_prompt mode."""

    def test_missing_fails(self, store, prompt, store_dir):
        result = store.retrieve("vCenter", no_prompt=True)

        assert result.credential is None
        assert isinstance(result.error, PromptSuppressedError)
        assert "prompting for a new credential is not allowed" in result.error.message
        assert prompt.calls == []
        assert list(store_dir.iterdir()) == []

    def test_partial_fails(self, store, stored, prompt):
        paths = stored("vCenter")
        paths.secret.unlink()

        result = store.retrieve("vCenter", no_prompt=True)

        assert isinstance(result.error, PromptSuppressedError)
        assert prompt.calls == []

    def test_readable_credential_still_returned(self, store, stored):
        stored("vCenter", "admin", "s3cr3t")

        result = store.retrieve("vCenter", no_prompt=True)

        assert result.credential.secret == "s3cr3t"


class TestReset:
    """reset mode."""

    def test_bypasses_valid_credential(self, store, stored, prompt):
        """Even a readable credential is replaced through the prompt."""
        stored("vCenter", "admin", "s3cr3t")

        result = store.reset("vCenter")

        assert result.credential == Credential("vCenter", "prompted-user", "prompted-secret")
        assert len(prompt.calls) == 1
        assert store.retrieve("vCenter").credential.secret == "prompted-secret"

    def test_reset_suggests_explicit_username_only(self, store, stored, prompt):
        """Reset skips the read, so no stored username is suggested."""
        stored("vCenter", "admin", "s3cr3t")

        store.retrieve("vCenter", reset=True)
        store.retrieve("vCenter", reset=True, username="operator")

        assert [call[1] for call in prompt.calls] == [None, "operator"]

    def test_reset_ignores_no_prompt(self, store, prompt):
        store.retrieve("vCenter", reset=True, no_prompt=True)

        assert len(prompt.calls) == 1

    def test_cancelled_reset_keeps_old_credential(self, store, stored, prompt):
        stored("vCenter", "admin", "s3cr3t")
        prompt.answer = None

        result = store.reset("vCenter")

        assert result.credential is None
        assert result.cancelled
        assert store.retrieve("vCenter").credential.secret == "s3cr3t"


class TestSuppliedCredential:
    """Caller-supplied credential mode."""

    def test_overwrites_and_returns_same(self, store, stored, prompt):
        stored("vCenter", "admin", "old")
        supplied = Credential("vCenter", "root", "new")

        result = store.retrieve("vCenter", credential=supplied)

        assert result.credential is supplied
        assert store.retrieve("vCenter").credential == supplied
        assert prompt.calls == []

    @pytest.mark.parametrize("flags", [{"reset": True}, {"no_prompt": True}, {"reset": True, "no_prompt": True}])
    def test_ignores_reset_and_no_prompt(self, store, prompt, flags):
        result = store.retrieve("vCenter", credential=("root", "new"), **flags)

        assert result.credential == Credential("vCenter", "root", "new")
        assert prompt.calls == []

    def test_tuple_credential(self, store):
        result = store.retrieve("vCenter", credential=("root", "new"))

        assert result.credential == Credential("vCenter", "root", "new")

    def test_invalid_supplied_credential(self, store):
        result = store.store("vCenter", "", "new")

        assert isinstance(result.error, CredentialFormatError)

    @pytest.mark.parametrize("supplied", [("a", "b", "c"), ("a",), "ab", ("a", 1)])
    def test_malformed_supplied_credential(self, store, store_dir, supplied):
        result = store.retrieve("vCenter", credential=supplied)

        assert isinstance(result.error, CredentialFormatError)
        assert "(username, secret) pair" in result.error.message
        assert not (store_dir / "vCenter.username").exists()

    def test_mismatched_credential_name_rejected(self, store, store_dir):
        """A Credential named differently from the requested name is not stored."""
        result = store.retrieve("vCenter", credential=Credential("other", "root", "new"))

        assert isinstance(result.error, CredentialFormatError)
        assert "'other'" in result.error.message
        assert not (store_dir / "vCenter.username").exists()


class TestDelete:
    """delete mode."""

    def test_delete_returns_nothing(self, store, stored, store_dir):
        stored("vCenter")

        result = store.delete("vCenter")

        assert result.ok
        assert result.credential is None
        assert list(store_dir.iterdir()) == []

    def test_delete_idempotent(self, store, stored, store_dir):
        stored("vCenter")

        assert store.delete("vCenter").ok
        assert store.delete("vCenter").ok
        assert store.delete("never-stored").ok
        assert list(store_dir.iterdir()) == []

    def test_delete_takes_priority(self, store, stored, prompt):
        """Delete wins over a supplied credential and reset."""
        stored("vCenter")

        result = store.retrieve("vCenter", delete=True, credential=("a", "b"), reset=True)

        assert result.credential is None
        assert prompt.calls == []
        assert store.retrieve("vCenter", no_prompt=True).credential is None


class TestErrors:
    """Errors are returned as values, never raised."""

    def test_invalid_name_before_filesystem(self, store, prompt, home_dir):
        result = store.retrieve("bad name!")

        assert isinstance(result.error, InvalidNameError)
        assert not home_dir.exists()
        assert prompt.calls == []

    def test_store_unavailable(self, store, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("x")

        result = store.retrieve("vCenter", store_path=blocker)

        assert isinstance(result.error, StoreUnavailableError)

    def test_prompt_write_failure_captured(self, store, prompt, store_dir, monkeypatch):
        """An I/O failure while persisting becomes a StoreUnavailableError."""

        def fail(*args, **kwargs):
            raise PermissionError("read-only file system")

        monkeypatch.setattr("credcache.credentials.codec.CredentialCodec._write_text", staticmethod(fail))

        result = store.retrieve("vCenter")

        assert isinstance(result.error, StoreUnavailableError)


class TestStoreConfig:
    """StoreConfig construction."""

    def test_defaults(self, protection):
        config = StoreConfig(protection_provider=protection)

        assert config.home_directory_resolver == Path.home
        assert config.directory_name == "Credentials"
        assert config.store_path is None

    def test_from_settings_keyring(self, tmp_path):
        settings = CacheSettings(directory_name="Secrets", keyring_account="alice")

        config = StoreConfig.from_settings(settings, home_directory_resolver=lambda: tmp_path)

        assert isinstance(config.protection_provider, KeyringProtectionProvider)
        assert config.directory_name == "Secrets"

    def test_from_settings_passphrase(self, tmp_path):
        settings = CacheSettings(protection="passphrase", passphrase="pw", store_path=tmp_path / "store")

        config = StoreConfig.from_settings(settings)

        assert isinstance(config.protection_provider, PassphraseProtectionProvider)
        assert config.store_path == tmp_path / "store"
        assert config.protection_provider.salt_path.parent == tmp_path / "store"
        assert not (tmp_path / "store").exists()

    def test_from_settings_home_unavailable(self):
        def no_home():
            raise RuntimeError("Could not determine home directory")

        with pytest.raises(StoreUnavailableError, match="Could not determine home directory"):
            StoreConfig.from_settings(CacheSettings(keyring_account="alice"), home_directory_resolver=no_home)

    def test_from_settings_user_unknown(self, tmp_path, monkeypatch):
        def no_user():
            raise KeyError("getpwuid(): uid not found: 4242")

        monkeypatch.setattr("credcache.credentials.protection.getpass.getuser", no_user)

        with pytest.raises(StoreUnavailableError, match="Cannot configure credential store"):
            StoreConfig.from_settings(CacheSettings(store_path=tmp_path / "store"))

    def test_configured_store_path_used(self, protection, prompt, tmp_path):
        config = StoreConfig(protection_provider=protection, store_path=tmp_path / "configured")
        store = CredentialStore(config, prompt=prompt)

        store.store("vCenter", "admin", "s3cr3t")

        assert (tmp_path / "configured" / "vCenter.password").exists()

    def test_list_credentials(self, store, stored):
        stored("vCenter")
        paths = stored("orphan")
        paths.username.unlink()

        assert store.list_credentials() == [("orphan", False), ("vCenter", True)]


class TestGetStoredCredential:
    """The never-raising script adapter."""

    def test_returns_credential(self, store, stored):
        stored("vCenter", "admin", "s3cr3t")

        credential = get_stored_credential("vCenter", store=store)

        assert credential == Credential("vCenter", "admin", "s3cr3t")

    def test_no_prompt_diagnostic(self, store, capsys):
        """Failures print one diagnostic line and return None."""
        credential = get_stored_credential("vCenter", store=store, no_prompt=True)

        assert credential is None
        err = capsys.readouterr().err
        assert "prompting for a new credential is not allowed" in err
        assert len([line for line in err.splitlines() if line.startswith("Error:")]) == 1

    def test_invalid_name_diagnostic(self, store, capsys):
        assert get_stored_credential("bad name!", store=store) is None
        assert "Invalid credential name" in capsys.readouterr().err

    def test_delete_returns_none(self, store, stored):
        paths = stored("vCenter")

        assert get_stored_credential("vCenter", store=store, delete=True) is None
        assert paths.exists() == (False, False)

    def test_configuration_error_diagnostic(self, capsys, monkeypatch):
        """A store that cannot be built is also just a diagnostic."""
        settings = CacheSettings(protection="passphrase")

        assert get_stored_credential("vCenter", settings=settings) is None
        assert "no passphrase configured" in capsys.readouterr().err

    def test_store_path_under_a_file(self, tmp_path, capsys):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        settings = CacheSettings(protection="passphrase", passphrase="pw", store_path=blocker / "store")

        assert get_stored_credential("vCenter", settings=settings, no_prompt=True) is None
        assert len(capsys.readouterr().err.splitlines()) == 1

    def test_unknown_user_diagnostic(self, tmp_path, capsys, monkeypatch):
        def no_user():
            raise KeyError("getpwuid(): uid not found: 4242")

        monkeypatch.setattr("credcache.credentials.protection.getpass.getuser", no_user)

        assert get_stored_credential("vCenter", settings=CacheSettings(store_path=tmp_path / "store")) is None
        assert "Cannot configure credential store" in capsys.readouterr().err

    def test_malformed_supplied_credential_diagnostic(self, store, capsys):
        assert get_stored_credential("vCenter", store=store, credential=("a", "b", "c")) is None
        assert "(username, secret) pair" in capsys.readouterr().err

    def test_unexpected_error_diagnostic(self, store, capsys):
        """Errors outside the credcache hierarchy are still reported, not raised."""

        def broken_prompt(message, suggested_username=None):
            raise RuntimeError("terminal went away")

        store.prompt = broken_prompt

        assert get_stored_credential("vCenter", store=store) is None
        err = capsys.readouterr().err
        assert err.startswith("Error: Unexpected error retrieving credential 'vCenter': terminal went away")
        assert len(err.splitlines()) == 1

    def test_invalid_name_with_passphrase_touches_nothing(self, tmp_path):
        settings = CacheSettings(protection="passphrase", passphrase="pw", store_path=tmp_path / "store")

        assert get_stored_credential("bad name!", settings=settings) is None
        assert not (tmp_path / "store").exists()

    def test_silent_without_logging_configuration(self, store, capsys, caplog):
        """With structlog left at its defaults, stdout stays empty and stderr holds one line."""
        structlog.reset_defaults()
        try:
            with caplog.at_level(logging.DEBUG, logger="credcache"):
                assert get_stored_credential("vCenter", store=store, no_prompt=True) is None
        finally:
            configure_logging("DEBUG")

        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err.splitlines() == [
            "Error: Unable to read stored credential 'vCenter' and prompting for a new credential is not allowed"
        ]
        assert "credential_not_found" in caplog.text


class TestFormatDiagnostic:
    def test_includes_reference(self):
        error = PromptSuppressedError("Cannot read", reference="vCenter")

        assert format_diagnostic(error) == "Cannot read (credential: vCenter)"

    def test_reference_not_repeated(self):
        error = PromptSuppressedError("Cannot read 'vCenter'", reference="vCenter")

        assert format_diagnostic(error) == "Cannot read 'vCenter'"

    def test_single_line_without_suggestion(self):
        error = InvalidNameError("Invalid credential name", suggestion="Use letters")

        assert "\n" not in format_diagnostic(error)


def test_artifact_pair_layout(store, store_dir):
    store.store("vCenter", "admin", "s3cr3t")

    assert artifact_paths(store_dir, "vCenter").exists() == (True, True)

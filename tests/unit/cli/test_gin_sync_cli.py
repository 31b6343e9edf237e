"""Tests for the gin-sync command line interface."""

import json
from unittest.mock import patch

import pytest
from click.testing import CliRunner

from gin_sync.annex.lifecycle import SetupReport
from gin_sync.cli import cli
from gin_sync.exceptions import AnnexStepError, AnnexSyncError, PermissionRemediationError
from gin_sync.models import DispatchResult


@pytest.fixture
def runner():
    return CliRunner()


@pytest.fixture
def config_file(tmp_path, test_key):
    path = tmp_path / "config.json"
    path.write_text(
        json.dumps(
            {
                "search": {"index_url": "http://search.test/index", "key": test_key},
                "repository_registry": str(tmp_path / "repos.json"),
            }
        )
    )
    (tmp_path / "repos.json").write_text(
        json.dumps(
            [
                {"id": 1, "owner": "alice", "name": "a"},
                {"id": 2, "owner": "bob", "name": "b"},
            ]
        )
    )
    return path


@pytest.fixture
def disabled_config_file(tmp_path, test_key):
    path = tmp_path / "disabled.json"
    path.write_text(json.dumps({"search": {"key": test_key}}))
    return path


class TestCipherCommands:
    def test_encrypt_then_decrypt(self, runner, config_file):
        encrypted = runner.invoke(cli, ["--config", str(config_file), "encrypt", "hello"])
        assert encrypted.exit_code == 0, encrypted.output

        token = encrypted.output.strip()
        decrypted = runner.invoke(cli, ["--config", str(config_file), "decrypt", token])

        assert decrypted.exit_code == 0, decrypted.output
        assert decrypted.output.strip() == "hello"

    def test_encrypt_with_bad_key_fails_cleanly(self, runner, tmp_path):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"search": {"key": "short"}}))

        result = runner.invoke(cli, ["--config", str(path), "encrypt", "hello"])

        assert result.exit_code == 1
        assert "Invalid encryption key length" in result.output

    def test_null_search_section_with_env_override_fails_cleanly(
        self, runner, tmp_path, monkeypatch
    ):
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"search": None}))
        monkeypatch.setenv("GIN_SYNC_INDEX_URL", "http://env/index")

        result = runner.invoke(cli, ["--config", str(path), "encrypt", "hello"])

        assert result.exit_code == 1
        assert "'search' must be an object" in result.output

    def test_invalid_config_file_fails_cleanly(self, runner, tmp_path):
        path = tmp_path / "config.json"
        path.write_text("{broken")

        result = runner.invoke(cli, ["--config", str(path), "encrypt", "hello"])

        assert result.exit_code == 1
        assert "Failed to load config" in result.output


class TestIndexCommands:
    def test_index_when_disabled(self, runner, disabled_config_file):
        result = runner.invoke(
            cli, ["--config", str(disabled_config_file), "index", "42", "alice/myrepo"]
        )

        assert result.exit_code == 0
        assert "Indexing not enabled" in result.output

    @patch("gin_sync.cli.IndexDispatcher")
    def test_index_reports_success(self, mock_dispatcher_cls, runner, config_file):
        dispatcher = mock_dispatcher_cls.return_value.__enter__.return_value
        dispatcher.dispatch.return_value = DispatchResult(
            repo_id=42, repo_path="alice/myrepo", success=True, status_code=200
        )

        result = runner.invoke(
            cli, ["--config", str(config_file), "index", "42", "alice/myrepo"]
        )

        assert result.exit_code == 0, result.output
        assert "Index request sent for alice/myrepo" in result.output
        sent = dispatcher.dispatch.call_args.args[0]
        assert (sent.id, sent.full_name) == (42, "alice/myrepo")

    @patch("gin_sync.cli.IndexDispatcher")
    def test_index_reports_failure(self, mock_dispatcher_cls, runner, config_file):
        dispatcher = mock_dispatcher_cls.return_value.__enter__.return_value
        dispatcher.dispatch.return_value = DispatchResult(
            repo_id=42, repo_path="alice/myrepo", success=False, status_code=500,
            error="HTTP 500",
        )

        result = runner.invoke(
            cli, ["--config", str(config_file), "index", "42", "alice/myrepo"]
        )

        assert result.exit_code == 1
        assert "[42: alice/myrepo] failed" in result.output

    def test_index_rejects_bad_full_name(self, runner, config_file):
        result = runner.invoke(cli, ["--config", str(config_file), "index", "42", "noslash"])

        assert result.exit_code == 2
        assert "owner/name" in result.output

    @patch("gin_sync.cli.IndexDispatcher")
    def test_rebuild_index_schedules_registry(self, mock_dispatcher_cls, runner, config_file):
        dispatcher = mock_dispatcher_cls.return_value
        dispatcher.config.enabled = True

        result = runner.invoke(cli, ["--config", str(config_file), "rebuild-index"])

        assert result.exit_code == 0, result.output
        assert "Scheduled 2 index requests" in result.output
        assert dispatcher.start_indexing.call_count == 2
        dispatcher.shutdown.assert_called_once_with(wait=True)

    def test_rebuild_index_without_endpoint(self, runner, disabled_config_file, tmp_path):
        registry = tmp_path / "repos.json"
        registry.write_text("[]")

        result = runner.invoke(
            cli,
            ["--config", str(disabled_config_file), "rebuild-index", "--registry", str(registry)],
        )

        assert result.exit_code == 1
        assert "Indexing service not configured" in result.output

    def test_rebuild_index_without_registry(self, runner, disabled_config_file):
        result = runner.invoke(cli, ["--config", str(disabled_config_file), "rebuild-index"])

        assert result.exit_code == 1
        assert "No repository registry" in result.output


class TestAnnexCommands:
    @patch("gin_sync.cli.AnnexLifecycle")
    def test_setup_success(self, mock_lifecycle_cls, runner, config_file, tmp_path):
        mock_lifecycle_cls.return_value.setup.return_value = SetupReport(path=str(tmp_path))

        result = runner.invoke(cli, ["--config", str(config_file), "annex", "setup", str(tmp_path)])

        assert result.exit_code == 0, result.output
        assert "Annex configured" in result.output

    @patch("gin_sync.cli.AnnexLifecycle")
    def test_setup_reports_failed_steps(self, mock_lifecycle_cls, runner, config_file, tmp_path):
        mock_lifecycle_cls.return_value.setup.return_value = SetupReport(
            path=str(tmp_path), failed_steps=["backend"]
        )

        result = runner.invoke(cli, ["--config", str(config_file), "annex", "setup", str(tmp_path)])

        assert result.exit_code == 0
        assert "Step failed: backend" in result.output

    @patch("gin_sync.cli.AnnexLifecycle")
    def test_setup_init_failure(self, mock_lifecycle_cls, runner, config_file, tmp_path):
        mock_lifecycle_cls.return_value.setup.side_effect = AnnexStepError("init", tmp_path)

        result = runner.invoke(cli, ["--config", str(config_file), "annex", "setup", str(tmp_path)])

        assert result.exit_code == 1
        assert "Annex step 'init' failed" in result.output

    @patch("gin_sync.cli.AnnexLifecycle")
    def test_sync_failure(self, mock_lifecycle_cls, runner, config_file, tmp_path):
        mock_lifecycle_cls.return_value.sync.side_effect = AnnexSyncError(tmp_path)

        result = runner.invoke(cli, ["--config", str(config_file), "annex", "sync", str(tmp_path)])

        assert result.exit_code == 1
        assert "git annex sync --content" in result.output

    @patch("gin_sync.cli.AnnexLifecycle")
    def test_teardown_reports_permission_failures(
        self, mock_lifecycle_cls, runner, config_file, tmp_path
    ):
        mock_lifecycle_cls.return_value.teardown.return_value = [
            PermissionRemediationError(tmp_path / "config", "Operation not permitted")
        ]

        result = runner.invoke(
            cli, ["--config", str(config_file), "annex", "teardown", str(tmp_path)]
        )

        assert result.exit_code == 1
        assert "Failed to change permissions" in result.output
        assert "Error: Could not fix permissions on 1 path(s)" in result.output

    @patch("gin_sync.cli.AnnexLifecycle")
    def test_purge_requires_confirmation(self, mock_lifecycle_cls, runner, config_file, tmp_path):
        result = runner.invoke(
            cli, ["--config", str(config_file), "annex", "purge", str(tmp_path)], input="n\n"
        )

        assert result.exit_code == 1
        mock_lifecycle_cls.return_value.purge.assert_not_called()

    @patch("gin_sync.cli.AnnexLifecycle")
    def test_purge_with_yes(self, mock_lifecycle_cls, runner, config_file, tmp_path):
        result = runner.invoke(
            cli, ["--config", str(config_file), "annex", "purge", "--yes", str(tmp_path)]
        )

        assert result.exit_code == 0, result.output
        mock_lifecycle_cls.return_value.purge.assert_called_once_with(tmp_path)

"""
Tests for the command line entry point and its exit codes.
"""

import json
from unittest.mock import MagicMock, patch

import pytest

from rd_autoadd import cli
from rd_autoadd.config import parse_config
from rd_autoadd.errors import AuthError, ConfigError, ProviderError
from rd_autoadd.models import RunState

RD_KEY = "K" * 52


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    for name in ("RD_AUTOADD_CONFIG", "RD_AUTOADD_LOG_DIR", "LOG_LEVEL", "TRAKT_ACCESS_TOKEN"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("REAL_DEBRID_API_KEY", RD_KEY)
    monkeypatch.setenv("TRAKT_CLIENT_ID", "client-id")
    path = tmp_path / "quality-preferences.json"
    path.write_text(json.dumps({"contentSources": {"trakt": {"enabled": True}}}))
    return path


@pytest.fixture
def rd_client():
    with patch.object(cli, "RealDebridClient") as client_cls:
        client_cls.return_value.get_user.return_value = {"username": "alice", "type": "premium"}
        yield client_cls.return_value


class TestMain:
    def test_success(self, config_file, rd_client):
        with patch.object(cli, "AutoAddRun") as run_cls:
            run_cls.return_value.run.return_value = RunState()
            assert cli.main(["--config", str(config_file), "--dry-run", "--max-per-run", "2"]) == 0

        config = run_cls.call_args[0][0]
        assert config.dry_run
        assert config.limits.max_torrents_per_run == 2
        assert (config_file.parent / "logs").is_dir()

    def test_missing_config_file(self, tmp_path, monkeypatch):
        monkeypatch.delenv("RD_AUTOADD_LOG_DIR", raising=False)
        monkeypatch.chdir(tmp_path)
        assert cli.main(["--config", str(tmp_path / "missing.json")]) == 1

    def test_missing_rd_key(self, config_file, monkeypatch):
        monkeypatch.delenv("REAL_DEBRID_API_KEY")
        with patch.object(cli, "AutoAddRun") as run_cls:
            assert cli.main(["--config", str(config_file)]) == 1
        run_cls.assert_not_called()

    def test_rejected_rd_key(self, config_file, rd_client):
        rd_client.get_user.side_effect = AuthError("bad_token", status=401)
        with patch.object(cli, "AutoAddRun") as run_cls:
            assert cli.main(["--config", str(config_file)]) == 1
        run_cls.assert_not_called()

    def test_unexpected_error(self, config_file, rd_client):
        with patch.object(cli, "AutoAddRun") as run_cls:
            run_cls.return_value.run.side_effect = RuntimeError("boom")
            assert cli.main(["--config", str(config_file)]) == 1

    def test_nothing_added_is_success(self, config_file, rd_client):
        with patch.object(cli, "AutoAddRun") as run_cls:
            run_cls.return_value.run.return_value = RunState(skipped_count=3)
            assert cli.main(["--config", str(config_file)]) == 0


class TestStartupChecks:
    def test_negative_cap_rejected(self):
        args = cli.build_parser().parse_args(["--max-per-run", "-1"])
        with pytest.raises(ConfigError):
            cli.apply_overrides(parse_config({}, environ={}), args)

    def test_trakt_without_client_id(self):
        config = parse_config({"contentSources": {"trakt": {"enabled": True}}}, environ={})
        with pytest.raises(ConfigError):
            cli.check_catalog_credentials(config)

    def test_watchlist_only_needs_token(self):
        data = {"contentSources": {"trakt": {"enabled": True, "lists": ["watchlist"]}}}
        with pytest.raises(ConfigError):
            cli.check_catalog_credentials(parse_config(data, environ={"TRAKT_CLIENT_ID": "id"}))
        cli.check_catalog_credentials(
            parse_config(data, environ={"TRAKT_CLIENT_ID": "id", "TRAKT_ACCESS_TOKEN": "tok"})
        )

    def test_verify_real_debrid_wraps_errors(self):
        client = MagicMock()
        client.get_user.side_effect = ProviderError("down", status=500)
        with pytest.raises(ConfigError, match="validation failed"):
            cli.verify_real_debrid(client)

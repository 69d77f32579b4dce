"""
Tests for webgate/cli
"""

from __future__ import annotations

import json

import pytest

from webgate.cli.main import create_parser, main
from webgate.providers.webchat import auth


class TestParser:
    """Test argument parsing"""

    def test_serve_mode(self):
        args = create_parser().parse_args(["--config", "x.json", "serve", "--mode", "native-api"])
        assert args.command == "serve"
        assert args.mode == "native-api"
        assert args.config == "x.json"

    def test_invalid_mode(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["serve", "--mode", "turbo"])

    def test_set_model(self):
        args = create_parser().parse_args(["set-model", "gemini-2.5-pro"])
        assert args.model == "gemini-2.5-pro"


class TestCommands:
    """Test commands that need no network"""

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 0
        assert "usage" in capsys.readouterr().out

    def test_models(self, config_path):
        assert main(["--config", str(config_path), "models"]) == 0

    def test_set_model_persists(self, config_path):
        assert main(["--config", str(config_path), "set-model", "gemini-3.0-pro"]) == 0
        saved = json.loads(config_path.read_text(encoding="utf-8"))
        assert saved["default_model"] == "gemini-3.0-pro"

    def test_set_model_rejects_unknown(self, config_path):
        assert main(["--config", str(config_path), "set-model", "gemini-9"]) == 1
        assert not config_path.exists()

    def test_bad_config_file(self, write_config):
        path = write_config({"server": {"port": -1}})
        assert main(["--config", str(path), "models"]) == 1


class TestCookies:
    """Test the cached browser login commands"""

    @pytest.fixture(autouse=True)
    def cache_dir(self, tmp_path, monkeypatch):
        directory = tmp_path / "webchat_auth"
        monkeypatch.setattr(auth, "WEBCHAT_CACHE_DIR", directory)
        return directory

    def run(self, config_path, *argv: str) -> int:
        return main(["--config", str(config_path), "cookies", *argv])

    def test_parser_defaults_to_list(self):
        args = create_parser().parse_args(["cookies"])
        assert args.action == "list"
        assert args.account == "default"

    async def test_set_feeds_browser_cookie_source(self, config_path):
        code = self.run(
            config_path, "set", "--account", "chrome", "--psid", "psid-1", "--psidts", "ts-1"
        )
        assert code == 0
        assert await auth.read_cached_cookies("chrome") == ("psid-1", "ts-1")

    def test_set_requires_both_cookies(self, config_path, cache_dir):
        assert self.run(config_path, "set", "--psid", "psid-1") == 1
        assert not cache_dir.exists()

    def test_list_and_clear(self, config_path, capsys):
        self.run(config_path, "set", "--psid", "p", "--psidts", "t")
        self.run(config_path, "set", "--account", "firefox", "--psid", "p", "--psidts", "t")
        capsys.readouterr()

        assert self.run(config_path, "list") == 0
        out = capsys.readouterr().out
        assert "default" in out
        assert "firefox" in out

        assert self.run(config_path, "clear", "--account", "firefox") == 0
        assert auth.list_accounts(auth.GEMINI_PROVIDER) == ["default"]
        assert self.run(config_path, "clear", "--account", "firefox") == 1

    def test_expired_login_is_ignored(self, config_path):
        self.run(config_path, "set", "--psid", "p", "--psidts", "t", "--expires-days", "-1")
        assert auth.load_auth(auth.GEMINI_PROVIDER) is None

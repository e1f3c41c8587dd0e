"""
Unit tests for configuration and the command line.
"""

import pytest

from hackapi.config import ServerConfig
from hackapi.__main__ import build_parser, config_from_args, main


class TestServerConfig:
    """Tests for ServerConfig."""

    def test_defaults(self):
        config = ServerConfig()

        assert config.host == "127.0.0.1"
        assert config.port == 8000
        assert config.spec_path is None
        assert config.swagger_ui_dir is None
        assert config.cache_max_age == 3600
        assert config.log_format == "text"
        config.validate()

    @pytest.mark.parametrize("overrides", [
        {"port": 0},
        {"port": 70000},
        {"min_workers": 0},
        {"min_workers": 8, "max_workers": 4},
        {"buffer_size": 512},
        {"timeout": 0},
        {"cache_max_age": -1},
        {"log_format": "xml"},
    ])
    def test_validate_rejects(self, overrides):
        with pytest.raises(ValueError):
            ServerConfig(**overrides).validate()

    def test_timeout_none_is_valid(self):
        ServerConfig(timeout=None).validate()

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("HTTP_HOST", "0.0.0.0")
        monkeypatch.setenv("HTTP_PORT", "9000")
        monkeypatch.setenv("HTTP_WORKERS", "2")
        monkeypatch.setenv("HTTP_TIMEOUT", "12.5")
        monkeypatch.setenv("HTTP_SPEC_PATH", "/srv/api.json")
        monkeypatch.setenv("HTTP_SWAGGER_UI_DIR", "/srv/ui")
        monkeypatch.setenv("HTTP_CACHE_MAX_AGE", "60")
        monkeypatch.setenv("HTTP_LOG_LEVEL", "DEBUG")
        monkeypatch.setenv("HTTP_LOG_FORMAT", "json")

        config = ServerConfig.from_env()

        assert config.host == "0.0.0.0"
        assert config.port == 9000
        assert config.max_workers == 2
        assert config.min_workers == 2
        assert config.timeout == 12.5
        assert config.spec_path == "/srv/api.json"
        assert config.swagger_ui_dir == "/srv/ui"
        assert config.cache_max_age == 60
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"
        config.validate()

    def test_from_env_defaults(self, monkeypatch):
        for name in ("HTTP_HOST", "HTTP_PORT", "HTTP_WORKERS", "HTTP_SPEC_PATH", "HTTP_LOG_FORMAT"):
            monkeypatch.delenv(name, raising=False)

        config = ServerConfig.from_env()

        assert config.port == 8000
        assert config.spec_path is None
        assert config.max_workers == 16


class TestCommandLine:
    """Tests for the CLI argument handling."""

    def test_defaults_come_from_config(self):
        defaults = ServerConfig(port=9100, log_format="json")
        args = build_parser(defaults).parse_args([])
        config = config_from_args(args, defaults)

        assert config.port == 9100
        assert config.log_format == "json"
        assert config.min_workers == defaults.min_workers
        assert config.max_workers == defaults.max_workers

    def test_flags_override(self):
        defaults = ServerConfig()
        args = build_parser(defaults).parse_args([
            "-H", "0.0.0.0", "-p", "9000", "-w", "3",
            "--spec", "api.json", "--ui-dir", "ui",
            "-l", "debug", "--log-format", "json",
        ])
        config = config_from_args(args, defaults)

        assert config.host == "0.0.0.0"
        assert config.port == 9000
        assert config.min_workers == 3
        assert config.max_workers == 6
        assert config.spec_path == "api.json"
        assert config.swagger_ui_dir == "ui"
        assert config.log_level == "DEBUG"
        assert config.log_format == "json"

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            build_parser(ServerConfig()).parse_args(["--version"])

        assert exc_info.value.code == 0
        assert "hackapi 1.0.0" in capsys.readouterr().out

    def test_main_reports_startup_errors(self, tmp_path, capsys):
        exit_code = main(["--ui-dir", str(tmp_path / "missing")])

        assert exit_code == 1
        assert capsys.readouterr().err.startswith("Error: ")

    def test_main_reports_bad_environment(self, monkeypatch, capsys):
        monkeypatch.setenv("HTTP_PORT", "not-a-port")

        assert main([]) == 1
        assert "Error: " in capsys.readouterr().err

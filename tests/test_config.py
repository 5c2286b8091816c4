"""
Configuration (config.py)
"""

import pytest

from perch.config import AppConfig, ConfigLoader
from perch.faults import ConfigInvalidFault


class TestConfigLoader:

    def test_defaults(self):
        loader = ConfigLoader.load(environ={})

        assert loader.get("base") == "/"
        assert loader.get("enable_introspection") is False
        assert loader.get("introspection_path") == "/introspection"

    def test_environment_values_parsed(self):
        loader = ConfigLoader.load(environ={
            "PERCH_BASE": "/api",
            "PERCH_ENABLE_INTROSPECTION": "true",
            "PERCH_ENV__RETRIES": "3",
            "PERCH_ENV__RATIO": "0.5",
            "PERCH_ENV__TAGS": '["a", "b"]',
            "OTHER": "ignored",
        })

        assert loader.get("base") == "/api"
        assert loader.get("enable_introspection") is True
        assert loader.get("env") == {"RETRIES": 3, "RATIO": 0.5, "TAGS": ["a", "b"]}
        assert "other" not in loader.to_dict()

    def test_precedence(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text(
            "PERCH_BASE=/from-file\n"
            "PERCH_INTROSPECTION_PATH=/docs\n"
            "PERCH_DEBUG=yes\n"
        )

        loader = ConfigLoader.load(
            env_file=str(env_file),
            environ={"PERCH_BASE": "/from-env", "PERCH_INTROSPECTION_PATH": "/env-docs"},
            overrides={"introspection_path": "/override"},
        )

        assert loader.get("base") == "/from-env"
        assert loader.get("introspection_path") == "/override"
        assert loader.get("debug") is True

    def test_missing_env_file_skipped(self, tmp_path):
        loader = ConfigLoader.load(env_file=str(tmp_path / "absent.env"), environ={})
        assert loader.get("base") == "/"

    def test_custom_prefix(self):
        loader = ConfigLoader.load(env_prefix="APP_", environ={"APP_BASE": "/v2", "PERCH_BASE": "/x"})
        assert loader.get("base") == "/v2"

    def test_get_dotted_path(self):
        loader = ConfigLoader.load(environ={"PERCH_ENV__DB__HOST": "db.local"})

        assert loader.get("env.DB.HOST") == "db.local"
        assert loader.get("env.DB.PORT", 5432) == 5432


class TestAppConfig:

    def test_from_loader(self):
        loader = ConfigLoader.load(environ={
            "PERCH_BASE": "/api",
            "PERCH_ENABLE_INTROSPECTION": "1",
            "PERCH_ENV__API_TOKEN": "s3cret",
        })

        def on_error(exc, ctx):
            pass

        config = AppConfig.from_loader(loader, on_error=on_error)

        assert config.base == "/api"
        assert config.enable_introspection is True
        assert config.env == {"API_TOKEN": "s3cret"}
        assert config.on_error is on_error

    @pytest.mark.parametrize("overrides", [
        {"base": "api"},
        {"introspection_path": 42},
        {"env": "not-a-mapping"},
    ])
    def test_invalid_settings(self, overrides):
        loader = ConfigLoader.load(environ={}, overrides=overrides)

        with pytest.raises(ConfigInvalidFault):
            AppConfig.from_loader(loader)

"""Tests for LedgerSettings loading: YAML file, validation, environment overrides."""

import pytest
import yaml

from stock_ledger.config import (
    DEFAULT_DATABASE_URL,
    ENV_CONFIG_PATH,
    ENV_DATABASE_URL,
    ENV_LOG_LEVEL,
    LedgerSettings,
    load_settings,
    load_yaml_file,
    parse_settings,
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    for var in (ENV_CONFIG_PATH, ENV_DATABASE_URL, ENV_LOG_LEVEL):
        monkeypatch.delenv(var, raising=False)


def _write_yaml(path, data) -> str:
    path.write_text(yaml.safe_dump(data))
    return str(path)


class TestDefaults:

    def test_no_file_gives_defaults(self):
        settings = load_settings()

        assert settings == LedgerSettings()
        assert settings.database_url == DEFAULT_DATABASE_URL
        assert settings.default_warehouse_name == "None"

    def test_settings_are_frozen(self):
        settings = LedgerSettings()

        with pytest.raises(AttributeError):
            settings.pool_size = 1


class TestYamlFile:

    def test_values_from_file(self, tmp_path):
        path = _write_yaml(
            tmp_path / "ledger.yaml",
            {"database_url": "sqlite:///ledger.db", "pool_size": 5, "echo": True},
        )

        settings = load_settings(path)

        assert settings.database_url == "sqlite:///ledger.db"
        assert settings.pool_size == 5
        assert settings.echo is True
        assert settings.max_overflow == 10

    def test_config_path_from_environment(self, tmp_path, monkeypatch):
        path = _write_yaml(tmp_path / "ledger.yaml", {"default_warehouse_name": "Unassigned"})
        monkeypatch.setenv(ENV_CONFIG_PATH, path)

        assert load_settings().default_warehouse_name == "Unassigned"

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert load_settings(path) == LedgerSettings()

    def test_non_mapping_document(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(ValueError, match="mapping"):
            load_yaml_file(path)

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_settings(tmp_path / "absent.yaml")


class TestValidation:

    def test_unknown_key(self):
        with pytest.raises(ValueError, match="pool_sise"):
            parse_settings({"pool_sise": 3})

    def test_wrong_type(self):
        with pytest.raises(ValueError, match="pool_size"):
            parse_settings({"pool_size": "20"})

    def test_bool_is_not_an_int(self):
        with pytest.raises(ValueError):
            parse_settings({"max_overflow": True})

    def test_negative_pool(self):
        with pytest.raises(ValueError):
            parse_settings({"pool_size": -1})

    def test_blank_default_warehouse_name(self):
        with pytest.raises(ValueError):
            parse_settings({"default_warehouse_name": "  "})


class TestEnvironmentOverrides:

    def test_env_wins_over_file(self, tmp_path, monkeypatch):
        path = _write_yaml(tmp_path / "ledger.yaml", {"database_url": "sqlite:///file.db"})
        monkeypatch.setenv(ENV_DATABASE_URL, "sqlite:///env.db")
        monkeypatch.setenv(ENV_LOG_LEVEL, "debug")

        settings = load_settings(path)

        assert settings.database_url == "sqlite:///env.db"
        assert settings.log_level == "DEBUG"

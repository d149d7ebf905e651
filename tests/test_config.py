"""Tests for healthfold.config module."""

import pytest

from healthfold.config import (
    DEFAULT_CONFIG_PATH,
    DEFAULT_CONFIG_TEMPLATE,
    ExportConfig,
    load_config,
    write_default_config,
)
from healthfold.errors import ConfigError


class TestLoadConfig:
    def test_defaults(self):
        config = ExportConfig()
        assert config.mode == "fixed"
        assert config.strict is False
        assert config.key_order == "sorted"
        assert config.stream is False

    def test_no_path_and_no_default_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        assert load_config() == ExportConfig()

    def test_no_path_ignores_file_in_working_directory(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / DEFAULT_CONFIG_PATH).write_text('[export]\nmode = "schemaless"\n')
        assert load_config() == ExportConfig()

    def test_explicit_default_path_is_read(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / DEFAULT_CONFIG_PATH).write_text('[export]\nmode = "schemaless"\n')
        assert load_config(DEFAULT_CONFIG_PATH).mode == "schemaless"

    def test_missing_explicit_file_returns_defaults(self, tmp_path, caplog):
        config = load_config(str(tmp_path / "nonexistent.toml"))
        assert config == ExportConfig()
        assert "not found" in caplog.text

    def test_loads_toml_file(self, tmp_path):
        toml_path = tmp_path / "test.toml"
        toml_path.write_text("""
[export]
mode = "schemaless"
strict = true
key_order = "document"
stream = true
""")
        config = load_config(str(toml_path))
        assert config == ExportConfig(mode="schemaless", strict=True, key_order="document", stream=True)

    def test_partial_config_preserves_defaults(self, tmp_path):
        toml_path = tmp_path / "partial.toml"
        toml_path.write_text("[export]\nstrict = true\n")
        config = load_config(str(toml_path))
        assert config.strict is True
        assert config.mode == "fixed"

    def test_empty_config(self, tmp_path):
        toml_path = tmp_path / "empty.toml"
        toml_path.write_text("")
        assert load_config(str(toml_path)) == ExportConfig()

    def test_unknown_keys_ignored(self, tmp_path):
        toml_path = tmp_path / "extra.toml"
        toml_path.write_text('[export]\ncolour = "blue"\n\n[other]\nx = 1\n')
        assert load_config(str(toml_path)) == ExportConfig()

    def test_invalid_mode(self, tmp_path):
        toml_path = tmp_path / "bad.toml"
        toml_path.write_text('[export]\nmode = "xml"\n')
        with pytest.raises(ConfigError, match="mode"):
            load_config(str(toml_path))

    def test_invalid_key_order(self, tmp_path):
        toml_path = tmp_path / "bad.toml"
        toml_path.write_text('[export]\nkey_order = "random"\n')
        with pytest.raises(ConfigError, match="key_order"):
            load_config(str(toml_path))

    def test_non_bool_strict(self, tmp_path):
        toml_path = tmp_path / "bad.toml"
        toml_path.write_text('[export]\nstrict = "yes"\n')
        with pytest.raises(ConfigError, match="strict"):
            load_config(str(toml_path))

    def test_invalid_toml(self, tmp_path):
        toml_path = tmp_path / "broken.toml"
        toml_path.write_text("[export\nmode = ")
        with pytest.raises(ConfigError):
            load_config(str(toml_path))

    def test_export_must_be_table(self, tmp_path):
        toml_path = tmp_path / "flat.toml"
        toml_path.write_text('export = "fixed"\n')
        with pytest.raises(ConfigError):
            load_config(str(toml_path))


class TestOverride:
    def test_none_values_keep_file_settings(self):
        config = ExportConfig(mode="schemaless", strict=True)
        assert config.override(mode=None, strict=None) == config

    def test_values_replace(self):
        config = ExportConfig().override(mode="schemaless", stream=True)
        assert config.mode == "schemaless"
        assert config.stream is True

    def test_returns_copy(self):
        config = ExportConfig()
        config.override(strict=True)
        assert config.strict is False

    def test_invalid_override(self):
        with pytest.raises(ConfigError):
            ExportConfig().override(mode="tsv")


class TestWriteDefaultConfig:
    def test_writes_template(self, tmp_path):
        path = str(tmp_path / "healthfold.toml")
        assert write_default_config(path) == path
        assert (tmp_path / "healthfold.toml").read_text() == DEFAULT_CONFIG_TEMPLATE

    def test_template_round_trips_to_defaults(self, tmp_path):
        path = str(tmp_path / "healthfold.toml")
        write_default_config(path)
        assert load_config(path) == ExportConfig()

    def test_refuses_to_overwrite(self, tmp_path):
        path = tmp_path / "healthfold.toml"
        path.write_text("# mine\n")
        with pytest.raises(ConfigError):
            write_default_config(str(path))
        assert path.read_text() == "# mine\n"

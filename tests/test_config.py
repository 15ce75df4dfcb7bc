"""Tests for settings loading."""

from pathlib import Path

import pytest

from docref.config import CONFIG_FILENAME, DocrefSettings, load_settings, read_yaml
from docref.errors import ConfigError, InvalidConfigError, MissingConfigError, SourceError
from docref.report import Severity


class TestDefaults:
    """Tests for DocrefSettings defaults."""

    def test_defaults(self, tmp_path):
        settings = DocrefSettings(root=tmp_path)

        assert settings.source_suffixes == [".rst", ".txt"]
        assert settings.root_doc == "index"
        assert settings.fail_on is Severity.ERROR
        assert settings.check_code is True
        assert "dbcommand" in settings.object_types
        assert "guilabel" in settings.ignored_roles

    def test_cache_path_relative_to_root(self, tmp_path):
        settings = DocrefSettings(root=tmp_path)

        assert settings.resolved_cache_path == tmp_path / ".docref-cache.json"

    def test_absolute_cache_path(self, tmp_path):
        settings = DocrefSettings(root=tmp_path, cache_path=tmp_path / "elsewhere.json")

        assert settings.resolved_cache_path == tmp_path / "elsewhere.json"

    def test_suffixes_get_dots(self, tmp_path):
        settings = DocrefSettings(root=tmp_path, source_suffixes=["rst", ".txt"])

        assert settings.source_suffixes == [".rst", ".txt"]


class TestSeverity:
    """Tests for severity overrides."""

    def test_default_severity(self, tmp_path):
        settings = DocrefSettings(root=tmp_path)

        assert settings.severity_for("dangling-reference") is Severity.ERROR
        assert settings.severity_for("orphan-document") is Severity.WARNING
        assert settings.severity_for("unused-term") is Severity.INFO

    def test_override(self, tmp_path):
        settings = DocrefSettings(root=tmp_path, severity={"unused-term": "Warning", "unknown-role": "off"})

        assert settings.severity_for("unused-term") is Severity.WARNING
        assert settings.severity_for("unknown-role") is None

    def test_unknown_code_rejected(self, tmp_path):
        with pytest.raises(InvalidConfigError) as exc_info:
            load_settings(tmp_path, severity={"made-up": "error"})

        assert exc_info.value.key == "severity"

    def test_unknown_level_rejected(self, tmp_path):
        with pytest.raises(InvalidConfigError):
            load_settings(tmp_path, severity={"unused-term": "fatal"})


class TestFingerprint:
    """Tests for the scanner fingerprint."""

    def test_stable(self, tmp_path):
        a = DocrefSettings(root=tmp_path, object_types=["method", "dbcommand"])
        b = DocrefSettings(root=tmp_path, object_types=["dbcommand", "method"])

        assert a.scanner_fingerprint() == b.scanner_fingerprint()

    def test_changes_with_scanner_settings(self, tmp_path):
        a = DocrefSettings(root=tmp_path)
        b = DocrefSettings(root=tmp_path, literal_language="python")

        assert a.scanner_fingerprint() != b.scanner_fingerprint()

    def test_ignores_reporting_settings(self, tmp_path):
        a = DocrefSettings(root=tmp_path)
        b = DocrefSettings(root=tmp_path, fail_on="warning", severity={"unused-term": "off"})

        assert a.scanner_fingerprint() == b.scanner_fingerprint()


class TestLoadSettings:
    """Tests for load_settings precedence."""

    def test_yaml_severity_off(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text("severity:\n  unused-term: off\n  orphan-document: info\n")

        settings = load_settings(tmp_path)

        assert settings.severity_for("unused-term") is None
        assert settings.severity_for("orphan-document") is Severity.INFO

    def test_yaml_discovered_at_root(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text("root_doc: contents\nfail_on: warning\n")

        settings = load_settings(tmp_path)

        assert settings.root_doc == "contents"
        assert settings.fail_on is Severity.WARNING
        assert settings.root == tmp_path

    def test_override_beats_yaml(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text("fail_on: warning\n")

        settings = load_settings(tmp_path, fail_on="info")

        assert settings.fail_on is Severity.INFO

    def test_none_override_ignored(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text("fail_on: warning\n")

        settings = load_settings(tmp_path, fail_on=None)

        assert settings.fail_on is Severity.WARNING

    def test_env_beats_yaml(self, tmp_path, monkeypatch):
        (tmp_path / CONFIG_FILENAME).write_text("root_doc: contents\n")
        monkeypatch.setenv("DOCREF_ROOT_DOC", "start")

        settings = load_settings(tmp_path)

        assert settings.root_doc == "start"

    def test_explicit_config_path(self, tmp_path):
        config = tmp_path / "ci.yaml"
        config.write_text("check_code: false\n")

        settings = load_settings(tmp_path, config_path=config)

        assert settings.check_code is False

    def test_explicit_config_must_exist(self, tmp_path):
        with pytest.raises(MissingConfigError, match="not found") as exc_info:
            load_settings(tmp_path, config_path=tmp_path / "missing.yaml")

        assert exc_info.value.key == "config_path"
        assert isinstance(exc_info.value, ConfigError)

    def test_missing_root(self, tmp_path):
        with pytest.raises(SourceError):
            load_settings(tmp_path / "nope")

    def test_invalid_value(self, tmp_path):
        (tmp_path / CONFIG_FILENAME).write_text("fail_on: fatal\n")

        with pytest.raises(InvalidConfigError) as exc_info:
            load_settings(tmp_path)

        assert exc_info.value.key == "fail_on"

    def test_from_yaml(self, tmp_path):
        config = tmp_path / "docref.yaml"
        config.write_text(f"root: {tmp_path}\nuse_cache: false\n")

        settings = DocrefSettings.from_yaml(config, root_doc="start")

        assert settings.use_cache is False
        assert settings.root_doc == "start"
        assert settings.root == Path(tmp_path)


class TestReadYaml:
    """Tests for read_yaml."""

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("")

        assert read_yaml(path) == {}

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("key: [unclosed\n")

        with pytest.raises(ConfigError, match="not valid YAML"):
            read_yaml(path)

    def test_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n")

        with pytest.raises(InvalidConfigError):
            read_yaml(path)

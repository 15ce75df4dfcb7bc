"""Pytest configuration and shared fixtures."""

import shutil
import textwrap
from pathlib import Path

import pytest
import structlog

from docref.config import load_settings


@pytest.fixture(scope="session")
def fixtures_path():
    """Path to test fixtures."""
    return Path(__file__).parent / "fixtures"


@pytest.fixture
def corpus(fixtures_path, tmp_path):
    """A writable copy of the sample corpus."""
    root = tmp_path / "corpus"
    shutil.copytree(fixtures_path / "corpus", root)
    return root


@pytest.fixture
def write_corpus(tmp_path):
    """Factory writing ``{relative path: text}`` into a fresh corpus root."""

    def _write(files: dict[str, str], root_name: str = "docs") -> Path:
        root = tmp_path / root_name
        root.mkdir(exist_ok=True)
        for relative, text in files.items():
            path = root / relative
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(text, bytes):
                path.write_bytes(text)
            else:
                path.write_text(textwrap.dedent(text).lstrip("\n"), encoding="utf-8")
        return root

    return _write


@pytest.fixture
def settings_for():
    """Factory building uncached settings for a corpus root."""

    def _settings(root: Path, **overrides):
        overrides.setdefault("use_cache", False)
        return load_settings(root, **overrides)

    return _settings


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch):
    """Keep DOCREF_* variables from the developer's shell out of tests."""
    import os

    for name in list(os.environ):
        if name.startswith("DOCREF_"):
            monkeypatch.delenv(name)
    yield
    structlog.reset_defaults()

"""
Configuration for docref.

Settings come from four places, highest precedence first:

1. keyword overrides (CLI flags)
2. ``DOCREF_*`` environment variables and ``.env``
3. ``docref.yaml`` at the corpus root, or an explicit ``--config`` file
4. field defaults

Manifesto:
    Configuration should be explicit, validated and environment-driven.
    A corpus carries its own ``docref.yaml`` so every contributor checks the
    same rules; CI can still tighten them through the environment.

Examples:
    >>> settings = load_settings(Path("docs"), fail_on="warning")
    >>> settings.fail_on
    <Severity.WARNING: 'warning'>

Tags:
    settings, configuration, pydantic, yaml, docref
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import Field, ValidationError, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from docref.errors import ConfigError, InvalidConfigError, MissingConfigError, SourceError
from docref.hashing import compute_hash
from docref.parser.code_blocks import DEFAULT_LANGUAGES
from docref.parser.extractor import DEFAULT_IGNORED_ROLES, DEFAULT_OBJECT_TYPES
from docref.report import ISSUE_CODES, Severity

CONFIG_FILENAME = "docref.yaml"


class DocrefSettings(BaseSettings):
    """Settings for one validation run.

    Fields
    ──────
    root             : Corpus root directory
    source_suffixes  : File suffixes treated as documents
    skip_patterns    : Path substrings excluded from discovery
    root_doc         : Document at the top of the toctree
    object_types     : Directive/role names that declare/reference objects
    ignored_roles    : Formatting-only roles (never references)
    check_code       : Run syntax checks on code examples
    code_languages   : Language alias -> checker name
    literal_language : Language of ``::`` literal blocks before any ``highlight``
    severity         : Issue code -> error | warning | info | off
    fail_on          : Lowest severity that fails the run
    use_cache        : Reuse facts for unchanged documents
    cache_path       : Cache file, relative to root unless absolute
    log_level        : Structlog log level
    log_json         : Force JSON (True) or console (False) logs
    """

    model_config = SettingsConfigDict(
        env_prefix="DOCREF_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    root: Path = Field(default_factory=lambda: Path("."))

    # ── Discovery ────────────────────────────────────────────────
    source_suffixes: list[str] = Field(default_factory=lambda: [".rst", ".txt"])
    skip_patterns: list[str] = Field(
        default_factory=lambda: [
            "_build", ".git", "__pycache__", "venv", ".venv", "node_modules",
        ]
    )
    root_doc: str = "index"

    # ── Markup ───────────────────────────────────────────────────
    object_types: list[str] = Field(default_factory=lambda: list(DEFAULT_OBJECT_TYPES))
    ignored_roles: list[str] = Field(default_factory=lambda: list(DEFAULT_IGNORED_ROLES))

    # ── Code examples ────────────────────────────────────────────
    check_code: bool = True
    code_languages: dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_LANGUAGES))
    literal_language: str = "none"

    # ── Reporting ────────────────────────────────────────────────
    severity: dict[str, str] = Field(default_factory=dict)
    fail_on: Severity = Severity.ERROR

    # ── Cache ────────────────────────────────────────────────────
    use_cache: bool = True
    cache_path: Path = Field(default_factory=lambda: Path(".docref-cache.json"))

    # ── Observability ────────────────────────────────────────────
    log_level: str = "WARNING"
    log_json: bool | None = None

    @field_validator("source_suffixes")
    @classmethod
    def _dotted_suffixes(cls, value: list[str]) -> list[str]:
        return [s if s.startswith(".") else f".{s}" for s in value]

    @field_validator("severity", mode="before")
    @classmethod
    def _yaml_off(cls, value: Any) -> Any:
        # YAML 1.1 reads a bare `off` as False
        if isinstance(value, dict):
            return {code: "off" if level is False else level for code, level in value.items()}
        return value

    @field_validator("severity")
    @classmethod
    def _known_severities(cls, value: dict[str, str]) -> dict[str, str]:
        allowed = {s.value for s in Severity} | {"off"}
        for code, level in value.items():
            if code not in ISSUE_CODES:
                raise ValueError(f"unknown issue code {code!r}")
            if level.lower() not in allowed:
                raise ValueError(f"severity for {code!r} must be one of {sorted(allowed)}")
        return {code: level.lower() for code, level in value.items()}

    @property
    def resolved_cache_path(self) -> Path:
        if self.cache_path.is_absolute():
            return self.cache_path
        return self.root / self.cache_path

    def severity_for(self, code: str) -> Severity | None:
        """Effective severity of an issue code; None when switched off."""
        level = self.severity.get(code)
        if level is None:
            return ISSUE_CODES[code]
        if level == "off":
            return None
        return Severity(level)

    def scanner_fingerprint(self) -> str:
        """Hash of every setting that changes what the extractor produces."""
        return compute_hash(
            ",".join(sorted(t.lower() for t in self.object_types)),
            ",".join(sorted(r.lower() for r in self.ignored_roles)),
            self.literal_language.lower(),
            length=16,
        )

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(mode="json")

    @classmethod
    def from_yaml(cls, yaml_path: Path, **overrides: Any) -> DocrefSettings:
        """Load settings from a YAML file, letting env vars and overrides win.

        Args:
            yaml_path: Path to YAML configuration file
            **overrides: Explicit values (highest precedence)

        Returns:
            DocrefSettings instance
        """
        return _build(read_yaml(yaml_path), overrides)


def read_yaml(yaml_path: Path) -> dict[str, Any]:
    """Read a YAML mapping, raising ``ConfigError`` on any problem."""
    try:
        with open(yaml_path, encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError as e:
        raise MissingConfigError("config_path", f"Config file not found: {yaml_path}", cause=e).with_context(
            path=str(yaml_path)
        )
    except yaml.YAMLError as e:
        raise ConfigError(f"Config file is not valid YAML: {yaml_path}", cause=e).with_context(
            path=str(yaml_path)
        )
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise InvalidConfigError("<root>", type(data).__name__, "Config file must contain a mapping")
    return data


def load_settings(
    root: Path | None = None,
    config_path: Path | None = None,
    **overrides: Any,
) -> DocrefSettings:
    """Build settings for a corpus.

    Args:
        root: Corpus root (also where ``docref.yaml`` is looked up)
        config_path: Explicit config file; must exist if given
        **overrides: Explicit values, ``None`` values are ignored

    Returns:
        DocrefSettings

    Raises:
        SourceError: root does not exist or is not a directory
        ConfigError: config file unreadable or values invalid
    """
    overrides = {k: v for k, v in overrides.items() if v is not None}
    if root is not None:
        overrides["root"] = Path(root)

    yaml_data: dict[str, Any] = {}
    if config_path is not None:
        yaml_data = read_yaml(Path(config_path))
    else:
        candidate = Path(overrides.get("root", Path("."))) / CONFIG_FILENAME
        if candidate.is_file():
            yaml_data = read_yaml(candidate)

    settings = _build(yaml_data, overrides)
    if not settings.root.is_dir():
        raise SourceError(f"Corpus root is not a directory: {settings.root}").with_context(
            path=str(settings.root)
        )
    return settings


def _build(yaml_data: dict[str, Any], overrides: dict[str, Any]) -> DocrefSettings:
    try:
        # Values from env/.env/overrides end up in model_fields_set
        explicit = DocrefSettings(**overrides)
        merged = dict(yaml_data)
        merged.update({name: getattr(explicit, name) for name in explicit.model_fields_set})
        return DocrefSettings(**merged)
    except ValidationError as e:
        error = e.errors()[0]
        key = ".".join(str(part) for part in error.get("loc", ())) or "<root>"
        raise InvalidConfigError(key, error.get("input"), f"Invalid configuration for {key}: {error['msg']}", cause=e)

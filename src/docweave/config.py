"""Index build configuration."""

import os
import re
from dataclasses import dataclass, field, fields
from pathlib import Path

import yaml

from docweave.errors import ConfigError

DEFAULT_SEPARATOR = "<|RELATED_DOC_SEP|>"

_ENV_PATTERN = re.compile(r"\$\{([^:}]+):-?([^}]*)\}")


def _expand_env_var(value):
    """Expand environment variables in the form ${VAR:-default}.

    Args:
        value: String possibly containing ${VAR:-default}

    Returns:
        Expanded string with environment variable or default value
    """
    if not isinstance(value, str):
        return value

    def replace_env(match):
        return os.environ.get(match.group(1), match.group(2))

    return _ENV_PATTERN.sub(replace_env, value)


def _expand_env(value):
    """Recursively expand env vars in strings inside dicts/lists."""
    if isinstance(value, str):
        return _expand_env_var(value)
    if isinstance(value, dict):
        return {k: _expand_env(v) for k, v in value.items()}
    if isinstance(value, list):
        return [_expand_env(v) for v in value]
    return value


@dataclass
class IndexConfig:
    """Settings for segmentation, parsing, indexing and cross-referencing."""

    separator: str = DEFAULT_SEPARATOR
    topical_threshold: float = 0.15
    heading_max_level: int = 3
    title_max_length: int = 80
    description_max_length: int = 160
    words_per_minute: int = 250
    snippet_radius: int = 60
    min_token_length: int = 2
    extra_stopwords: list[str] = field(default_factory=list)
    include_extensions: list[str] = field(
        default_factory=lambda: [".md", ".markdown", ".txt"]
    )
    workers: int = 4
    executor: str = "thread"
    dedup_min_words: int = 20

    def __post_init__(self) -> None:
        self.validate()

    def validate(self) -> None:
        """Check value ranges, raising ConfigError on the first problem."""
        if not self.separator:
            raise ConfigError("separator must be a non-empty string")
        if not 0.0 <= self.topical_threshold <= 1.0:
            raise ConfigError(
                f"topical_threshold must be within [0, 1], got {self.topical_threshold}"
            )
        if not 1 <= self.heading_max_level <= 6:
            raise ConfigError(
                f"heading_max_level must be within 1..6, got {self.heading_max_level}"
            )
        if self.executor not in ("thread", "process"):
            raise ConfigError(f"executor must be 'thread' or 'process', got {self.executor!r}")
        for name in (
            "title_max_length",
            "description_max_length",
            "words_per_minute",
            "min_token_length",
            "workers",
        ):
            if getattr(self, name) < 1:
                raise ConfigError(f"{name} must be >= 1, got {getattr(self, name)}")
        if self.snippet_radius < 0 or self.dedup_min_words < 0:
            raise ConfigError("snippet_radius and dedup_min_words must be >= 0")

    @classmethod
    def from_yaml(cls, path: str | Path) -> "IndexConfig":
        """Load configuration from a YAML file.

        The file may hold the settings at top level or under an ``index`` key.
        """
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        if not isinstance(data, dict):
            raise ConfigError(f"{path}: expected a mapping at top level")
        return cls.from_dict(data.get("index", data))

    @classmethod
    def from_dict(cls, data: dict) -> "IndexConfig":
        """Create config from dictionary, ignoring unknown keys."""
        data = _expand_env(data)
        known = {f.name: f for f in fields(cls)}
        kwargs = {}
        for key, value in data.items():
            if key not in known:
                continue
            kwargs[key] = _coerce(key, value, known[key].default)
        return cls(**kwargs)

    @classmethod
    def from_env(cls, prefix: str = "DOCWEAVE_") -> "IndexConfig":
        """Create config from ``DOCWEAVE_*`` environment variables."""
        data = {}
        for f in fields(cls):
            env_name = prefix + f.name.upper()
            if env_name in os.environ:
                raw = os.environ[env_name]
                if f.name in ("extra_stopwords", "include_extensions"):
                    data[f.name] = [item.strip() for item in raw.split(",") if item.strip()]
                else:
                    data[f.name] = raw
        return cls.from_dict(data)

    def to_dict(self) -> dict:
        return {f.name: getattr(self, f.name) for f in fields(self)}


def _coerce(key: str, value, default):
    """Convert string values (e.g. from env expansion) to the field's type."""
    if isinstance(default, bool) or value is None:
        return value
    try:
        if isinstance(default, int) and not isinstance(value, int):
            return int(value)
        if isinstance(default, float) and not isinstance(value, float):
            return float(value)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{key}: cannot convert {value!r}") from e
    return value


def load_config(path: str | Path | None = None) -> IndexConfig:
    """Load config from a YAML file if given and present, else from the environment."""
    if path is not None:
        if not Path(path).exists():
            raise ConfigError(f"Config file not found: {path}")
        return IndexConfig.from_yaml(path)
    return IndexConfig.from_env()

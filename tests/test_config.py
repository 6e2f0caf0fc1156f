"""Tests for IndexConfig loading and validation."""

import pytest

from docweave.config import DEFAULT_SEPARATOR, IndexConfig, _expand_env_var, load_config
from docweave.errors import ConfigError


class TestEnvExpansion:
    """Test ${VAR:-default} expansion"""

    def test_uses_environment_value(self, monkeypatch):
        monkeypatch.setenv("WEAVE_SEP", "<<S>>")

        assert _expand_env_var("${WEAVE_SEP:-fallback}") == "<<S>>"

    def test_uses_default_when_unset(self, monkeypatch):
        monkeypatch.delenv("WEAVE_SEP", raising=False)

        assert _expand_env_var("${WEAVE_SEP:-fallback}") == "fallback"

    def test_non_strings_pass_through(self):
        assert _expand_env_var(3) == 3


class TestIndexConfig:
    """Test IndexConfig construction"""

    def test_defaults(self):
        config = IndexConfig()

        assert config.separator == DEFAULT_SEPARATOR
        assert config.topical_threshold == 0.15
        assert config.heading_max_level == 3
        assert config.include_extensions == [".md", ".markdown", ".txt"]

    @pytest.mark.parametrize(
        "kwargs",
        [
            {"separator": ""},
            {"topical_threshold": 1.5},
            {"topical_threshold": -0.1},
            {"heading_max_level": 7},
            {"workers": 0},
            {"executor": "fiber"},
            {"snippet_radius": -1},
        ],
    )
    def test_invalid_values(self, kwargs):
        with pytest.raises(ConfigError):
            IndexConfig(**kwargs)

    def test_from_dict_coerces_and_ignores_unknown(self):
        config = IndexConfig.from_dict({"workers": "2", "topical_threshold": "0.3", "colour": "blue"})

        assert config.workers == 2
        assert config.topical_threshold == 0.3

    def test_from_dict_bad_number(self):
        with pytest.raises(ConfigError):
            IndexConfig.from_dict({"workers": "many"})

    def test_from_yaml_with_index_section(self, tmp_path, monkeypatch):
        monkeypatch.setenv("DOCWEAVE_TEST_WORKERS", "3")
        path = tmp_path / "config.yaml"
        path.write_text(
            "index:\n"
            '  separator: "---8<---"\n'
            '  workers: "${DOCWEAVE_TEST_WORKERS:-1}"\n'
            "  extra_stopwords: [foo, bar]\n",
            encoding="utf-8",
        )

        config = IndexConfig.from_yaml(path)

        assert config.separator == "---8<---"
        assert config.workers == 3
        assert config.extra_stopwords == ["foo", "bar"]

    def test_from_yaml_top_level(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("topical_threshold: 0.5\n", encoding="utf-8")

        assert IndexConfig.from_yaml(path).topical_threshold == 0.5

    def test_from_yaml_rejects_non_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n", encoding="utf-8")

        with pytest.raises(ConfigError):
            IndexConfig.from_yaml(path)

    def test_from_env(self, monkeypatch):
        monkeypatch.setenv("DOCWEAVE_SEPARATOR", "@@")
        monkeypatch.setenv("DOCWEAVE_EXTRA_STOPWORDS", "alpha, beta,")
        monkeypatch.setenv("DOCWEAVE_DEDUP_MIN_WORDS", "5")

        config = IndexConfig.from_env()

        assert config.separator == "@@"
        assert config.extra_stopwords == ["alpha", "beta"]
        assert config.dedup_min_words == 5

    def test_to_dict_round_trips(self):
        config = IndexConfig(separator="|", workers=2)

        assert IndexConfig.from_dict(config.to_dict()) == config


class TestLoadConfig:
    """Test load_config()"""

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(tmp_path / "nope.yaml")

    def test_without_path_reads_environment(self, monkeypatch):
        monkeypatch.setenv("DOCWEAVE_WORKERS", "7")

        assert load_config().workers == 7

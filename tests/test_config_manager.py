"""Unit tests for configuration management."""

from pathlib import Path

import pytest

from smartstore.config import (
    ConfigError,
    ConfigManager,
    SmartstoreConfig,
    flatten_for_env,
    resolve_with_precedence,
)
from smartstore.organization.models import DateGranularity, OrganizationRule


def _fresh_manager(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> ConfigManager:
    monkeypatch.setenv("HOME", str(tmp_path))
    return ConfigManager(env={})


def test_ensure_exists_creates_default_file(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)

    path = manager.ensure_exists()

    assert path == tmp_path / ".smartstore" / "config.yaml"
    text = path.read_text(encoding="utf-8")
    assert "smartstore configuration file" in text
    assert "Last updated:" in text
    assert "rule: byType" in text

    config = manager.load(include_env=False)
    assert config == SmartstoreConfig()


def test_precedence_is_file_then_env_then_cli(tmp_path: Path) -> None:
    manager = ConfigManager(
        tmp_path / "config.yaml",
        env={
            "SMARTSTORE__HISTORY__KEEP_COUNT": "7",
            "SMARTSTORE__ORGANIZATION__RULE": "bySize",
            "UNRELATED": "ignored",
        },
    )
    manager.save({"history": {"keep_count": 3}, "organization": {"date_granularity": "year"}})

    config = manager.load(cli_overrides={"organization.rule": "flatten"})

    assert config.history.keep_count == 7
    assert config.organization.date_granularity is DateGranularity.YEAR
    # CLI overrides take precedence over environment
    assert config.organization.rule is OrganizationRule.FLATTEN

    without_env = manager.load(include_env=False)
    assert without_env.history.keep_count == 3
    assert without_env.organization.rule is OrganizationRule.BY_TYPE


def test_invalid_yaml_raises_config_error(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    manager = _fresh_manager(tmp_path, monkeypatch)
    manager.ensure_exists()

    manager.config_path.write_text("- not-a-mapping", encoding="utf-8")

    with pytest.raises(ConfigError):
        manager.load()


def test_unknown_keys_are_rejected(tmp_path: Path) -> None:
    manager = ConfigManager(tmp_path / "config.yaml", env={})
    manager.save({"organisation": {"rule": "byType"}})

    with pytest.raises(ConfigError):
        manager.load()


def test_flatten_for_env_renders_defaults() -> None:
    flat = flatten_for_env(SmartstoreConfig())

    assert flat["SMARTSTORE__ORGANIZATION__RULE"] == "byType"
    assert flat["SMARTSTORE__HISTORY__KEEP_COUNT"] == "50"
    assert flat["SMARTSTORE__ORGANIZATION__CUSTOM_CATEGORIES"] == "{}"


def test_resolve_with_precedence_invalid_value_raises() -> None:
    with pytest.raises(ConfigError):
        resolve_with_precedence(
            defaults=SmartstoreConfig(),
            file_overrides={"organization": {"small_bytes": 10, "medium_bytes": 5}},
        )


def test_rule_options_reflect_configuration() -> None:
    config = resolve_with_precedence(
        defaults=SmartstoreConfig(),
        cli_overrides={
            "organization": {
                "date_granularity": "year-month-day",
                "small_bytes": 100,
                "medium_bytes": 1000,
                "custom_categories": {"Books": [".EPUB", "mobi"]},
            }
        },
    )

    options = config.organization.rule_options()

    assert options.date_granularity is DateGranularity.YEAR_MONTH_DAY
    assert options.size_thresholds.small_bytes == 100
    assert options.custom_categories == {"Books": frozenset({"epub", "mobi"})}

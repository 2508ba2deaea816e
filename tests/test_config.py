from __future__ import annotations

import json
import logging

import pytest

from lead_intake.badges import RuleConfig
from lead_intake.config import (
    DEFAULT_BASE_URL,
    ConfigurationError,
    HarvestSettings,
    load_badge_config,
    load_configuration,
)
from lead_intake.models import Badge


def test_load_configuration_reads_json(tmp_path) -> None:
    path = tmp_path / "badges.json"
    path.write_text(json.dumps({"badges": {"star": {"floor": 100}}}), encoding="utf-8")

    assert load_configuration(path) == {"badges": {"star": {"floor": 100}}}


def test_load_configuration_reads_yaml(tmp_path) -> None:
    path = tmp_path / "badges.yaml"
    path.write_text("badges:\n  star:\n    enabled: on\n    floor: 100\n", encoding="utf-8")

    assert load_configuration(path) == {"badges": {"star": {"enabled": True, "floor": 100}}}


def test_empty_yaml_is_an_empty_mapping(tmp_path) -> None:
    path = tmp_path / "empty.yml"
    path.write_text("", encoding="utf-8")

    assert load_configuration(path) == {}


@pytest.mark.parametrize(
    "name, content",
    [
        ("bad.json", "{not json"),
        ("bad.yaml", "badges: [unclosed"),
        ("list.json", "[1, 2]"),
        ("badges.toml", "star = 1"),
    ],
)
def test_load_configuration_rejects_bad_files(tmp_path, name: str, content: str) -> None:
    path = tmp_path / name
    path.write_text(content, encoding="utf-8")

    with pytest.raises(ConfigurationError):
        load_configuration(path)


def test_missing_configuration_file(tmp_path) -> None:
    with pytest.raises(ConfigurationError, match="was not found"):
        load_configuration(tmp_path / "missing.yaml")


def test_load_badge_config_builds_rule_table(tmp_path) -> None:
    path = tmp_path / "badges.yaml"
    path.write_text(
        "badges:\n"
        "  red: {enabled: on, mode: lapsed}\n"
        "  star: {enabled: on, mode: number, floor: 100}\n",
        encoding="utf-8",
    )

    config = load_badge_config(path)

    assert isinstance(config, RuleConfig)
    assert [rule.badge for rule in config.rules] == [Badge.STAR, Badge.RED]


def test_harvest_settings_from_env() -> None:
    settings = HarvestSettings.from_env(
        {
            "PLANET_USERNAME": " agent ",
            "PLANET_PASSWORD": "secret",
            "PLANET_BASE_URL": "https://crm.example.com/",
            "MAX_LEADS": "25",
        }
    )

    assert settings.username == "agent"
    assert settings.password == "secret"
    assert settings.base_url == "https://crm.example.com"
    assert settings.max_leads == 25


def test_harvest_settings_limit_precedence(caplog: pytest.LogCaptureFixture) -> None:
    env = {"PLANET_USERNAME": "agent", "PLANET_PASSWORD": "secret", "MAX_LEADS_DEFAULT": "40"}

    assert HarvestSettings.from_env(env, max_leads=5).max_leads == 5
    assert HarvestSettings.from_env(env).max_leads == 40
    with caplog.at_level(logging.WARNING, logger="lead_intake.config"):
        settings = HarvestSettings.from_env({**env, "MAX_LEADS": "lots", "MAX_LEADS_DEFAULT": ""})
    assert settings.max_leads == 200
    assert settings.base_url == DEFAULT_BASE_URL
    assert "non-numeric lead limit" in caplog.text


def test_harvest_settings_require_credentials() -> None:
    with pytest.raises(ConfigurationError):
        HarvestSettings.from_env({"PLANET_USERNAME": "agent"})

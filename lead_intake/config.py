"""Configuration helpers for the lead intake pipeline and harvester."""
from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any, Dict, Mapping, Optional

if TYPE_CHECKING:  # pragma: no cover - typing only
    from .badges import RuleConfig

LOGGER = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://m.planetaltig.com"
DEFAULT_MAX_LEADS = 200


class ConfigurationError(RuntimeError):
    """Raised when configuration files are missing or malformed."""


_SUPPORTED_EXTENSIONS = {".json", ".yaml", ".yml"}


def load_configuration(path: str | Path) -> Dict[str, Any]:
    """Load configuration data from a JSON or YAML file."""

    file_path = Path(path)
    if not file_path.exists():
        raise ConfigurationError(f"Configuration file '{file_path}' was not found")

    if file_path.suffix.lower() not in _SUPPORTED_EXTENSIONS:
        raise ConfigurationError(
            f"Unsupported configuration format '{file_path.suffix}'. Supported extensions: {sorted(_SUPPORTED_EXTENSIONS)}"
        )

    text = file_path.read_text(encoding="utf-8")
    if file_path.suffix.lower() == ".json":
        try:
            data = json.loads(text)
        except ValueError as exc:
            raise ConfigurationError(f"Configuration file '{file_path}' is not valid JSON: {exc}") from exc
    else:
        try:
            import yaml  # type: ignore
        except ImportError as exc:  # pragma: no cover - dependency optional
            raise ConfigurationError(
                "YAML configuration requires the 'pyyaml' package to be installed"
            ) from exc
        try:
            data = yaml.safe_load(text)
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Configuration file '{file_path}' is not valid YAML: {exc}") from exc

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Configuration file '{file_path}' must contain a mapping at the top level")
    return data


def load_badge_config(path: str | Path) -> "RuleConfig":
    """Load a badge rule table from a JSON or YAML file."""

    from .badges import RuleConfig

    config = RuleConfig.from_mapping(load_configuration(path))
    LOGGER.debug("Loaded %s badge rules from %s", len(config.rules), path)
    return config


def _positive_int(value: Optional[str]) -> Optional[int]:
    if value is None or not str(value).strip():
        return None
    try:
        number = int(float(str(value).strip()))
    except ValueError:
        LOGGER.warning("Ignoring non-numeric lead limit %r", value)
        return None
    return number if number > 0 else None


@dataclass(frozen=True)
class HarvestSettings:
    """Credentials and limits for a harvesting run."""

    username: str
    password: str
    base_url: str = DEFAULT_BASE_URL
    max_leads: int = DEFAULT_MAX_LEADS

    @classmethod
    def from_env(
        cls,
        environ: Optional[Mapping[str, str]] = None,
        *,
        max_leads: Optional[int] = None,
    ) -> "HarvestSettings":
        """Build settings from ``PLANET_*`` and ``MAX_LEADS`` environment variables.

        An explicit ``max_leads`` wins over the environment; the fallback is
        ``DEFAULT_MAX_LEADS``.
        """

        env = os.environ if environ is None else environ
        username = (env.get("PLANET_USERNAME") or "").strip()
        password = env.get("PLANET_PASSWORD") or ""
        if not username or not password:
            raise ConfigurationError("PLANET_USERNAME and PLANET_PASSWORD must be set")

        limit = max_leads if max_leads and max_leads > 0 else None
        if limit is None:
            limit = _positive_int(env.get("MAX_LEADS")) or _positive_int(env.get("MAX_LEADS_DEFAULT"))

        return cls(
            username=username,
            password=password,
            base_url=(env.get("PLANET_BASE_URL") or DEFAULT_BASE_URL).rstrip("/"),
            max_leads=limit or DEFAULT_MAX_LEADS,
        )


__all__ = [
    "ConfigurationError",
    "HarvestSettings",
    "load_badge_config",
    "load_configuration",
]

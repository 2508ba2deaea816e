"""Common utilities shared by browser based harvesters."""
from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Optional


class HarvestError(RuntimeError):
    """Raised when the browser session cannot log in, navigate, or read a lead."""


@dataclass
class BrowserHarvesterConfig:
    """Runtime configuration shared by all browser based harvesters."""

    headless: bool = True
    throttle_seconds: float = 0.3
    navigation_timeout: float = 60.0
    selector_timeout: float = 30.0
    click_settle_seconds: float = 0.35
    settle_timeout: float = 3.0
    max_policy_expansions: int = 5


class BrowserHarvester:
    """Base class exposing throttling helpers for browser harvesters."""

    def __init__(self, config: Optional[BrowserHarvesterConfig] = None) -> None:
        self.config = config or BrowserHarvesterConfig()

    def _apply_throttle(self) -> None:
        if self.config.throttle_seconds > 0:
            time.sleep(self.config.throttle_seconds)

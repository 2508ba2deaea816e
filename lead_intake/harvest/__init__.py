"""Browser automation that harvests raw lead captures from the agent CRM."""

from .base import BrowserHarvester, BrowserHarvesterConfig, HarvestError  # noqa: F401
from .planet import PlanetHarvester, diff_tokens, label_pairs_to_tokens  # noqa: F401

__all__ = [
    "BrowserHarvester",
    "BrowserHarvesterConfig",
    "HarvestError",
    "PlanetHarvester",
    "diff_tokens",
    "label_pairs_to_tokens",
]

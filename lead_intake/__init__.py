"""Lead intake: phone normalization, premium rollups and badges for harvested leads."""

from . import models  # noqa: F401
from .badges import DEFAULT_RULE_CONFIG, BadgeRule, RuleConfig, classify
from .merge import collect
from .models import (
    Badge,
    BillingMode,
    LeadCapture,
    LeadPhoneSet,
    LeadSummary,
    PhoneCandidate,
    PolicyBlock,
    PremiumRollup,
)
from .phones import is_valid_nanp, normalize
from .pipeline import build_summary, summarize_lead
from .policies import aggregate

__all__ = [
    "Badge",
    "BadgeRule",
    "BillingMode",
    "DEFAULT_RULE_CONFIG",
    "LeadCapture",
    "LeadPhoneSet",
    "LeadSummary",
    "PhoneCandidate",
    "PolicyBlock",
    "PremiumRollup",
    "RuleConfig",
    "aggregate",
    "build_summary",
    "classify",
    "collect",
    "is_valid_nanp",
    "normalize",
    "summarize_lead",
    "events",
    "harvest",
    "orchestrator",
    "reporting",
]

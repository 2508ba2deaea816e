"""Per-lead pipeline: normalize numbers, roll up premiums, pick a badge."""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Iterable, Mapping, Optional, Union

from .badges import RuleConfig, classify
from .merge import collect
from .models import LeadCapture, LeadSummary, RawToken
from .policies import aggregate

LOGGER = logging.getLogger(__name__)

BadgeConfig = Union[RuleConfig, Mapping[str, Any], None]


def build_summary(
    primary_name: str,
    primary_tokens: Iterable[RawToken],
    extra_tokens: Iterable[RawToken],
    policy_blocks: Iterable[str],
    badge_config: BadgeConfig = None,
    *,
    today: Optional[date] = None,
) -> LeadSummary:
    """Run the collector, aggregator and classifier for one lead."""

    phone_set = collect(primary_tokens, extra_tokens)
    rollup = aggregate(policy_blocks, today=today)
    has_valid = phone_set.has_valid_numbers
    badge = classify(rollup.monthly_premium_total, has_valid, rollup.all_policies_lapsed, badge_config)

    LOGGER.debug(
        "Lead %r: %s listed, %s extra, premium %s, badge %s",
        primary_name,
        len(phone_set.primary_numbers),
        len(phone_set.extra_numbers),
        rollup.monthly_premium_total,
        badge.value,
    )
    return LeadSummary(
        primary_name=primary_name or "",
        monthly_premium_total=rollup.monthly_premium_total,
        all_policies_lapsed=rollup.all_policies_lapsed,
        has_valid_numbers=has_valid,
        badge=badge,
        phone_set=phone_set,
        policy_block_count=rollup.policy_block_count,
        active_block_count=rollup.active_block_count,
    )


def summarize_lead(
    capture: LeadCapture,
    *,
    badge_config: BadgeConfig = None,
    today: Optional[date] = None,
) -> LeadSummary:
    """Turn a harvested :class:`LeadCapture` into a :class:`LeadSummary`."""

    return build_summary(
        capture.primary_name,
        capture.primary_tokens,
        capture.extra_tokens,
        capture.policy_blocks,
        badge_config,
        today=today,
    )


__all__ = ["BadgeConfig", "build_summary", "summarize_lead"]

from __future__ import annotations

from datetime import date
from decimal import Decimal

from lead_intake import LeadCapture, build_summary, summarize_lead
from lead_intake.models import Badge

TODAY = date(2024, 1, 10)
ACTIVE_BLOCK = "Stage: Issued Special 120.25 Mode Monthly Due Date 5 Policy Paid To 01/01/2024"


def test_build_summary_combines_numbers_premium_and_badge() -> None:
    summary = build_summary(
        "DOE, JANE",
        ["(614) 555-1212"],
        ["(614) 555-1212", "(614) 555-4000"],
        [ACTIVE_BLOCK],
        today=TODAY,
    )

    assert summary.primary_name == "DOE, JANE"
    assert summary.monthly_premium_total == Decimal("120.25")
    assert summary.all_policies_lapsed is False
    assert summary.has_valid_numbers is True
    assert summary.badge is Badge.STAR
    assert [c.canonical_digits for c in summary.primary_numbers] == ["6145551212"]
    assert [c.canonical_digits for c in summary.extra_numbers] == ["6145554000"]
    assert summary.policy_block_count == 1
    assert summary.active_block_count == 1


def test_lead_without_usable_numbers_gets_orange() -> None:
    summary = build_summary(
        "Smith, Al",
        ["DNC 614-555-1212"],
        ["555-0181"],
        ["Stage: Issued Special 75 Mode Monthly Policy Paid To 01/01/2024"],
        today=TODAY,
    )

    assert summary.has_valid_numbers is False
    assert summary.badge is Badge.ORANGE


def test_fully_lapsed_lead_gets_red() -> None:
    summary = build_summary("Roe, Rick", ["614-555-1212"], [], ["Stage: LAPSED POLICY Special 80"], today=TODAY)

    assert summary.all_policies_lapsed is True
    assert summary.monthly_premium_total == Decimal("0.00")
    assert summary.badge is Badge.RED


def test_badge_config_is_applied() -> None:
    table = {"star": {"mode": "number", "floor": 500}, "purple": {"mode": "number", "floor": 0}}

    summary = build_summary("Doe, Jane", ["614-555-1212"], [], [ACTIVE_BLOCK], table, today=TODAY)

    assert summary.badge is Badge.PURPLE


def test_summarize_lead_reads_capture_fields() -> None:
    capture = LeadCapture(
        primary_name="DOE, JANE",
        primary_tokens=[("(614) 555-1212", "ClickToCall")],
        extra_tokens=[("614-555-4000", "Sec Ph")],
        policy_blocks=[ACTIVE_BLOCK],
    )

    summary = summarize_lead(capture, today=TODAY)

    assert summary.badge is Badge.STAR
    assert summary.extra_numbers[0].context_label == "Sec Ph"


def test_empty_capture_is_red_and_has_no_numbers() -> None:
    summary = summarize_lead(LeadCapture(), today=TODAY)

    assert summary.primary_name == ""
    assert summary.has_valid_numbers is False
    assert summary.all_policies_lapsed is False
    assert summary.badge is Badge.RED

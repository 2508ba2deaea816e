from __future__ import annotations

from datetime import date
from decimal import Decimal

import pytest

from lead_intake.models import BillingMode
from lead_intake.policies import (
    BLOCK_CHAR_LIMIT,
    aggregate,
    grace_days_for,
    parse_due_day,
    parse_paid_to_date,
    parse_policy_block,
    parse_special_amount,
    quantize_cents,
    split_policy_blocks,
)

EXAMPLE_BLOCK = "Stage: Issued Special 120.25 Mode Monthly Due Date 5 Policy Paid To 01/01/2024"


def _block(mode: str, paid_to: str, special: str = "50.00") -> str:
    return f"Stage: Issued Special {special} Mode {mode} Policy Paid To {paid_to}"


def test_recent_monthly_policy_counts_toward_total() -> None:
    policy = parse_policy_block(EXAMPLE_BLOCK, today=date(2024, 1, 10))

    assert policy.is_active is True
    assert policy.special_monthly_amount == Decimal("120.25")
    assert policy.billing_mode is BillingMode.MONTHLY
    assert policy.due_day == 5
    assert policy.paid_to_date == date(2024, 1, 1)

    rollup = aggregate([EXAMPLE_BLOCK], today=date(2024, 1, 10))
    assert rollup.monthly_premium_total == Decimal("120.25")
    assert rollup.all_policies_lapsed is False
    assert rollup.policy_block_count == 1
    assert rollup.active_block_count == 1


@pytest.mark.parametrize(
    "mode, paid_to, last_active_day",
    [
        ("Monthly", "01/01/2024", date(2024, 3, 1)),
        ("Quarterly", "01/01/2024", date(2024, 4, 2)),
        ("Annual", "01/01/2023", date(2024, 1, 2)),
        ("Weekly", "01/01/2024", date(2024, 3, 1)),
    ],
)
def test_grace_window_boundaries(mode: str, paid_to: str, last_active_day: date) -> None:
    block = _block(mode, paid_to)

    assert parse_policy_block(block, today=last_active_day).is_active is True
    next_day = date.fromordinal(last_active_day.toordinal() + 1)
    assert parse_policy_block(block, today=next_day).is_active is False


def test_grace_days_per_mode() -> None:
    assert grace_days_for(BillingMode.ANNUAL) == 366
    assert grace_days_for(BillingMode.QUARTERLY) == 92
    assert grace_days_for(BillingMode.MONTHLY) == 60
    assert grace_days_for(BillingMode.UNKNOWN) == 60


@pytest.mark.parametrize(
    "text",
    [
        "Stage: LAPSED POLICY Special 80 Policy Paid To 01/05/2024",
        "Stage: Lapsed - Special 80 Policy Paid To 01/05/2024",
        "Stage: Issued Stat: 99 Special 80 Policy Paid To 01/05/2024",
    ],
)
def test_explicit_lapsed_marker_overrides_dates(text: str) -> None:
    policy = parse_policy_block(text, today=date(2024, 1, 10))

    assert policy.is_lapsed_by_text is True
    assert policy.is_active is False


def test_lapsed_blocks_do_not_count_toward_total() -> None:
    blocks = [
        "Stage: LAPSED POLICY Special 80",
        _block("Monthly", "01/01/2024", special="25.10"),
        _block("Monthly", "06/01/2023", special="99.00"),
    ]

    rollup = aggregate(blocks, today=date(2024, 1, 10))

    assert rollup.monthly_premium_total == Decimal("25.10")
    assert rollup.policy_block_count == 3
    assert rollup.active_block_count == 1
    assert rollup.all_policies_lapsed is False


def test_every_block_lapsed_marks_lead_lapsed() -> None:
    rollup = aggregate(["Stage: LAPSED POLICY Special 80", "Stage: Stat: 99"], today=date(2024, 1, 10))

    assert rollup.all_policies_lapsed is True
    assert rollup.monthly_premium_total == Decimal("0.00")


def test_no_policy_blocks_is_not_all_lapsed() -> None:
    rollup = aggregate([])

    assert rollup.monthly_premium_total == Decimal("0")
    assert rollup.all_policies_lapsed is False
    assert rollup.policy_block_count == 0


def test_unparsable_paid_to_date_leaves_policy_active() -> None:
    block = _block("Monthly", "13/45/2024", special="40")

    policy = parse_policy_block(block, today=date(2030, 1, 1))

    assert policy.paid_to_date is None
    assert policy.is_active is True


def test_policy_without_dates_or_amount_is_active_and_free() -> None:
    policy = parse_policy_block("Stage: Pending underwriting", today=date(2024, 1, 10))

    assert policy.is_active is True
    assert policy.special_monthly_amount == Decimal("0")
    assert policy.billing_mode is BillingMode.UNKNOWN
    assert policy.due_day is None


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Special $1,234.50", Decimal("1234.50")),
        ("Special: 45", Decimal("45")),
        ("Special 0.00", Decimal("0")),
        ("Premium 45", Decimal("0")),
    ],
)
def test_parse_special_amount(text: str, expected: Decimal) -> None:
    assert parse_special_amount(text) == expected


def test_due_day_double_zero_means_last_day_of_month() -> None:
    assert parse_due_day("Due Date 00", today=date(2024, 2, 10)) == 29
    assert parse_due_day("Due Day: 15") == 15
    assert parse_due_day("Due Date 45") is None


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Policy Paid To 1/5/24", date(2024, 1, 5)),
        ("Policy Paid To 2024-01-05", date(2024, 1, 5)),
        ("Policy Paid To: 12/31/2023", date(2023, 12, 31)),
        ("Paid 12/31/2023", None),
    ],
)
def test_parse_paid_to_date(text: str, expected) -> None:
    assert parse_paid_to_date(text) == expected


def test_block_text_is_truncated() -> None:
    padding = "." * (BLOCK_CHAR_LIMIT + 100)

    late_amount = parse_policy_block(f"Stage: Issued {padding} Special 75", today=date(2024, 1, 10))
    late_marker = parse_policy_block(f"Stage: Special 75 {padding} LAPSED POLICY", today=date(2024, 1, 10))

    assert late_amount.special_monthly_amount == Decimal("0")
    assert late_marker.is_active is True


def test_split_policy_blocks() -> None:
    page = "DOE, JANE\nClick to call\nStage: Issued Special 10\nStage: Lapsed Special 20\n"

    blocks = split_policy_blocks(page)

    assert len(blocks) == 2
    assert blocks[0].startswith("Issued Special 10")
    assert blocks[1].startswith("Lapsed Special 20")
    assert split_policy_blocks("no policies here") == []


def test_overlong_special_amount_is_treated_as_absent() -> None:
    rollup = aggregate(["Stage: Special 99999999999999999999999999999 Mode Monthly"], today=date(2024, 1, 10))

    assert rollup.monthly_premium_total == Decimal("0")
    assert rollup.active_block_count == 1


@pytest.mark.parametrize(
    "text, expected",
    [
        ("Special 10. Mode Monthly", Decimal("10")),
        ("Special 1,234.50, paid monthly", Decimal("1234.50")),
        ("Special 12.345", Decimal("0")),
    ],
)
def test_special_amount_boundaries(text: str, expected: Decimal) -> None:
    assert parse_special_amount(text) == expected


def test_quantize_cents_keeps_amounts_too_long_for_cents() -> None:
    huge = Decimal("9" * 40)

    assert quantize_cents(huge) == huge
    assert quantize_cents(Decimal("2.345")) == Decimal("2.35")

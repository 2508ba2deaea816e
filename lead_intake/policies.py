"""Policy block parsing and the active-premium rollup.

Lead detail pages list each policy as a loosely formatted narrative starting
with ``Stage:``.  The extractors below pull optional fields out of that text
and never raise: a field that cannot be read is reported as absent.
"""
from __future__ import annotations

import calendar
import logging
import re
from datetime import date
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Iterable, List, Optional

from .models import BillingMode, PolicyBlock, PremiumRollup

LOGGER = logging.getLogger(__name__)

BLOCK_CHAR_LIMIT = 2500
CENTS = Decimal("0.01")

GRACE_DAYS = {
    BillingMode.ANNUAL: 366,
    BillingMode.QUARTERLY: 92,
    BillingMode.MONTHLY: 60,
    BillingMode.UNKNOWN: 60,
}

_MODE_WORDS = {
    "monthly": BillingMode.MONTHLY,
    "month": BillingMode.MONTHLY,
    "mo": BillingMode.MONTHLY,
    "quarterly": BillingMode.QUARTERLY,
    "quarter": BillingMode.QUARTERLY,
    "qtrly": BillingMode.QUARTERLY,
    "annual": BillingMode.ANNUAL,
    "annually": BillingMode.ANNUAL,
    "yearly": BillingMode.ANNUAL,
    "year": BillingMode.ANNUAL,
}

_STAGE_SPLIT_RE = re.compile(r"\bStage:\s*", re.IGNORECASE)
_STAGE_PREFIX_RE = re.compile(r"^\s*Stage:\s*", re.IGNORECASE)
_LAPSED_RES = (
    re.compile(r"\bLAPSED\s+POLICY\b", re.IGNORECASE),
    re.compile(r"^\s*Lapsed\b", re.IGNORECASE),
    re.compile(r"\bStat:\s*99\b", re.IGNORECASE),
)
# Longer digit runs are not a premium; they are treated as absent.
_SPECIAL_RE = re.compile(r"\bSpecial\s*:?\s*\$?\s*(\d[\d,]{0,15}(?:\.\d{1,2})?)(?!\d|[,.]\d)", re.IGNORECASE)
_MODE_RE = re.compile(r"\bMode\b\s*:?\s*([A-Za-z]+)", re.IGNORECASE)
_DUE_RE = re.compile(r"\bDue\s*(?:Date|Day)\s*:?\s*(\d{1,2})\b", re.IGNORECASE)
_PAID_TO_RE = re.compile(
    r"\bPolicy\s+Paid\s+To\s*:?\s*(\d{1,2}/\d{1,2}/\d{2,4}|\d{4}-\d{1,2}-\d{1,2})\b",
    re.IGNORECASE,
)


def quantize_cents(amount: Decimal) -> Decimal:
    """Round to cents.  Amounts with too many digits to carry cents are returned as is."""

    try:
        return amount.quantize(CENTS, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return amount


def split_policy_blocks(page_text: str) -> List[str]:
    """Segment lead detail text into one string per ``Stage:`` section."""

    parts = _STAGE_SPLIT_RE.split(page_text or "")
    return [part for part in parts[1:] if part.strip()]


def is_lapsed_by_text(block: str) -> bool:
    return any(pattern.search(block) for pattern in _LAPSED_RES)


def parse_special_amount(block: str) -> Decimal:
    match = _SPECIAL_RE.search(block)
    if not match:
        return Decimal("0")
    try:
        amount = Decimal(match.group(1).replace(",", ""))
    except InvalidOperation:
        return Decimal("0")
    return amount if amount > 0 else Decimal("0")


def parse_billing_mode(block: str) -> BillingMode:
    match = _MODE_RE.search(block)
    if not match:
        return BillingMode.UNKNOWN
    return _MODE_WORDS.get(match.group(1).lower(), BillingMode.UNKNOWN)


def parse_due_day(block: str, *, today: Optional[date] = None) -> Optional[int]:
    """Return the due day of month; ``00`` means the last day of the current month."""

    match = _DUE_RE.search(block)
    if not match:
        return None
    day = int(match.group(1))
    if day == 0:
        today = today or date.today()
        return calendar.monthrange(today.year, today.month)[1]
    if day > 31:
        return None
    return day


def parse_paid_to_date(block: str) -> Optional[date]:
    """Read the ``Policy Paid To`` date in ``M/D/Y`` or ``Y-M-D`` form."""

    match = _PAID_TO_RE.search(block)
    if not match:
        return None
    text = match.group(1)
    try:
        if "-" in text:
            year, month, day = (int(part) for part in text.split("-"))
        else:
            month, day, year = (int(part) for part in text.split("/"))
            if year < 100:
                year += 2000
        return date(year, month, day)
    except ValueError:
        LOGGER.debug("Ignoring unparsable paid-to date %r", text)
        return None


def grace_days_for(mode: BillingMode) -> int:
    return GRACE_DAYS.get(mode, GRACE_DAYS[BillingMode.UNKNOWN])


def parse_policy_block(text: str, *, today: Optional[date] = None) -> PolicyBlock:
    """Extract the structured fields of one policy block and decide if it is active."""

    today = today or date.today()
    block = _STAGE_PREFIX_RE.sub("", (text or "")[:BLOCK_CHAR_LIMIT], count=1)

    lapsed = is_lapsed_by_text(block)
    mode = parse_billing_mode(block)
    paid_to = parse_paid_to_date(block)

    active = not lapsed
    if active and paid_to is not None:
        elapsed = (today - paid_to).days
        active = elapsed <= grace_days_for(mode)

    return PolicyBlock(
        special_monthly_amount=parse_special_amount(block),
        billing_mode=mode,
        due_day=parse_due_day(block, today=today),
        paid_to_date=paid_to,
        is_lapsed_by_text=lapsed,
        is_active=active,
    )


def aggregate(policy_text_blocks: Iterable[str], *, today: Optional[date] = None) -> PremiumRollup:
    """Sum the monthly premium of active policies and count lapsed ones."""

    today = today or date.today()
    total = Decimal("0")
    block_count = 0
    active_count = 0

    for text in policy_text_blocks or ():
        policy = parse_policy_block(text, today=today)
        block_count += 1
        if not policy.is_active:
            LOGGER.debug("Policy block %s is lapsed (paid to %s)", block_count, policy.paid_to_date)
            continue
        active_count += 1
        if policy.special_monthly_amount > 0:
            total += policy.special_monthly_amount

    return PremiumRollup(
        monthly_premium_total=quantize_cents(total),
        all_policies_lapsed=block_count > 0 and active_count == 0,
        policy_block_count=block_count,
        active_block_count=active_count,
    )


__all__ = [
    "BLOCK_CHAR_LIMIT",
    "GRACE_DAYS",
    "aggregate",
    "grace_days_for",
    "is_lapsed_by_text",
    "parse_billing_mode",
    "parse_due_day",
    "parse_paid_to_date",
    "parse_policy_block",
    "parse_special_amount",
    "quantize_cents",
    "split_policy_blocks",
]

"""Unified data models for the lead intake pipeline, harvester, and reports."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

# A harvested token is either the raw text or a ``(text, label)`` pair.
RawToken = Union[str, Tuple[str, Optional[str]]]


class Badge(str, Enum):
    """Closed set of lead classifications, in fixed priority order."""

    STAR = "star"
    WHITE = "white"
    PURPLE = "purple"
    ORANGE = "orange"
    RED = "red"


class BillingMode(str, Enum):
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    ANNUAL = "annual"
    UNKNOWN = "unknown"


# --- Phone Models ---

@dataclass(frozen=True)
class PhoneCandidate:
    """A single phone-like token after normalization and validation."""

    original_text: str
    canonical_digits: str
    extension: Optional[str] = None
    display_text: Optional[str] = None
    is_valid_nanp: bool = False
    is_toll_free: bool = False
    is_international: bool = False
    flags: Tuple[str, ...] = ()
    context_label: Optional[str] = None

    @property
    def key(self) -> Tuple[str, str]:
        """Canonical ``(digits, extension)`` pair used for deduplication."""

        return (self.canonical_digits, self.extension or "")

    @property
    def is_flagged(self) -> bool:
        return bool(self.flags)

    def display(self) -> str:
        """Return the best human readable form of the number."""

        text = self.display_text or self.canonical_digits or self.original_text
        if self.extension:
            return f"{text} x{self.extension}"
        return text

    def flag_text(self) -> str:
        return ", ".join(self.flags)


@dataclass
class LeadPhoneSet:
    """Numbers for one lead, split by the source they were harvested from."""

    primary_numbers: List[PhoneCandidate] = field(default_factory=list)
    extra_numbers: List[PhoneCandidate] = field(default_factory=list)

    @property
    def all_numbers(self) -> List[PhoneCandidate]:
        return [*self.primary_numbers, *self.extra_numbers]

    @property
    def valid_numbers(self) -> List[PhoneCandidate]:
        return [candidate for candidate in self.all_numbers if candidate.is_valid_nanp]

    @property
    def flagged_numbers(self) -> List[PhoneCandidate]:
        return [candidate for candidate in self.all_numbers if candidate.is_flagged]

    @property
    def has_valid_numbers(self) -> bool:
        return any(
            candidate.is_valid_nanp and len(candidate.canonical_digits) == 10
            for candidate in self.all_numbers
        )


# --- Policy Models ---

@dataclass(frozen=True)
class PolicyBlock:
    """Structured fields pulled from one policy section of a lead's detail text."""

    special_monthly_amount: Decimal = Decimal("0")
    billing_mode: BillingMode = BillingMode.UNKNOWN
    due_day: Optional[int] = None
    paid_to_date: Optional[date] = None
    is_lapsed_by_text: bool = False
    is_active: bool = True


@dataclass(frozen=True)
class PremiumRollup:
    """Aggregate of every policy block for a lead."""

    monthly_premium_total: Decimal = Decimal("0.00")
    all_policies_lapsed: bool = False
    policy_block_count: int = 0
    active_block_count: int = 0


# --- Lead Models ---

@dataclass
class LeadCapture:
    """Raw material harvested for one lead, before any normalization."""

    primary_name: str = ""
    primary_tokens: List[RawToken] = field(default_factory=list)
    extra_tokens: List[RawToken] = field(default_factory=list)
    policy_blocks: List[str] = field(default_factory=list)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def display_name(self) -> str:
        """Return a readable name for UI or logs."""

        return self.primary_name.strip() or "(Unnamed Lead)"


@dataclass(frozen=True)
class LeadSummary:
    """Final per-lead record handed to the reporting layer."""

    primary_name: str
    monthly_premium_total: Decimal
    all_policies_lapsed: bool
    has_valid_numbers: bool
    badge: Badge
    phone_set: LeadPhoneSet
    policy_block_count: int = 0
    active_block_count: int = 0

    @property
    def primary_numbers(self) -> Sequence[PhoneCandidate]:
        return self.phone_set.primary_numbers

    @property
    def extra_numbers(self) -> Sequence[PhoneCandidate]:
        return self.phone_set.extra_numbers


__all__ = [
    "Badge",
    "BillingMode",
    "LeadCapture",
    "LeadPhoneSet",
    "LeadSummary",
    "PhoneCandidate",
    "PolicyBlock",
    "PremiumRollup",
    "RawToken",
]

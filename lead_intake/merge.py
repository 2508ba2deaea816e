"""Utility helpers for merging phone candidates harvested from multiple sources."""
from __future__ import annotations

from typing import Iterable, List, Optional, Set, Tuple

from .models import LeadPhoneSet, PhoneCandidate, RawToken
from .phones import normalize

PRIMARY_LABEL = "ClickToCall"
EXTRA_LABEL = "Policy"


def _split_token(token: RawToken, default_label: str) -> Tuple[str, str]:
    if isinstance(token, (tuple, list)):
        text = token[0] if token else ""
        label = token[1] if len(token) > 1 and token[1] else default_label
        return str(text or ""), str(label)
    return str(token or ""), default_label


def normalize_tokens(tokens: Iterable[RawToken], default_label: str) -> List[PhoneCandidate]:
    """Normalize raw tokens, silently dropping those that are not numbers."""

    candidates: List[PhoneCandidate] = []
    for token in tokens or ():
        text, label = _split_token(token, default_label)
        candidate = normalize(text, label)
        if candidate is not None:
            candidates.append(candidate)
    return candidates


def dedupe_candidates(
    candidates: Iterable[PhoneCandidate],
    seen: Optional[Set[Tuple[str, str]]] = None,
) -> List[PhoneCandidate]:
    """Drop candidates whose canonical key was already seen, keeping first-seen order.

    ``seen`` is updated in place so that successive calls can share it.
    """

    seen = seen if seen is not None else set()
    ordered: List[PhoneCandidate] = []
    for candidate in candidates:
        if candidate.key in seen:
            continue
        seen.add(candidate.key)
        ordered.append(candidate)
    return ordered


def collect(
    primary_raw_tokens: Iterable[RawToken],
    extra_raw_tokens: Iterable[RawToken],
) -> LeadPhoneSet:
    """Merge click-to-call and policy-text tokens into a :class:`LeadPhoneSet`.

    Primary tokens win ties: an extra token whose canonical key is already
    listed among the primary numbers is left out of ``extra_numbers``.
    """

    seen: Set[Tuple[str, str]] = set()
    primary = dedupe_candidates(normalize_tokens(primary_raw_tokens, PRIMARY_LABEL), seen)
    extra = dedupe_candidates(normalize_tokens(extra_raw_tokens, EXTRA_LABEL), seen)
    return LeadPhoneSet(primary_numbers=primary, extra_numbers=extra)


__all__ = ["collect", "dedupe_candidates", "normalize_tokens"]

"""Phone candidate normalization, NANP validation, and token discovery.

Harvested text is noisy: the same number shows up as ``(614) 555-1212``,
``tel:+16145551212`` or ``callNumber('6145551212')`` depending on where it
was scraped from.  :func:`normalize` reduces every such token to a
:class:`~lead_intake.models.PhoneCandidate` carrying the canonical digits,
a display string and descriptive flags, or ``None`` when the token is not a
usable number.  Nothing in this module raises on malformed input.
"""
from __future__ import annotations

import logging
import re
from typing import List, Optional, Tuple

import phonenumbers

from .models import PhoneCandidate

LOGGER = logging.getLogger(__name__)

SERVICE_NPA = frozenset({"211", "311", "411", "511", "611", "711", "811", "911"})
TOLL_FREE_NPA = frozenset({"800", "888", "877", "866", "855", "844", "833", "822"})

FLAG_NEEDS_AREA_CODE = "Needs Area Code"
FLAG_NANP_INVALID = "NANP invalid"
FLAG_FAX = "Fax"
FLAG_INTERNATIONAL = "International"
FLAG_HAS_EXTENSION = "Has Extension"
FLAG_TOLL_FREE = "Toll-free kept"

_DNC_RE = re.compile(r"\b(?:do[\s-]?not[\s-]?call|dnc)\b", re.IGNORECASE)
# Only a trailing marker counts; ``x``/``ext`` must not be the tail of a word ("Fax 614...").
_EXTENSION_RE = re.compile(
    r"(?:(?<![A-Za-z])(?:ext\.?|x)|#)\s*(\d{2,6})[\s.,;:)\]'\"]*$",
    re.IGNORECASE,
)
_NON_DIGIT_PLUS_RE = re.compile(r"[^\d+]")
_FAX_RE = re.compile(r"fax", re.IGNORECASE)
_FAKE_LINE_RE = re.compile(r"^01\d\d$")

PHONE_TOKEN_RE = re.compile(
    r"(?:\+?1[\s-]?)?"
    r"(?:\(?\d{3}\)?[\s.\-]?\d{3}[\s.\-]?\d{4}"
    r"|(?<![\d\-])\d{3}[\-.]\d{4}(?![\d\-])"
    r"|\b\d{7}\b)"
    r"(?:\s*(?:x|ext\.?|#)\s*\d{2,6})?",
    re.IGNORECASE,
)

_LABEL_SPAN_RE = re.compile(
    r"\b(Sec(?:ond(?:ary)?)?\s*Ph(?:one)?|Phone|Ph|Cell|Home|Work|Fax)\b\s*:?\s*"
    r"([()\-\s.\d+#xXeEtT]{7,})",
    re.IGNORECASE,
)


def is_valid_nanp(digits: str) -> bool:
    """Return ``True`` for a plausible 10 digit ``NPA-NXX-LINE`` number."""

    if not isinstance(digits, str) or len(digits) != 10 or not digits.isdigit():
        return False
    if len(set(digits)) == 1:
        return False
    npa, nxx, line = digits[:3], digits[3:6], digits[6:]
    if npa[0] in "01" or nxx[0] in "01":
        return False
    if npa == "555" and _FAKE_LINE_RE.match(line):
        return False
    if npa in SERVICE_NPA:
        return False
    return True


def is_toll_free(digits: str) -> bool:
    return len(digits) == 10 and digits[:3] in TOLL_FREE_NPA


def format_ten_digit(digits: str) -> str:
    return f"({digits[:3]}) {digits[3:6]}-{digits[6:]}"


def format_seven_digit(digits: str) -> str:
    return f"{digits[:3]}-{digits[3:]}"


def has_dnc_marker(text: str) -> bool:
    return bool(_DNC_RE.search(text or ""))


def split_extension(text: str) -> Tuple[str, Optional[str]]:
    """Return ``(text_without_extension, extension)``."""

    match = _EXTENSION_RE.search(text)
    if not match:
        return text, None
    return text[: match.start()], match.group(1)


def _international_display(digits: str) -> Optional[str]:
    """Return the E.164 form of a non-NANP number, or ``None`` if it is not a possible number."""

    try:
        parsed = phonenumbers.parse(f"+{digits}", None)
    except phonenumbers.NumberParseException:
        return None
    if not phonenumbers.is_possible_number(parsed):
        return None
    return phonenumbers.format_number(parsed, phonenumbers.PhoneNumberFormat.E164)


def normalize(raw_token: str, context_label: Optional[str] = None) -> Optional[PhoneCandidate]:
    """Normalize one harvested token into a :class:`PhoneCandidate`.

    Returns ``None`` for do-not-call tokens and for anything that does not
    reduce to a 7 or 10 digit NANP number (or a plausible international one).
    """

    original = "" if raw_token is None else str(raw_token)
    if has_dnc_marker(original):
        LOGGER.debug("Dropping do-not-call token %r", original)
        return None

    working, extension = split_extension(original)
    working = _NON_DIGIT_PLUS_RE.sub("", working)

    international = False
    if working.startswith("+1"):
        working = working[2:]
    elif working.startswith("+"):
        international = True
    digits = working.replace("+", "")

    flags: List[str] = []
    display: Optional[str] = None
    valid = False
    toll_free = False

    if international:
        display = _international_display(digits)
        if display is None:
            LOGGER.debug("Rejecting international token %r", original)
            return None
        digits = display[1:]
    else:
        if len(digits) == 11 and digits.startswith("1"):
            digits = digits[1:]
        if len(digits) == 10:
            valid = is_valid_nanp(digits)
            if valid:
                display = format_ten_digit(digits)
            else:
                flags.append(FLAG_NANP_INVALID)
            toll_free = is_toll_free(digits)
        elif len(digits) == 7:
            flags.append(FLAG_NEEDS_AREA_CODE)
            display = format_seven_digit(digits)
        else:
            LOGGER.debug("Rejecting token %r with %s digits", original, len(digits))
            return None

    if context_label and _FAX_RE.search(context_label):
        flags.append(FLAG_FAX)
    if international:
        flags.append(FLAG_INTERNATIONAL)
    if extension:
        flags.append(FLAG_HAS_EXTENSION)
    if toll_free:
        flags.append(FLAG_TOLL_FREE)

    return PhoneCandidate(
        original_text=original,
        canonical_digits=digits,
        extension=extension,
        display_text=display,
        is_valid_nanp=valid,
        is_toll_free=toll_free,
        is_international=international,
        flags=tuple(flags),
        context_label=context_label,
    )


def find_phone_tokens(text: str) -> List[str]:
    """Return every phone-like substring of ``text`` once, in order of appearance."""

    tokens: List[str] = []
    for match in PHONE_TOKEN_RE.finditer(text or ""):
        token = match.group(0).strip()
        if token and token not in tokens:
            tokens.append(token)
    return tokens


def find_labeled_tokens(block: str) -> List[Tuple[str, str]]:
    """Return ``(token, label)`` pairs for numbers written after a phone label.

    Handles same-line forms such as ``Ph: 614-555-1212  Sec Ph: 614-555-4000``.
    """

    pairs: List[Tuple[str, str]] = []
    for match in _LABEL_SPAN_RE.finditer(block or ""):
        label = " ".join(match.group(1).split())
        for token in find_phone_tokens(match.group(2)):
            pair = (token, label)
            if pair not in pairs:
                pairs.append(pair)
    return pairs


def line_type_for_label(label: Optional[str]) -> str:
    """Map a harvest label onto the line type shown in reports."""

    text = (label or "").lower()
    if "click" in text:
        return "ClickToCall"
    if "sec" in text:
        return "Secondary"
    if "cell" in text:
        return "Cell"
    if "home" in text:
        return "Home"
    if "work" in text:
        return "Work"
    if "fax" in text:
        return "Fax"
    return "Policy"


__all__ = [
    "PHONE_TOKEN_RE",
    "SERVICE_NPA",
    "TOLL_FREE_NPA",
    "find_labeled_tokens",
    "find_phone_tokens",
    "format_seven_digit",
    "format_ten_digit",
    "has_dnc_marker",
    "is_toll_free",
    "is_valid_nanp",
    "line_type_for_label",
    "normalize",
    "split_extension",
]

"""Badge classification for leads.

Two modes are supported.  Without a rule table the fixed legacy thresholds
apply; with a :class:`RuleConfig` operators can switch badges on and off and
move the premium ranges without code changes.  ``DEFAULT_RULE_CONFIG``
reproduces the fixed thresholds exactly.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

from .config import ConfigurationError
from .models import Badge
from .policies import quantize_cents

LOGGER = logging.getLogger(__name__)

BADGE_PRIORITY: Tuple[Badge, ...] = tuple(Badge)

STAR_FLOOR = Decimal("100")
WHITE_FLOOR = Decimal("50")


class RuleMode(str, Enum):
    NUMBER = "number"
    LAPSED = "lapsed"
    NO_NUMBERS = "no_numbers"


_TRUE_WORDS = {"on", "true", "yes", "1", "enabled"}
_FALSE_WORDS = {"off", "false", "no", "0", "disabled"}


def _to_cents(value: Any) -> Decimal:
    """Quantize a premium to cents; anything unusable or negative becomes zero."""

    try:
        amount = Decimal(str(value))
    except (InvalidOperation, ValueError, TypeError):
        return Decimal("0.00")
    if not amount.is_finite() or amount < 0:
        return Decimal("0.00")
    return quantize_cents(amount)


def _parse_bool(value: Any, badge: str) -> bool:
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in _TRUE_WORDS:
        return True
    if text in _FALSE_WORDS:
        return False
    raise ConfigurationError(f"Badge '{badge}' has an invalid on/off value {value!r}")


def _parse_amount(value: Any, badge: str, field_name: str) -> Optional[Decimal]:
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    if isinstance(value, bool):
        raise ConfigurationError(f"Badge '{badge}' has a non-numeric {field_name} {value!r}")
    try:
        amount = Decimal(str(value).replace("$", "").replace(",", "").strip())
    except InvalidOperation as exc:
        raise ConfigurationError(f"Badge '{badge}' has a non-numeric {field_name} {value!r}") from exc
    if not amount.is_finite():
        raise ConfigurationError(f"Badge '{badge}' has a non-finite {field_name} {value!r}")
    return amount


@dataclass(frozen=True)
class BadgeRule:
    """One row of an operator supplied badge rule table."""

    badge: Badge
    enabled: bool = True
    mode: RuleMode = RuleMode.NUMBER
    floor: Optional[Decimal] = None
    ceil: Optional[Decimal] = None

    def __post_init__(self) -> None:
        if not isinstance(self.badge, Badge):
            raise ConfigurationError(f"Unknown badge {self.badge!r}")
        if not isinstance(self.mode, RuleMode):
            raise ConfigurationError(f"Badge '{self.badge.value}' has an unknown mode {self.mode!r}")
        for bound in (self.floor, self.ceil):
            if bound is not None and not isinstance(bound, (Decimal, int)):
                raise ConfigurationError(f"Badge '{self.badge.value}' has a non-numeric bound {bound!r}")
        if self.ceil is not None and self.ceil < self.lower_bound:
            raise ConfigurationError(f"Badge '{self.badge.value}' has a ceil below its floor")

    @property
    def lower_bound(self) -> Decimal:
        """The floor, or zero when the rule has none."""

        return Decimal("0") if self.floor is None else Decimal(self.floor)

    def in_range(self, premium: Decimal) -> bool:
        if premium < self.lower_bound:
            return False
        if self.ceil is not None and premium > self.ceil:
            return False
        return True

    @classmethod
    def from_mapping(cls, name: str, data: Any) -> "BadgeRule":
        try:
            badge = Badge(str(name).strip().lower())
        except ValueError as exc:
            raise ConfigurationError(f"Unknown badge '{name}'") from exc
        if not isinstance(data, Mapping):
            raise ConfigurationError(f"Rule for badge '{name}' must be a mapping")

        enabled_value = data.get("enabled", data.get("on", True))
        mode_value = str(data.get("mode", RuleMode.NUMBER.value)).strip().lower()
        try:
            mode = RuleMode(mode_value)
        except ValueError as exc:
            raise ConfigurationError(f"Badge '{name}' has an unknown mode '{mode_value}'") from exc

        floor = _parse_amount(data.get("floor"), name, "floor")
        ceil = _parse_amount(data.get("ceil"), name, "ceil")
        return cls(
            badge=badge,
            enabled=_parse_bool(enabled_value, name),
            mode=mode,
            floor=floor,
            ceil=ceil,
        )


@dataclass(frozen=True)
class RuleConfig:
    """Validated badge rule table, at most one rule per badge."""

    rules: Tuple[BadgeRule, ...]

    def __post_init__(self) -> None:
        seen: set = set()
        for rule in self.rules:
            if not isinstance(rule, BadgeRule):
                raise ConfigurationError(f"Badge rules must be BadgeRule instances, got {rule!r}")
            if rule.badge in seen:
                raise ConfigurationError(f"Badge '{rule.badge.value}' is configured more than once")
            seen.add(rule.badge)

    @classmethod
    def from_mapping(cls, data: Any) -> "RuleConfig":
        """Build a table from ``{"badges": {name: rule}}`` or ``{name: rule}``."""

        if not isinstance(data, Mapping):
            raise ConfigurationError("Badge configuration must be a mapping")
        table = data.get("badges", data)
        if not isinstance(table, Mapping) or not table:
            raise ConfigurationError("Badge configuration does not define any badges")

        rules = [BadgeRule.from_mapping(name, rule_data) for name, rule_data in table.items()]
        rules.sort(key=lambda rule: BADGE_PRIORITY.index(rule.badge))
        return cls(rules=tuple(rules))

    def enabled_rules(self, mode: RuleMode) -> List[BadgeRule]:
        return [rule for rule in self.rules if rule.enabled and rule.mode is mode]

    def to_mapping(self) -> Dict[str, Dict[str, Any]]:
        table: Dict[str, Dict[str, Any]] = {}
        for rule in self.rules:
            entry: Dict[str, Any] = {"enabled": rule.enabled, "mode": rule.mode.value}
            if rule.floor is not None:
                entry["floor"] = str(rule.floor)
            if rule.ceil is not None:
                entry["ceil"] = str(rule.ceil)
            table[rule.badge.value] = entry
        return {"badges": table}


DEFAULT_RULE_TABLE: Dict[str, Dict[str, Any]] = {
    "badges": {
        "star": {"enabled": True, "mode": "number", "floor": "100"},
        "white": {"enabled": True, "mode": "number", "floor": "50"},
        "purple": {"enabled": True, "mode": "number", "floor": "0.01", "ceil": "49.99"},
        "orange": {"enabled": True, "mode": "no_numbers", "floor": "50", "ceil": "99.99"},
        "red": {"enabled": True, "mode": "number", "floor": "0", "ceil": "0"},
    }
}

DEFAULT_RULE_CONFIG = RuleConfig.from_mapping(DEFAULT_RULE_TABLE)


def classify_default(premium: Decimal, has_valid_numbers: bool, all_policies_lapsed: bool) -> Badge:
    """Fixed-threshold classification, first match wins."""

    if premium >= STAR_FLOOR:
        return Badge.STAR
    if Decimal("0") < premium < WHITE_FLOOR:
        return Badge.PURPLE
    if premium > 0 and not has_valid_numbers:
        return Badge.ORANGE
    if premium == 0 or all_policies_lapsed:
        return Badge.RED
    return Badge.WHITE


def classify_with_rules(
    premium: Decimal,
    has_valid_numbers: bool,
    all_policies_lapsed: bool,
    config: RuleConfig,
) -> Badge:
    """Evaluate a rule table: lapsed rules, then no-number rules, then premium ranges."""

    if all_policies_lapsed:
        for rule in config.enabled_rules(RuleMode.LAPSED):
            if rule.in_range(premium):
                return rule.badge

    if not has_valid_numbers:
        for rule in config.enabled_rules(RuleMode.NO_NUMBERS):
            if rule.in_range(premium):
                return rule.badge

    number_rules = sorted(
        config.enabled_rules(RuleMode.NUMBER),
        key=lambda rule: (rule.lower_bound, BADGE_PRIORITY.index(rule.badge)),
    )
    for index, rule in enumerate(number_rules):
        if premium < rule.lower_bound:
            continue
        if rule.ceil is not None:
            if premium <= rule.ceil:
                return rule.badge
            continue
        # Without a ceil the range ends just below the next higher floor.
        next_floor = next(
            (other.lower_bound for other in number_rules[index + 1:] if other.lower_bound > rule.lower_bound),
            None,
        )
        if next_floor is None or premium < next_floor:
            return rule.badge

    return Badge.WHITE


def classify(
    premium_total: Any,
    has_valid_numbers: bool,
    all_policies_lapsed: bool,
    config: Union[RuleConfig, Mapping[str, Any], None] = None,
) -> Badge:
    """Return the badge for a lead.  Never raises.

    A malformed ``config`` mapping is logged and the fixed thresholds are
    used instead.
    """

    premium = _to_cents(premium_total)
    has_valid_numbers = bool(has_valid_numbers)
    all_policies_lapsed = bool(all_policies_lapsed)

    if config is None:
        return classify_default(premium, has_valid_numbers, all_policies_lapsed)

    if not isinstance(config, RuleConfig):
        try:
            config = RuleConfig.from_mapping(config)
        except ConfigurationError as exc:
            LOGGER.warning("Invalid badge configuration, using default thresholds: %s", exc)
            return classify_default(premium, has_valid_numbers, all_policies_lapsed)

    return classify_with_rules(premium, has_valid_numbers, all_policies_lapsed, config)


__all__ = [
    "BADGE_PRIORITY",
    "BadgeRule",
    "DEFAULT_RULE_CONFIG",
    "DEFAULT_RULE_TABLE",
    "RuleConfig",
    "RuleMode",
    "classify",
    "classify_default",
    "classify_with_rules",
]

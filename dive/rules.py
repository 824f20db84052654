"""CI rules that gate an image analysis."""

from __future__ import annotations

import enum
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

from dive.units import parse_bytes

KEY_LOWEST_EFFICIENCY = "lowestEfficiency"
KEY_HIGHEST_WASTED_BYTES = "highestWastedBytes"
KEY_HIGHEST_USER_WASTED_PERCENT = "highestUserWastedPercent"

DISABLED = "disabled"


class RuleStatus(enum.IntEnum):
    """Outcome of a CI rule."""

    UNKNOWN = 0
    PASSED = 1
    FAILED = 2
    WARNING = 3
    DISABLED = 4
    MISCONFIGURED = 5
    CONFIGURED = 6


class RuleConfigError(ValueError):
    """Raised when a CI rule's configuration value is invalid."""


@dataclass(frozen=True)
class RuleResult:
    """The recorded status and message of one rule."""

    status: RuleStatus
    message: str


@dataclass(frozen=True)
class Rule(ABC):
    """A CI rule identified by key, with the configuration it was built from."""

    key: str
    configuration: str

    @abstractmethod
    def evaluate(self, analysis: Any) -> tuple[RuleStatus, str]:
        """Check the analysis; return the status and a message (empty for none)."""


@dataclass(frozen=True)
class DisabledRule(Rule):
    """A rule that is switched off."""

    def evaluate(self, analysis: Any) -> tuple[RuleStatus, str]:
        return RuleStatus.DISABLED, "rule disabled"


@dataclass(frozen=True)
class LowestEfficiencyRule(Rule):
    """Fails when the image efficiency is below the threshold."""

    threshold: float

    def evaluate(self, analysis: Any) -> tuple[RuleStatus, str]:
        if self.threshold > analysis.efficiency:
            return RuleStatus.FAILED, (
                f"image efficiency is too low (efficiency={analysis.efficiency:2.2f} "
                f"< threshold={_format_float(self.threshold)})"
            )
        return RuleStatus.PASSED, ""


@dataclass(frozen=True)
class HighestWastedBytesRule(Rule):
    """Fails when more bytes than the threshold are wasted."""

    threshold: int

    def evaluate(self, analysis: Any) -> tuple[RuleStatus, str]:
        if analysis.wasted_bytes > self.threshold:
            return RuleStatus.FAILED, (
                f"too many bytes wasted (wasted-bytes={analysis.wasted_bytes} "
                f"> threshold={self.threshold})"
            )
        return RuleStatus.PASSED, ""


@dataclass(frozen=True)
class HighestUserWastedPercentRule(Rule):
    """Fails when the wasted share of user bytes exceeds the threshold."""

    threshold: float

    def evaluate(self, analysis: Any) -> tuple[RuleStatus, str]:
        if analysis.wasted_user_percent > self.threshold:
            return RuleStatus.FAILED, (
                "too many bytes wasted, relative to the user bytes added "
                f"(%-user-wasted-bytes={analysis.wasted_user_percent:2.2f} "
                f"> threshold={_format_float(self.threshold)})"
            )
        return RuleStatus.PASSED, ""


def _format_float(value: float) -> str:
    if value.is_integer() and abs(value) < 1e21:
        return str(int(value))
    return repr(value)


def _quote(text: str) -> str:
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _parse_float(text: str) -> float:
    if not text or text != text.strip() or "_" in text:
        raise ValueError(f"parsing {_quote(text)}: invalid syntax")
    try:
        return float(text)
    except ValueError:
        raise ValueError(f"parsing {_quote(text)}: invalid syntax") from None


def is_rule_disabled(value: str) -> bool:
    """Whether a configuration value turns a rule off."""
    return value.lower().strip() in ("", "disabled", "off", "false")


def disabled_rule(key: str) -> DisabledRule:
    """Build a switched-off rule for the given key."""
    return DisabledRule(key=key, configuration=DISABLED)


def _ratio_threshold(key: str, config_value: str) -> float:
    try:
        threshold = _parse_float(config_value)
    except ValueError as exc:
        raise RuleConfigError(
            f"invalid {key} config value, given {_quote(config_value)}: {exc}"
        ) from None
    if threshold < 0 or threshold > 1:
        raise RuleConfigError(
            f"{key} config value is outside allowed range (0-1), given '{threshold:f}'"
        )
    return threshold


def lowest_efficiency_rule(config_value: str) -> Rule:
    """Build the lowest-efficiency rule from its configuration value."""
    if is_rule_disabled(config_value):
        return disabled_rule(KEY_LOWEST_EFFICIENCY)
    threshold = _ratio_threshold(KEY_LOWEST_EFFICIENCY, config_value)
    return LowestEfficiencyRule(KEY_LOWEST_EFFICIENCY, config_value, threshold)


def highest_wasted_bytes_rule(config_value: str) -> Rule:
    """Build the highest-wasted-bytes rule from its configuration value."""
    if is_rule_disabled(config_value):
        return disabled_rule(KEY_HIGHEST_WASTED_BYTES)
    try:
        threshold = parse_bytes(config_value)
    except ValueError as exc:
        raise RuleConfigError(
            f"invalid {KEY_HIGHEST_WASTED_BYTES} config value, "
            f"given {_quote(config_value)}: {exc}"
        ) from None
    return HighestWastedBytesRule(KEY_HIGHEST_WASTED_BYTES, config_value, threshold)


def highest_user_wasted_percent_rule(config_value: str) -> Rule:
    """Build the highest-user-wasted-percent rule from its configuration value."""
    if is_rule_disabled(config_value):
        return disabled_rule(KEY_HIGHEST_USER_WASTED_PERCENT)
    threshold = _ratio_threshold(KEY_HIGHEST_USER_WASTED_PERCENT, config_value)
    return HighestUserWastedPercentRule(
        KEY_HIGHEST_USER_WASTED_PERCENT, config_value, threshold
    )


def build_rules(
    lowest_efficiency: str,
    highest_wasted_bytes: str,
    highest_user_wasted_percent: str,
) -> list[Rule]:
    """Build all three CI rules; raise one error naming every invalid value."""
    builders = (
        (lowest_efficiency_rule, lowest_efficiency),
        (highest_wasted_bytes_rule, highest_wasted_bytes),
        (highest_user_wasted_percent_rule, highest_user_wasted_percent),
    )
    rules: list[Rule] = []
    errors: list[str] = []
    for builder, value in builders:
        try:
            rules.append(builder(value))
        except RuleConfigError as exc:
            errors.append(str(exc))
    if errors:
        raise RuleConfigError("\n".join(errors))
    return rules
"""Evaluation of CI rules against an image analysis, with a text report."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Iterable

from dive.rules import Rule, RuleResult, RuleStatus
from dive.units import format_bytes


@dataclass(frozen=True)
class Style:
    """Terminal text styling; escape codes are only emitted when ``ansi`` is set."""

    bold: bool = False
    faint: bool = False
    foreground: str | None = None
    width: int | None = None
    ansi: bool = False

    def render(self, text: str) -> str:
        if self.width is not None:
            text = "\n".join(line.ljust(self.width) for line in text.split("\n"))
        codes = []
        if self.bold:
            codes.append("1")
        if self.faint:
            codes.append("2")
        if self.foreground is not None:
            color = int(self.foreground)
            codes.append(f"3{color}" if color < 8 else f"38;5;{color}")
        if not (self.ansi and codes):
            return text
        return f"\x1b[{';'.join(codes)}m{text}\x1b[0m"


@dataclass(frozen=True)
class ReportFormat:
    """The styles used by the evaluation report."""

    title: Style
    success: Style
    warning: Style
    disabled: Style
    failure: Style
    table_header: Style
    label: Style
    aux: Style
    value: Style

    @classmethod
    def default(cls, ansi: bool = False) -> "ReportFormat":
        return cls(
            title=Style(bold=True, ansi=ansi),
            success=Style(foreground="2", ansi=ansi),
            warning=Style(foreground="3", ansi=ansi),
            disabled=Style(faint=True, ansi=ansi),
            failure=Style(foreground="1", bold=True, ansi=ansi),
            table_header=Style(bold=True, ansi=ansi),
            label=Style(width=18, ansi=ansi),
            aux=Style(faint=True, ansi=ansi),
            value=Style(ansi=ansi),
        )


@dataclass(frozen=True)
class Evaluation:
    """The rendered report and whether every rule passed."""

    report: str
    passed: bool


@dataclass
class ResultTally:
    passed: int = 0
    failed: int = 0
    skipped: int = 0
    warned: int = 0
    total: int = 0


@dataclass(frozen=True)
class ReferenceFile:
    references: int
    size_bytes: int
    path: str


def status_label(status: RuleStatus, fmt: ReportFormat) -> str:
    """The styled label shown for a rule status."""
    labels = {
        RuleStatus.PASSED: (fmt.success, "PASS"),
        RuleStatus.FAILED: (fmt.failure, "FAIL"),
        RuleStatus.WARNING: (fmt.warning, "WARN"),
        RuleStatus.DISABLED: (fmt.disabled, "SKIP"),
        RuleStatus.MISCONFIGURED: (fmt.warning, "MISCONFIGURED"),
    }
    if status == RuleStatus.CONFIGURED:
        return "CONFIGURED   "
    style, text = labels.get(status, (fmt.warning, "Unknown"))
    return style.render(text)


class Evaluator:
    """Runs CI rules over an analysis and collects their results."""

    def __init__(self, rules: Iterable[Rule], fmt: ReportFormat | None = None) -> None:
        self.rules: list[Rule] = list(rules)
        self.results: dict[str, RuleResult] = {}
        self.tally = ResultTally()
        self.passed = True
        self.misconfigured = False
        self.inefficient_files: list[ReferenceFile] = []
        self.format = fmt or ReportFormat.default()

    @staticmethod
    def _is_enabled(rule: Rule) -> bool:
        return rule.configuration != "disabled"

    def evaluate(self, analysis: Any) -> Evaluation:
        """Evaluate every rule, tally the outcomes and render the report."""
        self.passed = True
        self.tally = ResultTally()

        for rule in self.rules:
            message = "test" if self._is_enabled(rule) else "rule disabled"
            self.results[rule.key] = RuleResult(RuleStatus.CONFIGURED, message)

        self.inefficient_files = [
            ReferenceFile(
                references=len(data.nodes),
                size_bytes=int(data.cumulative_size),
                path=data.path,
            )
            for data in reversed(analysis.inefficiencies)
        ]

        for rule in self.rules:
            if not self._is_enabled(rule):
                self.results[rule.key] = RuleResult(RuleStatus.DISABLED, "disabled")
                continue

            status, message = rule.evaluate(analysis)

            existing = self.results.get(rule.key)
            if existing is not None and existing.status not in (
                RuleStatus.CONFIGURED,
                RuleStatus.MISCONFIGURED,
            ):
                raise RuntimeError(f"CI rule result recorded twice: {rule.key}")

            if status == RuleStatus.FAILED:
                self.passed = False
            self.results[rule.key] = RuleResult(status, message or rule.configuration)

        counts: Counter[RuleStatus] = Counter()
        for key, result in self.results.items():
            if result.status not in (
                RuleStatus.PASSED,
                RuleStatus.FAILED,
                RuleStatus.WARNING,
                RuleStatus.DISABLED,
            ):
                raise RuntimeError(
                    f"unknown test status (rule='{key}'): {int(result.status)}"
                )
            counts[result.status] += 1
        self.tally = ResultTally(
            passed=counts[RuleStatus.PASSED],
            failed=counts[RuleStatus.FAILED],
            skipped=counts[RuleStatus.DISABLED],
            warned=counts[RuleStatus.WARNING],
            total=len(self.results),
        )

        return Evaluation(report=self.report(analysis), passed=self.passed)

    def report(self, analysis: Any) -> str:
        """Render the analysis, inefficient files and rule results."""
        return "\n\n".join(
            (
                self._analysis_section(analysis),
                self._inefficient_files_section(analysis),
                self._evaluation_section(),
            )
        )

    def _key_value(self, key: str, value: str) -> str:
        return f"  {self.format.label.render(key + ':')} {value}"

    def _analysis_section(self, analysis: Any) -> str:
        wasted_str = ""
        user_wasted = "0 %"
        if analysis.wasted_bytes > 0:
            wasted_str = f"({format_bytes(analysis.wasted_bytes)})"
            user_wasted = f"{analysis.wasted_user_percent * 100:.2f} %"

        rows = [
            self._key_value("efficiency", f"{analysis.efficiency * 100:.2f} %"),
            self._key_value("wastedBytes", f"{analysis.wasted_bytes} bytes {wasted_str}"),
            self._key_value("userWastedPercent", user_wasted),
        ]
        return self.format.title.render("Analysis:") + "\n" + "\n".join(rows)

    def _inefficient_files_section(self, analysis: Any) -> str:
        title = self.format.title.render("Inefficient Files:")
        if not analysis.inefficiencies:
            return title + " (None)"

        rows = [
            self.format.table_header.render(
                f"  {'Count':<5}  {'Wasted Space':<12}  File Path"
            )
        ]
        rows.extend(
            f"  {str(item.references):<5}  {format_bytes(item.size_bytes):<12}  {item.path}"
            for item in self.inefficient_files
        )
        return title + "\n" + "\n".join(rows)

    def _evaluation_section(self) -> str:
        title = self.format.title.render("Evaluation:")
        lines = [
            self._rule_line(name, self.results[name]) for name in sorted(self.results)
        ]
        return title + "\n" + "\n".join(lines) + "\n\n" + self._status_summary()

    def _rule_line(self, name: str, result: RuleResult) -> str:
        fmt = self.format
        text_style = Style()
        if result.status == RuleStatus.PASSED:
            style = fmt.success
        elif result.status == RuleStatus.FAILED:
            style = fmt.failure
        elif result.status in (RuleStatus.WARNING, RuleStatus.MISCONFIGURED):
            style = fmt.warning
        elif result.status == RuleStatus.DISABLED:
            style = fmt.disabled
            text_style = fmt.disabled
        else:
            style = Style()

        label = style.render(status_label(result.status, fmt))
        text = f"{name} ({result.message})" if result.message else name
        return f"  {label}  {text_style.render(text)}"

    def _status_summary(self) -> str:
        fmt = self.format
        if self.misconfigured:
            return fmt.failure.render("CI Misconfigured")

        status = "FAIL" if self.tally.failed > 0 else "PASS"
        items = (
            ("pass", self.tally.passed),
            ("fail", self.tally.failed),
            ("warn", self.tally.warned),
            ("skip", self.tally.skipped),
        )
        parts = [f"{name}:{value}" for name, value in items if value > 0]
        aux = fmt.aux.render(" [" + " ".join(parts) + "]")

        if self.passed and self.tally.warned == 0:
            style = fmt.success
        elif self.passed:
            style = fmt.warning
        else:
            style = fmt.failure
        return style.render(status) + aux
from dataclasses import dataclass, field

import pytest

from dive.evaluator import (
    Evaluator,
    ReferenceFile,
    ReportFormat,
    Style,
    status_label,
)
from dive.rules import Rule, RuleStatus, build_rules, lowest_efficiency_rule


@dataclass
class FakeFileData:
    path: str
    cumulative_size: int
    nodes: list


@dataclass
class FakeAnalysis:
    efficiency: float = 0.95
    wasted_bytes: int = 32025
    wasted_user_percent: float = 0.4
    inefficiencies: list = field(default_factory=list)


@dataclass(frozen=True)
class FixedRule(Rule):
    status: RuleStatus = RuleStatus.WARNING

    def evaluate(self, analysis):
        return self.status, "fixed"


@pytest.mark.parametrize(
    "efficiency, wasted_bytes, wasted_percent, expected_pass, expected",
    [
        (
            "0.99",
            "1B",
            "0.01",
            False,
            {
                "lowestEfficiency": RuleStatus.FAILED,
                "highestWastedBytes": RuleStatus.FAILED,
                "highestUserWastedPercent": RuleStatus.FAILED,
            },
        ),
        (
            "0.9",
            "50kB",
            "0.5",
            True,
            {
                "lowestEfficiency": RuleStatus.PASSED,
                "highestWastedBytes": RuleStatus.PASSED,
                "highestUserWastedPercent": RuleStatus.PASSED,
            },
        ),
        (
            "disabled",
            "disabled",
            "disabled",
            True,
            {
                "lowestEfficiency": RuleStatus.DISABLED,
                "highestWastedBytes": RuleStatus.DISABLED,
                "highestUserWastedPercent": RuleStatus.DISABLED,
            },
        ),
        (
            "0.9",
            "1B",
            "0.5",
            False,
            {
                "lowestEfficiency": RuleStatus.PASSED,
                "highestWastedBytes": RuleStatus.FAILED,
                "highestUserWastedPercent": RuleStatus.PASSED,
            },
        ),
    ],
    ids=["allFail", "allPass", "allDisabled", "mixedResults"],
)
def test_evaluator(efficiency, wasted_bytes, wasted_percent, expected_pass, expected):
    evaluator = Evaluator(build_rules(efficiency, wasted_bytes, wasted_percent))
    evaluation = evaluator.evaluate(FakeAnalysis())
    assert evaluation.passed is expected_pass
    assert {key: result.status for key, result in evaluator.results.items()} == expected


def test_all_fail_tally_and_summary():
    evaluator = Evaluator(build_rules("0.99", "1B", "0.01"))
    report = evaluator.evaluate(FakeAnalysis()).report
    assert evaluator.tally.failed == 3
    assert evaluator.tally.total == 3
    assert report.endswith("FAIL [fail:3]")
    assert (
        "  FAIL  lowestEfficiency (image efficiency is too low "
        "(efficiency=0.95 < threshold=0.99))" in report.splitlines()
    )


def test_all_pass_uses_configuration_as_message():
    evaluator = Evaluator(build_rules("0.9", "50kB", "0.5"))
    report = evaluator.evaluate(FakeAnalysis()).report
    lines = report.splitlines()
    assert "  PASS  highestWastedBytes (50kB)" in lines
    assert report.endswith("PASS [pass:3]")


def test_disabled_rules_report_skip():
    evaluator = Evaluator(build_rules("disabled", "off", "false"))
    report = evaluator.evaluate(FakeAnalysis()).report
    assert "  SKIP  lowestEfficiency (disabled)" in report.splitlines()
    assert report.endswith("PASS [skip:3]")
    assert evaluator.tally.skipped == 3


def test_evaluation_lines_sorted_by_rule_name():
    evaluator = Evaluator(build_rules("0.9", "50kB", "0.5"))
    report = evaluator.evaluate(FakeAnalysis()).report
    rule_lines = [line for line in report.splitlines() if line.startswith("  PASS  ")]
    names = [line.split()[1] for line in rule_lines]
    assert names == sorted(names)


def test_analysis_section():
    evaluator = Evaluator(build_rules("0.9", "50kB", "0.5"))
    lines = evaluator.evaluate(FakeAnalysis()).report.splitlines()
    assert lines[0] == "Analysis:"
    assert lines[1] == "  efficiency:" + " " * 8 + "95.00 %"
    assert "32025 bytes (32 kB)" in lines[2]
    assert lines[3].endswith("40.00 %")


def test_analysis_without_waste():
    evaluator = Evaluator(build_rules("0.9", "50kB", "0.5"))
    lines = evaluator.evaluate(
        FakeAnalysis(wasted_bytes=0, wasted_user_percent=0.0)
    ).report.splitlines()
    assert lines[2].endswith("0 bytes ")
    assert lines[3].endswith(" 0 %")


def test_no_inefficient_files():
    evaluator = Evaluator(build_rules("0.9", "50kB", "0.5"))
    report = evaluator.evaluate(FakeAnalysis()).report
    assert "Inefficient Files: (None)" in report.splitlines()


def test_inefficient_files_are_reversed():
    analysis = FakeAnalysis(
        inefficiencies=[
            FakeFileData("/a", 100, [1]),
            FakeFileData("/b", 2000, [1, 2, 3]),
        ]
    )
    evaluator = Evaluator(build_rules("0.9", "50kB", "0.5"))
    lines = evaluator.evaluate(analysis).report.splitlines()
    assert evaluator.inefficient_files == [
        ReferenceFile(references=3, size_bytes=2000, path="/b"),
        ReferenceFile(references=1, size_bytes=100, path="/a"),
    ]
    header_index = lines.index("  Count  Wasted Space  File Path")
    assert lines[header_index + 1] == "  3      2.0 kB        /b"
    assert lines[header_index + 2].endswith("/a")


def test_duplicate_rule_raises():
    rules = [lowest_efficiency_rule("0.9"), lowest_efficiency_rule("0.9")]
    with pytest.raises(RuntimeError, match="recorded twice"):
        Evaluator(rules).evaluate(FakeAnalysis())


def test_warning_rule_counts_as_warn():
    evaluator = Evaluator([FixedRule(key="custom", configuration="on")])
    evaluation = evaluator.evaluate(FakeAnalysis())
    assert evaluation.passed is True
    assert evaluator.tally.warned == 1
    assert evaluation.report.endswith("PASS [warn:1]")
    assert "  WARN  custom (fixed)" in evaluation.report.splitlines()


def test_unknown_status_raises():
    rule = FixedRule(key="custom", configuration="on", status=RuleStatus.UNKNOWN)
    with pytest.raises(RuntimeError, match="unknown test status"):
        Evaluator([rule]).evaluate(FakeAnalysis())


def test_repeated_evaluation_is_stable():
    evaluator = Evaluator(build_rules("0.99", "1B", "0.01"))
    first = evaluator.evaluate(FakeAnalysis())
    second = evaluator.evaluate(FakeAnalysis())
    assert first == second
    assert evaluator.tally.failed == 3


@pytest.mark.parametrize(
    "status, label",
    [
        (RuleStatus.PASSED, "PASS"),
        (RuleStatus.FAILED, "FAIL"),
        (RuleStatus.WARNING, "WARN"),
        (RuleStatus.DISABLED, "SKIP"),
        (RuleStatus.MISCONFIGURED, "MISCONFIGURED"),
        (RuleStatus.CONFIGURED, "CONFIGURED   "),
        (RuleStatus.UNKNOWN, "Unknown"),
    ],
)
def test_status_label(status, label):
    assert status_label(status, ReportFormat.default()) == label


def test_style_plain_padding():
    rendered = Style(width=18).render("ab")
    assert len(rendered) == 18
    assert rendered.startswith("ab")


def test_style_ansi_bold():
    assert Style(bold=True, ansi=True).render("x") == "\x1b[1mx\x1b[0m"


def test_style_without_ansi_is_plain():
    assert Style(bold=True, foreground="1").render("x") == "x"


def test_report_colors_only_when_enabled():
    plain = Evaluator(build_rules("0.99", "1B", "0.01")).evaluate(FakeAnalysis()).report
    colored = Evaluator(
        build_rules("0.99", "1B", "0.01"), ReportFormat.default(ansi=True)
    ).evaluate(FakeAnalysis()).report
    assert "\x1b[" not in plain
    assert "\x1b[" in colored
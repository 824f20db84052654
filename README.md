# dive

Tools for judging how efficiently a container image uses its layers.
Given an analysis of an image (its efficiency score, wasted bytes and the
files that are duplicated or overwritten across layers), this package can:

- check the analysis against CI rules and produce a readable pass/fail report,
- export the analysis as indented JSON,
- load the CI rules and export options from configuration, including the
  legacy `.dive-ci` rule file,
- wrap analysing, evaluating, exporting and image loading with progress
  reporting.

## The analysis object

The package does not define an analysis type of its own; it reads attributes
from whatever object it is given.

- `Evaluator` reads `efficiency`, `wasted_bytes`, `wasted_user_percent` and
  `inefficiencies`; each inefficiency provides `nodes`, `cumulative_size`
  and `path`.
- `Export.from_analysis` also reads `layers` (each with `index`, `id`,
  `digest`, `size`, `command` and `files`) and `size_bytes`.
- `ObservedEvaluator` and `JsonExporter` also read `image`, the image name.

## CI rules (`dive.rules`)

Three rules are available, each configured from a string:

| Rule                       | Meaning                                              | Default (`CIRules`) |
|----------------------------|------------------------------------------------------|---------------------|
| `lowestEfficiency`         | lowest allowed image efficiency, a ratio from 0 to 1 | `0.9`               |
| `highestWastedBytes`       | most bytes that may be wasted, e.g. `20MB`, `50kB`   | `disabled`          |
| `highestUserWastedPercent` | most wasted bytes relative to user bytes, 0 to 1     | `0.1`               |

A value of `disabled`, `off`, `false` or an empty string (case and
surrounding spaces ignored) switches a rule off. `build_rules` builds all
three and raises a single `RuleConfigError` naming every value that cannot be
parsed or, for the ratios, lies outside 0–1. The single-rule builders are
`lowest_efficiency_rule`, `highest_wasted_bytes_rule` and
`highest_user_wasted_percent_rule`.

```python
from dive.rules import build_rules
from dive.evaluator import Evaluator

rules = build_rules("0.9", "50kB", "0.5")
evaluation = Evaluator(rules).evaluate(analysis)

print(evaluation.report)
if not evaluation.passed:
    raise SystemExit(1)
```

## Evaluation report (`dive.evaluator`)

`Evaluator.evaluate` runs every rule, records a `RuleResult` per rule key in
`results`, counts outcomes in `tally` and returns an `Evaluation` holding the
report text and `passed`. The report has three sections — the analysis
figures, the inefficient files (in reverse of the order the analysis lists
them) and the result of every rule, sorted by key — followed by a summary
such as `PASS [pass:3]` or `FAIL [pass:2 fail:1]`.

Styling comes from a `ReportFormat`; `ReportFormat.default()` produces plain
text, and `ReportFormat.default(ansi=True)` adds terminal colours.

## Configuration (`dive.options`)

`CI` enables CI mode from its own `enabled` setting or from the `CI`
environment variable (`true`, `1` or `yes`). When its `config_path` (default
`.dive-ci`) names an existing file, the values under its `rules:` key are
applied on top of the default rule values and replace the configured ones:

```yaml
rules:
  lowestEfficiency: 0.95
  highestWastedBytes: 20MB
  highestUserWastedPercent: 0.2
```

`CI.post_load()` then calls `CIRules.post_load()`, which turns the rule
strings into rule objects in `CIRules.rules`. Values set in the
`legacy_*` fields override the matching current ones and log a deprecation
warning.

`ExportOptions.post_load()` raises `FileNotFoundError` when the directory of
`json_path` does not exist. `UILayers` holds the `show_aggregated_changes`
display setting.

## JSON export (`dive.export`)

```python
from dive.export import Export

payload = Export.from_analysis(analysis).marshal()
```

`marshal` returns UTF-8 JSON indented by two spaces, with `<`, `>` and `&`
escaped as `\u003c`, `\u003e` and `\u0026`.

## Progress reporting (`dive.adapters`)

- `ObservedAnalyzer(analyzer).analyze(image)` calls your analysis function and
  raises `RuntimeError` if it returns nothing.
- `ObservedEvaluator(rules).evaluate(analysis)` evaluates and passes the
  report to a callback (stdout by default).
- `JsonExporter().export_to(analysis, path)` writes the JSON export to a file.
- `ObservedResolver(resolver)` calls the resolver's `build(options)` or
  `fetch(image_id)`; if fetching takes longer than `slow_notice_seconds`
  (3 by default) it sends a notice (stderr by default).

Each takes an optional `on_task` callback that receives the `TaskMonitor` of
the task as it starts; the monitor records its stage, completion and error.

## Byte sizes (`dive.units`)

`format_bytes(82854982)` gives `83 MB` (base 1000); `parse_bytes("50kB")`
gives `50000` and also accepts binary units such as `1.5 GiB`;
`format_comma(1234567)` gives `1,234,567`.

## What this package does not do

It has no command-line program and no interactive browser for layers. It does
not read images from a container engine or an archive, and it does not
compute the analysis itself: you supply an analysis function to
`ObservedAnalyzer` and an image resolver to `ObservedResolver`.
"""Observed wrappers that report progress around analysis, evaluation, export and image loading."""

from __future__ import annotations

import logging
import os
import sys
import threading
from dataclasses import dataclass
from typing import Any, Callable, Iterable, Sequence

from dive.evaluator import Evaluation, Evaluator
from dive.export import Export
from dive.rules import Rule
from dive.units import format_bytes, format_comma

logger = logging.getLogger(__name__)

SLOW_FETCH_NOTICE = " • this can take a while for large images..."
SLOW_FETCH_STAGE = "(this can take a while for large images)"


@dataclass(frozen=True)
class TaskTitle:
    """Titles shown for a task before, during and after it runs."""

    default: str
    while_running: str
    on_success: str


@dataclass
class TaskMonitor:
    """Progress of one long-running task."""

    title: TaskTitle
    id: str = ""
    context: str = ""
    stage: str = ""
    completed: bool = False
    error: BaseException | None = None
    hide_on_success: bool = False
    hide_stage_on_success: bool = False

    def set_stage(self, stage: str) -> None:
        """Record the current stage text."""
        self.stage = stage

    def set_completed(self) -> None:
        """Mark the task as finished successfully."""
        self.completed = True

    def set_error(self, error: BaseException) -> None:
        """Mark the task as failed with the given error."""
        self.error = error
        self.completed = True

    @property
    def succeeded(self) -> bool:
        return self.completed and self.error is None


TaskListener = Callable[[TaskMonitor], None]


def _start_task(
    listener: TaskListener | None, title: str, running: str, done: str, *, id: str = "", context: str = ""
) -> TaskMonitor:
    monitor = TaskMonitor(TaskTitle(title, running, done), id=id, context=context)
    if listener is not None:
        listener(monitor)
    return monitor


class ObservedAnalyzer:
    """Runs an analysis function while reporting its progress."""

    def __init__(self, analyzer: Callable[[Any], Any], on_task: TaskListener | None = None) -> None:
        self.analyzer = analyzer
        self.on_task = on_task

    def analyze(self, image: Any) -> Any:
        """Analyze the image; raise if the analyzer fails or returns nothing."""
        logger.info("analyzing image=%s", image.request)

        layers = len(image.layers)
        files = sum(layer.tree.size for layer in image.layers)
        file_size = sum(layer.tree.file_size for layer in image.layers)
        size_str = format_bytes(file_size)
        files_str = format_comma(files)

        logger.debug("├── layers: %d", layers)
        logger.debug("├── files: %s", files_str)
        logger.debug("└── file size: %s", size_str)

        monitor = _start_task(
            self.on_task,
            "Analyzing image",
            "Analyzing image",
            "Analyzed image",
            id=image.request,
            context=f"[layers:{layers} files:{files_str} size:{size_str}]",
        )

        try:
            analysis = self.analyzer(image)
        except Exception as exc:
            monitor.set_error(exc)
            raise
        monitor.set_completed()

        if analysis is None:
            raise RuntimeError("no results returned")
        return analysis


class ObservedEvaluator:
    """Evaluates CI rules while reporting progress and the final report."""

    def __init__(
        self,
        rules: Iterable[Rule],
        on_task: TaskListener | None = None,
        report: Callable[[str], None] | None = None,
    ) -> None:
        self.rules: list[Rule] = list(rules)
        self.on_task = on_task
        self.report = report if report is not None else _print_report
        self.evaluator: Evaluator | None = None

    def evaluate(self, analysis: Any) -> Evaluation:
        """Evaluate the analysis against the rules and pass on the report."""
        logger.info("evaluating image=%s", analysis.image)
        monitor = _start_task(
            self.on_task,
            "Evaluating image",
            "Evaluating image",
            "Evaluated image",
            id=analysis.image,
            context=f"[rules: {len(self.rules)}]",
        )
        self.evaluator = Evaluator(self.rules)
        evaluation = self.evaluator.evaluate(analysis)
        if evaluation.passed:
            monitor.set_completed()
        else:
            monitor.set_error(RuntimeError("failed evaluation"))
        self.report(evaluation.report)
        return evaluation


def _print_report(text: str) -> None:
    sys.stdout.write(text + "\n")


class JsonExporter:
    """Writes an analysis as JSON to a file."""

    def __init__(self, on_task: TaskListener | None = None) -> None:
        self.on_task = on_task

    def export_to(self, analysis: Any, path: str) -> None:
        """Marshal the analysis and write it to ``path``."""
        logger.info("exporting analysis path=%s", path)
        monitor = _start_task(
            self.on_task,
            "Exporting details",
            "Exporting details",
            "Exported details",
            id=analysis.image,
            context=f"[file: {path}]",
        )

        try:
            payload = Export.from_analysis(analysis).marshal()
        except Exception as exc:
            monitor.set_error(exc)
            raise ValueError(f"cannot marshal export payload: {exc}") from exc
        monitor.set_completed()

        try:
            fd = os.open(path, os.O_RDWR | os.O_CREAT, 0o644)
        except OSError as exc:
            raise OSError(f"cannot open export file: {exc}") from exc
        with os.fdopen(fd, "r+b") as handle:
            try:
                handle.write(payload)
            except OSError as exc:
                raise OSError(f"cannot write to export file: {exc}") from exc


class ObservedResolver:
    """Builds or fetches images through a resolver while reporting progress."""

    def __init__(
        self,
        resolver: Any,
        on_task: TaskListener | None = None,
        notify: Callable[[str], None] | None = None,
        slow_notice_seconds: float = 3.0,
    ) -> None:
        self.resolver = resolver
        self.on_task = on_task
        self.notify = notify if notify is not None else _print_notice
        self.slow_notice_seconds = slow_notice_seconds

    @property
    def name(self) -> str:
        name = getattr(self.resolver, "name", "")
        return name() if callable(name) else str(name)

    def build(self, options: Sequence[str]) -> Any:
        """Build an image with the given build arguments."""
        joined = " ".join(options)
        logger.info("building image")
        logger.debug("└── %s", joined)
        monitor = _start_task(
            self.on_task,
            "Building image",
            "Building image",
            "Built image",
            context="... " + joined,
        )
        try:
            image = self.resolver.build(list(options))
        except Exception as exc:
            monitor.set_error(exc)
            raise
        monitor.set_completed()
        return image

    def fetch(self, image_id: str) -> Any:
        """Fetch an image, noting when loading takes a while."""
        logger.info("fetching image=%s", image_id)
        logger.debug("└── resolver: %s", self.name)
        monitor = _start_task(
            self.on_task,
            "Loading image",
            "Loading image",
            "Fetched image",
            id=image_id,
            context=image_id,
        )

        done = threading.Event()

        def _slow_notice() -> None:
            if not done.is_set():
                self.notify(SLOW_FETCH_NOTICE)
                monitor.set_stage(SLOW_FETCH_STAGE)

        timer = threading.Timer(self.slow_notice_seconds, _slow_notice)
        timer.daemon = True
        timer.start()
        try:
            image = self.resolver.fetch(image_id)
        except Exception as exc:
            monitor.set_error(exc)
            raise
        finally:
            done.set()
            timer.cancel()
        monitor.set_completed()
        return image


def _print_notice(text: str) -> None:
    sys.stderr.write(text + "\n")
"""Severity classification for streamed process output."""

from __future__ import annotations

from typing import Callable, Iterable, Literal

from flowdeck.domain.models import EventLevel

Stream = Literal["stdout", "stderr"]

DEFAULT_WARN_MARKERS: tuple[str, ...] = ("npm warn", "yarn warn", "pnpm warn")

LineClassifier = Callable[[str, Stream], EventLevel]


def classify_line(
    line: str,
    stream: Stream,
    warn_markers: Iterable[str] = DEFAULT_WARN_MARKERS,
) -> EventLevel:
    """Classify one output line.

    Package-manager warnings are reported as ``warn`` wherever they
    appear; any other stderr line is an ``error`` and stdout lines are
    ``info``.
    """
    lowered = line.lower()
    if any(marker.lower() in lowered for marker in warn_markers):
        return EventLevel.WARN
    if stream == "stderr":
        return EventLevel.ERROR
    return EventLevel.INFO


def make_classifier(warn_markers: Iterable[str]) -> LineClassifier:
    """Bind a set of warn markers into a two-argument classifier."""
    markers = tuple(warn_markers)

    def _classify(line: str, stream: Stream) -> EventLevel:
        return classify_line(line, stream, markers)

    return _classify

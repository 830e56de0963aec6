"""Filtering of diagnostics by level, confidence and false-positive hints."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any

import yaml


class DiagnosticLevel(IntEnum):
    """Importance of a diagnostic; higher is more important."""

    INFO = 0
    WARNING = 1
    ERROR = 2

    def __str__(self) -> str:
        return self.name.lower()


@dataclass(frozen=True)
class Diagnostic:
    """A finding reported at a source position."""

    message: str
    pos: int = 0
    category: str = ""


@dataclass
class CustomFilter:
    """A user-defined message pattern and the action to take on it."""

    pattern: str = ""
    action: str = ""


@dataclass
class DiagnosticConfig:
    """Settings that control which diagnostics are reported."""

    level: str = ""
    include_suggestions: bool = False
    include_escape_reasons: bool = False
    confidence_threshold: float = 0.0
    potential_false_positive_detection: bool = False
    custom_filters: list[CustomFilter] = field(default_factory=list)


def _level_of(message: str) -> DiagnosticLevel | None:
    """The level a message implies, or None when it must always be dropped."""
    lowered = message.lower()
    if "critical" in lowered or "leak detected" in lowered:
        return DiagnosticLevel.ERROR
    if "potential" in lowered or "possible" in lowered:
        if "potential false positive" in lowered:
            return None
        return DiagnosticLevel.WARNING
    return DiagnosticLevel.INFO


class DiagnosticFilter:
    """Keeps diagnostics at or above a minimum level."""

    def __init__(self, level: DiagnosticLevel) -> None:
        self.level = level

    def should_include(self, diagnostic: Diagnostic) -> bool:
        """Whether the diagnostic's inferred level reaches the filter's level."""
        level = _level_of(diagnostic.message)
        return level is not None and self.level <= level


_FALSE_POSITIVE_PATTERNS = (
    "potential false positive",
    "uncertain",
    "unclear",
    "possible",
    "may be",
    "might be",
)


class PotentialFalsePositiveDetector:
    """Spots messages that hedge about their own certainty."""

    def __init__(self, patterns: tuple[str, ...] = _FALSE_POSITIVE_PATTERNS) -> None:
        self.patterns = patterns

    def is_potential_false_positive(self, message: str) -> bool:
        """Whether the message contains any of the hedging phrases."""
        lowered = message.lower()
        return any(pattern in lowered for pattern in self.patterns)


def load_diagnostic_config(data: str | bytes) -> DiagnosticConfig:
    """Parse the ``diagnostics`` section of a YAML document, filling defaults."""
    try:
        document = yaml.safe_load(data)
    except yaml.YAMLError as exc:
        raise ValueError(f"invalid diagnostics configuration: {exc}") from exc

    section = _mapping((document or {}).get("diagnostics") if isinstance(document, dict) else document)
    raw_filters = section.get("custom_filters") or []
    if not isinstance(raw_filters, list):
        raise ValueError("invalid diagnostics configuration: custom_filters must be a sequence")

    config = DiagnosticConfig(
        level=str(section.get("level") or ""),
        include_suggestions=bool(section.get("include_suggestions", False)),
        include_escape_reasons=bool(section.get("include_escape_reasons", False)),
        confidence_threshold=float(section.get("confidence_threshold") or 0.0),
        potential_false_positive_detection=bool(
            section.get("potential_false_positive_detection", False)
        ),
        custom_filters=[
            CustomFilter(
                pattern=str(item.get("pattern") or ""),
                action=str(item.get("action") or ""),
            )
            for item in map(_mapping, raw_filters)
        ],
    )
    if not config.level:
        config.level = "warning"
    if config.confidence_threshold == 0:
        config.confidence_threshold = 0.7
    return config


def _mapping(value: Any) -> dict:
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ValueError("invalid diagnostics configuration: expected a mapping")
    return value


@dataclass
class DiagnosticProcessingResult:
    """The decision taken on one diagnostic."""

    should_report: bool
    filter_reason: str
    modified_message: str
    confidence: float


_LEVELS = {
    "error": DiagnosticLevel.ERROR,
    "warning": DiagnosticLevel.WARNING,
    "info": DiagnosticLevel.INFO,
}


class IntegratedDiagnosticProcessor:
    """Applies confidence, level and false-positive filtering in turn."""

    def __init__(self, config: DiagnosticConfig) -> None:
        self.config = config
        level = _LEVELS.get(config.level.lower(), DiagnosticLevel.WARNING)
        self.filter = DiagnosticFilter(level)
        self.detector = PotentialFalsePositiveDetector()

    def process(self, diagnostic: Diagnostic, confidence: float) -> DiagnosticProcessingResult:
        """Decide whether the diagnostic should be reported."""
        result = DiagnosticProcessingResult(
            should_report=True,
            filter_reason="",
            modified_message=diagnostic.message,
            confidence=confidence,
        )

        if confidence < self.config.confidence_threshold:
            result.should_report = False
            result.filter_reason = "Low confidence below threshold"
        elif not self.filter.should_include(diagnostic):
            result.should_report = False
            result.filter_reason = "Level filtered"
        elif (
            self.config.potential_false_positive_detection
            and self.detector.is_potential_false_positive(diagnostic.message)
        ):
            result.should_report = False
            result.filter_reason = "Potential false positive detected"
        return result
"""
Error taxonomy for gradedrop.

Configuration problems (ConfigError and its subclasses) are fatal and are
raised before any grading happens. A criterion test that blows up is not an
error at this level; the engine records it as a PerCriterionTestFailure and
keeps going.
"""

from __future__ import annotations

from dataclasses import dataclass


class GradedropError(Exception):
    """Base class for every error raised by gradedrop."""


class ConfigError(GradedropError):
    """The rubric configuration is malformed or incomplete."""


class UnknownStub(ConfigError):
    """A test was attached to a stub the rubric does not contain."""

    def __init__(self, stub: str):
        super().__init__(f"No criterion with stub '{stub}' in rubric")
        self.stub = stub


class MissingTest(ConfigError):
    """A criterion reached grading without an attached test."""

    def __init__(self, stub: str):
        super().__init__(f"Criterion '{stub}' has no test attached")
        self.stub = stub


class MalformedSubmission(GradedropError, ValueError):
    """A submission payload could not be deserialized."""


class TransmissionError(GradedropError):
    """Posting a submission to the dropbox failed."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.status_code = status_code


class PersistenceError(GradedropError):
    """The ledger could not record a submission."""


@dataclass(frozen=True)
class PerCriterionTestFailure:
    """A criterion test raised instead of returning a bool."""

    stub: str
    error: BaseException

    def __str__(self) -> str:
        return f"{self.stub}: {type(self.error).__name__}: {self.error}"

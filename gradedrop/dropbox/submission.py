# submission.py

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

import requests

from ..errors import MalformedSubmission, PerCriterionTestFailure, TransmissionError
from .fingerprint import Fingerprint

logger = logging.getLogger(__name__)

USER_AGENT = "gradedrop-submitter"
DEFAULT_TIMEOUT = 10


def local_now() -> datetime:
    return datetime.now().astimezone()


@dataclass
class Submission:
    """One student's graded attempt.

    ``data`` is whatever the instructor's grading program collected. It is
    both the input to the criterion tests and the bulk of the ledger row, so
    it must stay a flat str -> str mapping.
    """

    data: Dict[str, str] = field(default_factory=dict)
    timestamp: datetime = field(default_factory=local_now)
    grade: int = 0
    late: bool = False
    passed: List[str] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)
    fingerprint: Optional[Fingerprint] = None
    # Local only, never serialized
    test_failures: List[PerCriterionTestFailure] = field(default_factory=list, repr=False, compare=False)

    def __post_init__(self):
        _check_flat(self.data)
        if self.timestamp.tzinfo is None:
            self.timestamp = self.timestamp.astimezone()

    def set_fingerprint(self, secret: str) -> Fingerprint:
        self.fingerprint = Fingerprint.generate(secret)
        return self.fingerprint

    def to_dict(self) -> Dict[str, Any]:
        return {
            "time": self.timestamp.isoformat(),
            "grade": self.grade,
            "late": self.late,
            "data": dict(self.data),
            "passed": list(self.passed),
            "failed": list(self.failed),
            "fingerprint": self.fingerprint.to_dict() if self.fingerprint else None,
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict())

    @classmethod
    def from_dict(cls, raw: Any) -> "Submission":
        if not isinstance(raw, dict):
            raise MalformedSubmission("Submission must be a JSON object")

        for key in ("time", "grade", "data", "passed", "failed"):
            if key not in raw:
                raise MalformedSubmission(f"Submission is missing '{key}'")

        time_raw = raw["time"]
        if not isinstance(time_raw, str):
            raise MalformedSubmission("'time' must be an ISO 8601 string")
        try:
            timestamp = datetime.fromisoformat(time_raw)
        except ValueError as e:
            raise MalformedSubmission(f"Bad 'time' value: {time_raw!r}") from e

        grade = raw["grade"]
        if not isinstance(grade, int) or isinstance(grade, bool):
            raise MalformedSubmission("'grade' must be an integer")

        late = raw.get("late", False)
        if not isinstance(late, bool):
            raise MalformedSubmission("'late' must be a boolean")

        passed = _string_list(raw["passed"], "passed")
        failed = _string_list(raw["failed"], "failed")

        fingerprint_raw = raw.get("fingerprint")
        fingerprint = Fingerprint.from_dict(fingerprint_raw) if fingerprint_raw is not None else None

        try:
            return cls(
                data=raw["data"],
                timestamp=timestamp,
                grade=grade,
                late=late,
                passed=passed,
                failed=failed,
                fingerprint=fingerprint,
            )
        except MalformedSubmission:
            raise
        except (ValueError, OverflowError) as e:
            # naive times at the edge of the datetime range can't be localised
            raise MalformedSubmission(f"Bad 'time' value: {time_raw!r}") from e

    @classmethod
    def from_json(cls, body: str | bytes) -> "Submission":
        try:
            raw = json.loads(body)
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise MalformedSubmission(f"Submission is not valid JSON: {e}") from e
        return cls.from_dict(raw)

    def submit(self, url: str, timeout: float = DEFAULT_TIMEOUT) -> requests.Response:
        """POST this submission to a dropbox.

        Blocking, no retries. Raises TransmissionError on connection
        problems or any non-2xx reply.
        """
        try:
            response = requests.post(
                url,
                json=self.to_dict(),
                headers={"User-Agent": USER_AGENT},
                timeout=timeout,
            )
        except requests.RequestException as e:
            raise TransmissionError(f"Could not reach dropbox at {url}: {e}") from e

        if not response.ok:
            raise TransmissionError(
                f"Dropbox at {url} refused submission: {response.status_code} {response.text.strip()}",
                status_code=response.status_code,
            )
        logger.info(f"Submission accepted by {url} ({response.status_code})")
        return response


def _check_flat(data: Any) -> None:
    if not isinstance(data, dict):
        raise MalformedSubmission("'data' must be an object of strings")
    for key, value in data.items():
        if not isinstance(key, str) or not isinstance(value, str):
            raise MalformedSubmission(f"'data' must map strings to strings, bad entry {key!r}: {value!r}")


def _string_list(value: Any, key: str) -> List[str]:
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        raise MalformedSubmission(f"'{key}' must be a list of strings")
    return list(value)

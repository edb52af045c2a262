"""
Append-only CSV ledger of accepted submissions.

The column set is locked by the first submission ever written (or by the
header already on disk when the process starts). If the file is removed or
emptied while running, the next submission locks a fresh header.

Students are expected to share a schema; a later submission with a missing
key gets an empty cell, and keys the header doesn't know about are either
dropped or, with ``extra_keys="overflow"``, packed into a single
``overflow`` column.
"""

from __future__ import annotations

import csv
import logging
import os
import threading
from pathlib import Path
from typing import Dict, List, Optional

from ..errors import PersistenceError
from ..grading.deadline import DISPLAY_FORMAT
from ..logging_utils import log_function
from .submission import Submission

logger = logging.getLogger(__name__)

DEFAULT_LEDGER_PATH = "submissions.csv"

META_COLUMNS = ["time", "late", "grade", "passed", "failed"]
FINGERPRINT_COLUMNS = ["fingerprint", "platform", "verified"]
OVERFLOW_COLUMN = "overflow"

EXTRA_KEY_POLICIES = ("drop", "overflow")


def sanitize(value: str) -> str:
    """Keep a value inside its own cell."""
    return value.replace(",", ";").replace("\r", " ").replace("\n", " ")


class Ledger:
    def __init__(self, path: str | Path = DEFAULT_LEDGER_PATH, *, extra_keys: str = "drop") -> None:
        if extra_keys not in EXTRA_KEY_POLICIES:
            raise ValueError(f"extra_keys must be one of {EXTRA_KEY_POLICIES}, got {extra_keys!r}")
        self.path = Path(path)
        self.extra_keys = extra_keys
        self._header: Optional[List[str]] = None
        self._lock = threading.Lock()

    @property
    def header(self) -> Optional[List[str]]:
        with self._lock:
            if self._header is not None and not self._store_empty():
                return list(self._header)
            return self._read_header()

    @property
    def data_columns(self) -> List[str]:
        header = self.header or []
        fixed = set(META_COLUMNS) | set(FINGERPRINT_COLUMNS) | {OVERFLOW_COLUMN}
        return [column for column in header if column not in fixed]

    def _store_empty(self) -> bool:
        return not self.path.exists() or self.path.stat().st_size == 0

    def _read_header(self) -> Optional[List[str]]:
        if self._store_empty():
            return None
        with open(self.path, newline="", encoding="utf-8") as f:
            return next(csv.reader(f), None)

    def _derive_header(self, submission: Submission) -> List[str]:
        reserved = set(META_COLUMNS) | set(FINGERPRINT_COLUMNS) | {OVERFLOW_COLUMN}
        clashing = [k for k in submission.data if k in reserved]
        if clashing:
            logger.warning(f"Data keys shadowed by ledger columns and not recorded: {clashing}")
        header = META_COLUMNS + [k for k in submission.data if k not in reserved] + FINGERPRINT_COLUMNS
        if self.extra_keys == "overflow":
            header.append(OVERFLOW_COLUMN)
        return header

    def _format_row(self, header: List[str], submission: Submission, verified: Optional[bool]) -> List[str]:
        fingerprint = submission.fingerprint
        values: Dict[str, str] = {
            "time": submission.timestamp.strftime(DISPLAY_FORMAT),
            "late": str(submission.late).lower(),
            "grade": str(submission.grade),
            "passed": ";".join(submission.passed),
            "failed": ";".join(submission.failed),
            "fingerprint": fingerprint.secret_digest if fingerprint else "",
            "platform": fingerprint.platform if fingerprint else "",
            "verified": "" if verified is None else str(verified).lower(),
        }
        known = set(header)
        for key, value in submission.data.items():
            if key in known and key not in values:
                values[key] = value

        if OVERFLOW_COLUMN in known:
            extras = [f"{k}={v}" for k, v in submission.data.items() if k not in known]
            values[OVERFLOW_COLUMN] = ";".join(extras)
        else:
            dropped = [k for k in submission.data if k not in known]
            if dropped:
                logger.warning(f"Dropping data keys not in ledger header: {dropped}")

        return [sanitize(values.get(column, "")) for column in header]

    @log_function(level=logging.DEBUG)
    def append(self, submission: Submission, verified: Optional[bool] = None) -> None:
        """Write one submission as a row, establishing the header if needed.

        The header is derived afresh whenever the file is missing or empty,
        so a ledger rotated away while the service runs starts over with
        this submission's keys. The header check, formatting and write
        happen under one lock so concurrent appends never interleave or
        write the header twice.
        """
        with self._lock:
            try:
                rows = []
                if self._store_empty():
                    if self._header is not None:
                        logger.warning(f"Ledger {self.path} is missing or empty; deriving a new header")
                    header = self._derive_header(submission)
                    rows.append(header)
                else:
                    header = self._header or self._read_header()
                    if not header:
                        raise ValueError("existing ledger file has a blank header row")
                rows.append(self._format_row(header, submission, verified))

                self.path.parent.mkdir(parents=True, exist_ok=True)
                with open(self.path, "a", newline="", encoding="utf-8") as f:
                    writer = csv.writer(f)
                    writer.writerows(rows)
                    f.flush()
                    os.fsync(f.fileno())
            except (OSError, ValueError, csv.Error) as e:
                # ValueError covers UnicodeDecodeError from a corrupt header
                raise PersistenceError(f"Could not write submission to {self.path}: {e}") from e

            if self._header != header:
                logger.info(f"Ledger header locked: {header}")
                self._header = header

    def rows(self) -> List[Dict[str, str]]:
        """Read every recorded row back as a dict keyed by header."""
        with self._lock:
            if not self.path.exists():
                return []
            with open(self.path, newline="", encoding="utf-8") as f:
                return list(csv.DictReader(f))

"""
gradedrop dropbox - submission intake service

Students' grading programs POST their graded Submission here; the dropbox
records it in the ledger. No grading happens on this side.

Routes:
  GET  /        health check, 200 with an empty body
  POST /submit  JSON Submission -> 202 accepted
                                   422 malformed body
                                   403 fingerprint required but not verified
                                   500 the ledger could not record it

Two ways to run it:
  - `gradedrop serve` starts the Flask app from create_app() (threaded)
  - Cloud Functions: deploy the `intake` function from this module
    (gcloud functions deploy intake --trigger-http --entry-point=intake)

Configuration comes from the environment (see the constants below); the
expected fingerprint secret comes from gradedrop.secrets.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from typing import Any, Optional

import functions_framework
from flask import Flask, Request, request

from .dropbox.ledger import DEFAULT_LEDGER_PATH, Ledger
from .dropbox.submission import Submission
from .errors import MalformedSubmission, PersistenceError
from .logging_utils import log_function, setup_logging
from .secrets import get_fingerprint_secret

setup_logging()
logger = logging.getLogger(__name__)

# Constants
LEDGER_PATH_ENV = "GRADEDROP_LEDGER"
EXTRA_KEYS_ENV = "GRADEDROP_EXTRA_KEYS"
REQUIRE_FINGERPRINT_ENV = "GRADEDROP_REQUIRE_FINGERPRINT"

REASON_MALFORMED = "malformed"
REASON_INTERNAL = "internal"
REASON_FINGERPRINT = "fingerprint"

STATUS_FOR_REASON = {
    REASON_MALFORMED: 422,
    REASON_FINGERPRINT: 403,
    REASON_INTERNAL: 500,
}


def _env_flag(name: str) -> bool:
    return os.environ.get(name, "").strip().lower() in {"1", "true", "yes", "on"}


@dataclass(frozen=True)
class Acceptance:
    accepted: bool
    reason: Optional[str] = None

    @classmethod
    def ok(cls) -> "Acceptance":
        return cls(accepted=True)

    @classmethod
    def rejected(cls, reason: str) -> "Acceptance":
        return cls(accepted=False, reason=reason)

    @property
    def status_code(self) -> int:
        if self.accepted:
            return 202
        return STATUS_FOR_REASON.get(self.reason, 500)


class IntakeService:
    """Accepts serialized submissions and records them in a ledger.

    When ``expected_secret`` is set every submission is checked against it
    and the result lands in the ledger's ``verified`` column. With
    ``require_fingerprint`` unverified submissions are refused instead.
    """

    def __init__(
        self,
        ledger: Ledger,
        *,
        expected_secret: str | None = None,
        require_fingerprint: bool = False,
    ) -> None:
        if require_fingerprint and not expected_secret:
            raise ValueError("require_fingerprint needs an expected fingerprint secret")
        self.ledger = ledger
        self.expected_secret = expected_secret
        self.require_fingerprint = require_fingerprint

    def health_check(self) -> str:
        return "OK"

    def verify(self, submission: Submission) -> Optional[bool]:
        if not self.expected_secret:
            return None
        if submission.fingerprint is None:
            return False
        return submission.fingerprint.matches(self.expected_secret)

    @log_function
    def accept(self, body: Any) -> Acceptance:
        try:
            if isinstance(body, (str, bytes, bytearray)):
                submission = Submission.from_json(body)
            else:
                submission = Submission.from_dict(body)
        except MalformedSubmission as e:
            logger.warning(f"Rejecting malformed submission: {e}")
            return Acceptance.rejected(REASON_MALFORMED)

        verified = self.verify(submission)
        if verified is False:
            logger.warning(
                f"Submission from {submission.fingerprint.platform if submission.fingerprint else 'unknown'} "
                f"failed fingerprint verification"
            )
            if self.require_fingerprint:
                return Acceptance.rejected(REASON_FINGERPRINT)

        try:
            self.ledger.append(submission, verified=verified)
        except PersistenceError as e:
            logger.error(f"Could not record submission: {e}\n{submission!r}", exc_info=True)
            return Acceptance.rejected(REASON_INTERNAL)

        logger.info(f"Recorded submission: grade={submission.grade}, late={submission.late}")
        return Acceptance.ok()


# ============================================================================
# Default service, configured from the environment
# ============================================================================

_service: IntakeService | None = None


def build_service_from_env() -> IntakeService:
    ledger = Ledger(
        os.environ.get(LEDGER_PATH_ENV, DEFAULT_LEDGER_PATH),
        extra_keys=os.environ.get(EXTRA_KEYS_ENV, "drop").strip().lower(),
    )
    return IntakeService(
        ledger,
        expected_secret=get_fingerprint_secret(),
        require_fingerprint=_env_flag(REQUIRE_FINGERPRINT_ENV),
    )


def get_intake_service() -> IntakeService:
    """Returns the cached default service (built on first use)."""
    global _service
    if _service is None:
        _service = build_service_from_env()
    return _service


def _reset_service():
    """Reset the cached service (for testing only)."""
    global _service
    _service = None


# ============================================================================
# HTTP handlers shared by the Flask app and the Cloud Function
# ============================================================================

def _health(service: IntakeService):
    service.health_check()
    return ('', 200)


def _submit(service: IntakeService, req: Request):
    result = service.accept(req.get_data())
    if result.accepted:
        return ('', result.status_code)
    return {'error': result.reason}, result.status_code


def create_app(service: IntakeService | None = None) -> Flask:
    """Build the dropbox Flask app around ``service`` (default: from env)."""
    app = Flask(__name__)
    service = service or get_intake_service()
    app.config['INTAKE_SERVICE'] = service

    @app.get('/')
    def health():
        return _health(service)

    @app.post('/submit')
    def submit():
        return _submit(service, request)

    return app


@functions_framework.http
def intake(request: Request):
    """HTTP Cloud Function exposing the same routes as create_app()."""
    service = get_intake_service()
    path = request.path.rstrip('/') or '/'

    if path == '/' and request.method == 'GET':
        return _health(service)
    if path == '/submit':
        if request.method != 'POST':
            return {'error': 'Method not allowed'}, 405
        return _submit(service, request)
    return {'error': 'Not found'}, 404

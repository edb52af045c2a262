"""
Shared test configuration.

Keeps the dropbox's environment-driven configuration out of the tests: every
test starts without GRADEDROP_* or GCP variables, with no cached intake
service and no cached secret, so nothing reaches for Secret Manager or
writes to ./submissions.csv.
"""

from pathlib import Path

import pytest

DATA_DIR = Path(__file__).resolve().parent / "data"

ISOLATED_ENV = (
    "GRADEDROP_LEDGER",
    "GRADEDROP_EXTRA_KEYS",
    "GRADEDROP_REQUIRE_FINGERPRINT",
    "GRADEDROP_SECRET",
    "GRADEDROP_SECRET_ID",
    "GRADEDROP_LOG_LEVEL",
    "K_SERVICE",
    "GCP_PROJECT",
    "GOOGLE_CLOUD_PROJECT",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch):
    from gradedrop.main import _reset_service
    from gradedrop.secrets import _reset_caches

    for name in ISOLATED_ENV:
        monkeypatch.delenv(name, raising=False)
    _reset_caches()
    yield
    _reset_service()
    _reset_caches()


@pytest.fixture
def data_dir() -> Path:
    return DATA_DIR


@pytest.fixture
def ledger_path(tmp_path) -> Path:
    return tmp_path / "submissions.csv"


@pytest.fixture
def two_criteria_rubric():
    """c1 worth 25 and c2 worth 75, no tests attached, no deadline."""
    from gradedrop.grading.criterion import Criterion
    from gradedrop.grading.rubric import Rubric

    rubric = Rubric(name="Lab", declared_total=100)
    rubric.add(Criterion(name="Criterion One", stub="c1", worth=25))
    rubric.add(Criterion(name="Criterion Two", stub="c2", worth=75))
    return rubric

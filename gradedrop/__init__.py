"""gradedrop: rubric grading for assignments and a dropbox to collect the results."""

from .dropbox.fingerprint import Fingerprint
from .dropbox.ledger import Ledger
from .dropbox.submission import Submission
from .errors import (
    ConfigError,
    GradedropError,
    MalformedSubmission,
    MissingTest,
    PersistenceError,
    TransmissionError,
    UnknownStub,
)
from .grading.criterion import Criterion, Evaluator, FunctionEvaluator
from .grading.deadline import DeadlinePolicy, LateStatus
from .grading.engine import GradingEngine, grade
from .grading.rubric import Rubric
from .grading.rubric_loader import load_rubric, rubric_from_yaml

__version__ = "0.4.0"

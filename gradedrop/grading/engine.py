# engine.py

from __future__ import annotations

import logging

from ..dropbox.submission import Submission
from ..errors import MissingTest, PerCriterionTestFailure
from .rubric import Rubric

logger = logging.getLogger(__name__)


class GradingEngine:
    """Grades a submission against a rubric.

    Grading is synchronous and deterministic: the same data and the same
    test outcomes always produce the same grade and pass/fail lists.

    ``clamp_at_zero`` keeps penalties from pushing the grade below 0. It is
    off by default because criteria may be worth negative points on purpose.
    """

    def __init__(self, *, clamp_at_zero: bool = False) -> None:
        self.clamp_at_zero = clamp_at_zero

    def grade(self, rubric: Rubric, submission: Submission) -> Submission:
        # Fail before touching anything so there is never a half-graded state
        missing = rubric.missing_tests()
        if missing:
            raise MissingTest(missing[0])

        rubric.reset()
        submission.grade = 0
        submission.passed = []
        submission.failed = []
        submission.test_failures = []

        status = rubric.deadline_policy.evaluate(submission.timestamp)
        submission.late = status.late

        if status.rejected:
            logger.warning(
                f"Submission for '{rubric.name}' is past the allowed deadline; "
                f"it will be recorded with a grade of 0"
            )
            for criterion in rubric.sorted():
                criterion.status = False
                submission.failed.append(criterion.stub)
            return submission

        for criterion in rubric.sorted():
            try:
                passed = criterion.run(submission.data)
            except Exception as e:
                criterion.status = False
                failure = PerCriterionTestFailure(criterion.stub, e)
                submission.test_failures.append(failure)
                logger.error(f"Test for criterion '{criterion.stub}' raised: {e}", exc_info=True)
                passed = False

            if passed:
                submission.grade += criterion.worth
                submission.passed.append(criterion.stub)
            else:
                submission.failed.append(criterion.stub)

        if status.late:
            logger.info(
                f"Submission is {status.days_late} day(s) late, "
                f"subtracting {status.penalty} point(s)"
            )
            submission.grade -= status.penalty

        if self.clamp_at_zero and submission.grade < 0:
            submission.grade = 0

        return submission


def grade(rubric: Rubric, submission: Submission, *, clamp_at_zero: bool = False) -> Submission:
    return GradingEngine(clamp_at_zero=clamp_at_zero).grade(rubric, submission)

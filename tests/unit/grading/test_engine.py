"""
Unit tests for gradedrop/grading/engine.py.

End-to-end grading of in-memory rubrics: ordering, fault isolation,
up-front missing-test checks and deadline handling.
"""

from datetime import datetime, timedelta, timezone

import pytest

from gradedrop.dropbox.submission import Submission
from gradedrop.errors import MissingTest
from gradedrop.grading.criterion import Criterion
from gradedrop.grading.deadline import DeadlinePolicy
from gradedrop.grading.engine import GradingEngine, grade
from gradedrop.grading.rubric import Rubric

TZ = timezone(timedelta(hours=2))
DEADLINE = datetime(2021, 3, 1, 17, 0, 0, tzinfo=TZ)


def _passes(data):
    return True


def _fails(data):
    return False


def _raises(data):
    raise KeyError("missing_field")


class TestGrade:
    def test_all_pass(self, two_criteria_rubric):
        two_criteria_rubric.attach("c1", _passes)
        two_criteria_rubric.attach("c2", _passes)
        sub = GradingEngine().grade(two_criteria_rubric, Submission())
        assert sub.grade == 100
        assert sub.passed == ["c1", "c2"]
        assert sub.failed == []
        assert two_criteria_rubric.earned_points() == 100

    def test_faulting_test_counts_as_failure(self, two_criteria_rubric):
        two_criteria_rubric.attach("c1", _raises)
        two_criteria_rubric.attach("c2", _passes)
        sub = GradingEngine().grade(two_criteria_rubric, Submission())
        assert sub.grade == 75
        assert sub.passed == ["c2"]
        assert sub.failed == ["c1"]
        assert len(sub.test_failures) == 1
        assert sub.test_failures[0].stub == "c1"
        assert isinstance(sub.test_failures[0].error, KeyError)
        assert two_criteria_rubric.get("c1").status is False

    def test_fault_is_logged_with_stub(self, two_criteria_rubric, caplog):
        two_criteria_rubric.attach("c1", _raises)
        two_criteria_rubric.attach("c2", _passes)
        with caplog.at_level("ERROR", logger="gradedrop.grading.engine"):
            GradingEngine().grade(two_criteria_rubric, Submission())
        assert any("c1" in r.getMessage() for r in caplog.records)

    def test_tests_see_submission_data(self, two_criteria_rubric):
        two_criteria_rubric.attach("c1", lambda d: d.get("git") == "installed")
        two_criteria_rubric.attach("c2", lambda d: d.get("repo") == "cloned")
        sub = grade(two_criteria_rubric, Submission(data={"git": "installed", "repo": "missing"}))
        assert sub.grade == 25
        assert sub.failed == ["c2"]

    def test_order_follows_index(self):
        rubric = Rubric(name="Ordered")
        rubric.add(Criterion(name="late one", stub="b", worth=1))
        rubric.add(Criterion(name="first", stub="a", worth=1, index=0))
        rubric.attach("a", _passes)
        rubric.attach("b", _passes)
        sub = grade(rubric, Submission())
        assert sub.passed == ["a", "b"]

    def test_negative_worth_subtracts_on_pass(self):
        rubric = Rubric(name="Neg")
        rubric.add(Criterion(name="good", worth=10))
        rubric.add(Criterion(name="forbidden file present", worth=-4))
        rubric.attach("good", _passes)
        rubric.attach("forbidden-file-present", _passes)
        assert grade(rubric, Submission()).grade == 6

    def test_deterministic_across_runs(self, two_criteria_rubric):
        two_criteria_rubric.attach("c1", _fails)
        two_criteria_rubric.attach("c2", _passes)
        sub = Submission(data={"k": "v"})
        engine = GradingEngine()
        first = engine.grade(two_criteria_rubric, sub)
        first_state = (first.grade, list(first.passed), list(first.failed))
        second = engine.grade(two_criteria_rubric, sub)
        assert (second.grade, second.passed, second.failed) == first_state


class TestMissingTest:
    def test_raises_before_scoring(self, two_criteria_rubric):
        calls = []
        two_criteria_rubric.attach("c1", lambda d: calls.append("c1") or True)
        sub = Submission()
        with pytest.raises(MissingTest) as exc:
            GradingEngine().grade(two_criteria_rubric, sub)
        assert exc.value.stub == "c2"
        assert calls == []
        assert sub.grade == 0
        assert sub.passed == [] and sub.failed == []


class TestDeadlines:
    def _rubric(self, **policy):
        rubric = Rubric(name="Timed", deadline_policy=DeadlinePolicy(deadline=DEADLINE, **policy))
        rubric.add(Criterion(name="c1", worth=25))
        rubric.add(Criterion(name="c2", worth=75))
        rubric.attach("c1", _passes)
        rubric.attach("c2", _passes)
        return rubric

    def test_on_time_no_penalty(self):
        sub = grade(self._rubric(late_penalty_flat=10), Submission(timestamp=DEADLINE))
        assert sub.grade == 100
        assert sub.late is False

    def test_late_penalties_subtracted(self):
        sub = Submission(timestamp=DEADLINE + timedelta(days=1, seconds=1))
        sub = grade(self._rubric(late_penalty_flat=10, late_penalty_per_day=5), sub)
        assert sub.late is True
        assert sub.grade == 100 - 10 - 2 * 5

    def test_penalty_may_go_negative(self):
        rubric = self._rubric(late_penalty_flat=500)
        sub = grade(rubric, Submission(timestamp=DEADLINE + timedelta(hours=1)))
        assert sub.grade == -400

    def test_clamp_at_zero_knob(self):
        rubric = self._rubric(late_penalty_flat=500)
        sub = GradingEngine(clamp_at_zero=True).grade(rubric, Submission(timestamp=DEADLINE + timedelta(hours=1)))
        assert sub.grade == 0

    def test_disallowed_late_zero_graded(self):
        calls = []
        rubric = self._rubric(allow_late=False)
        rubric.attach("c1", lambda d: calls.append("c1") or True)
        sub = grade(rubric, Submission(timestamp=DEADLINE + timedelta(seconds=1)))
        assert sub.grade == 0
        assert sub.passed == []
        assert sub.failed == ["c1", "c2"]
        assert calls == []

    def test_past_final_deadline_zero_even_if_late_allowed(self):
        rubric = Rubric(
            name="Hard cutoff",
            deadline_policy=DeadlinePolicy(
                deadline=DEADLINE,
                final_deadline=DEADLINE + timedelta(days=2),
                allow_late=True,
            ),
        )
        rubric.add(Criterion(name="only", worth=10))
        rubric.attach("only", _passes)
        sub = grade(rubric, Submission(timestamp=DEADLINE + timedelta(days=3)))
        assert sub.grade == 0
        assert sub.failed == ["only"]
        assert rubric.get("only").status is False
        assert rubric.earned_points() == 0


def test_grading_with_naive_deadline(two_criteria_rubric):
    two_criteria_rubric.deadline_policy = DeadlinePolicy(
        deadline=datetime.now() - timedelta(days=1), late_penalty_flat=10
    )
    two_criteria_rubric.attach("c1", lambda d: True)
    two_criteria_rubric.attach("c2", lambda d: True)
    sub = GradingEngine().grade(two_criteria_rubric, Submission())
    assert sub.late is True
    assert sub.grade == 90

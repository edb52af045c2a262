# grader.py

from __future__ import annotations

from typing import Callable, Mapping, Optional, Union

from .dropbox.submission import Submission
from .grading.criterion import Evaluator
from .grading.engine import GradingEngine
from .grading.report import render_report
from .grading.rubric import Rubric

Test = Union[Evaluator, Callable[[Mapping[str, str]], bool]]


def grade_and_submit(
    rubric: Rubric,
    data: Mapping[str, str],
    tests: Optional[Mapping[str, Test]] = None,
    *,
    url: Optional[str] = None,
    secret: Optional[str] = None,
    clamp_at_zero: bool = False,
    show_report: bool = True,
) -> Submission:
    """What a typical grading program does, in order.

    Attaches ``tests`` by stub, grades ``data``, prints the report, then
    fingerprints and posts the submission when ``url`` is given.
    ConfigError/MissingTest and TransmissionError are left to the caller.
    """
    for stub, test in (tests or {}).items():
        rubric.attach(stub, test)

    submission = Submission(data=dict(data))
    GradingEngine(clamp_at_zero=clamp_at_zero).grade(rubric, submission)

    if show_report:
        print(render_report(rubric, submission))

    if secret:
        submission.set_fingerprint(secret)
    if url:
        submission.submit(url)
    return submission

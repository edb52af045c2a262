# report.py

from __future__ import annotations

from typing import List, Optional

from ..dropbox.submission import Submission
from .rubric import Rubric

PASS_MARK = "✔"
FAIL_MARK = "✖"
UNTESTED_MARK = "•"


def render_report(rubric: Rubric, submission: Optional[Submission] = None) -> str:
    """Short text report of a rubric and, once graded, the submission.

    Hidden criteria are counted but not listed. Without a submission the
    criteria are listed as not tested, which is what `gradedrop check`
    prints.
    """
    lines: List[str] = [rubric.name]
    if rubric.description:
        lines.append(rubric.description)
    lines.append(rubric.deadline_policy.describe())
    lines.append("")

    for criterion in rubric.sorted():
        if criterion.hidden:
            continue
        if criterion.status is None:
            lines.append(f"{UNTESTED_MARK} {criterion.name}\tNot Tested ({criterion.worth})")
        elif criterion.status:
            lines.append(f"{PASS_MARK} {criterion.name}\t{criterion.status_message()}")
        else:
            lines.append(f"{FAIL_MARK} {criterion.name}\t{criterion.status_message()}")
    lines.append("")

    hidden = rubric.hidden_count()
    if hidden:
        lines.append(f"{hidden} criteria hidden")

    if submission is not None:
        for failure in submission.test_failures:
            lines.append(f"Test error in {failure}")
        if submission.late:
            lines.append("Submitted late")
        lines.append(f"Grade: {submission.grade}/{rubric.total_points()}")
    else:
        lines.append(f"Total: {rubric.total_points()}")

    return "\n".join(lines)

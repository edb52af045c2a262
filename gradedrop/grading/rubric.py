# rubric.py

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Dict, Iterator, List, Mapping, Optional

from ..errors import ConfigError, UnknownStub
from .criterion import Criterion, Evaluator
from .deadline import DeadlinePolicy


@dataclass
class Rubric:
    """An ordered collection of criteria, keyed by stub.

    Build one with ``load_rubric`` rather than by hand; the loader
    validates the config and warns about inconsistent totals.
    """

    name: str
    description: Optional[str] = None
    declared_total: Optional[int] = None
    deadline_policy: DeadlinePolicy = field(default_factory=DeadlinePolicy)
    criteria: Dict[str, Criterion] = field(default_factory=dict)

    def add(self, criterion: Criterion) -> None:
        if criterion.stub in self.criteria:
            raise ConfigError(f"Duplicate criterion stub '{criterion.stub}'")
        self.criteria[criterion.stub] = criterion

    def get(self, stub: str) -> Optional[Criterion]:
        return self.criteria.get(stub)

    def attach(self, stub: str, test: Evaluator | Callable[[Mapping[str, str]], bool]) -> None:
        criterion = self.get(stub)
        if criterion is None:
            raise UnknownStub(stub)
        criterion.attach(test)

    def sorted(self) -> List[Criterion]:
        """Criteria in grading/display order.

        Indexed criteria come first, ascending by index; the rest follow
        in declaration order. Ties keep declaration order.
        """
        ordered = list(enumerate(self.criteria.values()))
        ordered.sort(key=lambda pair: (
            0 if pair[1].index is not None else 1,
            pair[1].index if pair[1].index is not None else 0,
            pair[0],
        ))
        return [criterion for _, criterion in ordered]

    def total_points(self) -> int:
        return sum(c.worth for c in self.criteria.values())

    def earned_points(self) -> int:
        """Worth of every criterion that passed. 0 before grading."""
        return sum(c.worth for c in self.criteria.values() if c.status is True)

    def missing_tests(self) -> List[str]:
        return [c.stub for c in self.sorted() if c.test is None]

    def hidden_count(self) -> int:
        return sum(1 for c in self.criteria.values() if c.hidden)

    def reset(self) -> None:
        for criterion in self.criteria.values():
            criterion.status = None

    def __len__(self) -> int:
        return len(self.criteria)

    def __iter__(self) -> Iterator[Criterion]:
        return iter(self.criteria.values())

    def __contains__(self, stub: object) -> bool:
        return stub in self.criteria

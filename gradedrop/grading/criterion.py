# criterion.py

from __future__ import annotations

import re
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Callable, Mapping, Optional, Protocol, Tuple, runtime_checkable

DEFAULT_MESSAGES: Tuple[str, str] = ("passed", "failed")

_WHITESPACE = re.compile(r"\s+")


@runtime_checkable
class Evaluator(Protocol):
    """Anything that can decide whether a criterion passes."""

    def evaluate(self, data: Mapping[str, str]) -> bool:
        ...


@dataclass(frozen=True)
class FunctionEvaluator:
    """Adapts a plain ``func(data) -> bool`` to the Evaluator protocol."""

    func: Callable[[Mapping[str, str]], bool]

    def evaluate(self, data: Mapping[str, str]) -> bool:
        return self.func(data)


def as_evaluator(test: Evaluator | Callable[[Mapping[str, str]], bool]) -> Evaluator:
    if isinstance(test, Evaluator):
        return test
    if callable(test):
        return FunctionEvaluator(test)
    raise TypeError(f"Expected an Evaluator or a callable, got {type(test).__name__}")


def derive_stub(name: str) -> str:
    """'First Criterion' -> 'first-criterion'

    Each run of whitespace becomes a single dash, so 'Repo  Cloned' and
    'Repo Cloned' share a stub.
    """
    return _WHITESPACE.sub("-", name.strip().lower())


@dataclass
class Criterion:
    """One weighted pass/fail check.

    ``worth`` is added to the submission grade when the test passes; it may
    be negative to take points away for something the student should not
    have done.
    """

    name: str
    worth: int
    stub: str = ""
    index: Optional[int] = None
    messages: Tuple[str, str] = DEFAULT_MESSAGES
    description: Optional[str] = None
    hidden: bool = False
    test: Optional[Evaluator] = field(default=None, repr=False, compare=False)
    status: Optional[bool] = None

    def __post_init__(self):
        if not self.stub:
            self.stub = derive_stub(self.name)
        self.messages = tuple(self.messages)

    @property
    def success_message(self) -> str:
        return self.messages[0]

    @property
    def failure_message(self) -> str:
        return self.messages[1]

    def attach(self, test: Evaluator | Callable[[Mapping[str, str]], bool]) -> None:
        self.test = as_evaluator(test)

    def run(self, data: Mapping[str, str]) -> bool:
        """Run the attached test and record the result in ``status``.

        Exceptions raised by the test propagate to the caller and leave
        ``status`` untouched.
        """
        view = MappingProxyType(dict(data))
        self.status = bool(self.test.evaluate(view))
        return self.status

    def status_message(self) -> str:
        if self.status is True:
            return self.success_message
        return self.failure_message

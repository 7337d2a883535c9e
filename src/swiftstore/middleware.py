"""Middleware interception pipeline.

A middleware is called as ``middleware(candidate, proceed)``. Calling
``proceed(value)`` hands *value* to the next middleware (or to the commit
step after the last one). Not calling it vetoes the update silently.

Steps are the result-typed alternative: ``step(candidate)`` returns either
``Proceed(value)`` or ``HALT`` and is adapted into an ordinary middleware.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Final, Generic, TypeAlias, TypeVar

S = TypeVar("S")

_logger = logging.getLogger(__name__)

ProceedFn: TypeAlias = Callable[[Any], None]
Middleware: TypeAlias = Callable[[Any, ProceedFn], None]


@dataclass(frozen=True, slots=True)
class Proceed:
    """Continue the chain with ``value``."""

    value: Any


class _Halt:
    __slots__ = ()

    def __repr__(self) -> str:
        return "HALT"


HALT: Final = _Halt()

StepResult: TypeAlias = Proceed | _Halt
Step: TypeAlias = Callable[[Any], StepResult]


def step_middleware(step: Step) -> Middleware:
    """Adapt a result-typed step into a continuation-passing middleware."""

    def _middleware(candidate: Any, proceed: ProceedFn) -> None:
        result = step(candidate)
        if isinstance(result, Proceed):
            proceed(result.value)
        elif result is not HALT:
            raise TypeError(f"step {step!r} must return Proceed(...) or HALT, got {result!r}")

    _middleware.__name__ = getattr(step, "__name__", "step")
    _middleware.__qualname__ = getattr(step, "__qualname__", _middleware.__name__)
    return _middleware


class _Continuation:
    """Single-use ``proceed`` handed to one middleware invocation."""

    __slots__ = ("_advance", "_position", "_label", "_used")

    def __init__(self, advance: Callable[[int, Any], None], position: int, label: str) -> None:
        self._advance = advance
        self._position = position
        self._label = label
        self._used = False

    def __call__(self, value: Any) -> None:
        if self._used:
            _logger.warning(
                "[%s] proceed() called more than once by middleware #%d; ignoring",
                self._label,
                self._position - 1,
            )
            return
        self._used = True
        self._advance(self._position, value)


class MiddlewarePipeline(Generic[S]):
    """Ordered, append-only chain of middleware.

    Each run works on the chain as it was when the run started; middleware
    registered while a run is in flight only applies to later runs.
    """

    def __init__(self, *, label: str = "store") -> None:
        self._label = label
        self._chain: list[Middleware] = []

    def __len__(self) -> int:
        return len(self._chain)

    def append(self, middleware: Middleware) -> None:
        if not callable(middleware):
            raise TypeError(f"middleware must be callable, got {type(middleware).__name__}")
        self._chain.append(middleware)

    def run(self, candidate: S, commit: Callable[[S], None]) -> bool:
        """Pass *candidate* through the chain and finally into *commit*.

        Returns True when *commit* was reached before ``run`` returned; False
        means the update was vetoed or is being held by a middleware that
        will call ``proceed`` later.
        """
        chain = tuple(self._chain)
        reached = False

        def advance(position: int, value: Any) -> None:
            nonlocal reached
            if position == len(chain):
                reached = True
                commit(value)
                return
            chain[position](value, _Continuation(advance, position + 1, self._label))

        advance(0, candidate)
        return reached

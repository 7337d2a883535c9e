"""Subscription registry and change notification.

Full-state listeners and selector listeners live in one ordered set. A
notification pass iterates a copy of that set taken when the pass starts:

- listeners added during a pass are first visited by the next pass;
- listeners removed during a pass are skipped if not yet visited.

Listener exceptions are not caught; they end the pass and propagate to
whoever committed the update.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any, Generic, TypeAlias, TypeVar

S = TypeVar("S")
D = TypeVar("D")

_logger = logging.getLogger(__name__)

Listener: TypeAlias = Callable[[Any], None]
Selector: TypeAlias = Callable[[Any], Any]
Equality: TypeAlias = Callable[[Any, Any], bool]

# Compared by value; everything else is compared by identity.
_VALUE_TYPES: tuple[type, ...] = (type(None), bool, int, float, complex, str, bytes)


def strictly_equal(old: Any, new: Any) -> bool:
    """Value equality for primitives, identity for everything else.

    ``True`` and ``1`` are different; ``nan`` never equals itself.
    """
    if isinstance(old, _VALUE_TYPES) and isinstance(new, _VALUE_TYPES):
        if isinstance(old, bool) is not isinstance(new, bool):
            return False
        return bool(old == new)
    return old is new


class SelectorListener(Generic[D]):
    """Wraps a listener so it only fires when the selected value changes.

    ``previous`` holds the last value delivered (or the seed value) and is
    only replaced when the wrapped listener is invoked.
    """

    __slots__ = ("selector", "listener", "previous", "_equals")

    def __init__(
        self,
        selector: Selector,
        listener: Callable[[D], None],
        previous: D,
        *,
        equals: Equality | None = None,
    ) -> None:
        self.selector = selector
        self.listener = listener
        self.previous = previous
        self._equals = equals or strictly_equal

    def __call__(self, snapshot: Any) -> None:
        value = self.selector(snapshot)
        if self._equals(self.previous, value):
            return
        self.previous = value
        self.listener(value)

    def __repr__(self) -> str:
        return f"SelectorListener({self.selector!r} -> {self.listener!r})"


class Unsubscribe:
    """Zero-argument callable removing exactly one registration.

    Calling it again is a no-op.
    """

    __slots__ = ("_registry", "_listener")

    def __init__(self, registry: SubscriptionRegistry[Any], listener: Listener) -> None:
        self._registry: SubscriptionRegistry[Any] | None = registry
        self._listener = listener

    @property
    def active(self) -> bool:
        return self._registry is not None and self._listener in self._registry

    def __call__(self) -> None:
        registry = self._registry
        if registry is None:
            return
        self._registry = None
        registry.remove(self._listener)


class SubscriptionRegistry(Generic[S]):
    """Insertion-ordered identity set shared by full and selector listeners."""

    def __init__(self, *, label: str = "store") -> None:
        self._label = label
        # Keyed by id() so membership is by identity and unhashable callables work.
        self._listeners: dict[int, Listener] = {}

    def __len__(self) -> int:
        return len(self._listeners)

    def __contains__(self, listener: object) -> bool:
        return self._listeners.get(id(listener)) is listener

    def add(self, listener: Listener) -> Unsubscribe:
        if not callable(listener):
            raise TypeError(f"listener must be callable, got {type(listener).__name__}")
        self._listeners.setdefault(id(listener), listener)
        _logger.debug("[%s] subscribed %r (%d listeners)", self._label, listener, len(self._listeners))
        return Unsubscribe(self, listener)

    def add_selector(
        self,
        selector: Callable[[S], D],
        listener: Callable[[D], None],
        snapshot: S,
        *,
        equals: Equality | None = None,
    ) -> Unsubscribe:
        if not callable(selector):
            raise TypeError(f"selector must be callable, got {type(selector).__name__}")
        if not callable(listener):
            raise TypeError(f"listener must be callable, got {type(listener).__name__}")
        wrapper: SelectorListener[D] = SelectorListener(selector, listener, selector(snapshot), equals=equals)
        return self.add(wrapper)

    def remove(self, listener: Listener) -> bool:
        if self._listeners.get(id(listener)) is not listener:
            return False
        del self._listeners[id(listener)]
        _logger.debug("[%s] unsubscribed %r (%d listeners)", self._label, listener, len(self._listeners))
        return True

    def notify(self, current: Callable[[], S]) -> None:
        """Run one notification pass.

        *current* is read for each listener so that a nested commit made by
        an earlier listener is what later listeners receive.
        """
        for key, listener in tuple(self._listeners.items()):
            if self._listeners.get(key) is not listener:
                continue
            listener(current())

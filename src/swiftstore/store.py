"""In-memory reactive state store.

The store owns exactly one current snapshot. Updates are merged onto it,
pass through the middleware pipeline and, once committed, replace the
snapshot wholesale before listeners are notified. Snapshots are never
mutated in place, so ``get_state`` hands out the current object directly.
"""

from __future__ import annotations

import inspect
import logging
from collections.abc import Callable, Mapping
from typing import Any, Generic, TypeVar

from pydantic import BaseModel

from swiftstore._redact import redact_for_log
from swiftstore.config import CommitMode, StoreConfig
from swiftstore.exceptions import CommitConflictError
from swiftstore.merge import merge
from swiftstore.middleware import Middleware, MiddlewarePipeline, Step, step_middleware
from swiftstore.subscriptions import Equality, SubscriptionRegistry, Unsubscribe

S = TypeVar("S")
D = TypeVar("D")

_logger = logging.getLogger(__name__)


def _is_updater(update: Any) -> bool:
    """True for ``snapshot -> partial`` callables, False for literal partials."""
    if isinstance(update, (Mapping, BaseModel)):
        return False
    return callable(update) and not isinstance(update, type)


class Store(Generic[S]):
    """Reactive container for a single snapshot.

    Parameters
    ----------
    initial : S
        The first snapshot: a mapping, a pydantic model or a dataclass
        instance.
    config : StoreConfig or None
        Store configuration. Defaults to ``StoreConfig()``.
    """

    def __init__(self, initial: S, *, config: StoreConfig | None = None) -> None:
        self._config = config or StoreConfig()
        self._state: S = initial
        self._listeners: SubscriptionRegistry[S] = SubscriptionRegistry(label=self._config.name)
        self._pipeline: MiddlewarePipeline[S] = MiddlewarePipeline(label=self._config.name)

    def __repr__(self) -> str:
        return (
            f"<Store {self._config.name!r} listeners={len(self._listeners)} "
            f"middleware={len(self._pipeline)} mode={self._config.commit_mode.value}>"
        )

    @property
    def config(self) -> StoreConfig:
        return self._config

    @property
    def listener_count(self) -> int:
        return len(self._listeners)

    @property
    def middleware_count(self) -> int:
        return len(self._pipeline)

    # ------------------------------------------------------------------
    # Snapshot access and updates
    # ------------------------------------------------------------------

    def get_state(self) -> S:
        """Return the current snapshot. Callers must not mutate it."""
        return self._state

    def set_state(self, update: Any) -> None:
        """Request an update.

        *update* is a literal partial or a callable mapping the current
        snapshot to one. With no middleware registered the commit happens
        before this method returns. A middleware may veto the update (no
        commit, no notification) or defer it by calling ``proceed`` later.
        """
        self._submit(update, literal=not _is_updater(update), attempt=0)

    async def set_state_async(self, update: Any) -> None:
        """Resolve an asynchronous update and hand it to ``set_state``.

        *update* may be a callable returning an awaitable partial, an
        awaitable, or a literal partial. The resolved partial is treated
        as a literal. Failures and cancellation of the awaited value
        propagate unchanged and leave the store untouched.
        """
        result = update(self._state) if _is_updater(update) else update
        partial = await result if inspect.isawaitable(result) else result
        self._submit(partial, literal=True, attempt=0)

    def reset(self, snapshot: S) -> None:
        """Replace the snapshot wholesale, bypassing merge and middleware."""
        self._state = snapshot
        if _logger.isEnabledFor(logging.DEBUG):
            _logger.debug("[%s] reset to %s", self._config.name, self._for_log(snapshot))
        self._listeners.notify(self.get_state)

    def _submit(self, update: Any, *, literal: bool, attempt: int) -> None:
        base = self._state
        partial = update if literal else update(base)
        if inspect.isawaitable(partial):
            if inspect.iscoroutine(partial):
                partial.close()
            raise TypeError("set_state() got an awaitable update; use 'await set_state_async(...)' instead")
        candidate = merge(base, partial)

        def commit(value: S) -> None:
            self._commit(value, base=base, update=update, literal=literal, attempt=attempt)

        if not self._pipeline.run(candidate, commit):
            _logger.debug("[%s] update held or vetoed by middleware", self._config.name)

    def _commit(self, value: S, *, base: S, update: Any, literal: bool, attempt: int) -> None:
        current = self._state
        if current is not base and self._config.commit_mode is CommitMode.COMPARE_AND_SWAP:
            if attempt >= self._config.max_commit_retries:
                raise CommitConflictError(
                    f"[{self._config.name}] snapshot changed during every one of {attempt + 1} attempts",
                    attempts=attempt + 1,
                )
            _logger.debug("[%s] snapshot changed under update, re-running (attempt %d)", self._config.name, attempt + 2)
            self._submit(update, literal=literal, attempt=attempt + 1)
            return

        # Merge base is whatever is current now, not the candidate's base.
        self._state = merge(current, value, exclude_unset=False)
        if _logger.isEnabledFor(logging.DEBUG):
            _logger.debug("[%s] committed %s", self._config.name, self._for_log(self._state))
        self._listeners.notify(self.get_state)

    # ------------------------------------------------------------------
    # Subscriptions and middleware
    # ------------------------------------------------------------------

    def subscribe(self, listener: Callable[[S], None]) -> Unsubscribe:
        """Call *listener* with the snapshot after every commit."""
        return self._listeners.add(listener)

    def subscribe_selector(
        self,
        selector: Callable[[S], D],
        listener: Callable[[D], None],
        *,
        equals: Equality | None = None,
    ) -> Unsubscribe:
        """Call *listener* with ``selector(snapshot)`` whenever it changes.

        Change is judged against the last delivered value: by value for
        primitives (str, numbers, None) and by identity for anything else,
        unless *equals* is given. Selectors that build a fresh container on
        every call therefore fire on every commit.
        """
        return self._listeners.add_selector(selector, listener, self._state, equals=equals)

    def use_middleware(self, middleware: Middleware) -> None:
        """Append ``middleware(candidate, proceed)`` to the pipeline.

        Middleware cannot be removed and runs in registration order.
        """
        self._pipeline.append(middleware)
        _logger.debug("[%s] registered middleware %r (%d total)", self._config.name, middleware, len(self._pipeline))

    def use_step(self, step: Step) -> None:
        """Append a result-typed step returning ``Proceed(value)`` or ``HALT``."""
        self.use_middleware(step_middleware(step))

    def _for_log(self, snapshot: Any) -> Any:
        return redact_for_log(
            snapshot,
            sensitive_keys=self._config.redact_keys,
            max_string=self._config.log_max_string,
        )


def create_store(initial: S, *, config: StoreConfig | None = None) -> Store[S]:
    """Create a new store seeded with *initial*."""
    return Store(initial, config=config)


"""swiftstore - in-memory reactive state container with middleware and selectors."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("swiftstore")
except PackageNotFoundError:
    __version__ = "0+local"
from swiftstore.config import CommitMode, StoreConfig
from swiftstore.exceptions import (
    CommitConflictError,
    MergeError,
    StoreConfigError,
    SwiftStoreError,
)
from swiftstore.merge import merge
from swiftstore.middleware import HALT, Middleware, Proceed, Step, StepResult, step_middleware
from swiftstore.store import Store, create_store
from swiftstore.subscriptions import SelectorListener, Unsubscribe, strictly_equal

__all__ = [
    "__version__",
    "CommitConflictError",
    "CommitMode",
    "HALT",
    "MergeError",
    "Middleware",
    "Proceed",
    "SelectorListener",
    "Step",
    "StepResult",
    "Store",
    "StoreConfig",
    "StoreConfigError",
    "SwiftStoreError",
    "Unsubscribe",
    "create_store",
    "merge",
    "step_middleware",
    "strictly_equal",
]

"""Store configuration for swiftstore."""

from __future__ import annotations

import dataclasses
import os
from enum import StrEnum
from typing import Any

from swiftstore.exceptions import StoreConfigError

_DEFAULT_REDACT_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "secret",
        "token",
        "access_token",
        "refresh_token",
        "api_key",
        "authorization",
        "cookie",
    }
)


class CommitMode(StrEnum):
    """How the commit step picks the base it merges onto."""

    REBASE = "rebase"
    COMPARE_AND_SWAP = "compare_and_swap"


def _env_int(env_key: str, value: str) -> int:
    try:
        return int(value.strip())
    except ValueError as exc:
        raise StoreConfigError(f"{env_key} must be an integer, got {value!r}") from exc


def _env_keys(value: str) -> frozenset[str]:
    return frozenset(part.strip().lower() for part in value.split(",") if part.strip())


@dataclasses.dataclass(frozen=True)
class StoreConfig:
    """Store configuration.

    Parameters
    ----------
    name : str
        Label attached to the store's log records.
    commit_mode : CommitMode
        ``REBASE`` merges the pipeline output onto whatever snapshot is
        current at commit time. ``COMPARE_AND_SWAP`` re-runs the update
        when the snapshot changed while the update was in the pipeline.
    max_commit_retries : int
        Re-runs allowed in ``COMPARE_AND_SWAP`` mode before
        ``CommitConflictError`` is raised.
    redact_keys : frozenset[str]
        Lower-case field names masked when snapshots are written to DEBUG
        logs.
    log_max_string : int
        Strings longer than this are truncated in DEBUG logs.
    """

    name: str = "store"
    commit_mode: CommitMode = CommitMode.REBASE
    max_commit_retries: int = 3
    redact_keys: frozenset[str] = _DEFAULT_REDACT_KEYS
    log_max_string: int = 200

    def __post_init__(self) -> None:
        try:
            mode = CommitMode(self.commit_mode)
        except ValueError as exc:
            raise StoreConfigError(f"Unknown commit mode: {self.commit_mode!r}") from exc
        # Frozen: normalise through object.__setattr__.
        object.__setattr__(self, "commit_mode", mode)
        object.__setattr__(self, "redact_keys", frozenset(k.lower() for k in self.redact_keys))
        if self.max_commit_retries < 0:
            raise StoreConfigError("max_commit_retries must be >= 0")
        if self.log_max_string <= 0:
            raise StoreConfigError("log_max_string must be positive")

    @classmethod
    def from_env(cls, **overrides: Any) -> StoreConfig:
        """Create configuration from environment variables.

        Reads ``SWIFTSTORE_NAME``, ``SWIFTSTORE_COMMIT_MODE``,
        ``SWIFTSTORE_MAX_COMMIT_RETRIES``, ``SWIFTSTORE_REDACT_KEYS``
        (comma separated) and ``SWIFTSTORE_LOG_MAX_STRING``. Explicit
        keyword arguments override environment values.
        """
        env = os.environ
        config_kwargs: dict[str, Any] = {}

        name = env.get("SWIFTSTORE_NAME")
        if name is not None:
            config_kwargs["name"] = name

        mode = env.get("SWIFTSTORE_COMMIT_MODE")
        if mode is not None:
            config_kwargs["commit_mode"] = mode.strip().lower()

        retries = env.get("SWIFTSTORE_MAX_COMMIT_RETRIES")
        if retries is not None and "max_commit_retries" not in overrides:
            config_kwargs["max_commit_retries"] = _env_int("SWIFTSTORE_MAX_COMMIT_RETRIES", retries)

        keys = env.get("SWIFTSTORE_REDACT_KEYS")
        if keys is not None:
            config_kwargs["redact_keys"] = _env_keys(keys)

        max_string = env.get("SWIFTSTORE_LOG_MAX_STRING")
        if max_string is not None and "log_max_string" not in overrides:
            config_kwargs["log_max_string"] = _env_int("SWIFTSTORE_LOG_MAX_STRING", max_string)

        config_kwargs.update(overrides)

        return cls(**config_kwargs)

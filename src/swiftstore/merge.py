"""Shallow snapshot merge.

Merge semantics are deliberately simple: every field present in the partial
overwrites the field of the same name, every other field is carried over by
reference, and nothing is merged recursively.

Snapshots may be plain mappings, pydantic models or dataclass instances.
Record-typed snapshots are rebuilt by field-wise copy construction
(``model_copy`` / ``dataclasses.replace``) so their type is preserved.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from typing import Any, TypeVar

from pydantic import BaseModel

from swiftstore.exceptions import MergeError

S = TypeVar("S")


def _is_dataclass_instance(value: Any) -> bool:
    return dataclasses.is_dataclass(value) and not isinstance(value, type)


def as_patch(partial: Any, *, exclude_unset: bool = True) -> dict[str, Any]:
    """Normalise a partial update into a ``{field: value}`` dict.

    For pydantic models only the explicitly set fields form the patch unless
    ``exclude_unset`` is false. Values are never copied.
    """
    if partial is None:
        return {}
    if isinstance(partial, Mapping):
        return dict(partial)
    if isinstance(partial, BaseModel):
        names = partial.model_fields_set if exclude_unset else type(partial).model_fields.keys()
        patch = {name: getattr(partial, name) for name in names}
        if partial.model_extra:
            patch.update(partial.model_extra)
        return patch
    if _is_dataclass_instance(partial):
        # init=False fields are derived state and cannot be passed to replace().
        return {f.name: getattr(partial, f.name) for f in dataclasses.fields(partial) if f.init}
    raise MergeError(f"Unsupported partial update type: {type(partial).__name__}")


def _merge_model(base: BaseModel, patch: dict[str, Any]) -> BaseModel:
    model_cls = type(base)
    if model_cls.model_config.get("extra") != "allow":
        for key in patch:
            if key not in model_cls.model_fields:
                raise MergeError(f"{model_cls.__name__} has no field {key!r}", field=key)
    return base.model_copy(update=patch)


def _merge_dataclass(base: Any, patch: dict[str, Any]) -> Any:
    init_fields = {f.name for f in dataclasses.fields(base) if f.init}
    for key in patch:
        if key not in init_fields:
            raise MergeError(f"{type(base).__name__} has no settable field {key!r}", field=key)
    return dataclasses.replace(base, **patch)


def merge(base: S, partial: Any, *, exclude_unset: bool = True) -> S:
    """Return a new snapshot: *base* with every field of *partial* overwritten.

    ``merge(s, {})`` is equal to ``s`` (but is a new object). Mapping
    snapshots merge into a plain ``dict``.
    """
    patch = as_patch(partial, exclude_unset=exclude_unset)

    if isinstance(base, BaseModel):
        return _merge_model(base, patch)  # type: ignore[return-value]
    if _is_dataclass_instance(base):
        return _merge_dataclass(base, patch)  # type: ignore[no-any-return]
    if isinstance(base, Mapping):
        return {**base, **patch}  # type: ignore[return-value]
    raise MergeError(f"Unsupported snapshot type: {type(base).__name__}")

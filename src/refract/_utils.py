"""Value helpers shared by refs, proxies and watchers."""

from __future__ import annotations

import enum
import math
import types

# Values that are never wrapped even though they carry a __dict__.
_OPAQUE_TYPES = (
    type,
    types.FunctionType,
    types.BuiltinFunctionType,
    types.MethodType,
    types.ModuleType,
    enum.Enum,
    BaseException,
)


def is_ref(value: object) -> bool:
    """Is value a ref-like cell (Ref or Computed)?"""
    return getattr(type(value), "__is_ref__", False)


def is_proxy(value: object) -> bool:
    """Is value a reactive proxy?"""
    return getattr(type(value), "__is_proxy__", False)


def is_wrappable(value: object) -> bool:
    """Can value be placed under reactivity? dicts, lists and plain instances."""
    if isinstance(value, (dict, list)):
        return True
    return hasattr(value, "__dict__") and not isinstance(value, _OPAQUE_TYPES)


def has_changed(value: object, old: object) -> bool:
    """Same-value comparison used to suppress no-op writes.

    Containers and instances compare by identity. Everything else must match
    in type and compare equal, with NaN equal to NaN. Values whose
    comparison has no single truth value (array-likes) count as changed.
    """
    if value is old:
        return False
    for candidate in (value, old):
        if is_proxy(candidate) or is_wrappable(candidate):
            return True
    if type(value) is not type(old):
        return True
    if isinstance(value, float) and math.isnan(value) and math.isnan(old):
        return False
    try:
        return bool(value != old)
    except (TypeError, ValueError):
        return True

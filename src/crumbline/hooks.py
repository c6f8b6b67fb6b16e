# src/crumbline/hooks.py
"""Tagged results for veto-capable hooks.

``before_send`` and ``before_breadcrumb`` hooks decide whether a value
continues through the pipeline. The explicit form is to return ``Keep(value)``
or ``DROP``::

    def before_send(event: LogEvent) -> HookResult[LogEvent]:
        if "password" in event.message:
            return DROP
        return Keep(event)

Plain callables that return the (possibly replaced) value, or ``None`` to
veto, are accepted as well and normalised by ``resolve_hook_result``.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass
from typing import Any, Final, Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class Keep(Generic[T]):
    """Continue processing with ``value``."""

    value: T


class _Drop:
    __slots__ = ()

    def __repr__(self) -> str:
        return "DROP"

    def __bool__(self) -> bool:
        return False


DROP: Final = _Drop()
"""Veto the value; nothing further happens to it."""

HookResult = Keep[T] | _Drop | T | None


def resolve_hook_result(result: Any) -> Any | None:
    """Normalise a hook's return value.

    Returns:
        The value to continue with, or None if the hook vetoed it.
    """
    if isinstance(result, Keep):
        return result.value
    if result is DROP or not result:
        return None
    return result


def run_hook(hook: Callable[[T], Any] | None, value: T) -> T | None:
    """Pass ``value`` through ``hook``.

    Exceptions raised by the hook propagate to the caller.
    """
    if hook is None:
        return value
    return resolve_hook_result(hook(value))

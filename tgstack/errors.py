"""Error helpers shared across the package."""

from __future__ import annotations

import traceback
from collections.abc import Iterable


class MultiError(Exception):
    """Several errors raised together as one."""

    def __init__(self, errors: Iterable[BaseException | None]) -> None:
        self.errors = list(errors)
        super().__init__(str(self))

    def __str__(self) -> str:
        messages = "\n".join(str(err) for err in self.errors if err is not None)
        return f"Hit multiple errors:\n{messages}"


def new_multi_error(*args: BaseException | None) -> MultiError | None:
    """Combine the given errors, ignoring None; return None if nothing is left."""
    errors = [err for err in args if err is not None]
    if not errors:
        return None
    return MultiError(errors)


def format_error_with_trace(error: BaseException | None) -> str:
    """Render an error, with its traceback when it has been raised."""
    if error is None:
        return ""
    if error.__traceback__ is None:
        return str(error)
    return "".join(traceback.format_exception(type(error), error, error.__traceback__))
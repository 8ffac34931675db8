"Callbacks which may be invoked at most once."
from __future__ import annotations
import outcome
import typing as t

__all__ = [
    "AlreadyConsumedError",
    "OneShot",
]

class AlreadyConsumedError(Exception):
    "A value with a single owner was used after it had been consumed."
    pass

F = t.TypeVar('F', bound=t.Callable[..., t.Any])

class OneShot(t.Generic[F]):
    """A callback which moves from "holds a function" to "empty" when it's taken.

    Promise callbacks close over state which they take ownership of, so running
    one twice would hand the same state to two continuations. We hold the
    function inside an `outcome.Value`, which can only be unwrapped once, and
    turn a second unwrap into AlreadyConsumedError.

    """
    __slots__ = ('_value', 'name')

    def __init__(self, func: F, name: t.Optional[str]=None) -> None:
        self._value: outcome.Value = outcome.Value(func)
        self.name = name or getattr(func, '__qualname__', repr(func))

    def take(self) -> F:
        "Take the function out, leaving this OneShot empty."
        try:
            return self._value.unwrap()
        except outcome.AlreadyUsedError as e:
            raise AlreadyConsumedError("one-shot callback", self.name, "was already invoked") from e

    def __call__(self, *args: t.Any) -> t.Any:
        return self.take()(*args)

    def __str__(self) -> str:
        return f"OneShot({self.name})"

    def __repr__(self) -> str:
        return str(self)

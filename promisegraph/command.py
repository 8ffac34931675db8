"""Deferred mutations of a World, and the bridge for resolving promises through them.

Code which can't (or shouldn't) touch the World directly, like a timer system
iterating over its own records, queues a `Command` instead. Commands run in
FIFO order the next time the owner of the World flushes it.

The promise bridge is `Commands.promise`, which returns a small handle scoped to
one identity:

```
commands.promise(timer_id).resolve(None)
```

"""
from __future__ import annotations
from collections import deque
from promisegraph.ident import PromiseId
from promisegraph.registry import Signature, UNTYPED, resolve
import abc
import logging
import typing as t
if t.TYPE_CHECKING:
    from promisegraph.world import World

__all__ = [
    "Command",
    "Commands",
    "PromiseCommand",
    "PromiseCommands",
]

logger = logging.getLogger(__name__)

R = t.TypeVar('R')

class Command:
    "Something which mutates a World when the World's command queue is flushed."
    @abc.abstractmethod
    def write(self, world: World) -> None: ...

class Commands:
    "A FIFO batch of commands."
    def __init__(self) -> None:
        self._queue: t.Deque[Command] = deque()

    def add(self, command: Command) -> Commands:
        self._queue.append(command)
        return self

    def apply(self, world: World) -> None:
        """Run every queued command against this World, including ones queued while running.

        If a command raises, the commands after it stay queued.

        """
        while self._queue:
            command = self._queue.popleft()
            logger.debug("applying %s", command)
            command.write(world)

    def promise(self, id: PromiseId, types: Signature=UNTYPED) -> PromiseCommands:
        "Return a handle for queueing operations on the promise with this identity."
        return PromiseCommands(id, self, types)

    def __len__(self) -> int:
        return len(self._queue)

class PromiseCommand(Command, t.Generic[R]):
    "Resolve a stateless promise with some result, when applied."
    def __init__(self, id: PromiseId, result: R, types: Signature=UNTYPED) -> None:
        self.id = id
        self.result = result
        self.types = types

    @classmethod
    def resolve(cls, id: PromiseId, result: R, types: Signature=UNTYPED) -> PromiseCommand[R]:
        return cls(id, result, types)

    def write(self, world: World) -> None:
        resolve(world, self.id, None, self.result, self.types)

    def __str__(self) -> str:
        return f"PromiseCommand({self.id}{self.types}, {self.result!r})"

class PromiseCommands:
    "A handle on some Commands, scoped to one promise identity."
    def __init__(self, id: PromiseId, commands: Commands, types: Signature=UNTYPED) -> None:
        self.id = id
        self.commands = commands
        self.types = types

    def resolve(self, value: t.Any) -> PromiseCommands:
        "Queue resolving this promise with `value` and a `None` state."
        self.commands.add(PromiseCommand.resolve(self.id, value, self.types))
        return self

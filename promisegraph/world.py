"""The execution context that every promise operation is threaded through.

A `World` is a bag of process-wide state ("resources"), keyed by whatever
hashable key the owner chooses (usually a class), plus a queue of deferred
commands. The promise registries live in here too; nothing in promisegraph
keeps global state of its own.

A `World` isn't thread-safe. Whoever owns it is expected to call into it from
one place at a time, and everything that happens inside one of those calls
happens synchronously.

"""
from __future__ import annotations
from promisegraph.command import Command, Commands
import logging
import typing as t

__all__ = [
    "MissingResourceError",
    "World",
]

logger = logging.getLogger(__name__)

T = t.TypeVar('T')

class MissingResourceError(KeyError):
    "A resource was requested which hasn't been inserted into the World."
    pass

class World:
    def __init__(self) -> None:
        self._resources: t.Dict[t.Hashable, t.Any] = {}
        self.commands = Commands()

    def resource(self, key: t.Hashable) -> t.Any:
        "Return the resource stored under this key, which must already exist."
        try:
            return self._resources[key]
        except KeyError:
            raise MissingResourceError("no resource", key, "in", self) from None

    def get_resource_or_insert_with(self, key: t.Hashable, factory: t.Callable[[], T]) -> T:
        "Return the resource stored under this key, creating it with `factory` if needed."
        try:
            return self._resources[key]
        except KeyError:
            logger.debug("%s: creating resource %s", self, key)
            value = factory()
            self._resources[key] = value
            return value

    def insert_resource(self, key: t.Hashable, value: t.Any) -> None:
        self._resources[key] = value

    def remove_resource(self, key: t.Hashable) -> t.Any:
        try:
            return self._resources.pop(key)
        except KeyError:
            raise MissingResourceError("no resource", key, "in", self) from None

    def contains_resource(self, key: t.Hashable) -> bool:
        return key in self._resources

    def add(self, command: Command) -> None:
        "Queue this command to run at the next flush."
        self.commands.add(command)

    def flush(self) -> None:
        """Apply every queued command, in the order they were queued.

        Commands queued by other commands while we're flushing run in this same
        flush, after everything that was already queued.

        """
        self.commands.apply(self)

    def __str__(self) -> str:
        return f"World({len(self._resources)} resources, {len(self.commands)} queued)"

    def __repr__(self) -> str:
        return str(self)

"""Parameters that continuations can ask to be fetched out of the World.

A continuation never gets the World itself. Instead it declares, with
`promisegraph.promise.asyn`, which pieces of the World it wants, and those are
fetched right before it runs and passed positionally after its normal
arguments:

```
@asyn(Res(Clock), CommandBuffer())
def report(state, result, clock, commands):
    commands.add(...)
    return state.resolve(clock.elapsed)
```

After the continuation returns, each parameter gets a chance to write back; this
is how `CommandBuffer` gets its commands applied.

"""
from __future__ import annotations
from promisegraph.command import Commands
import abc
import typing as t
if t.TYPE_CHECKING:
    from promisegraph.world import World

__all__ = [
    "Param",
    "Res",
    "ResMut",
    "CommandBuffer",
]

class Param:
    @abc.abstractmethod
    def fetch(self, world: World) -> t.Any:
        "Get the value to pass to the continuation."
        pass

    def apply(self, world: World, value: t.Any) -> None:
        "Write back whatever the continuation did to `value`."
        pass

class Res(Param):
    "A resource, which the continuation promises only to read."
    def __init__(self, key: t.Hashable) -> None:
        self.key = key

    def fetch(self, world: World) -> t.Any:
        return world.resource(self.key)

    def __repr__(self) -> str:
        return f"Res({self.key!r})"

class ResMut(Res):
    "A resource, which the continuation may mutate in place."
    def __repr__(self) -> str:
        return f"ResMut({self.key!r})"

class CommandBuffer(Param):
    "A fresh batch of Commands, applied to the World once the continuation returns."
    def fetch(self, world: World) -> Commands:
        return Commands()

    def apply(self, world: World, value: Commands) -> None:
        value.apply(world)

    def __repr__(self) -> str:
        return "CommandBuffer()"

"""Promises which resolve once some amount of time has passed.

This isn't part of the promise core; it's an example of an external source of
resolutions, built only out of `Promise.register`, `PromiseId` and commands.
The `Timers` resource associates each pending identity with a deadline, on the
`Clock` resource's timeline. `process_timers` is expected to run on every tick
of the host's update loop (see `promisegraph.app`), and queues a resolve for
every timer whose deadline has passed.

"""
from __future__ import annotations
from dataclasses import dataclass, field
from promisegraph.ident import PromiseId
from promisegraph.promise import Promise
import heapq
import logging
import typing as t
if t.TYPE_CHECKING:
    from promisegraph.world import World

__all__ = [
    "Clock",
    "Timers",
    "delay",
    "process_timers",
]

logger = logging.getLogger(__name__)

@dataclass
class Clock:
    "Seconds elapsed since the host started, as of the current tick."
    elapsed: float = 0.0

@dataclass
class Timers:
    "The deadline of each pending timer."
    deadlines: t.Dict[PromiseId, float] = field(default_factory=dict)
    _heap: t.List[t.Tuple[float, int, PromiseId]] = field(default_factory=list)
    _order: int = 0

    def schedule(self, id: PromiseId, deadline: float) -> None:
        self.deadlines[id] = deadline
        # the counter keeps timers with equal deadlines in scheduling order
        heapq.heappush(self._heap, (deadline, self._order, id))
        self._order += 1

    def cancel(self, id: PromiseId) -> bool:
        "Forget this timer; return whether it was pending."
        if self.deadlines.pop(id, None) is None:
            return False
        # rebuild once cancelled entries outnumber live ones, so the heap stays
        # within twice the number of pending timers
        if len(self._heap) - len(self.deadlines) > len(self.deadlines):
            self._heap = [entry for entry in self._heap if self.deadlines.get(entry[2]) == entry[0]]
            heapq.heapify(self._heap)
        return True

    def due(self, now: float) -> t.List[PromiseId]:
        "Remove and return the timers whose deadline is at or before `now`, earliest first."
        ret: t.List[PromiseId] = []
        while self._heap and self._heap[0][0] <= now:
            deadline, _, id = heapq.heappop(self._heap)
            # skip heap entries left behind by cancel
            if self.deadlines.get(id) == deadline:
                del self.deadlines[id]
                ret.append(id)
        return ret

    def __len__(self) -> int:
        return len(self.deadlines)

def _timers(world: World) -> Timers:
    return world.get_resource_or_insert_with(Timers, Timers)

def delay(seconds: float) -> Promise[None, None]:
    "Make a promise which resolves, with no state and no result, once `seconds` have passed."
    def on_invoke(world: World, id: PromiseId) -> None:
        now = world.get_resource_or_insert_with(Clock, Clock).elapsed
        logger.debug("%s: waking at %s", id, now + seconds)
        _timers(world).schedule(id, now + seconds)
    def on_discard(world: World, id: PromiseId) -> None:
        if _timers(world).cancel(id):
            logger.debug("%s: timer cancelled", id)
    return Promise.register(on_invoke, on_discard)

def process_timers(world: World) -> None:
    "Queue a resolve for every timer which is due, as of the Clock resource."
    now = world.get_resource_or_insert_with(Clock, Clock).elapsed
    for id in _timers(world).due(now):
        logger.debug("%s: timer fired at %s", id, now)
        world.commands.promise(id).resolve(None)

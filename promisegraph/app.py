"""Wiring a World into a periodic update loop.

The promise core never runs by itself; something has to flush queued commands
and fire timers, over and over. `App` is that something. Each tick, it:

1. advances the Clock resource;
2. flushes queued commands, which registers newly added promises;
3. runs the timer system and any other systems in the config;
4. flushes again, applying whatever the systems queued.

`App.update` performs a single tick, for hosts with their own loop.
`App.run` loops under trio, sleeping `AppConfig.tick` seconds between ticks.

"""
from __future__ import annotations
from dataclasses import dataclass, field
from promisegraph.command import Command
from promisegraph.timer import Clock, process_timers
from promisegraph.world import World
import logging
import trio
import typing as t

__all__ = [
    "AppConfig",
    "App",
]

logger = logging.getLogger(__name__)

System = t.Callable[[World], None]

@dataclass
class AppConfig:
    "How often an App ticks, and what else runs on each tick."
    tick: float = 1/60
    systems: t.List[System] = field(default_factory=list)

class App:
    def __init__(self, world: t.Optional[World]=None, config: t.Optional[AppConfig]=None) -> None:
        self.world = world if world is not None else World()
        self.config = config if config is not None else AppConfig()
        self.systems: t.List[System] = [process_timers, *self.config.systems]
        self.ticks = 0
        self.world.get_resource_or_insert_with(Clock, Clock)

    def add(self, command: Command) -> App:
        "Queue a command, usually a Promise, to be applied on the next tick."
        self.world.add(command)
        return self

    def add_system(self, system: System) -> App:
        self.systems.append(system)
        return self

    def update(self, elapsed: float) -> None:
        "Run one tick, with the Clock set to `elapsed` seconds."
        self.world.resource(Clock).elapsed = elapsed
        self.world.flush()
        for system in self.systems:
            system(self.world)
        self.world.flush()
        self.ticks += 1

    async def run(self,
                  until: t.Optional[t.Callable[[World], bool]]=None,
                  max_ticks: t.Optional[int]=None,
    ) -> None:
        """Tick forever, or until `until(world)` is true after a tick, or `max_ticks` ticks have run.

        Elapsed time is measured with trio's clock, so under a trio MockClock
        this is entirely deterministic.

        """
        start = trio.current_time()
        ticks = 0
        while max_ticks is None or ticks < max_ticks:
            self.update(trio.current_time() - start)
            ticks += 1
            if until is not None and until(self.world):
                logger.debug("App.run: stopping after %d ticks", ticks)
                return
            await trio.sleep(self.config.tick)

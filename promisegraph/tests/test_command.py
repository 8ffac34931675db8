from promisegraph import (
    World, Command, Commands, Promise, PromiseCommand, Signature,
    register, is_pending,
)
from promisegraph.tests.utils import Manual, collect
from unittest import TestCase
import typing as t

class Record(Command):
    def __init__(self, log: t.List[str], name: str, then: t.Optional[Command]=None) -> None:
        self.log = log
        self.name = name
        self.then = then

    def write(self, world: World) -> None:
        self.log.append(self.name)
        if self.then is not None:
            world.add(self.then)

class Boom(Command):
    def write(self, world: World) -> None:
        raise RuntimeError("boom")

class TestCommands(TestCase):
    def setUp(self) -> None:
        self.world = World()
        self.manual = Manual()
        self.results: t.List[t.Tuple[t.Any, t.Any]] = []

    def test_fifo_including_nested(self) -> None:
        log: t.List[str] = []
        self.world.add(Record(log, 'a', Record(log, 'c')))
        self.world.add(Record(log, 'b'))
        self.assertEqual(len(self.world.commands), 2)
        self.world.flush()
        self.assertEqual(log, ['a', 'b', 'c'])
        self.assertEqual(len(self.world.commands), 0)

    def test_failing_command_keeps_rest(self) -> None:
        log: t.List[str] = []
        self.world.add(Boom())
        self.world.add(Record(log, 'b'))
        with self.assertRaises(RuntimeError):
            self.world.flush()
        self.assertEqual(len(self.world.commands), 1)
        self.world.flush()
        self.assertEqual(log, ['b'])

    def test_deferred_resolve(self) -> None:
        promise = self.manual.promise()
        id = promise.id
        register(self.world, promise.then(collect(self.results)))
        self.world.commands.promise(id).resolve(7)
        self.assertEqual(self.results, [])
        self.assertTrue(is_pending(self.world, id))
        self.world.flush()
        self.assertEqual(self.results, [(None, 7)])
        self.assertFalse(is_pending(self.world, id))

    def test_chained_resolve_is_stale(self) -> None:
        promise = self.manual.promise()
        id = promise.id
        register(self.world, promise.then(collect(self.results)))
        handle = self.world.commands.promise(id)
        self.assertIs(handle.resolve(1), handle)
        handle.resolve(2)
        with self.assertLogs('promisegraph.registry', level='ERROR'):
            self.world.flush()
        self.assertEqual(self.results, [(None, 1)])

    def test_separate_batch(self) -> None:
        promise = self.manual.promise()
        id = promise.id
        register(self.world, promise.then(collect(self.results)))
        batch = Commands()
        batch.promise(id).resolve('batched')
        self.world.flush()
        self.assertEqual(self.results, [])
        batch.apply(self.world)
        self.assertEqual(self.results, [(None, 'batched')])

    def test_typed_command(self) -> None:
        typed = Signature(type(None), int)
        promise = self.manual.promise(typed)
        id = promise.id
        register(self.world, promise.then(collect(self.results)))
        self.world.add(PromiseCommand.resolve(id, 3, typed))
        self.world.flush()
        self.assertEqual(self.results, [(None, 3)])
        self.assertFalse(is_pending(self.world, id, typed))

    def test_promise_command(self) -> None:
        self.world.add(Promise.start(lambda state: state.resolve('queued')).then(collect(self.results)))
        self.world.flush()
        self.assertEqual(self.results, [(None, 'queued')])

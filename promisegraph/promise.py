"""Promises, and the operators that chain continuations onto them.

A `Promise` is an identity plus up to three one-shot callbacks:

- register, run once, when the promise is first driven by `registry.register`;
- discard, run once, if the promise is cancelled before it resolves;
- resolve, run once, with the state and result that resolve the promise.

A promise starts out with a register callback and no resolve callback. Once it's
registered, it's stored in its registry, where it waits for someone to resolve
or discard its identity; by then, whoever chained onto it has filled in its
resolve callback.

Promises are linear. Every operator consumes the promise it's called on and
returns a new one; using the old one again raises AlreadyConsumedError. This is
how we know that each callback is owned by exactly one place.

All the chaining operators have the same shape. `p.then(f)` creates a new
promise `q` with a fresh identity, and rewires `p` so that:

- registering `q` registers `p`;
- resolving `p` runs `f` and feeds its outcome into `q`'s identity;
- discarding `p` discards `q`;
- discarding `q` runs whatever discard callback `p` had, to clean up after
  whatever registering `p` set in motion.

So the caller builds arbitrarily long chains without ever seeing a registry.

"""
from __future__ import annotations
from dataclasses import dataclass
from promisegraph.command import Command
from promisegraph.ident import PromiseId
from promisegraph.oneshot import AlreadyConsumedError, OneShot
from promisegraph.params import Param
from promisegraph.registry import Signature, UNTYPED
import promisegraph.registry as registry
import logging
import typing as t
if t.TYPE_CHECKING:
    from promisegraph.world import World

__all__ = [
    "Resolve",
    "Await",
    "PromiseResult",
    "AsynFunction",
    "asyn",
    "PromiseState",
    "Promise",
]

logger = logging.getLogger(__name__)

S = t.TypeVar('S')
R = t.TypeVar('R')
S2 = t.TypeVar('S2')
R2 = t.TypeVar('R2')
D = t.TypeVar('D')

@dataclass
class Resolve(t.Generic[S, R]):
    "The continuation finished right now, with this state and result."
    state: S
    result: R

@dataclass
class Await(t.Generic[S, R]):
    "The continuation isn't finished; it will be once this promise resolves."
    promise: Promise[S, R]

PromiseResult = t.Union[Resolve[S, R], Await[S, R]]

class AsynFunction:
    """A continuation, together with the parameters it wants fetched from the World.

    Make these with `asyn`. Anywhere an AsynFunction is accepted, a plain
    function is accepted too, and treated as one which wants no parameters.

    """
    def __init__(self, body: t.Callable[..., t.Any], params: t.Sequence[Param]=()) -> None:
        self.body = body
        self.params = tuple(params)

    @staticmethod
    def of(func: t.Union[AsynFunction, t.Callable[..., t.Any]]) -> AsynFunction:
        if isinstance(func, AsynFunction):
            return func
        return AsynFunction(func)

    def run(self, world: World, *args: t.Any) -> t.Any:
        "Call the body with these arguments followed by the fetched parameters, then write the parameters back."
        values = [param.fetch(world) for param in self.params]
        ret = self.body(*args, *values)
        for param, value in zip(self.params, values):
            param.apply(world, value)
        return ret

    def __str__(self) -> str:
        name = getattr(self.body, '__qualname__', repr(self.body))
        return f"AsynFunction({name}, {list(self.params)})"

    def __repr__(self) -> str:
        return str(self)

def asyn(*params: Param) -> t.Callable[[t.Callable[..., t.Any]], AsynFunction]:
    "Decorate a continuation so that it's passed these parameters, fetched from the World."
    def wrap(body: t.Callable[..., t.Any]) -> AsynFunction:
        return AsynFunction(body, params)
    return wrap

def settle(world: World, id: PromiseId, types: Signature, outcome: t.Any) -> None:
    """Route what a continuation returned into the promise with this identity.

    A Resolve resolves it immediately. An Await (or a bare Promise) is registered,
    with its resolve callback pointed at this identity.

    """
    if isinstance(outcome, Promise):
        outcome = Await(outcome)
    if isinstance(outcome, Resolve):
        registry.resolve(world, id, outcome.state, outcome.result, types)
    elif isinstance(outcome, Await):
        node = outcome.promise._move()
        if node._resolve is not None:
            # someone else already claimed this promise's result
            logger.error("Misconfigured %s%s, resolve already defined", node.id, node.types)
            return
        def redirect(world: World, state: t.Any, result: t.Any) -> None:
            registry.resolve(world, id, state, result, types)
        node._resolve = OneShot(redirect)
        registry.register(world, node)
    else:
        raise TypeError("continuation for", id, "returned", outcome,
                        "which is not a Resolve, an Await or a Promise")

class PromiseState(t.Generic[S]):
    "The state threaded through a chain, with shortcuts for building what a continuation returns."
    __slots__ = ('value',)

    def __init__(self, value: S) -> None:
        self.value = value

    def resolve(self, result: R) -> Resolve[S, R]:
        return Resolve(self.value, result)

    def pass_(self) -> Resolve[S, None]:
        "Resolve with this state and no result."
        return Resolve(self.value, None)

    def map(self, func: t.Callable[[S], S2]) -> PromiseState[S2]:
        return PromiseState(func(self.value))

    def with_(self, value: S2) -> PromiseState[S2]:
        return PromiseState(value)

    def then(self, promise: Promise[t.Any, R]) -> Promise[S, R]:
        "Wait for this promise, keeping our state rather than its own."
        return promise.with_(self.value)

    def any(self, *promises: t.Any) -> Promise[S, t.Tuple[t.Any, t.Any]]:
        return Promise.any(*promises).with_(self.value)

    def all(self, *promises: t.Any) -> Promise[S, t.List[t.Tuple[t.Any, t.Any]]]:
        return Promise.all(*promises).with_(self.value)

    def __str__(self) -> str:
        return f"PromiseState({self.value})"

    def __repr__(self) -> str:
        return f"PromiseState({self.value!r})"

Callback = t.Callable[..., None]

class Promise(Command, t.Generic[S, R]):
    """A node in the task graph; see the module docstring.

    Build these with `start`, `new`, or `register` and the chaining operators,
    then hand the final one to `registry.register`, or queue it on a World, since
    a Promise is also a Command which registers itself.

    """
    def __init__(self, id: PromiseId, types: Signature=UNTYPED,
                 register: t.Optional[Callback]=None,
                 discard: t.Optional[Callback]=None,
                 resolve: t.Optional[Callback]=None,
    ) -> None:
        self.id = id
        self.types = types
        self._register: t.Optional[OneShot] = OneShot(register) if register is not None else None
        self._discard: t.Optional[OneShot] = OneShot(discard) if discard is not None else None
        self._resolve: t.Optional[OneShot] = OneShot(resolve) if resolve is not None else None
        self.valid = True

    def _validate(self) -> None:
        if not self.valid:
            raise AlreadyConsumedError("promise", self.id, "was already consumed")

    def _move(self) -> Promise[S, R]:
        "Invalidate this handle and return a new one which owns its callbacks."
        self._validate()
        self.valid = False
        node: Promise[S, R] = Promise(self.id, self.types)
        node._register, self._register = self._register, None
        node._discard, self._discard = self._discard, None
        node._resolve, self._resolve = self._resolve, None
        return node

    #### Entry points
    @classmethod
    def start(cls, func: t.Union[AsynFunction, t.Callable[..., t.Any]],
              types: Signature=UNTYPED) -> Promise[t.Any, t.Any]:
        """Make a promise which runs `func` with an empty state when it's registered.

        ```
        world.add(Promise.start(lambda state: state.pass_()))
        ```

        """
        return cls.new(None, func, types)

    @classmethod
    def new(cls, state: D, func: t.Union[AsynFunction, t.Callable[..., t.Any]],
            types: Signature=UNTYPED) -> Promise[t.Any, t.Any]:
        """Make a promise which runs `func` with `PromiseState(state)` when it's registered.

        `func` returns a PromiseResult, or a Promise to wait on, exactly like the
        continuations passed to `then`.

        """
        body = AsynFunction.of(func)
        def on_register(world: World, id: PromiseId) -> None:
            settle(world, id, types, body.run(world, PromiseState(state)))
        return cls(PromiseId.new(), types, register=on_register)

    @classmethod
    def register(cls, on_invoke: Callback, on_discard: Callback,
                 types: Signature=UNTYPED) -> Promise[t.Any, t.Any]:
        """Make a promise whose resolution is managed by the caller.

        `on_invoke(world, id)` runs when the promise is registered; it should
        arrange for `id` to be resolved later, by calling `registry.resolve` or
        queueing a PromiseCommand. `on_discard(world, id)` runs if the promise is
        cancelled first, and should undo whatever `on_invoke` arranged. This is
        how external sources, like timers, are turned into promises.

        """
        return cls(PromiseId.new(), types, register=on_invoke, discard=on_discard)

    #### Chaining
    def _splice(self, downstream: PromiseId, types: Signature,
                on_resolve: t.Callable[[World, t.Any, t.Any], None]) -> Promise[t.Any, t.Any]:
        node = self._move()
        upstream_id = node.id
        upstream_discard = node._discard
        def discard_downstream(world: World, id: PromiseId) -> None:
            registry.discard(world, downstream, types)
        def register_upstream(world: World, id: PromiseId) -> None:
            registry.register(world, node)
        def discard_upstream_effects(world: World, id: PromiseId) -> None:
            if upstream_discard is not None:
                upstream_discard(world, upstream_id)
        node._discard = OneShot(discard_downstream)
        node._resolve = OneShot(on_resolve)
        return Promise(downstream, types, register=register_upstream, discard=discard_upstream_effects)

    def then(self, func: t.Union[AsynFunction, t.Callable[..., t.Any]],
             types: Signature=UNTYPED) -> Promise[t.Any, t.Any]:
        """Once this promise resolves, run `func(state, result)` and resolve with what it returns.

        `state` is a PromiseState. `func` returns a Resolve, to finish right away,
        or an Await or Promise, to finish when that promise does.

        """
        body = AsynFunction.of(func)
        downstream = PromiseId.new()
        def on_resolve(world: World, state: S, result: R) -> None:
            settle(world, downstream, types, body.run(world, PromiseState(state), result))
        return self._splice(downstream, types, on_resolve)

    def map(self, func: t.Callable[[S], S2], state_type: type=object) -> Promise[S2, R]:
        "Transform the state this promise resolves with."
        types = Signature(state_type, self.types.result)
        downstream = PromiseId.new()
        def on_resolve(world: World, state: S, result: R) -> None:
            registry.resolve(world, downstream, func(state), result, types)
        return self._splice(downstream, types, on_resolve)

    def with_(self, state: S2, state_type: type=object) -> Promise[S2, R]:
        "Replace the state this promise resolves with."
        return self.map(lambda _: state, state_type)

    def map_result(self, func: t.Callable[[R], R2], result_type: type=object) -> Promise[S, R2]:
        "Transform the result this promise resolves with."
        types = Signature(self.types.state, result_type)
        downstream = PromiseId.new()
        def on_resolve(world: World, state: S, result: R) -> None:
            registry.resolve(world, downstream, state, func(result), types)
        return self._splice(downstream, types, on_resolve)

    def with_result(self, result: R2, result_type: type=object) -> Promise[S, R2]:
        "Replace the result this promise resolves with."
        return self.map_result(lambda _: result, result_type)

    #### Shortcuts for continuations
    @staticmethod
    def resolve(result: R) -> Resolve[None, R]:
        "A stateless Resolve with this result."
        return Resolve(None, result)

    @staticmethod
    def pass_() -> Resolve[None, None]:
        return Resolve(None, None)

    @staticmethod
    def any(*promises: t.Any) -> Promise[None, t.Tuple[t.Any, t.Any]]:
        "Resolve with the state and result of whichever of these promises resolves first."
        from promisegraph.combinators import any_of
        return any_of(_flatten(promises))

    @staticmethod
    def all(*promises: t.Any) -> Promise[None, t.List[t.Tuple[t.Any, t.Any]]]:
        "Resolve with the states and results of all these promises, in order."
        from promisegraph.combinators import all_of
        return all_of(_flatten(promises))

    def write(self, world: World) -> None:
        registry.register(world, self)

    def __str__(self) -> str:
        if self.valid:
            return f"{self.id}{self.types}"
        else:
            return f"{self.id}{self.types}(consumed)"

    def __repr__(self) -> str:
        return str(self)

def _flatten(promises: t.Tuple[t.Any, ...]) -> t.List[Promise]:
    "Accept either varargs of promises, or a single iterable of them."
    if len(promises) == 1 and not isinstance(promises[0], Promise):
        return list(promises[0])
    return list(promises)

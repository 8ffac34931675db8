"""Combining a collection of sibling promises into one.

`any_of` resolves with whichever sibling resolves first and discards the rest;
`all_of` waits for every sibling and resolves with all their outcomes, in the
order the siblings were given.

Both register their siblings in order, one at a time, when the combined promise
is registered. Siblings may resolve synchronously while being registered, so
for `any_of`, the order of registration decides the winner: the first sibling
to be registered which resolves synchronously wins, and the siblings after it
are never registered at all. Since every sibling either resolves synchronously
while being registered or stays pending until someone else resolves it, this
means "first registered wins" is a guarantee, not an accident.

"""
from __future__ import annotations
from promisegraph.ident import PromiseId
from promisegraph.oneshot import AlreadyConsumedError
from promisegraph.promise import Promise, PromiseState
from promisegraph.registry import Signature, UNTYPED
import promisegraph.registry as registry
import logging
import typing as t
if t.TYPE_CHECKING:
    from promisegraph.world import World

__all__ = [
    "any_of",
    "all_of",
    "SlotArray",
    "Promises",
    "promises",
]

logger = logging.getLogger(__name__)

S = t.TypeVar('S')
R = t.TypeVar('R')
T = t.TypeVar('T')

def _ignore_discard(world: World, id: PromiseId) -> None:
    pass

def _retire(world: World, id: PromiseId) -> None:
    "Resolve one of our own helper promises, so that it and the chain it ends don't linger."
    registry.resolve(world, id, None, None)

def _discard_all(world: World, siblings: t.List[t.Tuple[PromiseId, Signature]],
                 keep: t.Optional[int]=None) -> None:
    for idx, (id, types) in enumerate(siblings):
        if idx != keep:
            registry.discard(world, id, types)

def any_of(promises: t.Iterable[Promise[S, R]], types: Signature=UNTYPED) -> Promise[None, t.Tuple[S, R]]:
    """Resolve with the (state, result) of whichever of these promises resolves first.

    The other siblings are discarded as soon as one resolves. If the combined
    promise is discarded first, all the siblings are discarded.

    """
    pending = list(promises)
    siblings = [(promise.id, promise.types) for promise in pending]
    settled = False

    def on_invoke(world: World, any_id: PromiseId) -> None:
        if not pending:
            logger.warning("%s: any_of with no promises will never resolve", any_id)
        for idx, promise in enumerate(pending):
            if settled:
                logger.info("%s: not registering sibling %d, %s, since sibling already won",
                            any_id, idx, promise.id)
                continue
            register_sibling(world, any_id, idx, promise)
        pending.clear()

    def register_sibling(world: World, any_id: PromiseId, idx: int, promise: Promise[S, R]) -> None:
        def winner(state: PromiseState[S], result: R) -> Promise[None, None]:
            def finish(world: World, id: PromiseId) -> None:
                nonlocal settled
                settled = True
                logger.debug("%s: sibling %d, %s, won", any_id, idx, siblings[idx][0])
                _discard_all(world, siblings, keep=idx)
                registry.resolve(world, any_id, None, (state.value, result), types)
                _retire(world, id)
            return Promise.register(finish, _ignore_discard)
        registry.register(world, promise.then(winner))

    def on_discard(world: World, any_id: PromiseId) -> None:
        logger.debug("%s: discarded, discarding %d siblings", any_id, len(siblings))
        _discard_all(world, siblings)

    return Promise.register(on_invoke, on_discard, types)

class SlotArray(t.Generic[T]):
    """A fixed number of slots, filled once each, then taken all at once.

    This is shared by all the siblings of an `all_of`; each sibling's
    continuation owns exactly one index. Continuations run one at a time on the
    World, so there's never more than one writer at once.

    """
    def __init__(self, size: int) -> None:
        self._slots: t.List[t.Optional[T]] = [None] * size
        self._filled = [False] * size
        self.valid = True

    def _validate(self) -> None:
        if not self.valid:
            raise AlreadyConsumedError("slot array was already taken")

    def put(self, idx: int, value: T) -> bool:
        "Fill this slot; return False, without writing, if it was already filled."
        self._validate()
        if self._filled[idx]:
            return False
        self._slots[idx] = value
        self._filled[idx] = True
        return True

    def full(self) -> bool:
        self._validate()
        return all(self._filled)

    def take(self) -> t.List[T]:
        "Take all the values out, invalidating this array."
        self._validate()
        if not all(self._filled):
            raise ValueError("slot array isn't full yet", self._filled)
        self.valid = False
        values, self._slots = self._slots, []
        return t.cast(t.List[T], values)

    def __len__(self) -> int:
        return len(self._filled)

def all_of(promises: t.Iterable[Promise[S, R]], types: Signature=UNTYPED) -> Promise[None, t.List[t.Tuple[S, R]]]:
    """Resolve with the (state, result) of every one of these promises, in their original order.

    The order of the list is the order of the promises passed in, no matter in
    what order they resolve. If the combined promise is discarded before they
    all resolve, all the siblings are discarded.

    """
    pending = list(promises)
    siblings = [(promise.id, promise.types) for promise in pending]

    def on_invoke(world: World, all_id: PromiseId) -> None:
        slots: SlotArray[t.Tuple[S, R]] = SlotArray(len(pending))
        if not pending:
            registry.resolve(world, all_id, None, [], types)
        for idx, promise in enumerate(pending):
            register_sibling(world, all_id, slots, idx, promise)
        pending.clear()

    def register_sibling(world: World, all_id: PromiseId, slots: SlotArray[t.Tuple[S, R]],
                         idx: int, promise: Promise[S, R]) -> None:
        def collect(state: PromiseState[S], result: R) -> Promise[None, None]:
            def fill(world: World, id: PromiseId) -> None:
                if slots.put(idx, (state.value, result)):
                    logger.debug("%s: sibling %d, %s, resolved", all_id, idx, siblings[idx][0])
                    if slots.full():
                        registry.resolve(world, all_id, None, slots.take(), types)
                else:
                    logger.error("%s: sibling %d, %s, resolved more than once",
                                 all_id, idx, siblings[idx][0])
                _retire(world, id)
            return Promise.register(fill, _ignore_discard)
        registry.register(world, promise.then(collect))

    def on_discard(world: World, all_id: PromiseId) -> None:
        logger.debug("%s: discarded, discarding %d siblings", all_id, len(siblings))
        _discard_all(world, siblings)

    return Promise.register(on_invoke, on_discard, types)

class Promises(t.Generic[S, R]):
    "A collection of promises waiting to be combined with `any` or `all`."
    def __init__(self, promises: t.Iterable[Promise[S, R]]) -> None:
        self.promises = list(promises)

    def any(self) -> Promise[None, t.Tuple[S, R]]:
        return any_of(self.promises)

    def all(self) -> Promise[None, t.List[t.Tuple[S, R]]]:
        return all_of(self.promises)

def promises(iterable: t.Iterable[Promise[S, R]]) -> Promises[S, R]:
    """Collect promises from any iterable, for combining.

    ```
    promises(delay(n) for n in range(3)).all()
    ```

    """
    return Promises(iterable)

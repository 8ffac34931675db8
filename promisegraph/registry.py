"""Type-partitioned registries of pending promises, and the three lifecycle operations.

`register`, `resolve` and `discard` are the only things that touch a registry.
Everything else, chaining operators and combinators included, is built out of
them.

A registry holds the promises with a given `Signature`, the pair of state and
result types they resolve with. Partitions are created lazily, inside the
World, the first time anyone touches them; resolving an identity under the
wrong signature looks in the wrong partition, and is reported like any other
stale identity.

Each partition is guarded by a lock, but the lock is only held while looking
up, extracting, inserting or removing; it's never held while running a
callback. Callbacks routinely recurse into `register`, `resolve` and `discard`,
sometimes for the very identity being processed.

"""
from __future__ import annotations
from dataclasses import dataclass, field
from promisegraph.ident import PromiseId
import logging
import threading
import typing as t
if t.TYPE_CHECKING:
    from promisegraph.promise import Promise
    from promisegraph.world import World

__all__ = [
    "Signature",
    "UNTYPED",
    "PromiseRegistry",
    "registry_for",
    "register",
    "resolve",
    "discard",
    "is_pending",
    "pending_count",
]

logger = logging.getLogger(__name__)

def _type_name(typ: type) -> str:
    return getattr(typ, '__qualname__', repr(typ))

@dataclass(frozen=True)
class Signature:
    "The state and result types of a promise; the key of its registry partition."
    state: type = object
    result: type = object

    def __str__(self) -> str:
        return f"<{_type_name(self.state)}, {_type_name(self.result)}>"

UNTYPED = Signature()

@dataclass(eq=False)
class PromiseRegistry:
    """The pending promises with one signature.

    Every access holds `lock` only for a single lookup or update, never while a
    callback runs, so a plain lock serves where a read/write lock would.

    """
    signature: Signature
    lock: threading.Lock = field(default_factory=threading.Lock)
    pending: t.Dict[PromiseId, Promise] = field(default_factory=dict)

    def __len__(self) -> int:
        with self.lock:
            return len(self.pending)

def registry_for(world: World, types: Signature=UNTYPED) -> PromiseRegistry:
    "Get the registry partition for this signature, creating it if it doesn't exist yet."
    return world.get_resource_or_insert_with((PromiseRegistry, types), lambda: PromiseRegistry(types))

def register(world: World, promise: Promise) -> None:
    """Consume this promise and store it in its registry, then run its register callback.

    The promise is inserted before its callback runs, since the callback might
    resolve it immediately.

    """
    node = promise._move()
    callback, node._register = node._register, None
    registry = registry_for(world, node.types)
    with registry.lock:
        registry.pending[node.id] = node
    logger.debug("registered %s%s", node.id, node.types)
    if callback is not None:
        callback(world, node.id)

def resolve(world: World, id: PromiseId, state: t.Any, result: t.Any, types: Signature=UNTYPED) -> None:
    """Run the continuation stored for this identity with this state and result, then forget it.

    Resolving an identity we don't know about, because it was already resolved,
    discarded, or never registered, means the caller is holding a stale
    identity; that's logged and otherwise ignored.

    """
    registry = registry_for(world, types)
    with registry.lock:
        node = registry.pending.get(id)
        if node is None:
            logger.error("trying to resolve unknown or complete %s%s", id, types)
            return
        callback, node._resolve = node._resolve, None
    logger.debug("resolving %s%s", id, types)
    if callback is not None:
        callback(world, state, result)
    with registry.lock:
        registry.pending.pop(id, None)

def discard(world: World, id: PromiseId, types: Signature=UNTYPED) -> None:
    """Cancel the promise with this identity, running its discard callback, then forget it.

    Combinators routinely discard siblings that have already finished, so
    discarding an unknown identity is merely noted.

    """
    registry = registry_for(world, types)
    with registry.lock:
        node = registry.pending.get(id)
        if node is None:
            logger.info("trying to discard unknown or complete %s%s", id, types)
            return
        callback, node._discard = node._discard, None
    logger.debug("discarding %s%s", id, types)
    if callback is not None:
        callback(world, id)
    with registry.lock:
        registry.pending.pop(id, None)

def is_pending(world: World, id: PromiseId, types: Signature=UNTYPED) -> bool:
    "Whether this identity is currently stored in its registry."
    registry = registry_for(world, types)
    with registry.lock:
        return id in registry.pending

def pending_count(world: World, types: Signature=UNTYPED) -> int:
    return len(registry_for(world, types))

"""A continuation-passing task graph, driven by an external scheduler

Multi-step asynchronous computations are described as chains of promises:

```
world.add(
    Promise.start(lambda state: delay(1.0))
    .then(lambda state, _: state.resolve("done"))
)
```

Nothing runs on its own. The owner of the `World` registers promises (directly
with `register`, or by queueing them as commands and flushing), and from then on
each promise lives in a registry inside the World, addressed only by its
`PromiseId`, until someone calls `resolve` or `discard` on that identity. That
runs the continuation stored there, which may in turn register more promises.

There's no rejection channel: a computation that can fail says so in its result
type, and its continuations branch on it. Cancellation is `discard`, which
propagates down chains and into the siblings of `any`/`all`.

Some pieces are deliberately outside the core:
- `promisegraph.timer`, promises that resolve after some time, built entirely on
  `Promise.register`;
- `promisegraph.app`, an update loop which ticks the timers and flushes commands,
  runnable under trio.

"""
from promisegraph.ident import PromiseId
from promisegraph.oneshot import OneShot, AlreadyConsumedError
from promisegraph.registry import Signature, UNTYPED, register, resolve, discard, is_pending, pending_count
from promisegraph.world import World, MissingResourceError
from promisegraph.command import Command, Commands, PromiseCommand, PromiseCommands
from promisegraph.params import Param, Res, ResMut, CommandBuffer
from promisegraph.promise import Promise, PromiseState, PromiseResult, Resolve, Await, AsynFunction, asyn
from promisegraph.combinators import any_of, all_of, Promises, promises

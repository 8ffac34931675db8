"Promises for tests to drive by hand."
from __future__ import annotations
from promisegraph import Promise, PromiseId, PromiseState, Resolve, Signature, UNTYPED
import typing as t

class Manual:
    "Makes promises which do nothing when registered, and remembers which ones were registered or discarded."
    def __init__(self) -> None:
        self.invoked: t.List[PromiseId] = []
        self.discarded: t.List[PromiseId] = []

    def promise(self, types: Signature=UNTYPED) -> Promise:
        return Promise.register(
            lambda world, id: self.invoked.append(id),
            lambda world, id: self.discarded.append(id),
            types,
        )

def collect(results: t.List[t.Tuple[t.Any, t.Any]]) -> t.Callable[[PromiseState, t.Any], Resolve]:
    "A continuation which records the state and result it's called with."
    def record(state: PromiseState, result: t.Any) -> Resolve:
        results.append((state.value, result))
        return state.pass_()
    return record

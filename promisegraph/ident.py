"""Process-unique identities for promises.

A `PromiseId` is the only handle anyone outside the registry has on a pending
promise. It's a pair of a worker token and a counter local to that worker, so
no two threads ever contend on the same counter.

We don't use `threading.get_ident` as the worker token: Python may hand the
same ident to a new thread once an old one exits, and then two threads would
count from 1 under the same token. Instead each thread is assigned a token
from a process-wide counter the first time it makes an identity.

"""
from __future__ import annotations
from dataclasses import dataclass
import itertools
import threading

__all__ = [
    "PromiseId",
]

_worker_tokens = itertools.count(1)
_worker_tokens_lock = threading.Lock()
_worker = threading.local()

@dataclass
class _Counter:
    token: int
    locals: itertools.count

def _local_counter() -> _Counter:
    try:
        return _worker.counter
    except AttributeError:
        with _worker_tokens_lock:
            token = next(_worker_tokens)
        _worker.counter = _Counter(token, itertools.count(1))
        return _worker.counter

@dataclass(frozen=True)
class PromiseId:
    """The identity of a promise, used as its key in a registry.

    Only compared and hashed, never interpreted; `str` is for diagnostics.

    """
    __slots__ = ('worker', 'local')
    worker: int
    local: int

    @staticmethod
    def new() -> PromiseId:
        "Make an identity that has never been returned before in this process."
        counter = _local_counter()
        return PromiseId(counter.token, next(counter.locals))

    def __str__(self) -> str:
        return f"Promise({self.worker}:{self.local})"

    def __repr__(self) -> str:
        return str(self)

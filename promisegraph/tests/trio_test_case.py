"A trio-enabled variant of unittest.TestCase, running on a mock clock"
import trio
import trio.testing
import unittest
import contextlib
import functools
import sys
import types
import warnings

@contextlib.contextmanager
def raise_unraisables():
    unraisables = []
    try:
        orig_unraisablehook, sys.unraisablehook = sys.unraisablehook, unraisables.append
        yield
    finally:
        sys.unraisablehook = orig_unraisablehook
        if unraisables:
            raise unraisables[0].exc_value

class TrioTestCase(unittest.TestCase):
    """A trio-enabled variant of unittest.TestCase

    Each test runs under a `trio.testing.MockClock` which jumps forward whenever
    all tasks are blocked, so tests which sleep finish instantly and see
    deterministic times.

    """
    nursery: trio.Nursery
    clock: trio.testing.MockClock

    async def asyncSetUp(self) -> None:
        "Asynchronously set up resources for tests in this TestCase"
        pass

    async def asyncTearDown(self) -> None:
        "Asynchronously clean up resources for tests in this TestCase"
        pass

    def __init__(self, methodName='runTest') -> None:
        test = getattr(type(self), methodName, None)
        if test is None:
            # test collectors instantiate classes with the default 'runTest'
            super().__init__(methodName)
            return
        @functools.wraps(test)
        async def test_with_setup() -> None:
            async with trio.open_nursery() as nursery:
                self.nursery = nursery
                await self.asyncSetUp()
                try:
                    await test(self)
                finally:
                    await self.asyncTearDown()
                nursery.cancel_scope.cancel()
        @functools.wraps(test_with_setup)
        def sync_test_with_setup(self) -> None:
            # Throw an exception if there were any "coroutine was never awaited" warnings, to fail the test.
            # We also need raise_unraisables, otherwise the exception is suppressed, since it's in __del__
            with raise_unraisables():
                with warnings.catch_warnings():
                    warnings.filterwarnings('error', message='.*was never awaited', category=RuntimeWarning)
                    self.clock = trio.testing.MockClock(autojump_threshold=0)
                    trio.run(test_with_setup, clock=self.clock)
        setattr(self, methodName, types.MethodType(sync_test_with_setup, self))
        super().__init__(methodName)

# sigwait/sync.py
#
# Synchronization primitives shared by threads and asyncio.

__all__ = ['UniversalEvent', 'select']

# -- Standard library

import asyncio
import threading
from concurrent.futures import Future, FIRST_COMPLETED
from concurrent.futures import wait as _futures_wait

# -- Sigwait

from .meta import awaitable

# Both primitives here are built on concurrent.futures.Future.  A Future
# can be completed from any thread and waited on from a thread (result())
# or from asyncio (wrap_future()).  That's what lets a signal picked up by
# a background monitoring thread wake up synchronous code and coroutines
# alike, without any polling.


class UniversalEvent(object):
    '''
    A one-shot event that's safe to use from threads and asyncio.  Once
    set, it stays set.
    '''
    def __init__(self):
        self._fut = Future()
        # A running future can't be cancelled.  This keeps an asyncio waiter
        # that gets cancelled from cancelling the event for everyone else.
        self._fut.set_running_or_notify_cancel()
        self._lock = threading.Lock()

    def __repr__(self):
        res = super().__repr__()
        extra = 'set' if self.is_set() else 'unset'
        return f'<{res[1:-1]} [{extra}]>'

    @property
    def future(self):
        '''
        Future that completes when the event is set.
        '''
        return self._fut

    def is_set(self):
        return self._fut.done()

    def wait(self):
        self._fut.result()

    @awaitable(wait)
    async def wait(self):
        if not self._fut.done():
            await asyncio.wrap_future(self._fut)

    def set(self):
        with self._lock:
            if not self._fut.done():
                self._fut.set_result(True)


def select(*futures):
    '''
    Wait until at least one of the given futures completes and return it.
    If several are complete, the first one in argument order wins.  The
    other futures are left untouched.
    '''
    done, _ = _futures_wait(futures, return_when=FIRST_COMPLETED)
    return next(fut for fut in futures if fut in done)


@awaitable(select)
async def select(*futures):
    wrapped = [asyncio.wrap_future(fut) for fut in futures]
    done, _ = await asyncio.wait(wrapped, return_when=asyncio.FIRST_COMPLETED)
    return next(fut for fut, wfut in zip(futures, wrapped) if wfut in done)

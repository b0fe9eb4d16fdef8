# sigwait/queue.py
#
# A bounded queue for handing items from threads to threads or asyncio.

# -- Standard library

from collections import deque
from concurrent.futures import Future
import threading
import asyncio

# -- Sigwait

from .errors import Full
from .meta import awaitable

__all__ = ['UniversalQueue']

# The goal of UniversalQueue is to provide a queue that's compatible with
# threads and asyncio using an identical API.  The underlying operation is
# based on non-blocking queuing coupled with Futures.  Each get() either
# completes immediately or creates a Future for obtaining the result when
# it becomes available.  Both runtime environments have a mechanism for
# waiting on a Future.
#
# Putting is always non-blocking.  Items are usually produced by code that
# must never stall (e.g., a thread relaying OS signals), so a full queue
# raises Full instead of making the producer wait.


class UniversalQueue(object):
    '''
    A queue for communicating between threads, including threads that are
    running an asyncio event loop.  If maxsize is positive, at most that
    many items are held and put_nowait() raises Full beyond it.
    '''

    def __init__(self, *, maxsize=0):
        if maxsize < 0:
            raise ValueError('maxsize must be >= 0')
        self.maxsize = maxsize

        # The actual queue of items
        self._queue = deque()

        # A queue of Futures representing getters
        self._getters = deque()

        # Internal synchronization.  It is only held briefly, and never in
        # a situation where a blocking operation would take place.
        self._mutex = threading.Lock()

    def __repr__(self):
        res = super().__repr__()
        return '<%s, len=%d>' % (res[1:-1], len(self._queue))

    def empty(self):
        return not bool(self._queue)

    def full(self):
        return self.maxsize > 0 and len(self._queue) >= self.maxsize

    def qsize(self):
        return len(self._queue)

    def _get(self):
        fut = item = None
        with self._mutex:
            # Critical section never blocks.
            while self._getters and self._getters[0].cancelled():
                self._getters.popleft()
            if not self._queue or self._getters:
                fut = Future()
                self._getters.append(fut)
            else:
                item = self._queue.popleft()
        return item, fut

    def get_future(self):
        '''
        Return a Future holding the next item of the queue.  It is already
        complete if an item was available.  A Future that is no longer
        wanted must be handed to cancel_get() so that its item isn't lost.
        '''
        item, fut = self._get()
        if fut is None:
            fut = Future()
            fut.set_result(item)
        return fut

    def cancel_get(self, fut):
        '''
        Withdraw a Future obtained from get_future().  If an item was
        already delivered to it, the item goes back to the front of the
        queue.
        '''
        if not fut.cancel():
            self._put(fut.result(), requeue=True)

    # Synchronous queue get.
    def get(self):
        item, fut = self._get()
        if fut:
            item = fut.result()
        return item

    # Asynchronous queue get (asyncio)
    @awaitable(get)
    async def get(self):
        item, fut = self._get()
        if fut:
            try:
                item = await asyncio.wrap_future(fut)
            except asyncio.CancelledError:
                # If cancelled but the future completed anyways, arrange
                # for the item to go back onto the queue.
                self.cancel_get(fut)
                raise
        return item

    def _put(self, item, requeue=False):
        with self._mutex:
            # Critical section never blocks.  Hand the item to the first
            # getter that is still waiting for it.  A getter switched to
            # running can no longer be cancelled by its owner.
            while self._getters:
                getter = self._getters.popleft()
                if getter.set_running_or_notify_cancel():
                    getter.set_result(item)
                    return

            if requeue:
                self._queue.appendleft(item)
            elif self.maxsize > 0 and len(self._queue) >= self.maxsize:
                raise Full(item)
            else:
                self._queue.append(item)

    def put_nowait(self, item):
        '''
        Put an item on the queue without blocking.  Raises Full if the
        queue is bounded and has no free slot.
        '''
        self._put(item)

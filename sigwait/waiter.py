# sigwait/waiter.py
#
# Waiting for a signal or cancellation, whichever comes first.

__all__ = ['wait']

# -- Standard library

import asyncio

# -- Sigwait

from .meta import awaitable
from .signal import default_notifier
from .sync import select


def wait(ctx, *signals, notifier=None):
    '''
    Wait for one of the given signals or for ctx to be cancelled.  Returns
    the received signal number, or None if ctx was cancelled first.  If no
    signals are given, any relayable signal ends the wait.

    Concurrent waiters on the same signals each receive their own copy of
    a signal.  wait() never times out by itself.  Use a context created
    by with_timeout() to bound it.  For example:

        ctx, cancel = with_timeout(background(), 5)
        signo = wait(ctx, signal.SIGINT, signal.SIGTERM)
        cancel()

    notifier selects the signal delivery subsystem.  By default, it's the
    process-wide relay of OS signals.  In a coroutine, use
    "await wait(...)".
    '''
    if notifier is None:
        notifier = default_notifier()
    with notifier.subscribe(signals) as sub:
        if ctx.cancelled():
            return None
        getter = sub.queue.get_future()
        if select(getter, ctx.done().future) is getter:
            return getter.result()
        sub.queue.cancel_get(getter)
        return None


@awaitable(wait)
async def wait(ctx, *signals, notifier=None):
    if notifier is None:
        notifier = default_notifier()
    async with notifier.subscribe(signals) as sub:
        if ctx.cancelled():
            return None
        getter = sub.queue.get_future()
        try:
            if await select(getter, ctx.done().future) is getter:
                return getter.result()
        except asyncio.CancelledError:
            sub.queue.cancel_get(getter)
            raise
        sub.queue.cancel_get(getter)
        return None

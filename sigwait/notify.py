# sigwait/notify.py
#
# Scopes that are cancelled when a signal arrives.

__all__ = ['notify_context', 'run_with_signal_cancellation', 'cause_signal']

# -- Standard library

import asyncio
import logging
import threading

log = logging.getLogger(__name__)

# -- Sigwait

from .context import with_cancel_cause
from .errors import SignalCancelled
from .meta import awaitable, iscoroutinefunction
from .signal import default_notifier
from .sync import select
from .util import signal_name


class _SignalScope(object):
    '''
    Context manager that derives a context from parent and cancels it
    with SignalCancelled when one of the signals arrives.  A single
    listener (a thread, or an asyncio task in async code) waits for
    either the signal or the end of the context, exactly once.  On exit
    the subscription is closed and the context is cancelled, which lets
    the listener finish.
    '''

    def __init__(self, parent, signals, notifier):
        self.parent = parent
        self.signals = signals
        self.notifier = notifier
        self.context = None
        self._cancel = None
        self._subscription = None
        self._listener = None

    def __repr__(self):
        return f'<_SignalScope {self._description()}>'

    def _description(self):
        desc = f'notify_context({self.parent.description}'
        if self.signals:
            desc += ', [' + ' '.join(signal_name(signo) for signo in self.signals) + ']'
        return desc + ')'

    def _open(self):
        ctx, self._cancel = with_cancel_cause(self.parent, description=self._description())
        try:
            self._subscription = self.notifier.subscribe(self.signals)
        except Exception:
            self._cancel()
            raise
        self.context = ctx
        return ctx

    def _close(self):
        self._subscription.close()
        self._cancel()

    def _signalled(self, signo):
        log.debug('%r received %s', self, signal_name(signo))
        self._cancel(SignalCancelled(signo))

    def _listen(self, getter):
        if select(getter, self.context.done().future) is getter:
            self._signalled(getter.result())
        else:
            self._subscription.queue.cancel_get(getter)

    async def _alisten(self, getter):
        try:
            if await select(getter, self.context.done().future) is getter:
                self._signalled(getter.result())
                return
        except asyncio.CancelledError:
            self._subscription.queue.cancel_get(getter)
            raise
        self._subscription.queue.cancel_get(getter)

    def __enter__(self):
        ctx = self._open()
        if not ctx.cancelled():
            getter = self._subscription.queue.get_future()
            self._listener = threading.Thread(target=self._listen, args=(getter,),
                                              name='sigwait-listener', daemon=True)
            self._listener.start()
        return ctx

    def __exit__(self, *args):
        self._close()
        if self._listener:
            self._listener.join()

    async def __aenter__(self):
        ctx = self._open()
        if not ctx.cancelled():
            getter = self._subscription.queue.get_future()
            self._listener = asyncio.ensure_future(self._alisten(getter))
        return ctx

    async def __aexit__(self, *args):
        self._close()
        if self._listener:
            await self._listener


def notify_context(parent, *signals, notifier=None):
    '''
    Return a context manager producing a child context of parent that is
    cancelled when one of the given signals arrives (any signal if none
    are given).  The context is cancelled when the block exits.

        with notify_context(background(), signal.SIGTERM) as ctx:
            ...

    Works with "async with" as well.
    '''
    if notifier is None:
        notifier = default_notifier()
    return _SignalScope(parent, signals, notifier)


def run_with_signal_cancellation(parent, run, *signals, notifier=None):
    '''
    Call run(ctx) with a child context of parent that is cancelled when one
    of the given signals arrives (any signal if none are given).  The result
    of run, or the exception it raises, is passed through untouched.

    Use cause_signal(ctx) to find out whether the context was cancelled
    by a signal and which one.  In a coroutine, use "await
    run_with_signal_cancellation(...)"; run may then be a coroutine function.
    '''
    with notify_context(parent, *signals, notifier=notifier) as ctx:
        return run(ctx)


@awaitable(run_with_signal_cancellation)
async def run_with_signal_cancellation(parent, run, *signals, notifier=None):
    async with notify_context(parent, *signals, notifier=notifier) as ctx:
        if iscoroutinefunction(run):
            return await run(ctx)
        return run(ctx)


def cause_signal(ctx):
    '''
    Return (signo, True) if ctx was cancelled because a signal arrived.
    Otherwise, including when ctx isn't cancelled at all, return
    (None, False).

        signo, ok = cause_signal(ctx)
        if ok:
            print('Cancelled by', signo)
    '''
    cause = ctx.cause()
    if isinstance(cause, SignalCancelled):
        return cause.signal, True
    return None, False

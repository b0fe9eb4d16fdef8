# sigwait/context.py
#
# Cancellation contexts.
#
# A context is a handle that code can check or wait on to learn that the
# work it is doing should stop.  Contexts form a tree.  Cancelling a
# context cancels all of its children, which inherit the parent's error
# and cause.  The cause is an exception instance describing why the
# context was cancelled.  It is recorded exactly once; later cancel
# requests are ignored.

__all__ = [
    'Context', 'background', 'with_cancel', 'with_cancel_cause',
    'with_deadline', 'with_timeout', 'cause',
]

# -- Standard library

import logging
import threading
import time

log = logging.getLogger(__name__)

# -- Sigwait

from .errors import ContextCancelled, ContextTimeout
from .meta import awaitable
from .sync import UniversalEvent


class Context(object):
    '''
    A cancellable context.  Don't create instances directly.  Derive them
    from background() using with_cancel(), with_cancel_cause(),
    with_deadline() or with_timeout().
    '''

    def __init__(self, parent=None, *, description='', deadline=None):
        self.parent = parent
        self.description = description
        self._deadline = deadline
        self._done = UniversalEvent()
        self._err = None
        self._cause = None
        self._children = set()
        self._timer = None
        self._lock = threading.Lock()

    def __repr__(self):
        state = 'cancelled' if self.cancelled() else 'active'
        return f'<Context {self.description} [{state}]>'

    @property
    def deadline(self):
        '''
        Absolute time.monotonic() value at which the context times out,
        or None.
        '''
        return self._deadline

    def done(self):
        '''
        Return the UniversalEvent that is set once the context is cancelled.
        '''
        return self._done

    def cancelled(self):
        return self._done.is_set()

    def err(self):
        '''
        None while active.  Afterwards ContextTimeout if the deadline
        passed, ContextCancelled for any other reason.
        '''
        return self._err

    def cause(self):
        '''
        The cause given when the context was cancelled.  Same as err()
        unless a specific cause was supplied.
        '''
        return self._cause

    def wait(self):
        '''
        Wait for the context to be cancelled.
        '''
        self._done.wait()

    @awaitable(wait)
    async def wait(self):
        await self._done.wait()

    def _cancel(self, err, cause=None):
        with self._lock:
            if self._err is not None:
                return False
            self._err = err
            self._cause = err if cause is None else cause
            children, self._children = self._children, set()
            timer, self._timer = self._timer, None

        if timer:
            timer.cancel()
        self._done.set()
        log.debug('%r cancelled: %r', self, self._cause)
        for child in children:
            child._cancel(err, self._cause)
        if self.parent is not None:
            self.parent._remove_child(self)
        return True

    def _add_child(self, child):
        with self._lock:
            if self._err is None:
                self._children.add(child)
                return
            err, cause = self._err, self._cause
        child._cancel(err, cause)

    def _remove_child(self, child):
        with self._lock:
            self._children.discard(child)

    def _arm(self, seconds):
        timer = threading.Timer(seconds, self._cancel, args=(ContextTimeout(),))
        timer.daemon = True
        with self._lock:
            if self._err is not None:
                return
            self._timer = timer
            timer.start()


class _BackgroundContext(Context):
    '''
    Root of all contexts.  It is never cancelled, so it doesn't need to
    track its children.
    '''

    def _add_child(self, child):
        pass

    def _remove_child(self, child):
        pass


_background = _BackgroundContext(description='background')


def background():
    '''
    Return the root context.  It is never cancelled and has no deadline.
    '''
    return _background


def with_cancel_cause(parent, *, description=None):
    '''
    Derive a child of parent.  Returns (ctx, cancel) where cancel(cause=None)
    cancels the child.  cause, if given, must be an exception instance and
    becomes ctx.cause().  Calling cancel() more than once has no effect.
    '''
    if description is None:
        description = f'{parent.description}.with_cancel_cause'
    ctx = Context(parent, description=description, deadline=parent.deadline)
    parent._add_child(ctx)

    def cancel(cause=None):
        if cause is not None and not isinstance(cause, BaseException):
            raise TypeError(f'cancellation cause must be an exception, not {cause!r}')
        ctx._cancel(ContextCancelled(), cause)

    return ctx, cancel


def with_cancel(parent, *, description=None):
    '''
    Derive a child of parent.  Returns (ctx, cancel) where cancel() cancels
    the child.
    '''
    if description is None:
        description = f'{parent.description}.with_cancel'
    ctx, cancel_cause = with_cancel_cause(parent, description=description)

    def cancel():
        cancel_cause()

    return ctx, cancel


def with_deadline(parent, deadline, *, description=None):
    '''
    Derive a child of parent that is cancelled with ContextTimeout once
    time.monotonic() reaches deadline.  If the parent's deadline comes
    sooner, the child simply follows the parent.  Returns (ctx, cancel).
    '''
    if parent.deadline is not None and parent.deadline <= deadline:
        return with_cancel(parent, description=description)

    if description is None:
        description = f'{parent.description}.with_deadline({deadline:.3f})'
    ctx = Context(parent, description=description, deadline=deadline)
    parent._add_child(ctx)
    remaining = deadline - time.monotonic()
    if remaining <= 0:
        ctx._cancel(ContextTimeout())
    else:
        ctx._arm(remaining)

    def cancel():
        ctx._cancel(ContextCancelled())

    return ctx, cancel


def with_timeout(parent, seconds, *, description=None):
    '''
    Derive a child of parent that times out after the given number of
    seconds.  Returns (ctx, cancel).
    '''
    if description is None:
        description = f'{parent.description}.with_timeout({seconds})'
    return with_deadline(parent, time.monotonic() + seconds, description=description)


def cause(ctx):
    '''
    Return the cause of ctx's cancellation or None if it is still active.
    '''
    return ctx.cause()

# sigwait/errors.py
#
# Sigwait specific exceptions

__all__ = [
    'SigwaitError', 'CancelledError', 'ContextCancelled',
    'ContextTimeout', 'SignalCancelled', 'Full',
]

from .util import signal_name


class SigwaitError(Exception):
    '''
    Base class for all Sigwait-related exceptions
    '''


class CancelledError(SigwaitError):
    '''
    Base class for all context-cancellation related exceptions. Every
    cause recorded on a cancelled context is an instance of this class.
    '''


class ContextCancelled(CancelledError):
    '''
    Canonical cause of a context that was cancelled directly, or whose
    scope has ended.
    '''
    def __init__(self, *args):
        super().__init__(*(args or ('context cancelled',)))


class ContextTimeout(CancelledError):
    '''
    Cause of a context cancelled because its deadline passed.
    '''
    def __init__(self, *args):
        super().__init__(*(args or ('context deadline exceeded',)))


class SignalCancelled(ContextCancelled):
    '''
    Cause of a context cancelled because an OS signal was received.
    The .signal attribute holds the signal number.  Since this is a
    ContextCancelled, generic cancellation checks still apply.
    '''
    def __init__(self, signo):
        super().__init__(signo)
        self.signal = signo

    def __str__(self):
        return f'context cancelled ({signal_name(self.signal)})'

    def __repr__(self):
        return f'SignalCancelled({signal_name(self.signal)})'


class Full(SigwaitError):
    '''
    Raised by UniversalQueue.put_nowait() if the queue has no free slot.
    '''

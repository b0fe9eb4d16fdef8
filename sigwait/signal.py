# sigwait/signal.py
#
# Signal delivery: subscriptions, fan-out and the process-wide relay.

__all__ = [
    'Notifier', 'Subscription', 'Broadcaster', 'SignalRelay',
    'default_notifier', 'enable_signal_queues', 'relayable_signals',
]

# -- Standard Library

import signal
import socket
import threading
from abc import ABC, abstractmethod
from collections import Counter
from contextlib import contextmanager

import logging
log = logging.getLogger(__name__)

# -- Sigwait

from .errors import Full
from .queue import UniversalQueue
from .util import signal_name

# Discussion:  Signal handling.
#
# Signal handling in Python is a tricky affair with the main
# restriction that almost nothing useful can be done outside
# of the main execution thread.  Plus, Python only allows a single
# handler per signal, while any number of independent waiters might
# be interested in the same signal at the same time.
#
# The approach taken here is to have signals delivered on a loopback
# socket (using signal.set_wakeup_fd) which is constantly monitored
# by a background thread.  This thread takes received signals and
# broadcasts them to every subscription watching those signal numbers.
# Each subscription owns a single-slot queue.  If a subscriber hasn't
# consumed the previous signal yet, a new one is dropped for that
# subscriber only.  Nothing is consumed on behalf of anyone else.

_UNRELAYABLE = {'SIGKILL', 'SIGSTOP', 'SIGSEGV', 'SIGBUS', 'SIGFPE', 'SIGILL'}


def relayable_signals():
    '''
    Return the signals watched by a subscription that names no signals.
    That's every valid signal except the ones that can't be caught or
    that are raised synchronously by faults in the process itself.
    '''
    return tuple(sorted(signo for signo in signal.valid_signals()
                        if signal_name(signo) not in _UNRELAYABLE))


def _as_signal(signo):
    # Real-time signals and other platform extras have no Signals member
    try:
        return signal.Signals(signo)
    except ValueError:
        return signo


class Subscription(object):
    '''
    A registration with a Notifier.  Received signals show up on the
    .queue attribute, which holds at most one pending signal.  An empty
    set of signal numbers means all signals.  Subscriptions must be
    closed, preferably by using them as a context manager.
    '''

    def __init__(self, notifier, signos):
        self.notifier = notifier
        self.signos = tuple(signos)
        self.queue = UniversalQueue(maxsize=1)

    def __repr__(self):
        names = ' '.join(signal_name(signo) for signo in self.signos) or 'all'
        return f'<Subscription [{names}]>'

    def wants(self, signo):
        return not self.signos or signo in self.signos

    def deliver(self, signo):
        try:
            self.queue.put_nowait(signo)
        except Full:
            log.debug('%r already holds a signal. Dropping %s', self, signal_name(signo))

    def close(self):
        self.notifier.unsubscribe(self)

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    async def __aenter__(self):
        return self.__enter__()

    async def __aexit__(self, *args):
        return self.__exit__(*args)


class Notifier(ABC):
    '''
    Interface of a signal delivery subsystem.
    '''

    @abstractmethod
    def subscribe(self, signos):
        '''
        Return a new Subscription for the given signal numbers.
        '''

    @abstractmethod
    def unsubscribe(self, subscription):
        '''
        Stop delivering to subscription.  Safe to call more than once.
        '''


class Broadcaster(Notifier):
    '''
    In-process fan-out of signals to subscriptions.  Signals are passed
    in explicitly with notify().  Every subscription watching a signal
    receives its own copy.
    '''

    def __init__(self):
        self._subscriptions = set()
        self._lock = threading.Lock()

    def subscribe(self, signos=()):
        sub = Subscription(self, signos)
        with self._lock:
            self._subscriptions.add(sub)
        log.debug('%r subscribed', sub)
        return sub

    def unsubscribe(self, subscription):
        with self._lock:
            if subscription not in self._subscriptions:
                return False
            self._subscriptions.discard(subscription)
        log.debug('%r unsubscribed', subscription)
        return True

    def subscribers(self):
        '''
        Return the number of active subscriptions.
        '''
        with self._lock:
            return len(self._subscriptions)

    def notify(self, signo):
        '''
        Deliver signo to every subscription watching it.  Returns the
        number of subscriptions it was delivered to.
        '''
        with self._lock:
            targets = [sub for sub in self._subscriptions if sub.wants(signo)]
        for sub in targets:
            sub.deliver(signo)
        return len(targets)


class SignalRelay(Broadcaster):
    '''
    A Broadcaster fed by real OS signals.  Only one may exist per
    process.  Use default_notifier() to get it.
    '''

    def __init__(self):
        super().__init__()
        self.watching = Counter()
        self.default_handlers = { }
        self._watch_lock = threading.Lock()

        self._notify_sock, self._wait_sock = socket.socketpair()
        self._notify_sock.setblocking(False)
        try:
            previous = signal.set_wakeup_fd(self._notify_sock.fileno())
        except ValueError as e:
            log.error("Could not set up signal relay.", exc_info=e)
            self._notify_sock.close()
            self._wait_sock.close()
            raise
        if previous != -1:
            log.warning('Signal wakeup fd %d replaced by the signal relay.', previous)
        threading.Thread(target=self._monitor, name='sigwait-relay', daemon=True).start()

    def _monitor(self):
        '''
        Internal thread that watches for signals and dispatches them to subscriptions
        '''
        while True:
            received_sigs = self._wait_sock.recv(1000)
            for signo in received_sigs:
                if self.watching[signo] <= 0:
                    continue
                try:
                    self.notify(_as_signal(signo))
                except Exception as e:
                    log.error("Could not dispatch signal %s.", signal_name(signo), exc_info=e)

    def watch(self, signos):
        '''
        Make sure handlers are installed for a set of signal numbers.
        '''
        installed = []
        with self._watch_lock:
            try:
                for signo in signos:
                    if self.watching[signo] == 0:
                        self.default_handlers[signo] = signal.signal(signo, lambda signo, frame: None)
                    self.watching[signo] += 1
                    installed.append(signo)
            except Exception:
                self._unwatch(installed)
                raise

    def unwatch(self, signos):
        '''
        Release handlers installed by watch()
        '''
        with self._watch_lock:
            self._unwatch(signos)

    def _unwatch(self, signos):
        for signo in signos:
            self.watching[signo] -= 1
            if self.watching[signo] == 0:
                try:
                    signal.signal(signo, self.default_handlers.pop(signo))
                except (TypeError, ValueError) as e:
                    log.warning('Exception %r ignored.', e)

    def subscribe(self, signos=()):
        sub = super().subscribe(signos)
        try:
            self.watch(sub.signos or relayable_signals())
        except Exception as e:
            # Be loud about failures on setup. If error reporting is
            # delayed, an uncaught signal will often cause Python to
            # terminate immediately with no useful diagnostic.
            log.error("Could not install signal handler.", exc_info=e)
            super().unsubscribe(sub)
            raise
        return sub

    def unsubscribe(self, subscription):
        if not super().unsubscribe(subscription):
            return False
        self.unwatch(subscription.signos or relayable_signals())
        return True


_relay = None
_relay_lock = threading.Lock()


def default_notifier():
    '''
    Return the process-wide SignalRelay, creating it on first use.  The
    first call must happen in the main thread.
    '''
    global _relay
    with _relay_lock:
        if _relay is None:
            _relay = SignalRelay()
        return _relay


@contextmanager
def enable_signal_queues(signos):
    '''
    Enable signal relaying on a given set of signals.  This function
    is only needed if waiting on signals is going to happen in a
    different thread than the main thread.  Python signal handlers can
    only be installed in the main thread so you need to do this in the
    main thread first.  For example:

        with enable_signal_queues([signal.SIGINT, signal.SIGTERM]):
            threading.Thread(target=worker).start()
            ...
    '''
    relay = default_notifier()
    relay.watch(signos)
    try:
        yield
    finally:
        relay.unwatch(signos)

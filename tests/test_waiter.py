# test_waiter.py

import asyncio
import os
import signal
import sys
import threading
import time

import pytest

from sigwait import *


class RecordingBroadcaster(Broadcaster):
    '''
    Broadcaster that remembers every subscription it handed out.
    '''
    def __init__(self):
        super().__init__()
        self.handed_out = []

    def subscribe(self, signos=()):
        sub = super().subscribe(signos)
        self.handed_out.append(sub)
        return sub


@pytest.mark.parametrize('signo', [signal.SIGINT, signal.SIGTERM])
def test_wait_returns_signal(notifier, raise_later, signo):
    ctx, cancel = with_timeout(background(), 5.0)
    raise_later(signo)
    assert wait(ctx, signal.SIGINT, signal.SIGTERM, notifier=notifier) == signo
    assert not ctx.cancelled()
    cancel()


def test_wait_cancelled(notifier):
    ctx, cancel = with_cancel(background())
    threading.Timer(0.1, cancel).start()
    start = time.monotonic()
    assert wait(ctx, signal.SIGINT, notifier=notifier) is None
    assert time.monotonic() - start < 2.0


def test_wait_timeout(notifier):
    ctx, cancel = with_timeout(background(), 0.1)
    assert wait(ctx, signal.SIGINT, notifier=notifier) is None
    assert isinstance(ctx.err(), ContextTimeout)


def test_wait_already_cancelled(notifier):
    ctx, cancel = with_cancel(background())
    cancel()
    start = time.monotonic()
    assert wait(ctx, signal.SIGINT, notifier=notifier) is None
    assert time.monotonic() - start < 0.5
    assert notifier.subscribers() == 0


def test_wait_wildcard(notifier, raise_later):
    ctx, cancel = with_timeout(background(), 5.0)
    raise_later(signal.SIGTERM)
    assert wait(ctx, notifier=notifier) == signal.SIGTERM
    cancel()


def test_wait_ignores_other_signals(notifier, raise_later):
    ctx, cancel = with_timeout(background(), 0.3)
    raise_later(signal.SIGTERM)
    assert wait(ctx, signal.SIGINT, notifier=notifier) is None


def test_wait_broadcast(notifier, raise_later):
    results = []
    ctx1, cancel1 = with_timeout(background(), 5.0)
    ctx2, cancel2 = with_timeout(background(), 5.0)

    def waiter(ctx):
        results.append(wait(ctx, signal.SIGINT, notifier=notifier))

    threads = [threading.Thread(target=waiter, args=(ctx,)) for ctx in (ctx1, ctx2)]
    for t in threads:
        t.start()
    raise_later(signal.SIGINT, subscribers=2)
    for t in threads:
        t.join()
    assert results == [signal.SIGINT, signal.SIGINT]
    cancel1()
    cancel2()


def test_wait_releases_subscription():
    notifier = RecordingBroadcaster()
    ctx, cancel = with_timeout(background(), 0.05)
    assert wait(ctx, signal.SIGINT, notifier=notifier) is None
    assert notifier.subscribers() == 0
    notifier.notify(signal.SIGINT)
    assert notifier.handed_out[0].queue.empty()


def test_wait_releases_subscription_on_signal():
    notifier = RecordingBroadcaster()
    ctx, cancel = with_timeout(background(), 5.0)

    def send():
        while notifier.subscribers() == 0:
            time.sleep(0.005)
        notifier.notify(signal.SIGTERM)

    threading.Thread(target=send).start()
    assert wait(ctx, signal.SIGTERM, notifier=notifier) == signal.SIGTERM
    cancel()
    assert notifier.subscribers() == 0
    notifier.notify(signal.SIGTERM)
    assert notifier.handed_out[0].queue.empty()


def test_wait_asyncio(notifier, raise_later):
    async def main():
        ctx, cancel = with_timeout(background(), 5.0)
        raise_later(signal.SIGTERM, delay=0.05)
        signo = await wait(ctx, signal.SIGINT, signal.SIGTERM, notifier=notifier)
        cancel()
        return signo

    assert asyncio.run(main()) == signal.SIGTERM
    assert notifier.subscribers() == 0


def test_wait_asyncio_cancelled_context(notifier):
    async def main():
        ctx, cancel = with_cancel(background())
        asyncio.get_running_loop().call_later(0.05, cancel)
        return await wait(ctx, signal.SIGINT, notifier=notifier)

    assert asyncio.run(main()) is None
    assert notifier.subscribers() == 0


def test_wait_asyncio_task_cancelled(notifier):
    async def main():
        ctx, cancel = with_cancel(background())
        task = asyncio.ensure_future(wait(ctx, signal.SIGINT, notifier=notifier))
        await asyncio.sleep(0.05)
        assert notifier.subscribers() == 1
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        cancel()

    asyncio.run(main())
    assert notifier.subscribers() == 0


def test_wait_asyncio_concurrent(notifier, raise_later):
    async def main():
        ctx, cancel = with_timeout(background(), 5.0)
        raise_later(signal.SIGINT, subscribers=3)
        results = await asyncio.gather(*[wait(ctx, signal.SIGINT, notifier=notifier) for n in range(3)])
        cancel()
        return results

    assert asyncio.run(main()) == [signal.SIGINT] * 3


@pytest.mark.skipif(sys.platform.startswith("win"),
                    reason="Not supported on Windows")
def test_wait_os_signal():
    ctx, cancel = with_timeout(background(), 5.0)

    def send():
        time.sleep(0.1)
        os.kill(os.getpid(), signal.SIGTERM)

    t = threading.Thread(target=send)
    start = time.monotonic()
    t.start()
    signo = wait(ctx, signal.SIGINT, signal.SIGTERM)
    elapsed = time.monotonic() - start
    t.join()
    cancel()
    assert signo == signal.SIGTERM
    assert 0.05 < elapsed < 1.0
    assert default_notifier().subscribers() == 0


@pytest.mark.skipif(sys.platform.startswith("win"),
                    reason="Not supported on Windows")
def test_wait_os_signal_timeout():
    ctx, cancel = with_timeout(background(), 0.1)
    assert wait(ctx, signal.SIGUSR1) is None
    assert default_notifier().watching[signal.SIGUSR1] == 0

@pytest.mark.skipif(sys.platform.startswith("win"),
                    reason="Not supported on Windows")
def test_wait_already_cancelled_os_signal():
    ctx, cancel = with_cancel(background())
    cancel()
    assert wait(ctx, signal.SIGINT) is None
    assert default_notifier().subscribers() == 0


@pytest.mark.skipif(not hasattr(signal, 'SIGRTMIN'),
                    reason="No real-time signals on this platform")
def test_wait_wildcard_os_realtime_signal():
    rtsig = signal.SIGRTMIN + 1
    relay = default_notifier()

    def send(signo):
        while relay.subscribers() == 0:
            time.sleep(0.005)
        os.kill(os.getpid(), signo)

    ctx, cancel = with_timeout(background(), 5.0)
    t = threading.Thread(target=send, args=(rtsig,))
    t.start()
    assert wait(ctx) == rtsig
    t.join()
    cancel()

    # The relay keeps dispatching after a signal without a Signals member
    ctx, cancel = with_timeout(background(), 5.0)
    t = threading.Thread(target=send, args=(signal.SIGUSR1,))
    t.start()
    assert wait(ctx, signal.SIGUSR1) == signal.SIGUSR1
    t.join()
    cancel()
    assert relay.subscribers() == 0

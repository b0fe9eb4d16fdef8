import threading
import time

import pytest

from sigwait import Broadcaster


@pytest.fixture(scope='function')
def notifier():
    return Broadcaster()


@pytest.fixture(scope='function')
def raise_later(notifier):
    '''
    Returns a function that sends a signal through the notifier from a
    background thread once the given number of subscriptions exist.
    '''
    threads = []

    def send(signo, subscribers=1, delay=0.0):
        def run():
            while notifier.subscribers() < subscribers:
                time.sleep(0.005)
            time.sleep(delay)
            notifier.notify(signo)
        t = threading.Thread(target=run, daemon=True)
        t.start()
        threads.append(t)
        return t

    yield send
    for t in threads:
        t.join(timeout=5.0)

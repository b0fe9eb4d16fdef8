# sigwait/util.py

import signal

__all__ = ['signal_name']


def signal_name(signo):
    '''
    Return the symbolic name of a signal number (e.g., 'SIGINT').  Numbers
    that aren't known to the platform are returned as a string.
    '''
    try:
        return signal.Signals(signo).name
    except ValueError:
        return str(signo)

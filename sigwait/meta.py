# sigwait/meta.py
#     ___
#     \./      DANGER:  This module implements some experimental
#  .--.O.--.            metaprogramming techniques involving async/await.
#   \/   \/             If you use it, you might die. No seriously.
#

__all__ = ['iscoroutinefunction', 'awaitable']

# -- Standard Library

from sys import _getframe
import inspect
from functools import wraps, partial

_CO_NESTED = inspect.CO_NESTED
_CO_FROM_COROUTINE = inspect.CO_COROUTINE | inspect.CO_ITERABLE_COROUTINE | inspect.CO_ASYNC_GENERATOR


def _from_coroutine(level=2):
    f_code = _getframe(level).f_code
    if f_code.co_flags & _CO_FROM_COROUTINE:
        return True
    else:
        # It's possible to end up here if a wrapped function is called
        # from a comprehension or generator expression inside a coroutine.
        # For example:
        #
        #   async def coro():
        #        ...
        #        a = [ wait(ctx, signo) for signo in s ]
        #        ...
        #
        # If so, the code object is nested and has a name such as
        # <listcomp> or <genexpr>.
        if (f_code.co_flags & _CO_NESTED and f_code.co_name[0] == '<'):
            return _from_coroutine(level + 2)
        else:
            return False


def iscoroutinefunction(func):
    '''
    Modified test for a coroutine function with awareness of functools.partial
    '''
    if isinstance(func, partial):
        return iscoroutinefunction(func.func)
    if hasattr(func, '__func__'):
        return iscoroutinefunction(func.__func__)
    return inspect.iscoroutinefunction(func) or hasattr(func, '_awaitable')


def awaitable(syncfunc):
    '''
    Decorator that allows an asynchronous function to be paired with a
    synchronous function in a single function call.  The selection of
    which function executes depends on the calling context.  For example:

        def wait(ctx, *signals):                        (A)
            ...

        @awaitable(wait)                                (B)
        async def wait(ctx, *signals):
            ...

    In later code, the wait() function works in either a synchronous or
    an asyncio context:

        def foo():
            signo = wait(ctx, SIGINT)          # Calls (A), blocks the thread

        async def bar():
            signo = await wait(ctx, SIGINT)    # Calls (B)
    '''
    def decorate(asyncfunc):
        if inspect.signature(syncfunc) != inspect.signature(asyncfunc):
            raise TypeError(f'{syncfunc.__name__} and async {asyncfunc.__name__} have different signatures')

        @wraps(asyncfunc)
        def wrapper(*args, **kwargs):
            if _from_coroutine():
                return asyncfunc(*args, **kwargs)
            else:
                return syncfunc(*args, **kwargs)
        wrapper._syncfunc = syncfunc
        wrapper._asyncfunc = asyncfunc
        wrapper._awaitable = True
        wrapper.__doc__ = syncfunc.__doc__ or asyncfunc.__doc__
        return wrapper
    return decorate

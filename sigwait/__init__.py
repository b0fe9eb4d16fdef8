# sigwait/__init__.py

__version__ = '1.0'

from .errors import *
from .context import *
from .sync import *
from .queue import *
from .signal import *
from .waiter import *
from .notify import *

__all__ = [*errors.__all__,
           *context.__all__,
           *sync.__all__,
           *queue.__all__,
           *signal.__all__,
           *waiter.__all__,
           *notify.__all__,
           ]

from threading import Lock

from anyio import Lock as AsyncLock

__all__ = ("AsyncLock", "Lock")

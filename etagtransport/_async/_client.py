import typing as tp

import httpx

from .._controller import Controller
from ._storages import AsyncBaseStorage
from ._transports import AsyncConditionalTransport

__all__ = ("AsyncCacheClient",)


class AsyncCacheClient(httpx.AsyncClient):
    """
    An `httpx.AsyncClient` whose transports revalidate cached responses.

    Accepts every `httpx.AsyncClient` argument plus `storage` and `controller`,
    which are handed to each `AsyncConditionalTransport` the client builds.
    """

    def __init__(
        self,
        *args: tp.Any,
        storage: tp.Optional[AsyncBaseStorage] = None,
        controller: tp.Optional[Controller] = None,
        **kwargs: tp.Any,
    ):
        self._storage = storage
        self._controller = controller
        super().__init__(*args, **kwargs)

    def _init_transport(self, *args, **kwargs) -> AsyncConditionalTransport:  # type: ignore
        _transport = super()._init_transport(*args, **kwargs)
        return AsyncConditionalTransport(
            transport=_transport,
            storage=self._storage,
            controller=self._controller,
        )

    def _init_proxy_transport(self, *args, **kwargs) -> AsyncConditionalTransport:  # type: ignore
        _transport = super()._init_proxy_transport(*args, **kwargs)  # pragma: no cover
        return AsyncConditionalTransport(  # pragma: no cover
            transport=_transport,
            storage=self._storage,
            controller=self._controller,
        )

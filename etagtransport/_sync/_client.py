import typing as tp

import httpx

from .._controller import Controller
from ._storages import BaseStorage
from ._transports import ConditionalTransport

__all__ = ("CacheClient",)


class CacheClient(httpx.Client):
    """
    An `httpx.Client` whose transports revalidate cached responses.

    Accepts every `httpx.Client` argument plus `storage` and `controller`,
    which are handed to each `ConditionalTransport` the client builds.
    """

    def __init__(
        self,
        *args: tp.Any,
        storage: tp.Optional[BaseStorage] = None,
        controller: tp.Optional[Controller] = None,
        **kwargs: tp.Any,
    ):
        self._storage = storage
        self._controller = controller
        super().__init__(*args, **kwargs)

    def _init_transport(self, *args, **kwargs) -> ConditionalTransport:  # type: ignore
        _transport = super()._init_transport(*args, **kwargs)
        return ConditionalTransport(
            transport=_transport,
            storage=self._storage,
            controller=self._controller,
        )

    def _init_proxy_transport(self, *args, **kwargs) -> ConditionalTransport:  # type: ignore
        _transport = super()._init_proxy_transport(*args, **kwargs)  # pragma: no cover
        return ConditionalTransport(  # pragma: no cover
            transport=_transport,
            storage=self._storage,
            controller=self._controller,
        )

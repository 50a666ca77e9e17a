from __future__ import annotations

import logging
import types
import typing as tp

import httpx

from .._controller import Controller
from .._exceptions import BodyError, StorageGetError, StoragePutError
from .._utils import buffered_headers
from ._storages import AsyncBaseStorage, AsyncInMemoryStorage

if tp.TYPE_CHECKING:  # pragma: no cover
    from typing_extensions import Self

logger = logging.getLogger("etagtransport.transport")

__all__ = ("AsyncConditionalTransport",)


def replay(
    response: httpx.Response,
    request: httpx.Request,
    headers: tp.Optional[httpx.Headers] = None,
    extensions: tp.Optional[tp.Dict[str, tp.Any]] = None,
) -> httpx.Response:
    """
    A fresh, unread response over the bytes of an already buffered one.
    """
    return httpx.Response(
        status_code=response.status_code,
        headers=headers if headers is not None else response.headers,
        stream=httpx.ByteStream(response.content),
        extensions={**response.extensions, **(extensions or {})},
        request=request,
    )


class AsyncConditionalTransport(httpx.AsyncBaseTransport):
    """
    An HTTPX Transport that revalidates cached responses with conditional requests.

    Every cacheable request carries an `If-None-Match` header built from the
    stored response, if any. A `304 Not Modified` is answered with the stored
    response, a fresh `200` with an ETag replaces the stored one.

    :param transport: `Transport` that our class wraps in order to add the cache layer on top of
    :type transport: httpx.AsyncBaseTransport
    :param storage: Storage that handles how the responses should be saved, defaults to None
    :type storage: tp.Optional[AsyncBaseStorage], optional
    :param controller: Controller holding the caching rules, defaults to None
    :type controller: tp.Optional[Controller], optional
    :param raise_on_write_error: Raise `StoragePutError` when a response could not be stored
        instead of only reporting it through the `cache_write_error` extension, defaults to False
    :type raise_on_write_error: bool, optional
    """

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport,
        storage: tp.Optional[AsyncBaseStorage] = None,
        controller: tp.Optional[Controller] = None,
        raise_on_write_error: bool = False,
    ) -> None:
        self._transport = transport
        self._storage = storage if storage is not None else AsyncInMemoryStorage()

        if not isinstance(self._storage, AsyncBaseStorage):  # pragma: no cover
            raise TypeError(f"Expected subclass of `AsyncBaseStorage` but got `{storage.__class__.__name__}`")

        self._controller = controller if controller is not None else Controller()
        self._raise_on_write_error = raise_on_write_error

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        """
        Handles HTTP requests while also revalidating cached responses.

        :param request: An HTTP request
        :type request: httpx.Request
        :return: An HTTP response
        :rtype: httpx.Response
        """

        if not self._controller.is_cacheable(request):
            return await self._transport.handle_async_request(request)

        try:
            cached = await self._storage.get(request)
        except Exception as exc:
            raise StorageGetError(f"Could not look up {request.url} in the storage") from exc

        if cached is None:
            logger.debug(f"No cached response found for {request.url}")
        else:
            logger.debug(f"Found a cached response for {request.url}")
            cached = await self._buffer(cached, request)

        prepared = self._controller.prepare_request(request, cached)

        try:
            response = await self._transport.handle_async_request(prepared)
        except Exception:
            if cached is not None:
                await cached.aclose()
            raise

        if cached is not None:
            if response.status_code == 304:
                return await self._from_cache(request, response, cached)

            logger.debug(f"Discarding the cached response for {request.url}, upstream answered {response.status_code}")
            await cached.aclose()

        if self._controller.is_storable(response):
            return await self._store(request, prepared, response, revalidated=cached is not None)

        response.extensions.update({"from_cache": False, "revalidated": cached is not None})
        return response

    async def _buffer(self, response: httpx.Response, request: httpx.Request) -> httpx.Response:
        try:
            content = await response.aread()
        except (httpx.HTTPError, httpx.StreamError) as exc:
            raise BodyError(f"Could not read the response body for {request.url}") from exc
        finally:
            await response.aclose()

        return httpx.Response(
            status_code=response.status_code,
            headers=buffered_headers(response.headers, content),
            content=content,
            extensions=dict(response.extensions),
            request=request,
        )

    async def _from_cache(
        self,
        request: httpx.Request,
        response: httpx.Response,
        cached: httpx.Response,
    ) -> httpx.Response:
        # The 304 body must be consumed so the connection can be reused.
        try:
            await response.aread()
        except (httpx.HTTPError, httpx.StreamError) as exc:
            await cached.aclose()
            raise BodyError(f"Could not drain the revalidation response for {request.url}") from exc
        finally:
            await response.aclose()

        logger.debug(f"Serving {request.url} from the cache")
        return replay(
            cached,
            request,
            headers=self._controller.merge_not_modified_headers(response.headers, cached.headers),
            extensions={"from_cache": True, "revalidated": True},
        )

    async def _store(
        self,
        request: httpx.Request,
        prepared: httpx.Request,
        response: httpx.Response,
        revalidated: bool,
    ) -> httpx.Response:
        buffered = await self._buffer(response, request)

        stored = httpx.Response(
            status_code=buffered.status_code,
            headers=self._controller.snapshot_headers(prepared, buffered.headers),
            content=buffered.content,
            extensions=dict(buffered.extensions),
            request=request,
        )
        result = replay(
            buffered,
            request,
            headers=self._controller.strip_snapshot(buffered.headers),
            extensions={"from_cache": False, "revalidated": revalidated},
        )

        try:
            await self._storage.put(stored)
        except Exception as exc:
            message = f"Could not store the response for {request.url}"
            if self._raise_on_write_error:
                raise StoragePutError(message, response=result) from exc
            logger.warning(f"{message}: {exc!r}")
            error = StoragePutError(message, response=result)
            error.__cause__ = exc
            result.extensions["cache_write_error"] = error
        else:
            logger.debug(f"Stored the response for {request.url}")

        return result

    async def aclose(self) -> None:
        await self._storage.aclose()
        await self._transport.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: tp.Optional[tp.Type[BaseException]] = None,
        exc_value: tp.Optional[BaseException] = None,
        traceback: tp.Optional[types.TracebackType] = None,
    ) -> None:
        await self.aclose()

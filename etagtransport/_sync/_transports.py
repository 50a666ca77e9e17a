from __future__ import annotations

import logging
import types
import typing as tp

import httpx

from .._controller import Controller
from .._exceptions import BodyError, StorageGetError, StoragePutError
from .._utils import buffered_headers
from ._storages import BaseStorage, InMemoryStorage

if tp.TYPE_CHECKING:  # pragma: no cover
    from typing_extensions import Self

logger = logging.getLogger("etagtransport.transport")

__all__ = ("ConditionalTransport",)


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


class ConditionalTransport(httpx.BaseTransport):
    """
    An HTTPX Transport that revalidates cached responses with conditional requests.

    Every cacheable request carries an `If-None-Match` header built from the
    stored response, if any. A `304 Not Modified` is answered with the stored
    response, a fresh `200` with an ETag replaces the stored one.

    :param transport: `Transport` that our class wraps in order to add the cache layer on top of
    :type transport: httpx.BaseTransport
    :param storage: Storage that handles how the responses should be saved, defaults to None
    :type storage: tp.Optional[BaseStorage], optional
    :param controller: Controller holding the caching rules, defaults to None
    :type controller: tp.Optional[Controller], optional
    :param raise_on_write_error: Raise `StoragePutError` when a response could not be stored
        instead of only reporting it through the `cache_write_error` extension, defaults to False
    :type raise_on_write_error: bool, optional
    """

    def __init__(
        self,
        transport: httpx.BaseTransport,
        storage: tp.Optional[BaseStorage] = None,
        controller: tp.Optional[Controller] = None,
        raise_on_write_error: bool = False,
    ) -> None:
        self._transport = transport
        self._storage = storage if storage is not None else InMemoryStorage()

        if not isinstance(self._storage, BaseStorage):  # pragma: no cover
            raise TypeError(f"Expected subclass of `BaseStorage` but got `{storage.__class__.__name__}`")

        self._controller = controller if controller is not None else Controller()
        self._raise_on_write_error = raise_on_write_error

    def handle_request(self, request: httpx.Request) -> httpx.Response:
        """
        Handles HTTP requests while also revalidating cached responses.

        :param request: An HTTP request
        :type request: httpx.Request
        :return: An HTTP response
        :rtype: httpx.Response
        """

        if not self._controller.is_cacheable(request):
            return self._transport.handle_request(request)

        try:
            cached = self._storage.get(request)
        except Exception as exc:
            raise StorageGetError(f"Could not look up {request.url} in the storage") from exc

        if cached is None:
            logger.debug(f"No cached response found for {request.url}")
        else:
            logger.debug(f"Found a cached response for {request.url}")
            cached = self._buffer(cached, request)

        prepared = self._controller.prepare_request(request, cached)

        try:
            response = self._transport.handle_request(prepared)
        except Exception:
            if cached is not None:
                cached.close()
            raise

        if cached is not None:
            if response.status_code == 304:
                return self._from_cache(request, response, cached)

            logger.debug(f"Discarding the cached response for {request.url}, upstream answered {response.status_code}")
            cached.close()

        if self._controller.is_storable(response):
            return self._store(request, prepared, response, revalidated=cached is not None)

        response.extensions.update({"from_cache": False, "revalidated": cached is not None})
        return response

    def _buffer(self, response: httpx.Response, request: httpx.Request) -> httpx.Response:
        try:
            content = response.read()
        except (httpx.HTTPError, httpx.StreamError) as exc:
            raise BodyError(f"Could not read the response body for {request.url}") from exc
        finally:
            response.close()

        return httpx.Response(
            status_code=response.status_code,
            headers=buffered_headers(response.headers, content),
            content=content,
            extensions=dict(response.extensions),
            request=request,
        )

    def _from_cache(
        self,
        request: httpx.Request,
        response: httpx.Response,
        cached: httpx.Response,
    ) -> httpx.Response:
        # The 304 body must be consumed so the connection can be reused.
        try:
            response.read()
        except (httpx.HTTPError, httpx.StreamError) as exc:
            cached.close()
            raise BodyError(f"Could not drain the revalidation response for {request.url}") from exc
        finally:
            response.close()

        logger.debug(f"Serving {request.url} from the cache")
        return replay(
            cached,
            request,
            headers=self._controller.merge_not_modified_headers(response.headers, cached.headers),
            extensions={"from_cache": True, "revalidated": True},
        )

    def _store(
        self,
        request: httpx.Request,
        prepared: httpx.Request,
        response: httpx.Response,
        revalidated: bool,
    ) -> httpx.Response:
        buffered = self._buffer(response, request)

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
            self._storage.put(stored)
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

    def close(self) -> None:
        self._storage.close()
        self._transport.close()

    def __enter__(self) -> Self:
        return self

    def __exit__(
        self,
        exc_type: tp.Optional[tp.Type[BaseException]] = None,
        exc_value: tp.Optional[BaseException] = None,
        traceback: tp.Optional[types.TracebackType] = None,
    ) -> None:
        self.close()

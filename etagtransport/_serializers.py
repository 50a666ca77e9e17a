from __future__ import annotations

import base64
import datetime
import json
import pickle
import typing as tp

import httpx

from ._utils import HEADERS_ENCODING

try:
    import yaml
except ImportError:  # pragma: no cover
    yaml = None  # type: ignore

KNOWN_RESPONSE_EXTENSIONS = ("http_version", "reason_phrase")
DATE_FORMAT = "%a, %d %b %Y %H:%M:%S GMT"

__all__ = ("PickleSerializer", "JSONSerializer", "YAMLSerializer", "BaseSerializer", "Metadata")


class Metadata(tp.TypedDict):
    cache_key: str
    created_at: datetime.datetime


class BaseSerializer:
    def dumps(self, response: httpx.Response, metadata: Metadata) -> tp.Union[str, bytes]:
        raise NotImplementedError()

    def loads(self, data: tp.Union[str, bytes]) -> tp.Tuple[httpx.Response, Metadata]:
        raise NotImplementedError()

    @property
    def is_binary(self) -> bool:
        raise NotImplementedError()


def _response_to_dict(response: httpx.Response, metadata: Metadata) -> tp.Dict[str, tp.Any]:
    return {
        "response": {
            "status": response.status_code,
            "headers": [
                [key.decode(HEADERS_ENCODING), value.decode(HEADERS_ENCODING)] for key, value in response.headers.raw
            ],
            "content": base64.b64encode(response.content).decode("ascii"),
            "extensions": {
                key: value.decode("ascii")
                for key, value in response.extensions.items()
                if key in KNOWN_RESPONSE_EXTENSIONS
            },
        },
        "request": {
            "method": response.request.method,
            "url": str(response.request.url),
        },
        "metadata": {
            "cache_key": metadata["cache_key"],
            "created_at": metadata["created_at"].strftime(DATE_FORMAT),
        },
    }


def _response_from_dict(data: tp.Dict[str, tp.Any]) -> tp.Tuple[httpx.Response, Metadata]:
    response_dict = data["response"]
    request_dict = data["request"]
    metadata_dict = data["metadata"]

    metadata = Metadata(
        cache_key=metadata_dict["cache_key"],
        created_at=datetime.datetime.strptime(metadata_dict["created_at"], DATE_FORMAT).replace(
            tzinfo=datetime.timezone.utc
        ),
    )
    response = httpx.Response(
        status_code=response_dict["status"],
        headers=[
            (key.encode(HEADERS_ENCODING), value.encode(HEADERS_ENCODING)) for key, value in response_dict["headers"]
        ],
        content=base64.b64decode(response_dict["content"].encode("ascii")),
        extensions={
            key: value.encode("ascii")
            for key, value in response_dict["extensions"].items()
            if key in KNOWN_RESPONSE_EXTENSIONS
        },
        request=httpx.Request(request_dict["method"], request_dict["url"]),
    )
    return response, metadata


class PickleSerializer(BaseSerializer):
    """
    A simple pickle-based serializer.
    """

    def dumps(self, response: httpx.Response, metadata: Metadata) -> tp.Union[str, bytes]:
        """
        Dumps the HTTP response and its metadata.

        :param response: An HTTP response, already read
        :type response: httpx.Response
        :param metadata: Additional information about the stored response
        :type metadata: Metadata
        :return: Serialized response
        :rtype: tp.Union[str, bytes]
        """
        return pickle.dumps(_response_to_dict(response, metadata))

    def loads(self, data: tp.Union[str, bytes]) -> tp.Tuple[httpx.Response, Metadata]:
        assert isinstance(data, bytes)
        return _response_from_dict(pickle.loads(data))

    @property
    def is_binary(self) -> bool:
        return True


class JSONSerializer(BaseSerializer):
    """A simple json-based serializer."""

    def dumps(self, response: httpx.Response, metadata: Metadata) -> tp.Union[str, bytes]:
        """
        Dumps the HTTP response and its metadata.

        :param response: An HTTP response, already read
        :type response: httpx.Response
        :param metadata: Additional information about the stored response
        :type metadata: Metadata
        :return: Serialized response
        :rtype: tp.Union[str, bytes]
        """
        return json.dumps(_response_to_dict(response, metadata), indent=4)

    def loads(self, data: tp.Union[str, bytes]) -> tp.Tuple[httpx.Response, Metadata]:
        """
        Loads the HTTP response and its metadata from serialized data.

        :param data: Serialized data
        :type data: tp.Union[str, bytes]
        :return: HTTP response and its metadata
        :rtype: tp.Tuple[httpx.Response, Metadata]
        """
        return _response_from_dict(json.loads(data))

    @property
    def is_binary(self) -> bool:
        return False


class YAMLSerializer(BaseSerializer):
    """A simple yaml-based serializer."""

    def dumps(self, response: httpx.Response, metadata: Metadata) -> tp.Union[str, bytes]:
        if yaml is None:  # pragma: no cover
            raise RuntimeError(
                f"The `{type(self).__name__}` was used, but the required packages were not found. "
                "Check that you have `etagtransport` installed with the `yaml` extension as shown.\n"
                "```pip install etagtransport[yaml]```"
            )
        return yaml.safe_dump(_response_to_dict(response, metadata), sort_keys=False)

    def loads(self, data: tp.Union[str, bytes]) -> tp.Tuple[httpx.Response, Metadata]:
        """
        Loads the HTTP response and its metadata from serialized data.

        :param data: Serialized data
        :type data: tp.Union[str, bytes]
        :raises RuntimeError: When used without the `yaml` extension installed
        :return: HTTP response and its metadata
        :rtype: tp.Tuple[httpx.Response, Metadata]
        """
        if yaml is None:  # pragma: no cover
            raise RuntimeError(
                f"The `{type(self).__name__}` was used, but the required packages were not found. "
                "Check that you have `etagtransport` installed with the `yaml` extension as shown.\n"
                "```pip install etagtransport[yaml]```"
            )
        return _response_from_dict(yaml.safe_load(data))

    @property
    def is_binary(self) -> bool:
        return False

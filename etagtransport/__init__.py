from etagtransport._async._client import AsyncCacheClient as AsyncCacheClient
from etagtransport._async._mock import MockAsyncTransport as MockAsyncTransport
from etagtransport._async._storages import (
    AsyncBaseStorage as AsyncBaseStorage,
    AsyncFileStorage as AsyncFileStorage,
    AsyncInMemoryStorage as AsyncInMemoryStorage,
    AsyncRedisStorage as AsyncRedisStorage,
    AsyncS3Storage as AsyncS3Storage,
    AsyncSQLiteStorage as AsyncSQLiteStorage,
)
from etagtransport._async._transports import AsyncConditionalTransport as AsyncConditionalTransport
from etagtransport._controller import (
    CACHEABLE_METHODS as CACHEABLE_METHODS,
    EXCLUDED_PATHS as EXCLUDED_PATHS,
    STORABLE_STATUS_CODES as STORABLE_STATUS_CODES,
    Controller as Controller,
)
from etagtransport._exceptions import (
    BodyError as BodyError,
    CacheError as CacheError,
    StorageError as StorageError,
    StorageGetError as StorageGetError,
    StoragePutError as StoragePutError,
)
from etagtransport._hashing import VARY_HEADERS as VARY_HEADERS, etag_hash as etag_hash, hash_token as hash_token
from etagtransport._headers import (
    USER_AGENT_REPLACEMENTS as USER_AGENT_REPLACEMENTS,
    UserAgentReplacer as UserAgentReplacer,
    parse_vary as parse_vary,
)
from etagtransport._serializers import (
    BaseSerializer as BaseSerializer,
    JSONSerializer as JSONSerializer,
    Metadata as Metadata,
    PickleSerializer as PickleSerializer,
    YAMLSerializer as YAMLSerializer,
)
from etagtransport._sync._client import CacheClient as CacheClient
from etagtransport._sync._mock import MockTransport as MockTransport
from etagtransport._sync._storages import (
    BaseStorage as BaseStorage,
    FileStorage as FileStorage,
    InMemoryStorage as InMemoryStorage,
    RedisStorage as RedisStorage,
    S3Storage as S3Storage,
    SQLiteStorage as SQLiteStorage,
)
from etagtransport._sync._transports import ConditionalTransport as ConditionalTransport

__all__ = (
    ## Transports
    "AsyncConditionalTransport",
    "ConditionalTransport",
    ## Clients
    "AsyncCacheClient",
    "CacheClient",
    ## Controller
    "Controller",
    "CACHEABLE_METHODS",
    "EXCLUDED_PATHS",
    "STORABLE_STATUS_CODES",
    ## Hashing and headers
    "VARY_HEADERS",
    "etag_hash",
    "hash_token",
    "USER_AGENT_REPLACEMENTS",
    "UserAgentReplacer",
    "parse_vary",
    ## Storages
    "AsyncBaseStorage",
    "AsyncFileStorage",
    "AsyncInMemoryStorage",
    "AsyncRedisStorage",
    "AsyncS3Storage",
    "AsyncSQLiteStorage",
    "BaseStorage",
    "FileStorage",
    "InMemoryStorage",
    "RedisStorage",
    "S3Storage",
    "SQLiteStorage",
    ## Serializers
    "BaseSerializer",
    "JSONSerializer",
    "Metadata",
    "PickleSerializer",
    "YAMLSerializer",
    ## Exceptions
    "CacheError",
    "StorageError",
    "StorageGetError",
    "StoragePutError",
    "BodyError",
    ## Testing
    "MockAsyncTransport",
    "MockTransport",
)

__version__ = "0.1.0"

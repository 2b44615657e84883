"""
Exceptions for the cached_attribute package.
"""

__all__ = [
    'CachedAttributeError',
    'CacheStoreError',
    'InvalidStoreError',
    'KeyEncodingError',
    'ConfigException',
    'InvalidConfigError',
    'MissingConfigItemError',
]


class CachedAttributeError(Exception):
    """Base exception for errors raised by this package"""


class CacheStoreError(CachedAttributeError):
    """Raised when the cache store could not be used (i.e., the cache is unavailable)"""

    def __init__(self, key: str, operation: str, error: BaseException):
        self.key = key
        self.operation = operation
        self.error = error

    def __str__(self) -> str:
        return f'Cache store {self.operation} failed for key={self.key!r}: [{type(self.error).__name__}] {self.error}'


class InvalidStoreError(CachedAttributeError, TypeError):
    """Raised when an object that does not satisfy the cache store contract is provided as a cache"""

    def __init__(self, store, missing):
        self.store = store
        self.missing = missing

    def __str__(self) -> str:
        return (
            f'Invalid cache store={self.store!r} - missing required method(s): {", ".join(self.missing)}'
            ' (expected get(key, ttl, recompute), delete(key), and set(key, value, ttl) or put(key, value, ttl))'
        )


class KeyEncodingError(CachedAttributeError, TypeError):
    """Raised when a value cannot be encoded as cache key material"""

    def __init__(self, value):
        self.value = value

    def __str__(self) -> str:
        return (
            f'Unable to encode value of type={type(self.value).__qualname__} as cache key material - define a'
            ' __cache_key__ method that returns a supported value, or provide an identifier'
        )


# region Config Exceptions


class ConfigException(CachedAttributeError):
    """Base exception for config-related errors"""


class InvalidConfigError(ConfigException):
    """Raised when invalid config items are provided when initializing or updating a ConfigSection"""


class MissingConfigItemError(ConfigException, AttributeError):
    """Raised if a required config item is accessed when no value was provided for it"""


# endregion

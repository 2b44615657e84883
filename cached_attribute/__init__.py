"""
A ``cached_attribute`` decorator that transparently caches the results of expensive, deterministic methods in an
external cache store, and memoizes them in the objects that own those methods.

Example::

    >>> from cached_attribute import cached_attribute, MemoryStore, set_default_store
    >>> set_default_store(MemoryStore())
    >>>
    >>> class Account:
    ...     def __init__(self, id):
    ...         self.id = id
    ...
    ...     @cached_attribute(ttl=60)
    ...     def balance(self):
    ...         ...
    ...
    ...     @cached_attribute(memoize=False)
    ...     def statement(self, year, month):
    ...         ...
"""

from .__version__ import __title__, __description__, __version__
from .config import CachingConfig, configure, get_config, reset_config, load_config_file
from .config import set_default_store, get_default_store
from .decorate import cached_attribute, CachedAttribute, BoundCachedAttribute, AttributeSpec, DEFAULT
from .exceptions import CachedAttributeError, CacheStoreError, InvalidStoreError, KeyEncodingError
from .exceptions import ConfigException, InvalidConfigError, MissingConfigItemError
from .keys import build_key
from .mixins import CachedAttributeMixin, clear_memoized_attributes, get_cached_attribute_names
from .stores import CacheStore, MemoryStore, FSStore, PutStoreAdapter, as_store

"""
The cache store contract used by :func:`cached_attribute<.decorate.cached_attribute>`, and reference implementations
of it.

A store must provide:
  - ``get(key, ttl, recompute)``: return the live value stored for ``key``, or call ``recompute()`` exactly once,
    store its result with an expiry of ``now + ttl``, and return it
  - ``delete(key)``: remove any entry for ``key`` (deleting a missing key is not an error)
  - ``set(key, value, ttl)`` (or ``put``): unconditionally store ``value`` for ``key`` with the given TTL

Stores are not required to coalesce concurrent misses for the same key.
"""

from __future__ import annotations

import json
import logging
import time
from abc import ABC, abstractmethod
from pathlib import Path
from threading import RLock
from typing import Any, Callable, TypeVar, Union
from urllib.parse import quote as url_quote

from cachetools import TLRUCache
from wrapt import synchronized

from .exceptions import InvalidStoreError

__all__ = ['CacheStore', 'MemoryStore', 'FSStore', 'PutStoreAdapter', 'as_store']
log = logging.getLogger(__name__)

T = TypeVar('T')
Recompute = Callable[[], T]


class CacheStore(ABC):
    """Base class for cache stores.  Stores do not need to extend this class, but they must implement its methods."""

    @abstractmethod
    def get(self, key: str, ttl: float, recompute: Recompute) -> T:
        raise NotImplementedError

    @abstractmethod
    def delete(self, key: str):
        raise NotImplementedError

    @abstractmethod
    def set(self, key: str, value: Any, ttl: float):
        raise NotImplementedError


class _Entry:
    __slots__ = ('value', 'ttl', 'created')

    def __init__(self, value, ttl: float, created: float):
        self.value = value
        self.ttl = ttl
        self.created = created

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__}[ttl={self.ttl}, created={self.created}]>'


def _entry_expiry(key: str, entry: _Entry, now: float) -> float:
    return now + entry.ttl


class MemoryStore(CacheStore):
    """
    An in-process store with per-entry expiration, backed by a :class:`cachetools.TLRUCache`.  Expired entries are
    purged lazily, and entries are evicted by the TLRU policy when ``maxsize`` is reached.

    The outcome of the most recent :meth:`.get` is available via :attr:`.last_hit`, and the time that each entry was
    stored can be retrieved via :meth:`.set_time`.
    """

    def __init__(self, maxsize: int = 4096, timer: Callable[[], float] = time.monotonic):
        """
        :param maxsize: The maximum number of entries to hold
        :param timer: The clock used to compute and check expiration times
        """
        self._timer = timer
        self._data = TLRUCache(maxsize, _entry_expiry, timer)
        self.last_hit = False
        self.last_set = None
        self.hits = 0
        self.misses = 0

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__}[entries={len(self)}, hits={self.hits}, misses={self.misses}]>'

    def get(self, key: str, ttl: float, recompute: Recompute) -> T:
        # The lock is not held while recompute runs, so concurrent misses for the same key may each recompute
        if (entry := self._lookup(key)) is not None:
            return entry.value

        value = recompute()
        self.set(key, value, ttl)
        return value

    @synchronized
    def _lookup(self, key: str) -> _Entry | None:
        try:
            entry = self._data[key]
        except KeyError:
            self.last_hit = False
            self.misses += 1
            log.debug(f'Cache miss for {key=}')
            return None
        else:
            self.last_hit = True
            self.hits += 1
            log.log(9, f'Cache hit for {key=}')
            return entry

    @synchronized
    def set(self, key: str, value: Any, ttl: float):
        self._data.pop(key, None)  # TLRUCache skips storing already-expired items without removing the old value
        self.last_set = now = self._timer()
        self._data[key] = _Entry(value, ttl, now)

    put = set

    @synchronized
    def delete(self, key: str):
        self._data.pop(key, None)

    @synchronized
    def set_time(self, key: str) -> float | None:
        """
        :param key: A cache key
        :return: The time at which the live entry for the given key was stored, or None if there is no live entry
        """
        try:
            return self._data[key].created
        except KeyError:
            return None

    @synchronized
    def clear(self):
        self._data.clear()

    @synchronized
    def __contains__(self, key: str) -> bool:
        return key in self._data

    @synchronized
    def __len__(self) -> int:
        self._data.expire()
        return len(self._data)


def _is_envelope(entry) -> bool:
    try:
        return isinstance(entry['key'], str) and isinstance(entry['expires'], (int, float)) and 'value' in entry
    except (TypeError, KeyError):
        return False


class FSStore(CacheStore):
    """
    A file system store that writes one JSON file per key.  Each file contains the (optionally dumped) value along
    with the time at which it was stored and the time at which it expires.  Expired files are removed when they are
    encountered.  Entries persist across processes, as long as the same directory is used.

    Values are always returned in the form that they have after being stored as JSON (and passed to ``loader``),
    even on a miss, so tuples are returned as lists and non-string mapping keys are returned as strings.
    """

    def __init__(
        self,
        cache_dir: Union[str, Path],
        prefix: str = None,
        ext: str = 'json',
        dumper: Callable[[Any], Any] = None,
        loader: Callable[[Any], Any] = None,
        timer: Callable[[], float] = time.time,
    ):
        """
        :param cache_dir: The directory in which cache files should be stored (created if it does not exist)
        :param prefix: A prefix to add to each cache file's name
        :param ext: The extension to use for cache files
        :param dumper: A function that converts values to JSON-serializable values before they are stored
        :param loader: A function that reverses ``dumper`` when values are loaded
        :param timer: The wall clock used to compute and check expiration times
        """
        self.cache_dir = Path(cache_dir).expanduser()
        if self.cache_dir.exists() and not self.cache_dir.is_dir():
            raise ValueError(f'Invalid cache_dir={self.cache_dir.as_posix()!r} - it is not a directory')
        self.cache_dir.mkdir(parents=True, exist_ok=True)
        self.prefix = prefix or ''
        self._ext = ext
        self.dumper = dumper
        self.loader = loader
        self._timer = timer
        self._lock = RLock()
        self.last_hit = False

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__}[{self.cache_dir.as_posix()}]>'

    @property
    def ext(self) -> str:
        return ('.' + self._ext) if self._ext else ''

    def path_for_key(self, key: str) -> Path:
        name = url_quote(key.replace('::', '__'), safe='')
        return self.cache_dir.joinpath(f'{self.prefix}{name}{self.ext}')

    def _read(self, key: str) -> dict[str, Any] | None:
        path = self.path_for_key(key)
        with self._lock:
            try:
                with path.open('r', encoding='utf-8') as f:
                    entry = json.load(f)
            except FileNotFoundError:
                log.log(9, f'No cached value existed for {key=} at {path.as_posix()}')
                return None
            except ValueError as e:
                log.warning(f'Discarding unreadable cache file for {key=} at {path.as_posix()}: {e}')
                path.unlink(missing_ok=True)
                return None

            if not _is_envelope(entry):
                log.warning(f'Discarding cache file with an unexpected structure for {key=} at {path.as_posix()}')
                path.unlink(missing_ok=True)
                return None
            elif entry['key'] != key or entry['expires'] <= self._timer():
                log.debug(f'Removing expired or mismatched cache file for {key=} at {path.as_posix()}')
                path.unlink(missing_ok=True)
                return None

        return entry

    def _load_value(self, entry: dict[str, Any]):
        value = entry['value']
        return self.loader(value) if self.loader else value

    def get(self, key: str, ttl: float, recompute: Recompute) -> T:
        if (entry := self._read(key)) is not None:
            self.last_hit = True
            log.log(9, f'Returning value for {key=} from {self.path_for_key(key).as_posix()}')
            return self._load_value(entry)

        self.last_hit = False
        log.debug(f'Cache miss for {key=}')
        return self._load_value(json.loads(self._write(key, recompute(), ttl)))

    def set(self, key: str, value: Any, ttl: float):
        self._write(key, value, ttl)

    put = set

    def _write(self, key: str, value: Any, ttl: float) -> str:
        path = self.path_for_key(key)
        now = self._timer()
        entry = {
            'key': key,
            'created': now,
            'expires': now + ttl,
            'value': self.dumper(value) if self.dumper else value,
        }
        data = json.dumps(entry)
        tmp_path = path.with_name(path.name + '.tmp')
        log.log(9, f'Storing value for {key=} in {path.as_posix()}')
        with self._lock:
            tmp_path.write_text(data, encoding='utf-8')
            tmp_path.replace(path)
        return data

    def delete(self, key: str):
        with self._lock:
            self.path_for_key(key).unlink(missing_ok=True)

    def set_time(self, key: str) -> float | None:
        if (entry := self._read(key)) is not None:
            return entry.get('created')
        return None

    def keys(self) -> list[str]:
        """The keys of all live entries in this store"""
        with self._lock:
            paths = [p for p in self.cache_dir.iterdir() if p.is_file() and p.name.endswith(self.ext)]
            keys = []
            for path in paths:
                if not path.name.startswith(self.prefix):
                    continue
                try:
                    key = json.loads(path.read_text('utf-8'))['key']
                except (OSError, ValueError, KeyError, TypeError):
                    continue
                if isinstance(key, str) and self._read(key) is not None:
                    keys.append(key)
            return keys


class PutStoreAdapter(CacheStore):
    """Adapts a store that provides ``put(key, value, ttl)`` instead of ``set(key, value, ttl)``."""

    def __init__(self, store):
        self.store = store

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__}[{self.store!r}]>'

    def get(self, key: str, ttl: float, recompute: Recompute) -> T:
        return self.store.get(key, ttl, recompute)

    def delete(self, key: str):
        self.store.delete(key)

    def set(self, key: str, value: Any, ttl: float):
        self.store.put(key, value, ttl)


def _has_method(obj, name: str) -> bool:
    return callable(getattr(obj, name, None))


def as_store(obj) -> CacheStore:
    """
    :param obj: An object that satisfies the cache store contract
    :return: The given object, or an adapter for it if it uses ``put`` instead of ``set``
    :raises: :class:`InvalidStoreError` if the given object does not satisfy the store contract
    """
    if isinstance(obj, CacheStore):
        return obj

    missing = [name for name in ('get', 'delete') if not _has_method(obj, name)]
    if _has_method(obj, 'set'):
        setter = 'set'
    elif _has_method(obj, 'put'):
        setter = 'put'
    else:
        setter = None
        missing.append('set/put')

    if missing:
        raise InvalidStoreError(obj, missing)
    return PutStoreAdapter(obj) if setter == 'put' else obj

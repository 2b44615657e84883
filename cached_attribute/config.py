"""
Process-wide configuration for cached attributes.

The :class:`ConfigSection` class is a base class for configuration classes, and the :class:`ConfigItem` descriptor is
used to define each configurable option in subclasses of ConfigSection.  :class:`CachingConfig` holds the defaults
that are used when a cached attribute does not specify its own options, including the default cache store.

The process-wide config is initialized explicitly via :func:`configure` (or :func:`load_config_file`), which may be
called before or after classes with cached attributes are defined, since the default store is resolved when a cached
attribute is called.
"""

from __future__ import annotations

import logging
from collections import ChainMap
from datetime import timedelta
from pathlib import Path
from threading import RLock
from typing import Union, TypeVar, Callable, Iterable, Any, Mapping, Generic, Type, overload

import yaml

from .exceptions import InvalidConfigError, MissingConfigItemError
from .stores import CacheStore, as_store

__all__ = [
    'ConfigItem',
    'ConfigSection',
    'CachingConfig',
    'normalize_ttl',
    'get_config',
    'configure',
    'reset_config',
    'set_default_store',
    'get_default_store',
    'load_config_file',
    'DEFAULT_TTL',
]
log = logging.getLogger(__name__)

CV = TypeVar('CV')
DV = TypeVar('DV')
ConfigValue = Union[CV, DV]
ConfigMap = Union[Mapping[str, Any], 'ConfigSection', None]
TTL = Union[int, float, timedelta]

DEFAULT_TTL = 300
_NotSet = object()


def normalize_ttl(ttl: TTL) -> float:
    """
    :param ttl: A time-to-live, in seconds, or as a timedelta
    :return: The TTL in seconds
    :raises: :class:`ValueError` if the TTL is not positive, :class:`TypeError` if it is not a number or timedelta
    """
    if isinstance(ttl, timedelta):
        seconds = ttl.total_seconds()
    elif isinstance(ttl, (int, float)) and not isinstance(ttl, bool):
        seconds = float(ttl)
    else:
        raise TypeError(f'Invalid {ttl=} - expected a number of seconds or a timedelta')

    if seconds <= 0:
        raise ValueError(f'Invalid {ttl=} - it must be greater than 0')
    return seconds


def _store_or_none(store) -> CacheStore | None:
    return None if store is None else as_store(store)


def _strict_bool(value) -> bool:
    if isinstance(value, bool):
        return value
    raise TypeError(f'Invalid {value=} - expected True or False')


class ConfigItem(Generic[CV, DV]):
    __slots__ = ('name', 'type', 'default')

    def __init__(self, default: DV = _NotSet, type: Callable[..., CV] = None):  # noqa
        self.type = type
        self.default = default

    def __set_name__(self, owner: Type[ConfigSection], name: str):
        self.name = name
        owner._config_items_[name] = self

    @overload
    def __get__(self, instance: None, owner: Type[ConfigSection]) -> ConfigItem[CV, DV]:
        ...

    @overload
    def __get__(self, instance: ConfigSection, owner: Type[ConfigSection]) -> ConfigValue:
        ...

    def __get__(self, instance, owner):
        try:
            return instance.__dict__[self.name]
        except AttributeError:  # instance is None
            return self
        except KeyError as e:
            if self.default is not _NotSet:
                return self.default
            raise MissingConfigItemError(self.name) from e

    def convert(self, value) -> ConfigValue:
        if self.type is None:
            return value
        try:
            return self.type(value)
        except (TypeError, ValueError) as e:
            raise InvalidConfigError(f'Invalid value for {self.name!r}: {e}') from e

    def __set__(self, instance: ConfigSection, value: ConfigValue):
        instance.__dict__[self.name] = self.convert(value)

    def __delete__(self, instance: ConfigSection):
        try:
            del instance.__dict__[self.name]
        except KeyError as e:
            raise AttributeError(f'No {self.name!r} config was stored for {instance}') from e

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__}({self.default!r}, type={self.type!r})>'


class ConfigMeta(type):
    """
    Metaclass for ConfigSections.  Necessary to initialize the ``_config_items_`` dict for ConfigItem registration
    because the contents of a class is evaluated before ``__init_subclass__`` is called.
    """
    _config_items_: dict[str, ConfigItem]

    @classmethod
    def __prepare__(mcs, name: str, bases: Iterable[type], **kwargs) -> dict[str, Any]:
        """Called before ``__new__`` and before evaluating the contents of a class."""
        config_items = {}
        for base in bases:
            if isinstance(base, mcs):
                config_items.update(base._config_items_)
        return {'_config_items_': config_items}


class ConfigSection(metaclass=ConfigMeta):
    _config_items_: dict[str, ConfigItem]

    def __init__(self, config: ConfigMap = None, **kwargs):
        self.update(config, **kwargs)

    def update(self, config: ConfigMap = None, **kwargs):
        """
        Update this section with the given content.  If any of the provided keys are not expected, or any of
        the provided values are invalid, then an :class:`InvalidConfigError` will be raised, and no values will be
        changed.

        :param config: A dict or other mapping containing values that should be used in this section
        :param kwargs: Additional keyword arguments for values that should be used in this section
        """
        if isinstance(config, ConfigSection):
            config = config.__dict__
        if not (config_map := ChainMap(kwargs, config) if config and kwargs else (config or kwargs)):
            return
        if bad := set(config_map).difference(self._config_items_):
            raise InvalidConfigError(f'Invalid configuration - unsupported options: {", ".join(sorted(bad))}')
        converted = {key: self._config_items_[key].convert(val) for key, val in config_map.items()}
        self.__dict__.update(converted)

    def __contains__(self, key: str) -> bool:
        """True if the given key is a config item in this section and it has a non-default value"""
        return key in self.__dict__

    def __getitem__(self, key: str):
        if key not in self._config_items_:
            raise KeyError(key)
        return getattr(self, key)

    def as_dict(self, include_defaults: bool = True) -> dict[str, Any]:
        keys = set(self._config_items_).union(self.__dict__) if include_defaults else set(self.__dict__)
        return {key: getattr(self, key) for key in keys}

    def __repr__(self) -> str:
        settings = ', '.join(f'{k}={v!r}' for k, v in sorted(self.as_dict().items()))
        return f'<{self.__class__.__name__}({settings})>'


class CachingConfig(ConfigSection):
    ttl: float = ConfigItem(float(DEFAULT_TTL), type=normalize_ttl)
    memoize: bool = ConfigItem(True, type=_strict_bool)
    store: CacheStore | None = ConfigItem(None, type=_store_or_none)


# region Process-Wide Config

_config: CachingConfig | None = None
_config_lock = RLock()


def get_config() -> CachingConfig:
    global _config
    if _config is None:
        with _config_lock:
            if _config is None:
                _config = CachingConfig()
    return _config


def configure(config: ConfigMap = None, **kwargs) -> CachingConfig:
    """
    Update the process-wide config that provides defaults for cached attributes.

    :param config: A mapping of option names to values (``ttl``, ``memoize``, ``store``)
    :param kwargs: Additional options
    :return: The updated process-wide config
    """
    with _config_lock:
        config_obj = get_config()
        config_obj.update(config, **kwargs)
    log.debug(f'Updated cached attribute config: {config_obj}')
    return config_obj


def reset_config():
    """Restore the process-wide config to its initial state (no default store)."""
    global _config
    with _config_lock:
        _config = None


def set_default_store(store) -> CacheStore | None:
    return configure(store=store).store


def get_default_store() -> CacheStore | None:
    return get_config().store


def load_config_file(path: Union[str, Path]) -> CachingConfig:
    """
    Update the process-wide config using the contents of the given YAML file.  The default store cannot be specified
    in a file - use :func:`set_default_store` for that.

    :param path: Path to a YAML file containing a mapping of option names to values
    :return: The updated process-wide config
    """
    path = Path(path).expanduser()
    with path.open('r', encoding='utf-8') as f:
        data = yaml.safe_load(f)

    if data is None:
        data = {}
    elif not isinstance(data, Mapping):
        raise InvalidConfigError(f'Invalid configuration in {path.as_posix()} - expected a mapping of options')
    elif 'store' in data:
        raise InvalidConfigError(f'Invalid configuration in {path.as_posix()} - the store cannot be set from a file')

    log.debug(f'Loading cached attribute config from {path.as_posix()}')
    return configure(data)


# endregion

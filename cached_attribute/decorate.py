"""
The ``cached_attribute`` decorator, which wraps an expensive, deterministic method so that its results are stored in
an external cache store, and optionally memoized in the object that owns the method.

Example::

    >>> class Report:
    ...     def __init__(self, id):
    ...         self.id = id
    ...
    ...     @cached_attribute(ttl=60, cache=MemoryStore())
    ...     def totals(self):
    ...         ...
    ...
    >>> report = Report(5)
    >>> report.totals()             # store miss -> computed and stored; memoized in ``report``
    >>> report.totals()             # served from the memo slot without accessing the store
    >>> report.totals.invalidate()  # deletes the store entry (the memoized value is not affected)
    >>> report.totals.refresh()     # recomputes and overwrites the store entry

Calls without arguments are keyed by the identity of the object (``obj.id`` by default, or the result of the
``identifier`` function), while calls with arguments are keyed by the arguments.

When memoization is enabled, the per-object memo slot holds a single value for each cached attribute.  It is only
consulted for calls without arguments, but the result of every call is written to it, so a call with arguments
replaces the value that later calls without arguments will return.  The memo slot is never cleared by
:meth:`~BoundCachedAttribute.invalidate` or :meth:`~BoundCachedAttribute.refresh`; use
:meth:`~BoundCachedAttribute.clear_memo` to clear it explicitly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from functools import update_wrapper
from inspect import Signature
from typing import TypeVar, Callable, ParamSpec, Generic, Any, Union

from .config import get_config, normalize_ttl, TTL
from .core.introspection import split_arg_vals
from .exceptions import CacheStoreError
from .keys import build_key
from .stores import CacheStore, as_store

__all__ = ['cached_attribute', 'CachedAttribute', 'BoundCachedAttribute', 'AttributeSpec', 'DEFAULT']
log = logging.getLogger(__name__)

P = ParamSpec('P')
T = TypeVar('T')
Obj = TypeVar('Obj')
Func = Union[Callable[P, T], classmethod]
Identifier = Callable[[Any], Any]
_NOT_FOUND = object()


class _DefaultStore:
    __slots__ = ()

    def __repr__(self) -> str:
        return 'DEFAULT'


#: Indicates that the process-wide default store should be used, if one has been configured
DEFAULT = _DefaultStore()


def default_identifier(obj) -> Any:
    """The identity of an object is its ``id`` attribute; the identity of a class is its fully qualified name."""
    if isinstance(obj, type):
        return f'{obj.__module__}.{obj.__qualname__}'
    return obj.id


@dataclass(frozen=True)
class AttributeSpec:
    """Immutable configuration for a single cached attribute."""

    name: str
    ttl: float
    cache: Union[CacheStore, _DefaultStore, None] = DEFAULT
    identifier: Identifier = default_identifier
    memoize: bool = True
    class_level: bool = False

    def __post_init__(self):
        object.__setattr__(self, 'ttl', normalize_ttl(self.ttl))
        if self.cache is not None and self.cache is not DEFAULT:
            object.__setattr__(self, 'cache', as_store(self.cache))
        if not callable(self.identifier):
            raise TypeError(f'Invalid identifier={self.identifier!r} for {self.name} - it must be callable')
        if not isinstance(self.memoize, bool):
            raise TypeError(f'Invalid memoize={self.memoize!r} for {self.name} - expected True or False')

    @property
    def memo_attr(self) -> str:
        return f'_memo__{self.name}'

    def resolve_store(self) -> CacheStore | None:
        """The store configured for this attribute, the process-wide default store, or None if caching is disabled"""
        if self.cache is DEFAULT:
            return get_config().store
        return self.cache


class _Recompute(Generic[T]):
    """
    The recompute callback that is passed to a store.  The wrapped method is called at most once, even if a store
    calls this more than once, and any exception that it raised is retained so that it is not mistaken for an error
    in the store.
    """
    __slots__ = ('func', 'args', 'kwargs', 'value', 'error')

    def __init__(self, func: Callable[..., T], args, kwargs):
        self.func = func
        self.args = args
        self.kwargs = kwargs
        self.value = _NOT_FOUND
        self.error = None

    def __call__(self) -> T:
        if self.error is not None:
            raise self.error
        elif self.value is _NOT_FOUND:
            try:
                self.value = self.func(*self.args, **self.kwargs)
            except Exception as e:
                self.error = e
                raise
        return self.value


class CachedAttribute(Generic[P, T]):
    __slots__ = ('func', 'sig', 'spec', '__dict__')

    def __init__(
        self,
        func: Func,
        *,
        ttl: TTL = None,
        cache: Union[CacheStore, _DefaultStore, None] = DEFAULT,
        identifier: Identifier = None,
        memoize: bool = None,
    ):
        if isinstance(func, classmethod):
            class_level = True
            func = func.__func__
        else:
            class_level = False

        config = get_config()
        self.func = func
        self.sig = Signature.from_callable(func)
        self.spec = AttributeSpec(
            func.__name__,
            config.ttl if ttl is None else ttl,
            cache,
            identifier or default_identifier,
            config.memoize if memoize is None else memoize,
            class_level,
        )
        update_wrapper(self, func)
        log.log(19, f'Decorated {func.__qualname__} with {self.spec}')

    def __set_name__(self, owner, name: str):
        if name != self.spec.name:
            self.spec = replace(self.spec, name=name)

    def __get__(self, instance, owner) -> Union[CachedAttribute[P, T], BoundCachedAttribute[P, T]]:
        if self.spec.class_level:
            instance = owner  # This imitates the behavior of classmethod.__get__
        elif instance is None:
            return self
        return BoundCachedAttribute(self, instance)

    def __repr__(self) -> str:
        return f'<{self.__class__.__name__}[{self.func.__qualname__}]>'

    # region Public Operations

    def __call__(self, obj: Obj, *args: P.args, **kwargs: P.kwargs) -> T:
        return self.get(obj, *args, **kwargs)

    def get(self, obj: Obj, *args: P.args, **kwargs: P.kwargs) -> T:
        """
        Retrieve the value of this attribute for the given object and arguments, from the object's memo slot, the
        cache store, or by calling the wrapped method, in that order.
        """
        if not self.spec.memoize:
            return self._get_or_compute(obj, args, kwargs)

        memoized = self._get_memo(obj)
        if not args and not kwargs and memoized is not _NOT_FOUND:
            log.log(9, 'Returning memoized value for %s', self.func.__qualname__)
            return memoized

        value = self._get_or_compute(obj, args, kwargs)
        self._set_memo(obj, value)
        return value

    def invalidate(self, obj: Obj, *args: P.args, **kwargs: P.kwargs):
        """Delete the cache store entry for the given object and arguments.  The memo slot is not affected."""
        if (store := self.spec.resolve_store()) is None:
            return

        key = self.key(obj, *args, **kwargs)
        log.debug(f'Invalidating {key=}')
        try:
            store.delete(key)
        except Exception as e:
            raise CacheStoreError(key, 'delete', e) from e

    def refresh(self, obj: Obj, *args: P.args, **kwargs: P.kwargs) -> T | None:
        """
        Call the wrapped method and store the result, overwriting any existing cache store entry for the given object
        and arguments.  The memo slot is not affected.  Nothing happens if no store is configured.

        :return: The new value, or None if no store is configured
        """
        if (store := self.spec.resolve_store()) is None:
            return None

        key = self.key(obj, *args, **kwargs)
        value = self.func(obj, *args, **kwargs)
        log.debug(f'Refreshing {key=}')
        try:
            store.set(key, value, self.spec.ttl)
        except Exception as e:
            raise CacheStoreError(key, 'set', e) from e
        return value

    def key(self, obj: Obj, *args: P.args, **kwargs: P.kwargs) -> str:
        """The cache key for the given object and arguments"""
        key_args, key_kwargs = split_arg_vals(self.sig, (obj, *args), kwargs, skip_first=True)
        # The identifier is only called when there are no arguments, since it is not part of the key otherwise
        identity = None if key_args or key_kwargs else self.spec.identifier(obj)
        class_name = obj.__name__ if self.spec.class_level else type(obj).__name__
        return build_key(
            self.spec.name, class_name, identity, key_args, key_kwargs, class_level=self.spec.class_level
        )

    def is_memoized(self, obj: Obj) -> bool:
        return self._get_memo(obj) is not _NOT_FOUND

    def clear_memo(self, obj: Obj):
        """Clear the memo slot for this attribute in the given object, if it holds a value."""
        try:
            vars(obj).pop(self.spec.memo_attr, None)
        except AttributeError:  # mappingproxy (for classes) does not support pop
            if self.spec.memo_attr in vars(obj):
                delattr(obj, self.spec.memo_attr)
        except TypeError:  # no __dict__, so nothing can be memoized
            pass

    # endregion

    def _get_or_compute(self, obj: Obj, args, kwargs) -> T:
        if (store := self.spec.resolve_store()) is None:
            return self.func(obj, *args, **kwargs)

        key = self.key(obj, *args, **kwargs)
        recompute = _Recompute(self.func, (obj, *args), kwargs)
        try:
            return store.get(key, self.spec.ttl, recompute)
        except Exception as e:
            if (error := recompute.error) is None:
                raise CacheStoreError(key, 'get', e) from e
            elif error is e:
                raise
            raise error from e  # The store wrapped the method's exception in its own

    def _get_memo(self, obj: Obj):
        try:
            return vars(obj).get(self.spec.memo_attr, _NOT_FOUND)
        except TypeError:
            cls = obj.__name__ if isinstance(obj, type) else obj.__class__.__name__
            raise TypeError(
                f"Unable to memoize {cls}.{self.spec.name} because {cls} has no '__dict__' attribute"
                ' - use memoize=False'
            ) from None

    def _set_memo(self, obj: Obj, value: T):
        if self.spec.class_level:
            setattr(obj, self.spec.memo_attr, value)
        else:
            obj.__dict__[self.spec.memo_attr] = value


class BoundCachedAttribute(Generic[P, T]):
    """A cached attribute bound to the object (or class, for class-level attributes) that it was accessed from."""

    __slots__ = ('attr', 'obj')

    def __init__(self, attr: CachedAttribute[P, T], obj):
        self.attr = attr
        self.obj = obj

    def __repr__(self) -> str:
        return f'<bound {self.attr.__class__.__name__} {self.attr.func.__qualname__} of {self.obj!r}>'

    def __eq__(self, other) -> bool:
        try:
            return self.attr is other.attr and self.obj is other.obj
        except AttributeError:
            return NotImplemented

    def __hash__(self) -> int:
        return hash((id(self.attr), id(self.obj)))

    @property
    def spec(self) -> AttributeSpec:
        return self.attr.spec

    def __call__(self, *args: P.args, **kwargs: P.kwargs) -> T:
        return self.attr.get(self.obj, *args, **kwargs)

    def get(self, *args: P.args, **kwargs: P.kwargs) -> T:
        return self.attr.get(self.obj, *args, **kwargs)

    def invalidate(self, *args: P.args, **kwargs: P.kwargs):
        self.attr.invalidate(self.obj, *args, **kwargs)

    def refresh(self, *args: P.args, **kwargs: P.kwargs) -> T | None:
        return self.attr.refresh(self.obj, *args, **kwargs)

    def key(self, *args: P.args, **kwargs: P.kwargs) -> str:
        return self.attr.key(self.obj, *args, **kwargs)

    def is_memoized(self) -> bool:
        return self.attr.is_memoized(self.obj)

    def clear_memo(self):
        self.attr.clear_memo(self.obj)


def cached_attribute(
    func: Func = None,
    *,
    ttl: TTL = None,
    cache: Union[CacheStore, _DefaultStore, None] = DEFAULT,
    identifier: Identifier = None,
    memoize: bool = None,
) -> Union[CachedAttribute[P, T], Callable[[Func], CachedAttribute[P, T]]]:
    """
    Decorator that caches the results of the decorated method in a cache store, and optionally memoizes them in the
    object that the method belongs to.  May be used with or without arguments.  To cache a class-level computation,
    apply this decorator above ``@classmethod``.

    :param func: The method to wrap (when used without arguments)
    :param ttl: The time-to-live for stored values, in seconds or as a timedelta (default: the configured TTL, which
      defaults to 300 seconds)
    :param cache: The store to use, or None to disable caching (default: the process-wide default store, if one has
      been configured via :func:`set_default_store<.config.set_default_store>` / :func:`configure<.config.configure>`)
    :param identifier: A function that accepts the object that owns the method and returns a token that uniquely
      identifies it, which is used as key material for calls without arguments (default: ``obj.id``)
    :param memoize: Whether the result should also be memoized in the object (default: the configured value, which
      defaults to True)
    :return: A :class:`CachedAttribute` descriptor, or a decorator that will create one
    """
    if func is not None:
        return CachedAttribute(func, ttl=ttl, cache=cache, identifier=identifier, memoize=memoize)

    def decorator(method: Func) -> CachedAttribute[P, T]:
        return CachedAttribute(method, ttl=ttl, cache=cache, identifier=identifier, memoize=memoize)

    return decorator

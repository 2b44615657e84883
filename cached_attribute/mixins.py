"""
Helpers for finding the cached attributes defined in a class, and for clearing the values memoized for them.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Collection

from .decorate import CachedAttribute

__all__ = [
    'CachedAttributeMixin',
    'get_cached_attributes',
    'get_cached_attribute_names',
    'clear_memoized_attributes',
]


class CachedAttributeMixin:
    """
    Mixin for classes containing methods decorated with ``cached_attribute``.  Adds the
    :meth:`.clear_memoized_attributes` method to facilitate clearing all or specific memoized values.
    """

    __slots__ = ()

    def clear_memoized_attributes(self, *names: str, skip: Collection[str] = None):
        """
        Clear the values memoized in this object for the cached attributes with the specified names, or for all
        instance-level cached attributes that are present in this class if no names are specified.  Cache store
        entries are not affected.

        :param names: The names of the cached attributes to be cleared
        :param skip: A collection of names of cached attributes that should NOT be cleared
        """
        clear_memoized_attributes(self, *names, skip=skip)


def get_cached_attributes(obj) -> dict[str, CachedAttribute]:
    """Get a mapping of name to descriptor for all cached attributes that exist in the given object or class."""
    cls = obj if isinstance(obj, type) else obj.__class__
    return dict(_get_cached_attributes(cls))


@lru_cache(20)
def _get_cached_attributes(cls: type) -> dict[str, CachedAttribute]:
    attrs = {}
    for clz in reversed(type.mro(cls)):
        for name, value in clz.__dict__.items():
            if isinstance(value, CachedAttribute):
                attrs[name] = value
            else:
                attrs.pop(name, None)  # Overridden by something else in a subclass
    return attrs


def get_cached_attribute_names(obj) -> set[str]:
    """Get the names of all cached attributes that exist in the given object or class."""
    return set(get_cached_attributes(obj))


def clear_memoized_attributes(obj, *names: str, skip: Collection[str] = None):
    """
    Clear memoized values for the cached attributes with the specified names, or for all cached attributes that are
    present in the given object if no names are specified.  When no names are specified, only instance-level
    attributes are cleared for instances, and only class-level attributes are cleared for classes.  Attributes that
    did not have a memoized value are ignored.

    :param obj: An object or class that contains cached attributes
    :param names: The names of the cached attributes to be cleared
    :param skip: A collection of names of cached attributes that should NOT be cleared
    """
    attrs = get_cached_attributes(obj)
    is_class = isinstance(obj, type)
    if names:
        to_clear = [attrs[name] for name in names if name in attrs]
    else:
        to_clear = [attr for attr in attrs.values() if attr.spec.class_level == is_class]
    if skip:
        if isinstance(skip, str):
            skip = (skip,)
        to_clear = [attr for attr in to_clear if attr.spec.name not in skip]

    for attr in to_clear:
        attr.clear_memo(obj if is_class or not attr.spec.class_level else obj.__class__)

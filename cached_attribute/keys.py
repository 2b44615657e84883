"""
Cache key derivation for cached attributes.

Keys have the form ``<subject>::<attribute>::<digest>``, where the subject is the name of the class that owns the
cached attribute (with a ``::self`` suffix for class-level computations, so that an instance attribute and a class
attribute with the same name never collide), and the digest is the SHA-256 hex digest of the canonical encoding of
the call's arguments.  When no arguments were provided, the identity token of the object is digested instead.
"""

from __future__ import annotations

import logging
from hashlib import sha256
from typing import Any, Mapping, Sequence

from .core.serialization import canonical_dumps

__all__ = ['build_key', 'key_subject', 'key_material', 'digest', 'KEY_DELIMITER', 'CLASS_LEVEL_MARKER']
log = logging.getLogger(__name__)

KEY_DELIMITER = '::'
CLASS_LEVEL_MARKER = 'self'


def key_subject(class_name: str, class_level: bool = False) -> str:
    return f'{class_name}{KEY_DELIMITER}{CLASS_LEVEL_MARKER}' if class_level else class_name


def key_material(identity: Any = None, args: Sequence[Any] = (), kwargs: Mapping[str, Any] = None) -> str:
    """
    :param identity: The identity token of the object that owns the cached attribute; only used when no arguments
      were provided
    :param args: Positional arguments for the call
    :param kwargs: Keyword arguments for the call
    :return: The canonical text that should be digested to produce the final component of a cache key
    """
    if args or kwargs:
        return canonical_dumps(('args', list(args), dict(kwargs or {})))
    return canonical_dumps(('identity', identity))


def digest(material: str) -> str:
    return sha256(material.encode('utf-8')).hexdigest()


def build_key(
    attr_name: str,
    class_name: str,
    identity: Any = None,
    args: Sequence[Any] = (),
    kwargs: Mapping[str, Any] = None,
    *,
    class_level: bool = False,
) -> str:
    """
    Build the cache key for a call to a cached attribute.

    :param attr_name: The name of the cached attribute
    :param class_name: The name of the class that the cached attribute belongs to
    :param identity: The identity token of the object that owns the cached attribute
    :param args: Positional arguments for the call (excluding ``self`` / ``cls``)
    :param kwargs: Keyword arguments for the call
    :param class_level: Whether the cached attribute is a class-level computation
    :return: The cache key
    """
    material = key_material(identity, args, kwargs)
    key = KEY_DELIMITER.join((key_subject(class_name, class_level), attr_name, digest(material)))
    log.log(9, 'Built key=%r from material=%r', key, material)
    return key

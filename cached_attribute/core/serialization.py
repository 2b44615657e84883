"""
Helpers for serializing call arguments and identity tokens to a canonical, versioned JSON form that can be used as
cache key material.

Every container or non-JSON-native value is represented as a single-key object whose key is a type tag, so plain JSON
objects never appear in the output and two different values cannot share a textual form.  Lists are the only values
encoded as JSON arrays.
"""

from __future__ import annotations

import json
from base64 import b64encode
from collections.abc import Mapping, Set
from dataclasses import fields, is_dataclass
from datetime import datetime, date, time, timedelta
from decimal import Decimal
from enum import Enum
from pathlib import PurePath
from uuid import UUID

from ..exceptions import KeyEncodingError

__all__ = ['KEY_ENCODING_VERSION', 'canonical_dumps', 'prep_for_key']

KEY_ENCODING_VERSION = 'v1'


def canonical_dumps(obj) -> str:
    """
    Serialize the given object to its canonical text form, prefixed with the encoding version.

    :param obj: A value that should be used as cache key material
    :return: The canonical text form of the given value
    :raises: :class:`KeyEncodingError` if the value (or a nested value) is not supported
    """
    return f'{KEY_ENCODING_VERSION}:{_dumps(prep_for_key(obj))}'


def _dumps(prepped) -> str:
    return json.dumps(prepped, sort_keys=True, separators=(',', ':'), ensure_ascii=False)


def _qualname(cls: type) -> str:
    return f'{cls.__module__}.{cls.__qualname__}'


def prep_for_key(obj):
    if isinstance(obj, Enum):  # Before int / str, since IntEnum and StrEnum members are also ints / strs
        return {'enum': [_qualname(type(obj)), obj.name]}
    elif obj is None or isinstance(obj, (bool, str)):
        return obj
    elif isinstance(obj, (int, float)):
        return obj
    elif isinstance(obj, list):
        return [prep_for_key(v) for v in obj]
    elif isinstance(obj, tuple):
        return {'tuple': [prep_for_key(v) for v in obj]}
    elif isinstance(obj, Mapping):
        items = ((prep_for_key(k), prep_for_key(v)) for k, v in obj.items())
        return {'dict': sorted(([k, v] for k, v in items), key=lambda kv: _dumps(kv[0]))}
    elif isinstance(obj, Set):
        return {'set': sorted((prep_for_key(v) for v in obj), key=_dumps)}
    elif isinstance(obj, (bytes, bytearray)):
        return {'bytes': b64encode(obj).decode('ascii')}
    elif isinstance(obj, datetime):  # Before date, since datetime is a subclass of date
        return {'datetime': obj.isoformat()}
    elif isinstance(obj, date):
        return {'date': obj.isoformat()}
    elif isinstance(obj, time):
        return {'time': obj.isoformat()}
    elif isinstance(obj, timedelta):
        return {'timedelta': obj.total_seconds()}
    elif isinstance(obj, Decimal):
        return {'decimal': str(obj)}
    elif isinstance(obj, UUID):
        return {'uuid': str(obj)}
    elif isinstance(obj, PurePath):
        return {'path': obj.as_posix()}
    elif isinstance(obj, type):
        return {'type': _qualname(obj)}
    elif hasattr(obj, '__cache_key__'):
        return {'object': [_qualname(type(obj)), prep_for_key(obj.__cache_key__())]}
    elif is_dataclass(obj):
        return {'dataclass': [_qualname(type(obj)), prep_for_key({f.name: getattr(obj, f.name) for f in fields(obj)})]}
    elif hasattr(obj, '__to_json__'):
        return {'object': [_qualname(type(obj)), prep_for_key(obj.__to_json__())]}
    elif hasattr(obj, '__serializable__'):
        return {'object': [_qualname(type(obj)), prep_for_key(obj.__serializable__())]}
    raise KeyEncodingError(obj)

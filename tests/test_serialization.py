#!/usr/bin/env python

from dataclasses import dataclass
from datetime import datetime, date, timedelta
from decimal import Decimal
from enum import Enum
from pathlib import PurePosixPath
from unittest import TestCase, main
from uuid import UUID

from cached_attribute.core.serialization import canonical_dumps
from cached_attribute.exceptions import KeyEncodingError, CachedAttributeError


class Color(Enum):
    RED = 1


class Mode(str, Enum):
    FAST = 'fast'


class Point:
    def __init__(self, x, y):
        self.x = x
        self.y = y

    def __cache_key__(self):
        return self.x, self.y


@dataclass
class Span:
    start: int
    end: int


class CanonicalEncodingTest(TestCase):
    def test_versioned(self):
        self.assertEqual('v1:null', canonical_dumps(None))
        self.assertEqual('v1:"abc"', canonical_dumps('abc'))

    def test_list_vs_tuple(self):
        self.assertEqual('v1:[1,2]', canonical_dumps([1, 2]))
        self.assertEqual('v1:{"tuple":[1,2]}', canonical_dumps((1, 2)))

    def test_scalar_types_are_distinct(self):
        encoded = {canonical_dumps(v) for v in (1, 1.5, True, '1', None, Color.RED)}
        self.assertEqual(6, len(encoded))
        self.assertEqual('v1:true', canonical_dumps(True))
        self.assertEqual('v1:1', canonical_dumps(1))

    def test_mapping_order_does_not_matter(self):
        expected = 'v1:{"dict":[["a",2],["b",1]]}'
        self.assertEqual(expected, canonical_dumps({'b': 1, 'a': 2}))
        self.assertEqual(expected, canonical_dumps({'a': 2, 'b': 1}))

    def test_mapping_key_types_are_distinct(self):
        self.assertNotEqual(canonical_dumps({1: 'a'}), canonical_dumps({'1': 'a'}))

    def test_sets(self):
        self.assertEqual('v1:{"set":[1,2,3]}', canonical_dumps({3, 1, 2}))
        self.assertEqual(canonical_dumps({3, 1, 2}), canonical_dumps(frozenset((2, 3, 1))))
        self.assertNotEqual(canonical_dumps({1, 2}), canonical_dumps([1, 2]))

    def test_nested(self):
        expected = 'v1:[{"dict":[["a",{"tuple":[1,[2,3]]}]]}]'
        self.assertEqual(expected, canonical_dumps([{'a': (1, [2, 3])}]))

    def test_non_ascii_text(self):
        self.assertEqual('v1:"café"', canonical_dumps('café'))

    def test_other_types(self):
        self.assertEqual('v1:{"bytes":"YWJj"}', canonical_dumps(b'abc'))
        self.assertEqual('v1:{"date":"2024-01-02"}', canonical_dumps(date(2024, 1, 2)))
        self.assertEqual('v1:{"datetime":"2024-01-02T03:04:05"}', canonical_dumps(datetime(2024, 1, 2, 3, 4, 5)))
        self.assertEqual('v1:{"timedelta":90.0}', canonical_dumps(timedelta(seconds=90)))
        self.assertEqual('v1:{"decimal":"1.10"}', canonical_dumps(Decimal('1.10')))
        uuid = UUID('12345678-1234-5678-1234-567812345678')
        self.assertEqual('v1:{"uuid":"12345678-1234-5678-1234-567812345678"}', canonical_dumps(uuid))
        self.assertEqual('v1:{"path":"/a/b"}', canonical_dumps(PurePosixPath('/a/b')))

    def test_text_and_tagged_values_are_distinct(self):
        self.assertNotEqual(canonical_dumps('2024-01-02'), canonical_dumps(date(2024, 1, 2)))
        self.assertNotEqual(canonical_dumps('abc'), canonical_dumps(b'abc'))

    def test_enum(self):
        self.assertIn('"RED"', canonical_dumps(Color.RED))
        self.assertNotEqual(canonical_dumps(Color.RED), canonical_dumps(1))

    def test_str_enum_is_not_a_plain_string(self):
        self.assertNotEqual(canonical_dumps('fast'), canonical_dumps(Mode.FAST))
        self.assertIn('"enum"', canonical_dumps(Mode.FAST))
        self.assertIn('"FAST"', canonical_dumps(Mode.FAST))

    def test_cache_key_method(self):
        self.assertEqual(canonical_dumps(Point(1, 2)), canonical_dumps(Point(1, 2)))
        self.assertNotEqual(canonical_dumps(Point(1, 2)), canonical_dumps(Point(2, 1)))
        self.assertNotEqual(canonical_dumps(Point(1, 2)), canonical_dumps((1, 2)))

    def test_dataclass(self):
        self.assertEqual(canonical_dumps(Span(1, 2)), canonical_dumps(Span(1, 2)))
        self.assertNotEqual(canonical_dumps(Span(1, 2)), canonical_dumps(Span(1, 3)))

    def test_unsupported_values(self):
        for value in (object(), [1, object()], {'a': {object()}}, lambda: 1):
            with self.subTest(value=value), self.assertRaises(KeyEncodingError) as ctx:
                canonical_dumps(value)

            self.assertIsInstance(ctx.exception, TypeError)
            self.assertIsInstance(ctx.exception, CachedAttributeError)


if __name__ == '__main__':
    main(verbosity=2)

#!/usr/bin/env python

from unittest import TestCase, main

from cached_attribute import cached_attribute, CachedAttributeMixin, get_cached_attribute_names
from cached_attribute import clear_memoized_attributes


class Base(CachedAttributeMixin):
    def __init__(self):
        self.id = 1

    @cached_attribute(cache=None, memoize=True)
    def a(self):
        return 1

    @cached_attribute(cache=None, memoize=True)
    def b(self):
        return 2

    @cached_attribute(cache=None, memoize=True)
    @classmethod
    def c(cls):
        return 3


class Child(Base):
    def b(self):
        return 4

    @cached_attribute(cache=None, memoize=True)
    def d(self):
        return 5


class MixinTest(TestCase):
    def tearDown(self):
        clear_memoized_attributes(Base)
        clear_memoized_attributes(Child)

    def test_get_cached_attribute_names(self):
        self.assertEqual({'a', 'b', 'c'}, get_cached_attribute_names(Base))
        self.assertEqual({'a', 'b', 'c'}, get_cached_attribute_names(Base()))
        self.assertEqual({'a', 'c', 'd'}, get_cached_attribute_names(Child))

    def test_clear_all_instance_attributes(self):
        obj = Base()
        obj.a()
        obj.b()
        obj.c()
        obj.clear_memoized_attributes()
        self.assertFalse(obj.a.is_memoized())
        self.assertFalse(obj.b.is_memoized())
        self.assertTrue(Base.c.is_memoized())

    def test_clear_specific_attributes(self):
        obj = Base()
        obj.a()
        obj.b()
        obj.clear_memoized_attributes('a')
        self.assertFalse(obj.a.is_memoized())
        self.assertTrue(obj.b.is_memoized())

    def test_skip(self):
        obj = Base()
        obj.a()
        obj.b()
        obj.clear_memoized_attributes(skip='b')
        self.assertFalse(obj.a.is_memoized())
        self.assertTrue(obj.b.is_memoized())
        obj.clear_memoized_attributes(skip=('a', 'b'))
        self.assertTrue(obj.b.is_memoized())

    def test_clear_class_level_by_name_from_instance(self):
        obj = Base()
        obj.c()
        self.assertTrue(Base.c.is_memoized())
        obj.clear_memoized_attributes('c')
        self.assertFalse(Base.c.is_memoized())

    def test_clear_class_attributes(self):
        Base.c()
        obj = Base()
        obj.a()
        clear_memoized_attributes(Base)
        self.assertFalse(Base.c.is_memoized())
        self.assertTrue(obj.a.is_memoized())

    def test_unknown_and_unset_names_are_ignored(self):
        obj = Child()
        obj.clear_memoized_attributes('a', 'b', 'zzz')
        self.assertEqual(4, obj.b())


if __name__ == '__main__':
    main(verbosity=2)

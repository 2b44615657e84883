#!/usr/bin/env python

from hashlib import sha256
from inspect import Signature
from unittest import TestCase, main

from cached_attribute.core.introspection import split_arg_vals
from cached_attribute.keys import build_key, key_material, key_subject


def sha(text: str) -> str:
    return sha256(text.encode('utf-8')).hexdigest()


class SplitArgValsTest(TestCase):
    def setUp(self):
        def func(self, a, b=2, *args, c=3, **kwargs):
            pass

        def defaults(self, a=1, b=2):
            pass

        self.sig = Signature.from_callable(func)
        self.defaults_sig = Signature.from_callable(defaults)

    def test_first_param_skipped(self):
        self.assertEqual(([1], {}), split_arg_vals(self.sig, ('obj', 1), {}, skip_first=True))
        self.assertEqual((['obj', 1], {}), split_arg_vals(self.sig, ('obj', 1), {}))

    def test_keyword_args_for_positional_params_are_moved(self):
        expected = ([1, 2], {})
        self.assertEqual(expected, split_arg_vals(self.sig, ('obj', 1, 2), {}, skip_first=True))
        self.assertEqual(expected, split_arg_vals(self.sig, ('obj', 1), {'b': 2}, skip_first=True))
        self.assertEqual(expected, split_arg_vals(self.sig, ('obj',), {'a': 1, 'b': 2}, skip_first=True))
        self.assertEqual(expected, split_arg_vals(self.sig, ('obj',), {'b': 2, 'a': 1}, skip_first=True))

    def test_var_args_and_kwargs(self):
        args, kwargs = split_arg_vals(self.sig, ('obj', 1, 2, 3, 4), {'c': 5, 'd': 6}, skip_first=True)
        self.assertEqual([1, 2, 3, 4], args)
        self.assertEqual({'c': 5, 'd': 6}, kwargs)

    def test_defaults_not_applied(self):
        self.assertEqual(([], {}), split_arg_vals(self.defaults_sig, ('obj',), {}, skip_first=True))
        self.assertEqual(([1], {}), split_arg_vals(self.sig, ('obj', 1), {}, skip_first=True))

    def test_defaults_applied(self):
        result = split_arg_vals(self.defaults_sig, ('obj',), {}, skip_first=True, apply_defaults=True)
        self.assertEqual(([1, 2], {}), result)

    def test_gap_in_positional_params(self):
        self.assertEqual(([], {'b': 5}), split_arg_vals(self.defaults_sig, ('obj',), {'b': 5}, skip_first=True))

    def test_bad_args(self):
        with self.assertRaises(TypeError):
            split_arg_vals(self.defaults_sig, ('obj', 1, 2, 3), {}, skip_first=True)
        with self.assertRaises(TypeError):
            split_arg_vals(self.defaults_sig, ('obj',), {'z': 1}, skip_first=True)


class KeyBuilderTest(TestCase):
    def test_identity_key(self):
        expected = 'BaseModel::expensive_call::' + sha('v1:{"tuple":["identity",1]}')
        self.assertEqual(expected, build_key('expensive_call', 'BaseModel', 1))

    def test_args_key(self):
        expected = 'BaseModel::add::' + sha('v1:{"tuple":["args",[5,6],{"dict":[]}]}')
        self.assertEqual(expected, build_key('add', 'BaseModel', None, (5, 6)))

    def test_class_level_subject(self):
        key = build_key('size', 'Catalog', 'pkg.Catalog', class_level=True)
        self.assertTrue(key.startswith('Catalog::self::size::'))
        self.assertEqual(4, len(key.split('::')))
        self.assertEqual('Catalog::self', key_subject('Catalog', True))
        self.assertEqual('Catalog', key_subject('Catalog'))

    def test_instance_and_class_level_keys_differ(self):
        self.assertNotEqual(
            build_key('size', 'Catalog', 1), build_key('size', 'Catalog', 1, class_level=True)
        )

    def test_deterministic(self):
        self.assertEqual(build_key('a', 'Foo', 1, (1, 2), {'x': 3}), build_key('a', 'Foo', 1, (1, 2), {'x': 3}))
        self.assertEqual(
            build_key('a', 'Foo', None, (), {'x': 3, 'y': 4}), build_key('a', 'Foo', None, (), {'y': 4, 'x': 3})
        )

    def test_arguments_affect_key(self):
        self.assertNotEqual(build_key('add', 'Foo', None, (5, 6)), build_key('add', 'Foo', None, (1, 2)))
        self.assertNotEqual(build_key('add', 'Foo', None, (1, 2)), build_key('add', 'Foo', None, (2, 1)))
        self.assertNotEqual(build_key('add', 'Foo', None, (1,)), build_key('add', 'Foo', None, (), {'a': 1}))

    def test_identity_ignored_when_args_are_present(self):
        self.assertEqual(build_key('add', 'Foo', 1, (1, 2)), build_key('add', 'Foo', 2, (1, 2)))

    def test_identity_types_are_distinct(self):
        self.assertNotEqual(build_key('a', 'Foo', 1), build_key('a', 'Foo', '1'))
        self.assertNotEqual(build_key('a', 'Foo', 1), build_key('a', 'Foo', True))

    def test_names_affect_key(self):
        self.assertNotEqual(build_key('a', 'Foo', 1), build_key('b', 'Foo', 1))
        self.assertNotEqual(build_key('a', 'Foo', 1), build_key('a', 'Bar', 1))

    def test_identity_material_differs_from_args_material(self):
        self.assertNotEqual(key_material(1), key_material(None, (1,)))
        self.assertEqual(key_material(None, (1,)), key_material(2, [1], {}))


if __name__ == '__main__':
    main(verbosity=2)

"""
Unit tests for filter parsing and serialization
"""

import json

import pytest

from swarmctl.errors import ValidationError
from swarmctl.filters import CONFIG_FILTER_KEYS, FilterSet, parse_filters, stack_filter


class TestParseFilters:

    def test_splits_on_first_equals(self):
        filters = parse_filters(['label=env=prod', 'Name=web'])

        assert filters.get('label') == ['env=prod']
        assert filters.get('name') == ['web']

    def test_repeated_keys_accumulate(self):
        filters = parse_filters(['name=b', 'name=a', 'name=b'])
        assert filters.get('name') == ['a', 'b']

    @pytest.mark.parametrize('raw', ['name', '=value'])
    def test_bad_format(self, raw):
        with pytest.raises(ValidationError, match='bad format of filter'):
            parse_filters([raw])

    def test_unknown_key(self):
        with pytest.raises(ValidationError, match="invalid filter 'mode'"):
            parse_filters(['mode=global'], CONFIG_FILTER_KEYS)


class TestFilterSet:

    def test_to_json(self):
        filters = FilterSet({'name': ['b', 'a'], 'label': ['x=1']})
        assert json.loads(filters.to_json()) == {
            'label': {'x=1': True},
            'name': {'a': True, 'b': True},
        }

    def test_merge_does_not_mutate(self):
        user = parse_filters(['name=web'])
        merged = user.merge(stack_filter('foo'))

        assert merged.keys() == ['label', 'name']
        assert 'label' not in user
        assert len(merged) == 2

    def test_equality(self):
        assert FilterSet({'name': ['a']}) == parse_filters(['name=a'])
        assert FilterSet() != FilterSet({'name': ['a']})

"""Filter sets passed to the list endpoints"""

import json
from typing import Dict, Iterable, List, Optional, Set

from .errors import ValidationError

STACK_NAMESPACE_LABEL = 'com.docker.stack.namespace'

CONFIG_FILTER_KEYS = frozenset({'id', 'label', 'name'})
SERVICE_FILTER_KEYS = frozenset({'id', 'label', 'mode', 'name'})


class FilterSet:
    """Mapping from filter key to a set of values.

    Serializes to the ``filters`` query parameter understood by the Docker
    Engine API (``{"key": {"value": true}}``).
    """

    def __init__(self, initial: Optional[Dict[str, Iterable[str]]] = None):
        self._values: Dict[str, Set[str]] = {}
        for key, values in (initial or {}).items():
            for value in values:
                self.add(key, value)

    def add(self, key: str, value: str):
        self._values.setdefault(key, set()).add(value)

    def get(self, key: str) -> List[str]:
        """Values for ``key`` in sorted order"""
        return sorted(self._values.get(key, ()))

    def keys(self) -> List[str]:
        return sorted(self._values)

    def merge(self, other: 'FilterSet') -> 'FilterSet':
        merged = FilterSet(self._values)
        for key in other.keys():
            for value in other.get(key):
                merged.add(key, value)
        return merged

    def to_json(self) -> str:
        return json.dumps(
            {key: {value: True for value in self.get(key)} for key in self.keys()},
            sort_keys=True
        )

    def __len__(self):
        return len(self._values)

    def __contains__(self, key):
        return key in self._values

    def __eq__(self, other):
        if not isinstance(other, FilterSet):
            return NotImplemented
        return self._values == other._values

    def __repr__(self):
        values = {key: self.get(key) for key in self.keys()}
        return f"FilterSet({values!r})"


def parse_filters(raw_filters: Iterable[str], allowed_keys: Optional[Iterable[str]] = None) -> FilterSet:
    """Build a FilterSet from ``key=value`` flag values.

    Only the first ``=`` separates key from value, so label filters such as
    ``label=env=prod`` keep their value intact.
    """
    allowed = frozenset(allowed_keys) if allowed_keys is not None else None
    filters = FilterSet()
    for raw in raw_filters:
        if '=' not in raw:
            raise ValidationError(f"bad format of filter (expected name=value): {raw}")
        key, value = raw.split('=', 1)
        key = key.strip().lower()
        if not key:
            raise ValidationError(f"bad format of filter (expected name=value): {raw}")
        if allowed is not None and key not in allowed:
            raise ValidationError(f"invalid filter '{key}'")
        filters.add(key, value)
    return filters


def stack_filter(namespace: str) -> FilterSet:
    """Filter selecting every resource labelled as part of a stack"""
    return FilterSet({'label': [f"{STACK_NAMESPACE_LABEL}={namespace}"]})

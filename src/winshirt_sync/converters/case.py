"""Key-case conversion between the remote schema and the client model.

The remote store names columns in underscore_case (``visual_category_id``);
the cache and in-memory records use camelCase (``visualCategoryId``).  This
module is the only place that rewrites keys between the two conventions.

Both conversions recurse into nested mappings and into mappings held in
lists.  Any other value, including ``None``, passes through untouched.

Every capital letter opens a new word, so keys with consecutive capitals
map to per-letter columns: ``imageURL`` becomes ``image_u_r_l``, which
converts back to ``imageURL`` but never matches a remote ``image_url``
column.  Records must spell acronyms as words (``imageUrl``).
"""

from __future__ import annotations

import re
from typing import Any, Literal

Convention = Literal["underscore", "camel"]

_UPPER = re.compile(r"([A-Z])")
_UNDERSCORE_LOWER = re.compile(r"_([a-z])")


def key_to_underscore(key: str) -> str:
    """Rewrite a single camelCase key as underscore_case."""
    return _UPPER.sub(lambda m: "_" + m.group(1).lower(), key)


def key_to_camel(key: str) -> str:
    """Rewrite a single underscore_case key as camelCase."""
    return _UNDERSCORE_LOWER.sub(lambda m: m.group(1).upper(), key)


def _convert(value: Any, convert_key) -> Any:
    if isinstance(value, dict):
        return {
            (convert_key(k) if isinstance(k, str) else k): _convert(
                v, convert_key
            )
            for k, v in value.items()
        }
    if isinstance(value, (list, tuple)):
        return [_convert(item, convert_key) for item in value]
    return value


def to_underscore(value: Any) -> Any:
    """Return a copy of *value* with every mapping key in underscore_case.

    Examples:
        >>> to_underscore({"visualCategoryId": 3})
        {'visual_category_id': 3}
    """
    return _convert(value, key_to_underscore)


def to_camel(value: Any) -> Any:
    """Return a copy of *value* with every mapping key in camelCase.

    Examples:
        >>> to_camel({"print_areas": [{"allow_custom_position": True}]})
        {'printAreas': [{'allowCustomPosition': True}]}
    """
    return _convert(value, key_to_camel)


def convert_keys(value: Any, convention: Convention) -> Any:
    """Convert *value* to the named convention."""
    match convention:
        case "underscore":
            return to_underscore(value)
        case "camel":
            return to_camel(value)
        case _:
            raise ValueError(f"Unknown naming convention: {convention}")

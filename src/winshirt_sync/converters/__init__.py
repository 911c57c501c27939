"""Key-case converters used at the local/remote boundary."""

from .case import (
    convert_keys,
    key_to_camel,
    key_to_underscore,
    to_camel,
    to_underscore,
)

__all__ = [
    "convert_keys",
    "key_to_camel",
    "key_to_underscore",
    "to_camel",
    "to_underscore",
]

"""Structural decoding of generic step records into typed shapes.

Step records come out of the YAML document as plain dicts whose schema is
not known until the step ``type`` is read. Parsers describe the fields they
accept as a dataclass and call :func:`decode`, which copies matching keys
across and checks their types.

Supported field annotations are ``str``, ``tuple[str, ...]``, ``list[str]``
and ``dict[str, str]``. Values are never coerced: ``args: [1]`` is a type
mismatch, not ``("1",)``.
"""

from __future__ import annotations

import dataclasses
import functools
import typing
from collections.abc import Mapping
from typing import Any, TypeVar

from cmdpipe.pipeline.exceptions import TypeMismatchError

T = TypeVar("T")


def _type_name(value: object) -> str:
    if value is None:
        return "null"
    return type(value).__name__


def _decode_str(field: str, value: Any) -> str:
    if not isinstance(value, str):
        raise TypeMismatchError(field, "a string", _type_name(value))
    return value


def _decode_sequence(field: str, value: Any) -> list[str]:
    if isinstance(value, (str, bytes)) or not isinstance(value, (list, tuple)):
        raise TypeMismatchError(field, "a list of strings", _type_name(value))
    return [_decode_str(f"{field}[{i}]", item) for i, item in enumerate(value)]


def _decode_tuple(field: str, value: Any) -> tuple[str, ...]:
    return tuple(_decode_sequence(field, value))


def _decode_mapping(field: str, value: Any) -> dict[str, str]:
    if not isinstance(value, Mapping):
        raise TypeMismatchError(field, "a mapping of strings", _type_name(value))
    decoded: dict[str, str] = {}
    for key, item in value.items():
        if not isinstance(key, str):
            raise TypeMismatchError(f"{field} key {key!r}", "a string", _type_name(key))
        decoded[key] = _decode_str(f"{field}.{key}", item)
    return decoded


@functools.cache
def _field_decoders(shape: type) -> tuple[tuple[str, Any], ...]:
    """Map each dataclass field of ``shape`` to its value decoder."""
    hints = typing.get_type_hints(shape)
    decoders = []
    for f in dataclasses.fields(shape):
        hint = hints[f.name]
        origin = typing.get_origin(hint)
        if hint is str:
            decoder = _decode_str
        elif origin is tuple:
            decoder = _decode_tuple
        elif origin is list:
            decoder = _decode_sequence
        elif origin is dict:
            decoder = _decode_mapping
        else:
            raise TypeError(f"{shape.__name__}.{f.name}: unsupported field type {hint!r}")
        decoders.append((f.name, decoder))
    return tuple(decoders)


def decode(record: Mapping[str, Any], shape: type[T]) -> T:
    """Build a ``shape`` instance from a generic record.

    Each dataclass field is filled from the key of the same name. Unknown
    keys are ignored; missing keys and explicit nulls keep the field default.

    Args:
        record: Generic mapping decoded from the pipeline document.
        shape: Dataclass describing the fields to extract.

    Returns:
        A new ``shape`` instance.

    Raises:
        TypeMismatchError: If a present value has the wrong type. The first
            offending field is reported.
        TypeError: If ``shape`` is not a dataclass or declares a field type
            the decoder does not support.

    Examples:
        >>> from dataclasses import dataclass
        >>> @dataclass
        ... class Greeting:
        ...     command: str = ""
        ...     args: tuple[str, ...] = ()
        >>> decode({"command": "echo", "args": ["hi"], "extra": 1}, Greeting)
        Greeting(command='echo', args=('hi',))
    """
    if not dataclasses.is_dataclass(shape):
        raise TypeError(f"decode target must be a dataclass, got {shape!r}")

    values: dict[str, Any] = {}
    for name, decoder in _field_decoders(shape):
        value = record.get(name)
        if value is None:
            continue
        values[name] = decoder(name, value)
    return shape(**values)


__all__ = [
    "decode",
]

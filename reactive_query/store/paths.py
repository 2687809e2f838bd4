"""
Deep path access over nested mappings and lists.

Paths are dotted strings (``"meta.title"``, ``"items.0.id"``, bracket
indices such as ``"items[0].id"`` are accepted too) or sequences of
segments.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, MutableMapping, MutableSequence, Sequence
from typing import Any, List, Union

Path = Union[str, Sequence[Union[str, int]]]

_SEGMENT = re.compile(r"[^.\[\]]+")


class _Missing:
    """Marker for absent values, distinct from a stored ``None``."""

    def __repr__(self) -> str:
        return "MISSING"

    def __bool__(self) -> bool:
        return False


MISSING: Any = _Missing()


def split_path(path: Path) -> List[Union[str, int]]:
    """Split a path into segments."""
    if isinstance(path, str):
        return _SEGMENT.findall(path)
    if isinstance(path, int):
        return [path]
    return list(path)


def _as_index(segment: Union[str, int]) -> Union[int, None]:
    if isinstance(segment, int):
        return segment
    if segment.isdigit():
        return int(segment)
    return None


def _step(current: Any, segment: Union[str, int]) -> Any:
    if isinstance(current, Mapping):
        if segment in current:
            return current[segment]
        # "0" against an int-keyed mapping, or 0 against a str-keyed one
        alternate = _as_index(segment) if isinstance(segment, str) else str(segment)
        if alternate is not None and alternate in current:
            return current[alternate]
        return MISSING

    if isinstance(current, Sequence) and not isinstance(current, (str, bytes)):
        index = _as_index(segment)
        if index is None or not -len(current) <= index < len(current):
            return MISSING
        return current[index]

    if current is None or isinstance(current, (str, bytes, int, float, bool)):
        return MISSING

    return getattr(current, str(segment), MISSING)


def get_path(obj: Any, path: Path, default: Any = None) -> Any:
    """
    Read the value at ``path`` inside ``obj``.

    Args:
        obj: Nested mappings, sequences or plain objects
        path: Dotted string or segment sequence
        default: Returned when any segment is absent

    Returns:
        The value found, or ``default``
    """
    segments = split_path(path)
    if not segments:
        return obj if obj is not None else default

    current = obj
    for segment in segments:
        current = _step(current, segment)
        if current is MISSING:
            return default
    return current


def has_path(obj: Any, path: Path) -> bool:
    """Whether every segment of ``path`` exists in ``obj``."""
    return get_path(obj, path, MISSING) is not MISSING


def _container_for(next_segment: Union[str, int]) -> Any:
    return [] if _as_index(next_segment) is not None else {}


def _assign(container: Any, segment: Union[str, int], value: Any) -> None:
    if isinstance(container, MutableSequence):
        index = _as_index(segment)
        if index is None:
            raise TypeError(f"Cannot use {segment!r} as a list index")
        if index >= len(container):
            container.extend([None] * (index + 1 - len(container)))
        container[index] = value
    else:
        container[segment] = value


def set_path(obj: Any, path: Path, value: Any) -> Any:
    """
    Write ``value`` at ``path`` inside ``obj``, creating containers as needed.

    Missing or non-container intermediates are replaced with a dict, or with
    a list when the following segment is an integer index.

    Returns:
        ``obj``

    Raises:
        ValueError: If ``path`` is empty
        TypeError: If ``obj`` is not a mutable mapping or list
    """
    segments = split_path(path)
    if not segments:
        raise ValueError("Cannot set an empty path")
    if not isinstance(obj, (MutableMapping, MutableSequence)):
        raise TypeError(f"Cannot set a path on {type(obj).__name__}")

    current = obj
    for segment, next_segment in zip(segments, segments[1:]):
        child = _step(current, segment)
        if not isinstance(child, (MutableMapping, MutableSequence)):
            child = _container_for(next_segment)
            _assign(current, segment, child)
        current = child

    _assign(current, segments[-1], value)
    return obj

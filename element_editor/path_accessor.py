"""
Dot-path access over nested element records.

Element records are plain JSON-like structures (dicts, lists and scalars).
Schema field paths such as ``bandwidth.downstreamCapacity`` address values
inside them; these helpers are the only bridge between the flat control
namespace of a form and the nested record.
"""

import logging
from typing import Any, Dict, List, Union

logger = logging.getLogger(__name__)

PATH_SEPARATOR = '.'

Scalar = Union[None, str, int, float, bool]
StructuredValue = Union[Scalar, List[Any], Dict[str, Any]]

_MISSING = object()


def split_path(path: str) -> List[str]:
    """
    Split a dot-path into its segments.

    Args:
        path: Dot-separated path, e.g. ``bandwidth.downstreamCapacity``

    Returns:
        List of path segments

    Raises:
        ValueError: If the path is empty or contains an empty segment
    """
    if not isinstance(path, str) or not path:
        raise ValueError("Path must be a non-empty string")

    segments = path.split(PATH_SEPARATOR)
    if any(segment == '' for segment in segments):
        raise ValueError(f"Path '{path}' contains an empty segment")

    return segments


def _step(current: Any, segment: str) -> Any:
    """Move one segment down; returns _MISSING when the segment does not resolve."""
    if isinstance(current, dict):
        return current.get(segment, _MISSING)

    if isinstance(current, list) and segment.isdigit():
        index = int(segment)
        if index < len(current):
            return current[index]

    return _MISSING


def get_path(root: StructuredValue, path: str, default: Any = None) -> Any:
    """
    Read the value at a dot-path.

    Walks the structure one segment at a time and returns ``default`` as soon
    as a segment is missing or an intermediate value is None. Never raises,
    including for malformed paths.

    Args:
        root: Record to read from
        path: Dot-separated path
        default: Value returned when the path does not resolve

    Returns:
        The value at the path, or ``default``
    """
    try:
        segments = split_path(path)
    except ValueError:
        logger.debug(f"Ignoring malformed path on read: {path!r}")
        return default

    current: Any = root
    for segment in segments:
        if current is None:
            return default
        current = _step(current, segment)
        if current is _MISSING:
            return default

    return current


def set_path(root: Dict[str, Any], path: str, value: Any) -> None:
    """
    Write a value at a dot-path, creating intermediate dicts where absent.

    Existing lists are indexed by numeric segments. A scalar, or a list
    followed by a non-numeric segment, found where an intermediate container
    is needed is replaced by a new dict. Writing the same value to the same
    path twice leaves the record unchanged.

    Args:
        root: Record to write into (modified in place)
        path: Dot-separated path
        value: Value to assign

    Raises:
        ValueError: If the path is malformed
        TypeError: If root is not a dict, or a numeric segment points past
            the end of an existing list
    """
    if not isinstance(root, dict):
        raise TypeError(f"Cannot set '{path}' on a {type(root).__name__}")

    segments = split_path(path)
    current: Any = root

    for position, segment in enumerate(segments[:-1]):
        next_segment = segments[position + 1]
        if isinstance(current, list):
            current = _list_slot(current, segment, path, next_segment)
            continue

        child = current.get(segment)
        if not _holds(child, next_segment):
            if child is not None:
                logger.debug(f"Replacing {type(child).__name__} at '{segment}' while setting '{path}'")
            child = {}
            current[segment] = child
        current = child

    last = segments[-1]
    if isinstance(current, list):
        index = int(last) if last.isdigit() else -1
        if not 0 <= index < len(current):
            raise TypeError(f"Segment '{last}' of '{path}' is not a valid list index")
        current[index] = value
    else:
        current[last] = value


def _holds(container: Any, segment: str) -> bool:
    """True when ``segment`` can be stepped into ``container`` on write."""
    if isinstance(container, dict):
        return True
    return isinstance(container, list) and segment.isdigit()


def _list_slot(items: List[Any], segment: str, path: str, next_segment: str) -> Any:
    """Return the container at a list index, creating a dict in an unusable slot."""
    if not segment.isdigit() or int(segment) >= len(items):
        raise TypeError(f"Segment '{segment}' of '{path}' is not a valid list index")

    index = int(segment)
    if not _holds(items[index], next_segment):
        items[index] = {}
    return items[index]

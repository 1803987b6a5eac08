"""
Change detection between element records.

Uses DeepDiff on normalized copies so that cosmetic differences (an empty
string against a missing value, "10" against 10) do not count as edits.
Changed locations are reported as dot-paths, the same notation the schema
uses, e.g. ``ports.0.portNumber``.
"""

from typing import Any, Dict, List

from deepdiff import DeepDiff
from deepdiff.helper import notpresent
import logging

logger = logging.getLogger(__name__)

CHANGE_TYPES = (
    'values_changed',
    'type_changes',
    'dictionary_item_added',
    'dictionary_item_removed',
    'iterable_item_added',
    'iterable_item_removed',
)


def normalize_value(value: Any) -> Any:
    """
    Normalize a value for comparison.

    Empty strings become None, numeric strings become int or float, and
    lists and dicts are normalized recursively.
    """
    if value is None or value == '':
        return None
    if isinstance(value, str):
        text = value.strip()
        try:
            if '.' in text:
                return float(text)
            return int(text)
        except ValueError:
            return value
    if isinstance(value, list):
        return [normalize_value(item) for item in value]
    if isinstance(value, dict):
        return {key: normalize_value(item) for key, item in value.items()}
    return value


def _dot_path(tokens: List[Any]) -> str:
    return '.'.join(str(token) for token in tokens) or 'root'


def _plain(value: Any) -> Any:
    return None if value is notpresent else value


def calculate_diff(original: Dict[str, Any], modified: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """
    Calculate the differences between two element records.

    List order is significant: array items are positional, so moving an
    item is a change.

    Args:
        original: Record before editing
        modified: Record after editing

    Returns:
        Dict keyed by change type (``values_changed``,
        ``dictionary_item_added``, ...), each mapping a dot-path to
        ``{'old_value': ..., 'new_value': ...}``. Empty when equal.
    """
    try:
        diff = DeepDiff(
            normalize_value(dict(original)),
            normalize_value(dict(modified)),
            verbose_level=2,
            view='tree'
        )
    except Exception as e:
        logger.error(f"Error calculating diff: {e}", exc_info=True)
        return {}

    processed: Dict[str, Dict[str, Any]] = {}
    for change_type in CHANGE_TYPES:
        levels = diff.get(change_type)
        if not levels:
            continue
        entries = {}
        for level in levels:
            path = _dot_path(level.path(output_format='list'))
            entries[path] = {'old_value': _plain(level.t1), 'new_value': _plain(level.t2)}
        processed[change_type] = entries

    return processed


def has_changes(diff: Dict[str, Any]) -> bool:
    """
    Check if there are any changes in the diff.

    Args:
        diff: Diff dictionary from calculate_diff

    Returns:
        True if there are changes, False otherwise
    """
    if not diff:
        return False
    return any(diff.get(change_type) for change_type in CHANGE_TYPES)


def changed_paths(diff: Dict[str, Any]) -> List[str]:
    """All changed dot-paths, sorted."""
    paths = set()
    for change_type in CHANGE_TYPES:
        paths.update(diff.get(change_type, {}).keys())
    return sorted(paths)


def get_change_summary(diff: Dict[str, Any]) -> Dict[str, int]:
    """
    Get a summary of changes by type.

    Args:
        diff: Diff dictionary from calculate_diff

    Returns:
        Dictionary with change counts by type
    """
    summary = {
        'modified': len(diff.get('values_changed', {})),
        'added': len(diff.get('dictionary_item_added', {})) + len(diff.get('iterable_item_added', {})),
        'removed': len(diff.get('dictionary_item_removed', {})) + len(diff.get('iterable_item_removed', {})),
        'type_changed': len(diff.get('type_changes', {})),
    }
    summary['total'] = sum(summary.values())
    return summary

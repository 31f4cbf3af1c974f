"""
Helpers for nested configuration dictionaries addressed by dotted keys.
"""

from typing import Any, Dict, List

def split_key(key: str) -> List[str]:
    return [part for part in key.split('.') if part]


def deep_merge(target: Dict[str, Any], source: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge source into target in place and return target.

    Mappings merge key by key; scalars and lists from source replace whatever
    target held.
    """
    for key, value in source.items():
        if isinstance(value, dict):
            existing = target.get(key)
            if not isinstance(existing, dict):
                existing = {}
                target[key] = existing
            deep_merge(existing, value)
        else:
            target[key] = value
    return target


def get_path(tree: Dict[str, Any], key: str, fallback: Any = None) -> Any:
    current: Any = tree
    for part in split_key(key):
        if isinstance(current, dict) and part in current:
            current = current[part]
        else:
            return fallback
    return current


def set_path(tree: Dict[str, Any], key: str, value: Any) -> None:
    parts = split_key(key)
    if not parts:
        raise KeyError("Empty config key")
    current = tree
    for part in parts[:-1]:
        child = current.get(part)
        if not isinstance(child, dict):
            child = {}
            current[part] = child
        current = child
    current[parts[-1]] = value


def expand_dotted(flat: Dict[str, Any]) -> Dict[str, Any]:
    """Turn {'a.b': 1, 'c': 2} into {'a': {'b': 1}, 'c': 2}."""
    tree: Dict[str, Any] = {}
    for key, value in flat.items():
        if '.' in key:
            set_path(tree, key, value)
        else:
            tree[key] = value
    return tree


def count_leaves(tree: Dict[str, Any]) -> int:
    count = 0
    for value in tree.values():
        if isinstance(value, dict):
            count += count_leaves(value)
        else:
            count += 1
    return count

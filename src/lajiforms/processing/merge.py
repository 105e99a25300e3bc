"""Merge policy for form trees.

Merging never mutates its inputs:

- dictionaries merge key by key, recursively;
- scalars from the overriding side win;
- lists are replaced by the overriding list (`lists="replace"`), or merged
  index by index with dictionaries merged recursively and unseen scalars
  appended (`lists="combine"`).
"""

from __future__ import annotations

import copy
from typing import Any, Literal

ListStrategy = Literal["replace", "combine"]


def deep_merge(base: Any, override: Any, *, lists: ListStrategy = "replace") -> Any:
    """Merge `override` over `base`.

    Args:
        base (Any): Lower-precedence tree.
        override (Any): Higher-precedence tree.
        lists (ListStrategy): How two lists at the same position are merged.

    Returns:
        Any: A new merged tree.
    """
    if isinstance(base, dict) and isinstance(override, dict):
        merged = {key: copy.deepcopy(value) for key, value in base.items()}
        for key, value in override.items():
            merged[key] = deep_merge(base[key], value, lists=lists) if key in base else copy.deepcopy(value)
        return merged
    if lists == "combine" and isinstance(base, list) and isinstance(override, list):
        return _combine_lists(base, override)
    return copy.deepcopy(override)


def _combine_lists(base: list[Any], override: list[Any]) -> list[Any]:
    combined = copy.deepcopy(base)
    for index, item in enumerate(override):
        if index >= len(base):
            combined.append(copy.deepcopy(item))
        elif isinstance(item, dict | list):
            combined[index] = deep_merge(base[index], item, lists="combine")
        elif item not in base:
            combined.append(item)
    return combined


def merge_translations(
    base: dict[str, dict[str, str]] | None,
    override: dict[str, dict[str, str]] | None,
) -> dict[str, dict[str, str]]:
    """Merge translation tables per language, `override` winning on key collision."""
    merged: dict[str, dict[str, str]] = {lang: dict(table) for lang, table in (base or {}).items()}
    for lang, table in (override or {}).items():
        merged[lang] = {**merged.get(lang, {}), **table}
    return merged

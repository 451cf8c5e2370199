"""Selector engine - decides whether an entity is in scope for a profile."""

from warden.selectors.selectors import (
    Selection,
    SelectionBuilder,
    SelectOption,
    with_unknown_paths,
)

__all__ = [
    "Selection",
    "SelectionBuilder",
    "SelectOption",
    "with_unknown_paths",
]

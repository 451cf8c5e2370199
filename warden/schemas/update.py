"""
Schema evolution checks.

A replacement schema must not break documents written against the current one:
it may add optional properties and relax constraints, but it may not drop
declared keys or introduce new required fields.
"""

from typing import Any, Mapping, Optional

from warden.errors import SchemaUpdateError


def _is_empty(schema: Optional[Mapping[str, Any]]) -> bool:
    return schema is None or len(schema) == 0


def validate_schema_update(old: Optional[Mapping[str, Any]], new: Optional[Mapping[str, Any]]) -> None:
    """
    Check that `new` is a backward compatible replacement for `old`.

    Raises:
        SchemaUpdateError: If the update would break existing documents
    """
    if _is_empty(old):
        return
    if _is_empty(new):
        raise SchemaUpdateError("cannot remove schema from rule type")

    _check_required(old, new, path="")
    _check_superset(old, new, path="")


def _check_required(old: Mapping[str, Any], new: Mapping[str, Any], path: str) -> None:
    old_required = set(old.get("required") or [])
    new_required = set(new.get("required") or [])
    added = sorted(new_required - old_required)
    if added:
        where = path or "(root)"
        raise SchemaUpdateError(f"cannot add required fields to rule schema at {where}: {', '.join(added)}")

    old_props = old.get("properties") or {}
    new_props = new.get("properties") or {}
    for name, old_prop in old_props.items():
        new_prop = new_props.get(name)
        if isinstance(old_prop, Mapping) and isinstance(new_prop, Mapping):
            _check_required(old_prop, new_prop, path=f"{path}.{name}" if path else name)


def _check_superset(old: Mapping[str, Any], new: Mapping[str, Any], path: str) -> None:
    for key, old_value in old.items():
        # dropping required entries only relaxes the schema
        if key == "required":
            continue
        here = f"{path}.{key}" if path else key
        if key not in new:
            raise SchemaUpdateError(f"cannot remove properties from rule type schema: {here}")
        new_value = new[key]
        if isinstance(old_value, Mapping):
            if not isinstance(new_value, Mapping):
                raise SchemaUpdateError(f"cannot change the shape of rule type schema at {here}")
            _check_superset(old_value, new_value, here)

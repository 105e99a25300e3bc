"""Fill form data with the defaults declared in a schema."""

from __future__ import annotations

import copy
from typing import Any

from lajiforms.processing.json_schema import JSONSchema


def get_default_form_state(schema: JSONSchema, form_data: Any = None) -> Any:
    """Return form data completed with schema defaults.

    Values present in `form_data` always win. Objects are completed property by
    property, arrays item by item; arrays absent from the data are only created
    from an explicit `default`.

    Args:
        schema (JSONSchema): Compiled JSON schema.
        form_data (Any): Partial document.

    Returns:
        Any: A new document.
    """
    if form_data is None and "default" in schema:
        form_data = copy.deepcopy(schema["default"])

    schema_type = schema.get("type")
    if schema_type == "object":
        if form_data is not None and not isinstance(form_data, dict):
            return form_data
        state = dict(form_data or {})
        for name, property_schema in (schema.get("properties") or {}).items():
            value = get_default_form_state(property_schema, state.get(name))
            if value is not None:
                state[name] = value
        return state
    if schema_type == "array":
        if not isinstance(form_data, list):
            return form_data
        items = schema.get("items") or {}
        return [get_default_form_state(items, item) for item in form_data]
    return form_data

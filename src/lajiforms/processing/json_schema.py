"""Builders and accessors for JSON-Schema-shaped fragments."""

from __future__ import annotations

from collections.abc import Callable, Iterable
from typing import Any

JSONSchema = dict[str, Any]


def object_schema(properties: dict[str, JSONSchema] | None = None, required: list[str] | None = None) -> JSONSchema:
    """Build an object schema.

    Args:
        properties (dict[str, JSONSchema] | None): Property schemas.
        required (list[str] | None): Required property names, omitted when empty.

    Returns:
        JSONSchema: Object schema.
    """
    schema: JSONSchema = {"type": "object", "properties": properties or {}}
    if required:
        schema["required"] = list(required)
    return schema


def array_schema(items: JSONSchema) -> JSONSchema:
    """Wrap a schema as the item schema of an array."""
    return {"type": "array", "items": items}


def string_schema(**extra: Any) -> JSONSchema:
    return {"type": "string", **extra}


def integer_schema(**extra: Any) -> JSONSchema:
    return {"type": "integer", **extra}


def number_schema(**extra: Any) -> JSONSchema:
    return {"type": "number", **extra}


def boolean_schema(**extra: Any) -> JSONSchema:
    return {"type": "boolean", **extra}


def multi_language_schema(langs: Iterable[str]) -> JSONSchema:
    """Build the per-language object of a multi-language property."""
    return object_schema({lang: string_schema() for lang in langs})


def enum_schema(members: Iterable[tuple[str, str]], *, use_enums: bool = False) -> JSONSchema:
    """Build an enumerated string schema.

    Args:
        members (Iterable[tuple[str, str]]): `(value, title)` pairs in order.
        use_enums (bool): Emit parallel `enum`/`enumNames` arrays instead of
            `oneOf` with `const`/`title` members.

    Returns:
        JSONSchema: Enumerated string schema.
    """
    pairs = list(members)
    if use_enums:
        return string_schema(enum=[value for value, _ in pairs], enumNames=[title for _, title in pairs])
    return string_schema(oneOf=[{"const": value, "title": title} for value, title in pairs])


def enum_target(schema: JSONSchema) -> JSONSchema | None:
    """Return the sub-schema holding enum data, looking through arrays."""
    if schema.get("type") == "string":
        return schema
    if schema.get("type") == "array" and isinstance(schema.get("items"), dict):
        return schema["items"]
    return None


def enum_values(schema: JSONSchema) -> list[str]:
    """Return the enumerated values of a schema in order."""
    target = enum_target(schema) or {}
    if "oneOf" in target:
        return [member["const"] for member in target["oneOf"]]
    return list(target.get("enum", []))


def filter_enum(schema: JSONSchema, keep: Callable[[str], bool]) -> JSONSchema:
    """Drop enum members for which `keep` is false.

    Both the `oneOf` and the `enum`/`enumNames` representations are handled.

    Args:
        schema (JSONSchema): Schema, possibly an array of enums.
        keep (Callable[[str], bool]): Predicate over member values.

    Returns:
        JSONSchema: A filtered copy.
    """
    target = enum_target(schema)
    if target is None:
        return schema
    filtered = dict(target)
    if "oneOf" in target:
        filtered["oneOf"] = [member for member in target["oneOf"] if keep(member["const"])]
    if "enum" in target:
        pairs = list(zip(target["enum"], target.get("enumNames", target["enum"]), strict=False))
        kept = [(value, title) for value, title in pairs if keep(value)]
        filtered["enum"] = [value for value, _ in kept]
        if "enumNames" in target:
            filtered["enumNames"] = [title for _, title in kept]
    if target is schema:
        return filtered
    return {**schema, "items": filtered}


def strip_enum(schema: JSONSchema) -> JSONSchema:
    """Remove generated enum data, keeping the schema shape."""
    target = enum_target(schema)
    if target is None:
        return schema
    stripped = {key: value for key, value in target.items() if key not in {"oneOf", "enum", "enumNames"}}
    if target is schema:
        return stripped
    return {**schema, "items": stripped}


def property_schema(schema: JSONSchema, name: str) -> JSONSchema | None:
    """Return a child property schema, looking through arrays."""
    if schema.get("type") == "array":
        schema = schema.get("items") or {}
    return (schema.get("properties") or {}).get(name)

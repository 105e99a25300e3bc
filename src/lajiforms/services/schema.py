"""Conversion of an expanded master into the JSON-Schema-shaped format."""

from __future__ import annotations

import asyncio
import copy
from typing import TYPE_CHECKING, Any

from lajiforms import logger
from lajiforms.processing.default_state import get_default_form_state
from lajiforms.processing.json_schema import (
    JSONSchema,
    array_schema,
    enum_schema,
    filter_enum,
    object_schema,
    property_schema,
    strip_enum,
)
from lajiforms.processing.merge import deep_merge
from lajiforms.processing.translation import multi_lang, unprefix_prop
from lajiforms.services.converter import ConverterService, listed_values

if TYPE_CHECKING:
    from lajiforms.services.metadata import MetadataService
    from lajiforms.services.taxon import TaxonService
    from lajiforms.typing.models import Property

SchemaFormat = dict[str, Any]

_COPIED_OPTIONS = ("uniqueItems", "minItems", "maxItems")
_DROPPED_MASTER_KEYS = frozenset({"fields", "@type", "@context"})


def _options(field: dict[str, Any]) -> dict[str, Any]:
    return field.get("options") or {}


def add_value_options(schema: JSONSchema, field: dict[str, Any]) -> JSONSchema:
    """Replace the enum data of a schema with the field's `value_options`."""
    value_options = _options(field).get("value_options")
    if not value_options:
        return schema
    enum = enum_schema(value_options.items())
    if schema.get("type") == "array":
        return {**schema, "items": {**strip_enum(schema.get("items") or {}), **enum}, "uniqueItems": True}
    return {**strip_enum(schema), **enum}


def filter_whitelist(schema: JSONSchema, field: dict[str, Any]) -> JSONSchema:
    allowed = listed_values(_options(field).get("whitelist"))
    if allowed is None:
        return schema
    return filter_enum(schema, lambda value: value in allowed)


def filter_blacklist(schema: JSONSchema, field: dict[str, Any]) -> JSONSchema:
    denied = listed_values(_options(field).get("blacklist"))
    if denied is None:
        return schema
    return filter_enum(schema, lambda value: value not in denied)


def hide(schema: JSONSchema, field: dict[str, Any]) -> JSONSchema:
    """Strip enum data of hidden fields, keeping the schema shape."""
    if field.get("type") == "hidden":
        return strip_enum(schema)
    return schema


def add_requireds(schema: JSONSchema, properties: dict[str, Property]) -> JSONSchema:
    """Add catalog-required properties to an object schema, each name at most once."""
    required = list(schema.get("required") or [])
    for name in schema.get("properties") or {}:
        prop = properties.get(unprefix_prop(name))
        if prop is not None and prop.is_required and prop.name not in required:
            required.append(prop.name)
    if required:
        return {**schema, "required": required}
    return schema


def collect_validators(field: dict[str, Any], schema: JSONSchema, kind: str) -> dict[str, Any]:
    """Build the schema-shaped `validators` or `warnings` tree of a field.

    Args:
        field (dict[str, Any]): Field with nested fields.
        schema (JSONSchema): The field's compiled schema.
        kind (str): `validators` or `warnings`.

    Returns:
        dict[str, Any]: Declared validators, with children under `properties`
        (or `items.properties` for arrays).
    """
    validators = copy.deepcopy(field.get(kind) or {})
    for child in field.get("fields") or []:
        name = unprefix_prop(child["name"])
        child_validators = collect_validators(child, property_schema(schema, name) or {}, kind)
        if not child_validators:
            continue
        if schema.get("type") == "array":
            target = validators.setdefault("items", {}).setdefault("properties", {})
        else:
            target = validators.setdefault("properties", {})
        target[name] = child_validators
    return validators


def collect_exclude_from_copy(schema: JSONSchema, path: str = "$") -> list[str]:
    """Collect JSONPath-like paths of every schema flagged `excludeFromCopy`."""
    paths = [path] if schema.get("excludeFromCopy") else []
    if schema.get("type") == "array":
        paths.extend(collect_exclude_from_copy(schema.get("items") or {}, f"{path}[*]"))
    elif schema.get("type") == "object":
        for name, child in (schema.get("properties") or {}).items():
            paths.extend(collect_exclude_from_copy(child, f"{path}.{name}"))
    return paths


def build_alt_tree(parent_map: dict[str, list[str]]) -> dict[str, Any]:
    """Materialize a member -> parent map into a `{children, order}` tree.

    Args:
        parent_map (dict[str, list[str]]): Member id to its parent ids, empty for roots.

    Returns:
        dict[str, Any]: `{"tree": root}`, where inner nodes carry `children` and `order`.
    """
    root: dict[str, Any] = {"children": {}, "order": []}
    nodes: dict[str | None, dict[str, Any]] = {None: root}
    for child, parents in parent_map.items():
        parent = nodes.setdefault(parents[0] if parents else None, {})
        parent.setdefault("children", {})
        parent.setdefault("order", [])
        parent["children"][child] = nodes.setdefault(child, {})
        parent["order"].append(child)
    return {"tree": root}


class SchemaService(ConverterService[SchemaFormat]):
    """Compiles expanded masters into `schema` + sibling trees."""

    def __init__(self, metadata_service: MetadataService, taxon_service: TaxonService) -> None:
        """Initialize service.

        Args:
            metadata_service (MetadataService): Catalog lookups.
            taxon_service (TaxonService): Species lookups for prepopulation.
        """
        super().__init__(metadata_service)
        self.taxon_service = taxon_service

    async def convert(
        self,
        master: dict[str, Any],
        root_field: dict[str, Any] | None = None,
        root_property: Property | None = None,
    ) -> SchemaFormat:
        """Compile a master into the schema format.

        Returns:
            SchemaFormat: `schema`, `uiSchema`, `validators`, `warnings`,
            `excludeFromCopy` and the untouched top-level master attributes.
        """
        fields = master.get("fields") or []
        tree = {**root_field, "fields": fields} if root_field is not None else None
        if tree is not None and root_property is not None and fields:
            schema = await self.field_to_schema(tree, root_property)
        else:
            schema = object_schema()

        schema_format: SchemaFormat = {
            "schema": schema,
            "uiSchema": {},
            "excludeFromCopy": [],
            **{key: value for key, value in master.items() if key not in _DROPPED_MASTER_KEYS},
        }
        for kind in ("validators", "warnings"):
            schema_format[kind] = collect_validators({"fields": fields}, schema, kind).get("properties", {})
        if isinstance(master.get("id"), str):
            schema_format["attributes"] = {"id": master["id"]}
        schema_format["excludeFromCopy"] = collect_exclude_from_copy(schema)

        if tree is not None and root_property is not None:
            extra = await self.get_extra(tree, root_property)
            if extra:
                schema_format["extra"] = extra
        if schema_format.get("extra"):
            schema_format["uiSchemaContext"] = {
                name: build_alt_tree(entry["altParent"]) for name, entry in schema_format["extra"].items()
            }
        schema_format = await self.prepopulate(schema_format)
        logger.debug("Schema compiled", extra={"form_id": master.get("id"), "fields": len(fields)})
        return schema_format

    async def field_to_schema(self, field: dict[str, Any], prop: Property) -> JSONSchema:
        """Recursively compile one field against its catalog property.

        Raises:
            UnprocessableError: If a nested field is unknown to the catalog and has no `type`.

        Returns:
            JSONSchema: Schema of the field, arrays for unbounded properties.
        """
        fields = field.get("fields") or []
        if prop.is_embeddable:
            properties = await self.get_properties(fields, prop)
            names = [unprefix_prop(child["name"]) for child in fields]
            schemas = await asyncio.gather(
                *(self.field_to_schema(child, properties[name]) for child, name in zip(fields, names, strict=True)),
            )
            required = [name for child, name in zip(fields, names, strict=True) if child.get("required")]
            schema = add_requireds(object_schema(dict(zip(names, schemas, strict=True)), required), properties)
            if prop.unbounded:
                schema = array_schema(schema)
        else:
            schema = await self.metadata_service.get_json_schema_from_property(prop)
            for transform in (add_value_options, filter_whitelist, filter_blacklist, hide):
                schema = transform(schema, field)
        return self._apply_field_options(dict(schema), field, prop)

    def _apply_field_options(self, schema: JSONSchema, field: dict[str, Any], prop: Property) -> JSONSchema:
        options = _options(field)
        if options.get("excludeFromCopy"):
            schema["excludeFromCopy"] = True
        for key in _COPIED_OPTIONS:
            if key in options:
                schema[key] = options[key]
        if not prop.is_root:
            title = field.get("label")
            if title is None:
                title = multi_lang(prop.label, self.lang)
            schema["title"] = title if title is not None else prop.property
        if options.get("default") is not None:
            schema["default"] = copy.deepcopy(options["default"])
        return schema

    async def get_extra(self, field: dict[str, Any], prop: Property) -> dict[str, Any]:
        """Collect `altParent` maps of hierarchical alt ranges used by the field tree.

        Returns:
            dict[str, Any]: `{propName: {"altParent": {memberId: [parentId] | []}}}`.
        """
        if await self.metadata_service.is_alt_range(prop.range_id):
            members = await self.metadata_service.get_range(prop.range_id)
            if not any(member.alt_parent for member in members):
                return {}
            parent_map = {member.id: [member.alt_parent] if member.alt_parent else [] for member in members}
            return {unprefix_prop(prop.property): {"altParent": parent_map}}
        fields = field.get("fields") or []
        if not fields:
            return {}
        properties = await self.get_properties(fields, prop)
        extra: dict[str, Any] = {}
        for child in fields:
            extra.update(await self.get_extra(child, properties[unprefix_prop(child["name"])]))
        return extra

    async def prepopulate(self, schema_format: SchemaFormat) -> SchemaFormat:
        """Fill `options.prepopulatedDocument` with species of the configured informal groups."""
        options = schema_format.get("options") or {}
        informal_groups = options.get("prepopulateWithInformalTaxonGroups")
        if not informal_groups:
            return schema_format
        species = await self.taxon_service.get_species_by_informal_groups(informal_groups)
        units = [
            {
                "identifications": [
                    {
                        "taxonID": taxon["id"],
                        "taxonVerbatim": taxon.get("vernacularName") or "",
                        "taxon": taxon.get("scientificName") or "",
                    },
                ],
            }
            for taxon in species
        ]
        document = deep_merge(
            options.get("prepopulatedDocument") or {},
            {"gatherings": [{"units": units}]},
            lists="combine",
        )
        logger.info("Document prepopulated", extra={"informal_groups": informal_groups, "species": len(species)})
        return {
            **schema_format,
            "options": {**options, "prepopulatedDocument": get_default_form_state(schema_format["schema"], document)},
        }

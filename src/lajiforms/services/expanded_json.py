"""Conversion of an expanded master into the typed field tree format."""

from __future__ import annotations

import asyncio
import copy
from typing import TYPE_CHECKING, Any

from lajiforms import logger
from lajiforms.processing.translation import multi_lang, unprefix_prop
from lajiforms.services.converter import ConverterService, listed_values
from lajiforms.typing.enums import LANGS, ExpandedFieldType, PropertyRange

if TYPE_CHECKING:
    from lajiforms.typing.models import Property

ExpandedJSONFormat = dict[str, Any]
Translations = dict[str, dict[str, str]]


def map_primitive_type(range_id: str, *, is_embeddable: bool) -> ExpandedFieldType | None:
    """Return the field type of a non-alt range, or None to keep the field's own type."""
    match range_id:
        case PropertyRange.STRING | PropertyRange.DATE_TIME:
            return ExpandedFieldType.TEXT
        case PropertyRange.BOOLEAN:
            return ExpandedFieldType.CHECKBOX
        case PropertyRange.INTEGER:
            return ExpandedFieldType.INTEGER
        case PropertyRange.NON_NEGATIVE_INTEGER:
            return ExpandedFieldType.NON_NEGATIVE_INTEGER
        case PropertyRange.POSITIVE_INTEGER:
            return ExpandedFieldType.POSITIVE_INTEGER
        case PropertyRange.DECIMAL:
            return ExpandedFieldType.NUMBER
        case PropertyRange.KEY_VALUE | PropertyRange.KEY_ANY:
            return ExpandedFieldType.FIELDSET
    return None if is_embeddable else ExpandedFieldType.TEXT


def wrap_collection(node: dict[str, Any]) -> dict[str, Any]:
    """Rewrap a node as a collection of its current type."""
    options = dict(node.get("options") or {})
    options["target_element"] = {**(options.get("target_element") or {}), "type": node.get("type")}
    return {**node, "type": ExpandedFieldType.COLLECTION.to_str(), "options": options}


def filter_value_options(node: dict[str, Any], list_name: str, *, keep_listed: bool) -> dict[str, Any]:
    """Filter `value_options` by a whitelist or blacklist option, consuming that option."""
    options = node.get("options") or {}
    value_options = options.get("value_options")
    listed_set = listed_values(options.get(list_name))
    if not value_options or listed_set is None:
        return node
    filtered = {key: label for key, label in value_options.items() if (key in listed_set) == keep_listed}
    remaining = {key: value for key, value in options.items() if key != list_name}
    return {**node, "options": {**remaining, "value_options": filtered}}


class ExpandedJSONService(ConverterService[ExpandedJSONFormat]):
    """Compiles expanded masters into a typed field tree.

    Catalog labels and alt range member labels are written into a translations
    accumulator owned by one `convert` call.
    """

    async def convert(
        self,
        master: dict[str, Any],
        root_field: dict[str, Any] | None = None,
        root_property: Property | None = None,
    ) -> ExpandedJSONFormat:
        """Expand the field tree of a master.

        Returns:
            ExpandedJSONFormat: The master with typed `fields` and completed `translations`.
        """
        if root_field is None or root_property is None:
            return master
        own_translations = master.get("translations") or {}
        translations: Translations = {
            lang.value: copy.deepcopy(own_translations.get(lang.value) or {}) for lang in LANGS
        }
        expanded = await self.expand_field(
            {**root_field, "fields": master.get("fields") or []},
            root_property,
            translations,
        )
        logger.debug("Field tree expanded", extra={"form_id": master.get("id")})
        return {**master, "fields": expanded.get("fields") or [], "translations": translations}

    async def expand_field(
        self,
        field: dict[str, Any],
        prop: Property,
        translations: Translations,
    ) -> dict[str, Any]:
        """Expand one field and its children, recording labels into `translations`."""
        node = await self._expand_children(field, prop, translations)
        node = await self._map_range(node, prop, translations)
        if prop.is_embeddable:
            node = {**node, "type": ExpandedFieldType.FIELDSET.to_str()}
        if prop.unbounded:
            node = wrap_collection(node)
        node = filter_value_options(node, "whitelist", keep_listed=True)
        node = filter_value_options(node, "blacklist", keep_listed=False)
        if "label" not in node and not prop.is_root:
            label_key = f"@{field['name']}"
            for lang in LANGS:
                translations[lang.value][label_key] = multi_lang(prop.label, lang.value) or ""
            node = {**node, "label": label_key}
        return node

    async def _expand_children(
        self,
        field: dict[str, Any],
        prop: Property,
        translations: Translations,
    ) -> dict[str, Any]:
        fields = field.get("fields")
        if not prop.is_embeddable or not fields:
            return field
        properties = await self.get_properties(fields, prop)
        children = await asyncio.gather(
            *(
                self.expand_field(child, properties[unprefix_prop(child["name"])], translations)
                for child in fields
            ),
        )
        return {**field, "fields": list(children)}

    async def _map_range(
        self,
        field: dict[str, Any],
        prop: Property,
        translations: Translations,
    ) -> dict[str, Any]:
        if await self.metadata_service.is_alt_range(prop.range_id):
            if field.get("type") == "hidden":
                return field
            return await self._map_alt_range(field, prop, translations)
        field_type = map_primitive_type(prop.range_id, is_embeddable=prop.is_embeddable)
        if field_type is None:
            return field
        return {**field, "type": field_type.to_str()}

    async def _map_alt_range(
        self,
        field: dict[str, Any],
        prop: Property,
        translations: Translations,
    ) -> dict[str, Any]:
        options = field.get("options") or {}
        value_options = options.get("value_options")
        if not value_options:
            value_options = {} if prop.min_occurs == "1" else {"": ""}
            for member in await self.metadata_service.get_range(prop.range_id):
                label_key = f"@{member.id}"
                for lang in LANGS:
                    text = multi_lang(member.value, lang.value)
                    if isinstance(text, str):
                        translations[lang.value][label_key] = text
                value_options[member.id] = label_key
        return {
            **field,
            "type": ExpandedFieldType.SELECT.to_str(),
            "options": {**options, "value_options": value_options},
        }

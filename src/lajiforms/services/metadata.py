"""Property, class and range metadata resolved from the catalog."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from lajiforms import logger
from lajiforms.caching import HasCaches
from lajiforms.processing.json_schema import (
    JSONSchema,
    array_schema,
    boolean_schema,
    enum_schema,
    integer_schema,
    multi_language_schema,
    number_schema,
    object_schema,
    string_schema,
)
from lajiforms.processing.translation import multi_lang, unprefix_prop
from lajiforms.typing.enums import LANGS, PropertyRange
from lajiforms.typing.models import CatalogClass, Property, RangeEntry

if TYPE_CHECKING:
    from collections.abc import Iterable

    from lajiforms.typing.protocol import CatalogClient

_MULTI_LANG = "multi"


def _primitive_schema(range_id: str) -> JSONSchema | None:
    """Return the schema of a primitive range, or None for classes."""
    match range_id:
        case PropertyRange.STRING:
            return string_schema()
        case PropertyRange.BOOLEAN:
            return boolean_schema()
        case PropertyRange.INTEGER:
            return integer_schema()
        case PropertyRange.NON_NEGATIVE_INTEGER:
            return integer_schema(minimum=0)
        case PropertyRange.POSITIVE_INTEGER:
            return integer_schema(exclusiveMinimum=0)
        case PropertyRange.DECIMAL:
            return number_schema()
        case PropertyRange.DATE_TIME:
            return string_schema(format="date-time")
        case PropertyRange.KEY_VALUE | PropertyRange.KEY_ANY:
            return object_schema()
    return None


class MetadataService(HasCaches):
    """Catalog lookups memoized for the lifetime of the service.

    Every network-backed lookup is cached by its exact arguments. `flush`
    clears all of them and is called whenever the active language changes.
    """

    def __init__(self, api_client: CatalogClient, lang: str = "en") -> None:
        """Initialize service.

        Args:
            api_client (CatalogClient): Catalog API client.
            lang (str): Language of generated titles.
        """
        super().__init__()
        self._api_client = api_client
        self.lang = lang
        self._all_ranges = self.memoize("metadata.all_ranges", self._fetch_all_ranges)
        self._class_properties = self.memoize("metadata.class_properties", self._fetch_class_properties)
        self._range = self.memoize("metadata.range", self._fetch_range)
        self._classes = self.memoize("metadata.classes", self._fetch_classes)

    def set_lang(self, lang: str) -> None:
        """Switch the active language, flushing caches on change."""
        if lang == self.lang:
            return
        self.lang = lang
        self.flush()

    async def _fetch_class_properties(self, class_name: str, lang: str) -> list[Property]:
        payload = await self._api_client.fetch_json(f"/metadata/classes/{class_name}/properties", {"lang": lang})
        return [Property.model_validate(item) for item in (payload or {}).get("results") or []]

    async def _fetch_range(self, range_id: str, lang: str) -> list[RangeEntry]:
        payload = await self._api_client.fetch_json(f"/metadata/alts/{range_id}", {"lang": lang})
        return [RangeEntry.model_validate(item) for item in payload or []]

    async def _fetch_classes(self) -> list[CatalogClass]:
        payload = await self._api_client.fetch_json("/metadata/classes")
        return [CatalogClass.model_validate(item) for item in (payload or {}).get("results") or []]

    async def get_class_properties(self, class_name: str) -> list[Property]:
        """Return the property list of a class."""
        return await self._class_properties(class_name, _MULTI_LANG)

    async def get_properties(self, fields: Iterable[dict[str, Any]], prop: Property) -> dict[str, Property]:
        """Map the unprefixed names of `fields` to their catalog properties under `prop`.

        Fields without a catalog counterpart are absent from the result.
        """
        names = {unprefix_prop(field["name"]) for field in fields if "name" in field}
        if not names:
            return {}
        return {
            unprefix_prop(candidate.property): candidate
            for candidate in await self.get_class_properties(prop.range_id)
            if unprefix_prop(candidate.property) in names
        }

    async def _fetch_all_ranges(self) -> dict[str, list[RangeEntry]]:
        payload = await self._api_client.fetch_json("/metadata/alts", {"lang": _MULTI_LANG})
        all_ranges = {
            range_id: [RangeEntry.model_validate(item) for item in members or []]
            for range_id, members in (payload or {}).items()
        }
        logger.debug("Alt ranges loaded", extra={"ranges": len(all_ranges)})
        return all_ranges

    async def get_all_ranges(self) -> dict[str, list[RangeEntry]]:
        """Return every alt range, fetched in one bulk call shared by concurrent callers."""
        return await self._all_ranges()

    async def is_alt_range(self, range_id: str) -> bool:
        """Return whether the range is an enumerable alt range."""
        return range_id in await self.get_all_ranges()

    async def get_range(self, range_id: str) -> list[RangeEntry]:
        """Return the members of an alt range."""
        if () in self._all_ranges:
            all_ranges = await self._all_ranges()
            if range_id in all_ranges:
                return all_ranges[range_id]
        return await self._range(range_id, _MULTI_LANG)

    async def get_classes(self) -> list[CatalogClass]:
        """Return every class of the catalog."""
        return await self._classes()

    def member_title(self, entry: RangeEntry) -> str:
        """Title of an alt range member in the active language."""
        for candidate in (entry.vernacular_name, entry.value):
            title = multi_lang(candidate, self.lang)
            if title is not None:
                return title
        return entry.id

    async def get_json_schema_from_property(self, prop: Property, *, use_enums: bool = False) -> JSONSchema:
        """Convert one catalog property into a JSON schema fragment.

        Args:
            prop (Property): Catalog property.
            use_enums (bool): Emit `enum`/`enumNames` instead of `oneOf` for alt ranges.

        Returns:
            JSONSchema: Schema fragment, titled in the active language.
        """
        schema = await self._range_to_schema(prop, use_enums=use_enums)
        if prop.unbounded:
            schema = array_schema(schema)
            if await self.is_alt_range(prop.range_id):
                schema["uniqueItems"] = True
        title = multi_lang(prop.label, self.lang)
        if title is not None:
            schema["title"] = title
        return schema

    async def _range_to_schema(self, prop: Property, *, use_enums: bool) -> JSONSchema:
        range_id = prop.range_id
        if await self.is_alt_range(range_id):
            members: list[tuple[str, str]] = [] if prop.min_occurs == "1" else [("", "")]
            members.extend((entry.id, self.member_title(entry)) for entry in await self.get_range(range_id))
            return enum_schema(members, use_enums=use_enums)
        if prop.multi_language:
            return multi_language_schema(LANGS)
        primitive = _primitive_schema(range_id)
        if primitive is not None:
            return primitive
        if not prop.is_embeddable and prop.name != "geometry":
            return string_schema()
        class_properties = await self.get_class_properties(range_id)
        schemas = await asyncio.gather(
            *(self.get_json_schema_from_property(child, use_enums=use_enums) for child in class_properties),
        )
        return object_schema({child.name: schema for child, schema in zip(class_properties, schemas, strict=True)})

"""Structural uiSchema derived from catalog metadata."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from lajiforms.processing.merge import deep_merge
from lajiforms.processing.translation import multi_lang, unprefix_prop

if TYPE_CHECKING:
    from lajiforms.services.metadata import MetadataService
    from lajiforms.typing.models import Property


class UiSchemaService:
    """Generates uiSchema fragments merged under the author's uiSchema."""

    def __init__(self, metadata_service: MetadataService) -> None:
        self.metadata_service = metadata_service

    async def expand_ui_schema(
        self,
        master: dict[str, Any],
        root_field: dict[str, Any],
        root_property: Property,
    ) -> dict[str, Any]:
        """Merge generated fragments under `master["uiSchema"]`, the author's keys winning.

        Args:
            master (dict[str, Any]): Expanded master or schema format.
            root_field (dict[str, Any]): Synthetic container field.
            root_property (Property): Catalog property of the container.

        Returns:
            dict[str, Any]: A copy with the merged uiSchema, or `master` when
            nothing was generated.
        """
        fields = master.get("fields")
        if not fields:
            return master
        generated = await self.field_to_ui_schema({**root_field, "fields": fields}, root_property)
        if not generated:
            return master
        return {**master, "uiSchema": deep_merge(generated, master.get("uiSchema") or {})}

    async def field_to_ui_schema(self, field: dict[str, Any], prop: Property) -> dict[str, Any] | None:
        """Return the generated uiSchema of one field, None when empty."""
        if prop.is_embeddable:
            fields = field.get("fields") or []
            properties = await self.metadata_service.get_properties(fields, prop)
            ui_schema: dict[str, Any] = {}
            for child in fields:
                name = unprefix_prop(child["name"])
                if name not in properties:
                    continue
                fragment = await self.field_to_ui_schema(child, properties[name])
                if fragment:
                    ui_schema[name] = fragment
            if ui_schema and prop.unbounded:
                return {"items": ui_schema}
            return ui_schema or None

        fragment: dict[str, Any] = {}
        if prop.multi_language:
            fragment["ui:multiLanguage"] = True
        help_text = multi_lang(prop.comment, self.metadata_service.lang)
        if help_text:
            fragment["ui:help"] = help_text
        return fragment or None

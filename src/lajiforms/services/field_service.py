"""Compilation pipeline from a Master to one of the output formats."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from structlog.contextvars import bound_contextvars

from lajiforms import logger
from lajiforms.exceptions import UnprocessableError
from lajiforms.processing.translation import has_prefix, translate_for_lang, unprefix_prop
from lajiforms.services.expanded_json import ExpandedJSONService
from lajiforms.services.form_expander import FormExpanderService
from lajiforms.services.schema import SchemaService
from lajiforms.services.uischema import UiSchemaService
from lajiforms.typing.enums import Format, Lang
from lajiforms.typing.models import Property, is_form_extension_field, validate_master

if TYPE_CHECKING:
    from lajiforms.services.metadata import MetadataService
    from lajiforms.services.taxon import TaxonService
    from lajiforms.typing.protocol import FormStore

ROOT_CLASS_PRIORITY = ("MY.document", "MNP.namedPlace", "MAN.annotation", "MM.image", "MM.audio")
DEFAULT_ROOT_CLASS = "MY.document"
MEDIA_CLASSES = frozenset({"MM.image", "MM.audio"})


def identifies_root(prop: Property) -> bool:
    """Whether a property belongs to a single class, or to the two media classes only."""
    return len(prop.domain) == 1 or (len(prop.domain) == 2 and set(prop.domain) == MEDIA_CLASSES)


def validate_lang(lang: str | None) -> str | None:
    """Check a requested language.

    Raises:
        UnprocessableError: If the language is not one of fi, sv, en.

    Returns:
        str | None: The language, or None when none was requested.
    """
    if lang is None or lang == "":
        return None
    if not Lang.is_lang(lang):
        raise UnprocessableError(message=f"Unsupported language '{lang}'. Expected one of: fi, sv, en")
    return lang


class FieldService:
    """Orchestrates expansion, root resolution and format conversion.

    Every conversion runs on a deep copy of the caller's master: the
    expansion stages are ordered linking, default validators, patches and
    taxon sets, after which the tree is handed to the converter of the
    requested format and finally translated when a language was requested.
    """

    def __init__(self, metadata_service: MetadataService, store: FormStore, taxon_service: TaxonService) -> None:
        """Initialize service.

        Args:
            metadata_service (MetadataService): Memoized catalog lookups.
            store (FormStore): Storage resolving base and extension forms.
            taxon_service (TaxonService): Taxonomy lookups.
        """
        self.metadata_service = metadata_service
        self.form_expander = FormExpanderService(store, taxon_service)
        self.schema_service = SchemaService(metadata_service, taxon_service)
        self.expanded_json_service = ExpandedJSONService(metadata_service)
        self.ui_schema_service = UiSchemaService(metadata_service)

    @property
    def lang(self) -> str:
        return self.metadata_service.lang

    def set_lang(self, lang: str) -> None:
        """Switch the language of catalog titles, flushing the catalog caches on change."""
        self.metadata_service.set_lang(lang)

    async def expand_master(self, master: dict[str, Any]) -> dict[str, Any]:
        """Resolve inheritance, default validators, patches and taxon sets on a copy of `master`."""
        return await self.form_expander.expand_master(master)

    async def convert(
        self,
        master: dict[str, Any],
        fmt: Format | str = Format.SCHEMA,
        lang: str | None = None,
    ) -> dict[str, Any]:
        """Compile a master.

        Args:
            master (dict[str, Any]): Authored master; never mutated.
            fmt (Format | str): `schema` or `json`.
            lang (str | None): Language to translate the output to.

        Raises:
            UnprocessableError: For unsupported languages, malformed masters, prefixed
                contexts and unknown fields.
            StoreError: When a base or extension form cannot be fetched.

        Returns:
            dict[str, Any]: Schema format or expanded JSON format.
        """
        output_format = Format.from_str(str(fmt))
        lang = validate_lang(lang)
        validate_master(master)
        if lang:
            self.set_lang(lang)

        with bound_contextvars(form_id=master.get("id"), format=output_format.to_str()):
            result = await self._convert(master, output_format)
            if lang:
                result = {**result, "language": lang}
            logger.info("Form converted", extra={"lang": lang})
        return translate_for_lang(result, lang)

    async def _convert(self, master: dict[str, Any], output_format: Format) -> dict[str, Any]:
        expanded = await self.expand_master(master)
        root_field = await self.get_root_field(expanded) if expanded.get("fields") else None
        root_property = self.get_root_property(root_field) if root_field is not None else None

        if output_format is not Format.SCHEMA:
            return await self.expanded_json_service.convert(expanded, root_field, root_property)
        result = await self.schema_service.convert(expanded, root_field, root_property)
        if root_field is not None and root_property is not None:
            ui_expanded = await self.ui_schema_service.expand_ui_schema(expanded, root_field, root_property)
            result["uiSchema"] = ui_expanded.get("uiSchema") or {}
        return result

    async def get_error(self, master: dict[str, Any]) -> Exception | None:
        """Run a schema conversion and report its failure instead of raising.

        Returns:
            Exception | None: The conversion error, or None when the master compiles.
        """
        try:
            await self.convert(master, Format.SCHEMA)
        except Exception as exc:
            logger.info("Form does not compile", extra={"form_id": master.get("id"), "error": str(exc)})
            return exc
        return None

    async def get_root_field(self, master: dict[str, Any]) -> dict[str, Any]:
        """Determine the catalog class containing the top-level fields.

        Raises:
            UnprocessableError: If `context` carries a namespace prefix or names no known class.

        Returns:
            dict[str, Any]: Synthetic container field named after the class.
        """
        context = master.get("context")
        if context:
            if has_prefix(context):
                raise UnprocessableError(message=f"Context '{context}' must not have a namespace prefix")
            for class_name in await self._candidate_classes():
                if unprefix_prop(class_name) == context:
                    return {"name": class_name}
            raise UnprocessableError(message=f"Unknown context '{context}'")

        names = {
            unprefix_prop(field["name"]) for field in master.get("fields") or [] if not is_form_extension_field(field)
        }
        for class_name in await self._candidate_classes():
            properties = await self.metadata_service.get_class_properties(class_name)
            if any(identifies_root(prop) and unprefix_prop(prop.property) in names for prop in properties):
                return {"name": class_name}
        logger.warning("Root class not detected", extra={"fields": sorted(names), "fallback": DEFAULT_ROOT_CLASS})
        return {"name": DEFAULT_ROOT_CLASS}

    async def _candidate_classes(self) -> list[str]:
        catalog_classes = [catalog_class.class_ for catalog_class in await self.metadata_service.get_classes()]
        return [*ROOT_CLASS_PRIORITY, *(name for name in catalog_classes if name not in ROOT_CLASS_PRIORITY)]

    @staticmethod
    def get_root_property(root_field: dict[str, Any]) -> Property:
        """Build the synthetic property of the root container."""
        name = root_field["name"]
        return Property(
            property=name,
            shortName=unprefix_prop(name),
            range=[name],
            isEmbeddable=True,
            minOccurs="1",
            maxOccurs="1",
            required=True,
            is_root=True,
        )

"""Form listing, retrieval and storage pass-through."""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any

from lajiforms import logger
from lajiforms.caching import HasCaches
from lajiforms.clients.api_client import ApiClient
from lajiforms.clients.store_client import StoreService
from lajiforms.processing.translation import translate, translate_for_lang
from lajiforms.services.field_service import FieldService, validate_lang
from lajiforms.services.form_expander import inherit_base_form
from lajiforms.services.metadata import MetadataService
from lajiforms.services.taxon import TaxonService
from lajiforms.typing.enums import Format

if TYPE_CHECKING:
    from lajiforms.settings import Settings

EXPOSED_PROPS = frozenset(
    {
        "id",
        "logo",
        "title",
        "description",
        "shortDescription",
        "supportedLanguage",
        "category",
        "collectionID",
        "options",
        "name",
    },
)
EXPOSED_OPTIONS = frozenset(
    {
        "allowExcel",
        "allowTemplate",
        "dataset",
        "emptyOnNoCount",
        "forms",
        "excludeFromGlobalExcel",
        "hasAdmins",
        "prepopulateWithInformalTaxonGroups",
        "restrictAccess",
        "secondaryCopy",
        "sidebarFormLabel",
        "useNamedPlaces",
        "viewerType",
        "disabled",
        "shortTitleFromCollectionName",
    },
)
DEFAULT_SUPPORTED_LANGUAGES = ("en", "fi", "sv")


def expose_form_listing(form: dict[str, Any]) -> dict[str, Any]:
    """Keep only the publicly listed attributes and options of a form."""
    listing = {key: copy.deepcopy(value) for key, value in form.items() if key in EXPOSED_PROPS}
    if isinstance(listing.get("options"), dict):
        options = {key: value for key, value in listing["options"].items() if key in EXPOSED_OPTIONS}
        if options:
            listing["options"] = options
        else:
            del listing["options"]
    if not listing.get("supportedLanguage"):
        listing["supportedLanguage"] = list(DEFAULT_SUPPORTED_LANGUAGES)
    return listing


class FormsService(HasCaches):
    """Entry point used by the API layer.

    Conversions and listings are memoized per argument tuple and invalidated
    on every storage mutation.
    """

    def __init__(
        self,
        store: StoreService,
        field_service: FieldService,
        *,
        api_client: ApiClient | None = None,
    ) -> None:
        """Initialize service.

        Args:
            store (StoreService): Form storage.
            field_service (FieldService): Compiler of masters.
            api_client (ApiClient | None): Catalog client closed by `aclose`.
        """
        super().__init__()
        self.store = store
        self.field_service = field_service
        self.api_client = api_client
        self._listing = self.memoize("forms.listing", self._load_forms)
        self._form = self.memoize("forms.form", self._load_form)

    async def _load_forms(self, lang: str | None) -> list[dict[str, Any]]:
        forms = await self.store.get_forms()
        forms_by_id = {form["id"]: form for form in forms if isinstance(form.get("id"), str)}
        listings: list[dict[str, Any]] = []
        for form in forms:
            base_form = forms_by_id.get(form.get("baseFormID") or "")
            extended = inherit_base_form(form, base_form) if base_form is not None else form
            listing = expose_form_listing(extended)
            translations = (form.get("translations") or {}).get(lang or "")
            listings.append(translate(listing, translations) if translations else listing)
        return listings

    async def _load_form(self, form_id: str, lang: str | None, fmt: str, expand: bool) -> dict[str, Any]:
        form = await self.store.get_form(form_id)
        if fmt == Format.SCHEMA or expand:
            return await self.field_service.convert(form, fmt, lang)
        return translate_for_lang(copy.deepcopy(form), lang)

    async def get_forms(self, lang: str | None = None) -> list[dict[str, Any]]:
        """List stored forms, base forms resolved and translated to `lang`.

        Raises:
            UnprocessableError: For unsupported languages.
        """
        lang = validate_lang(lang)
        return copy.deepcopy(await self._listing(lang))

    async def get_form(
        self,
        form_id: str,
        lang: str | None = None,
        fmt: Format | str = Format.JSON,
        *,
        expand: bool = True,
    ) -> dict[str, Any]:
        """Return one stored form, compiled unless raw JSON was asked for.

        Args:
            form_id (str): Form identifier.
            lang (str | None): Output language.
            fmt (Format | str): `schema` or `json`.
            expand (bool): Expand the field tree of the JSON format.

        Raises:
            UnprocessableError: For unsupported languages or uncompilable forms.
            StoreError: When the form does not exist.

        Returns:
            dict[str, Any]: The form in the requested format.
        """
        lang = validate_lang(lang)
        output_format = Format.from_str(str(fmt)).to_str()
        return copy.deepcopy(await self._form(form_id, lang, output_format, expand))

    async def transform(self, master: dict[str, Any], lang: str | None = None) -> dict[str, Any]:
        """Compile an unsaved master into the schema format."""
        return await self.field_service.convert(master, Format.SCHEMA, validate_lang(lang))

    async def save_form(self, form: dict[str, Any]) -> dict[str, Any]:
        """Store a new form after checking that it compiles.

        Raises:
            Exception: The conversion error of an uncompilable form.
        """
        error = await self.field_service.get_error(form)
        if error is not None:
            raise error
        created = await self.store.create_form(form)
        self._invalidate()
        return created

    async def update_form(self, form_id: str, form: dict[str, Any]) -> dict[str, Any]:
        """Replace a stored form after checking that it compiles."""
        error = await self.field_service.get_error(form)
        if error is not None:
            raise error
        updated = await self.store.update_form(form_id, form)
        self._invalidate()
        return updated

    async def delete_form(self, form_id: str) -> dict[str, Any]:
        """Delete a stored form."""
        deleted = await self.store.delete_form(form_id)
        self._invalidate()
        return deleted

    def _invalidate(self) -> None:
        # Compiled forms embed their base forms.
        self._listing.clear()
        self._form.clear()

    def flush(self) -> None:
        """Clear the conversion, storage and catalog caches."""
        super().flush()
        self.store.flush()
        self.field_service.metadata_service.flush()
        logger.info("Caches flushed")

    async def aclose(self) -> None:
        """Close the storage and catalog HTTP clients."""
        await self.store.aclose()
        if self.api_client is not None:
            await self.api_client.aclose()


def create_forms_service(
    settings: Settings,
    *,
    api_client: ApiClient | None = None,
    store: StoreService | None = None,
) -> FormsService:
    """Wire the compiler services from settings.

    Args:
        settings (Settings): Runtime settings.
        api_client (ApiClient | None): Catalog and taxonomy client.
        store (StoreService | None): Form storage client.

    Returns:
        FormsService: Ready-to-use service, closed with `aclose`.
    """
    api_client = api_client or ApiClient(settings)
    store = store or StoreService(settings)
    metadata_service = MetadataService(api_client, settings.default_lang)
    taxon_service = TaxonService(api_client, page_size=settings.taxon_page_size)
    return FormsService(store, FieldService(metadata_service, store, taxon_service), api_client=api_client)

"""Resolution of a Master into a self-contained expanded master.

Stages run in a fixed order: inheritance linking, default validators, JSON
Patch application, then taxon set expansion. The caller's master is deep
copied first and never mutated.
"""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING, Any

import jsonpatch

from lajiforms import logger
from lajiforms.processing.merge import deep_merge, merge_translations
from lajiforms.processing.translation import unprefix_prop
from lajiforms.services.taxon import parse_taxon_set_reference
from lajiforms.typing.enums import LANGS
from lajiforms.typing.models import is_form_extension_field

if TYPE_CHECKING:
    from lajiforms.services.taxon import TaxonService
    from lajiforms.typing.protocol import FormStore

SUPPORTED_PATCH_OPERATIONS = frozenset({"add", "replace", "remove"})

_GEOMETRY_VALIDATOR: dict[str, Any] = {
    "validator": {
        "requireShape": True,
        "maximumSize": 10,
        "includeGatheringUnits": True,
        "message": {
            "missingGeometries": "@geometryValidation",
            "invalidBoundingBoxHectares": "@geometryHectaresMaxValidation",
            "notGeometry": "@geometryValidation",
            "missingType": "@geometryValidation",
            "invalidRadius": "@geometryValidation",
            "invalidCoordinates": "@geometryValidation",
            "invalidGeometries": "@geometryValidation",
            "noOverlap": "@geometryValidation",
        },
        "boundingBoxMaxHectares": 1000000,
    },
    "translations": {
        "@geometryValidation": {
            "en": "Gathering must have at least one feature.",
            "sv": "Platsen måste ha åtminstone en figur.",
            "fi": "Paikalla täytyy olla vähintään yksi kuvio.",
        },
        "@geometryHectaresMaxValidation": {
            "en": "Too big area. Maximum is %{max} hectares",
            "sv": "För stort område. Maximalt är %{max} hektar",
            "fi": "Liian iso alue. Maksimi on %{max} hehtaaria",
        },
    },
}

_DATE_VALIDATOR: dict[str, Any] = {
    "validator": {
        "latest": "today",
        "tooLate": "@dateTooLateValidation",
    },
    "translations": {
        "@dateTooLateValidation": {
            "en": "Date cannot be in the future.",
            "sv": "Datumet kan inte vara i framtiden.",
            "fi": "Päivämäärä ei voi olla tulevaisuudessa.",
        },
    },
}

# Field path -> validator kind -> validator name -> canned validator.
DEFAULT_VALIDATORS: dict[str, dict[str, dict[str, dict[str, Any]]]] = {
    "/gatherings/geometry": {"validators": {"geometry": _GEOMETRY_VALIDATOR}},
    "/gatheringEvent/dateBegin": {"validators": {"datetime": _DATE_VALIDATOR}},
    "/gatheringEvent/dateEnd": {"validators": {"datetime": _DATE_VALIDATOR}},
}


def add_default_validators(master: dict[str, Any]) -> dict[str, Any]:
    """Inject canned validators on known field paths.

    An author-declared validator of the same name wins; declaring it `false`
    suppresses the default.

    Args:
        master (dict[str, Any]): Linked master, owned by the caller.

    Returns:
        dict[str, Any]: The master with default validators and their translations.
    """

    def _add_translations(translations: dict[str, dict[str, str]]) -> None:
        table = master.setdefault("translations", {})
        for lang in LANGS:
            table.setdefault(lang, {})
        for key, by_lang in translations.items():
            for lang, text in by_lang.items():
                table[lang].setdefault(key, text)

    def _walk(fields: list[dict[str, Any]], path: str) -> None:
        for field in fields:
            if "name" not in field:
                continue
            field_path = f"{path}/{unprefix_prop(field['name'])}"
            for kind, defaults in DEFAULT_VALIDATORS.get(field_path, {}).items():
                for name, default in defaults.items():
                    declared = field.get(kind) or {}
                    if name in declared:
                        if declared[name] is False:
                            field[kind] = {key: value for key, value in declared.items() if key != name}
                        continue
                    field[kind] = {**declared, name: copy.deepcopy(default["validator"])}
                    _add_translations(default.get("translations") or {})
            _walk(field.get("fields") or [], field_path)

    _walk(master.get("fields") or [], "")
    return master


def apply_patches(master: dict[str, Any]) -> dict[str, Any]:
    """Apply the master's own JSON Patch and drop it from the result.

    Raises:
        jsonpatch.InvalidJsonPatch: For operations other than add, replace and remove.

    Returns:
        dict[str, Any]: The patched master.
    """
    patch = master.get("patch")
    unpatched = {key: value for key, value in master.items() if key != "patch"}
    if not patch:
        return unpatched
    for operation in patch:
        if operation.get("op") not in SUPPORTED_PATCH_OPERATIONS:
            message = f"Unsupported patch operation: {operation.get('op')!r}"
            raise jsonpatch.InvalidJsonPatch(message)
    patched = jsonpatch.apply_patch(unpatched, patch)
    logger.debug("Patch applied", extra={"operations": len(patch)})
    return patched


def inherit_base_form(master: dict[str, Any], base_form: dict[str, Any]) -> dict[str, Any]:
    """Merge a master over its resolved base form.

    Top-level keys of the master win, `translations` and `uiSchema` are deep
    merged with the master's keys winning, and neither the base's `id` nor
    `baseFormID` survive.

    Returns:
        dict[str, Any]: A new merged master.
    """
    base = {key: value for key, value in base_form.items() if key != "id"}
    merged = {
        **base,
        **master,
        "translations": merge_translations(base.get("translations"), master.get("translations")),
        "uiSchema": deep_merge(base.get("uiSchema") or {}, master.get("uiSchema") or {}),
    }
    merged.pop("baseFormID", None)
    return merged


def _field_name(field: dict[str, Any]) -> str | None:
    return None if is_form_extension_field(field) else field.get("name")


def _merge_fields(
    own: list[dict[str, Any]],
    incoming: list[dict[str, Any]],
) -> tuple[list[dict[str, Any]], set[str]]:
    """Merge own fields into incoming ones, own fields winning on name collision.

    Returns:
        tuple[list[dict[str, Any]], set[str]]: Merged incoming fields and the
        own field names consumed by the merge.
    """
    own_by_name = {name: field for field in own if (name := _field_name(field))}
    merged: list[dict[str, Any]] = []
    consumed: set[str] = set()
    for field in incoming:
        name = _field_name(field)
        if name is None:
            continue
        existing = own_by_name.get(name)
        if existing is None:
            merged.append(field)
            continue
        consumed.add(name)
        if existing.get("fields") and field.get("fields"):
            children, children_consumed = _merge_fields(existing["fields"], field["fields"])
            leftovers = [child for child in existing["fields"] if _field_name(child) not in children_consumed]
            merged.append({**field, **existing, "fields": children + leftovers})
        else:
            merged.append(existing)
    return merged, consumed


class FormExpanderService:
    """Resolves inheritance, patches and taxon sets of a master."""

    def __init__(self, store: FormStore, taxon_service: TaxonService) -> None:
        """Initialize service.

        Args:
            store (FormStore): Storage used to fetch base and extension forms.
            taxon_service (TaxonService): Taxon set lookups.
        """
        self._store = store
        self._taxon_service = taxon_service

    async def expand_master(self, master: dict[str, Any]) -> dict[str, Any]:
        """Run the whole expansion pipeline.

        Raises:
            StoreError: When a referenced base or extension form cannot be fetched.

        Returns:
            dict[str, Any]: A self-contained expanded master.
        """
        linked = await self.link_master(master)
        expanded = apply_patches(add_default_validators(linked))
        return await self.add_taxon_sets(expanded)

    async def link_master(self, master: dict[str, Any]) -> dict[str, Any]:
        """Resolve `baseFormID` inheritance and `formID` field extensions on a copy."""
        linked = await self._map_base_form(copy.deepcopy(master))
        return await self._map_extension_fields(linked)

    async def _fetch(self, form_id: str) -> dict[str, Any]:
        return copy.deepcopy(await self._store.get_form(form_id))

    async def _map_base_form(self, master: dict[str, Any]) -> dict[str, Any]:
        base_form_id = master.get("baseFormID")
        if not base_form_id:
            return master
        base_form = await self._map_base_form(await self._fetch(base_form_id))
        logger.info("Base form linked", extra={"base_form_id": base_form_id, "form_id": master.get("id")})
        return inherit_base_form(master, base_form)

    async def _resolve_extension(self, form_id: str) -> dict[str, Any]:
        extension = await self.link_master(await self._fetch(form_id))
        logger.info("Field extension linked", extra={"extension_form_id": form_id})
        return apply_patches(extension)

    async def _map_extension_fields(self, master: dict[str, Any]) -> dict[str, Any]:
        if not master.get("fields"):
            return master
        master["fields"] = await self._link_fields(master["fields"], master, root=True)
        return master

    async def _link_fields(
        self,
        fields: list[dict[str, Any]],
        master: dict[str, Any],
        *,
        root: bool,
    ) -> list[dict[str, Any]]:
        linked: list[dict[str, Any]] = []
        for field in fields:
            if not is_form_extension_field(field) and field.get("fields"):
                field = {**field, "fields": await self._link_fields(field["fields"], master, root=False)}
            linked.append(field)

        index = 0
        while index < len(linked):
            field = linked[index]
            if not is_form_extension_field(field):
                index += 1
                continue
            extension = await self._resolve_extension(field["formID"])
            master["translations"] = merge_translations(extension.get("translations"), master.get("translations"))
            master["uiSchema"] = deep_merge(master.get("uiSchema") or {}, extension.get("uiSchema") or {})
            if root and not master.get("context") and extension.get("context"):
                master["context"] = extension["context"]
            before, after = linked[:index], linked[index + 1 :]
            spliced, consumed = _merge_fields(before + after, extension.get("fields") or [])
            before = [own for own in before if _field_name(own) not in consumed]
            after = [own for own in after if _field_name(own) not in consumed]
            linked = before + spliced + after
            index = len(before) + len(spliced)
        return linked

    async def add_taxon_sets(self, tree: Any) -> Any:
        """Replace every `...taxonSet:<ids>` string with the taxon ids of those sets."""
        if isinstance(tree, dict):
            return {key: await self.add_taxon_sets(value) for key, value in tree.items()}
        if isinstance(tree, list):
            return [await self.add_taxon_sets(item) for item in tree]
        if isinstance(tree, str):
            taxon_sets = parse_taxon_set_reference(tree)
            if taxon_sets is not None:
                return await self._taxon_service.get_taxon_sets(taxon_sets)
        return tree

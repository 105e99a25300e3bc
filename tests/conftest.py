"""Pytest marker auto-assignment by folder and shared in-memory collaborators."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any

import pytest

from lajiforms import logger
from lajiforms.exceptions import StoreError
from lajiforms.services.field_service import FieldService
from lajiforms.services.metadata import MetadataService
from lajiforms.services.taxon import TaxonService


def _mark_tests_by_directory(
    config: pytest.Config,
    items: list[pytest.Item],
    marker: str,
) -> None:
    """Mark collected tests located under tests/<marker>/."""
    target_dir = Path(config.rootpath) / "tests" / marker
    target_dir = target_dir.resolve()

    for item in items:
        try:
            path = Path(str(item.fspath)).resolve()
        except Exception:
            logger.warning(
                f"Could not resolve path for test item {item.name!s}; skipping {marker!s} marker assignment",
            )
            continue

        if path == target_dir or target_dir in path.parents:
            item.add_marker(getattr(pytest.mark, marker))


def pytest_collection_modifyitems(
    config: pytest.Config,
    items: list[pytest.Item],
) -> None:
    """Apply directory-based markers to test items."""
    _mark_tests_by_directory(config, items, "unit")
    _mark_tests_by_directory(config, items, "integration")
    _mark_tests_by_directory(config, items, "end2end")


def _label(en: str, fi: str | None = None, sv: str | None = None) -> dict[str, str]:
    return {"en": en, "fi": fi or en, "sv": sv or en}


def _prop(
    prop_id: str,
    range_id: str,
    label: dict[str, str],
    **extra: Any,
) -> dict[str, Any]:
    payload = {
        "property": prop_id,
        "shortName": prop_id.split(".")[-1],
        "range": [range_id],
        "label": label,
        "isEmbeddable": False,
        "multiLanguage": False,
        "minOccurs": "0",
        "maxOccurs": "1",
        "required": False,
        "domain": [],
    }
    payload.update(extra)
    return payload


def _with_domains(classes: dict[str, list[dict[str, Any]]]) -> dict[str, list[dict[str, Any]]]:
    """Give every property without an explicit domain the class listing it."""
    return {
        class_name: [{**payload, "domain": payload["domain"] or [class_name]} for payload in properties]
        for class_name, properties in classes.items()
    }


CLASS_PROPERTIES: dict[str, list[dict[str, Any]]] = _with_domains({
    "MY.document": [
        _prop(
            "MY.gatherings",
            "MY.gathering",
            _label("Gatherings", "Paikat", "Platser"),
            isEmbeddable=True,
            maxOccurs="unbounded",
        ),
        _prop("MY.gatheringEvent", "MZ.gatheringEvent", _label("Gathering event", "Keruutapahtuma"), isEmbeddable=True),
        _prop("MY.secureLevel", "MX.secureLevels", _label("Secure level", "Karkeistus", "Grovhet")),
        _prop("MY.keywords", "xsd:string", _label("Keywords", "Avainsanat"), maxOccurs="unbounded"),
        _prop("MY.editor", "xsd:string", _label("Editor", "Muokkaaja"), minOccurs="1"),
        _prop("MY.publicityRestrictions", "xsd:string", _label("Publicity"), required=True),
        _prop(
            "MY.notes",
            "xsd:string",
            _label("Notes", "Lisätiedot"),
            multiLanguage=True,
            comment={"en": "Free text", "fi": "Vapaa teksti", "sv": "Fritext"},
        ),
        _prop("MY.acknowledgeNoUnitsInCompleteList", "xsd:boolean", _label("No units")),
    ],
    "MY.gathering": [
        _prop("MY.geometry", "MY.geometryObject", _label("Geometry", "Geometria")),
        _prop("MY.municipality", "xsd:string", _label("Municipality", "Kunta")),
        _prop(
            "MY.locality",
            "xsd:string",
            _label("Locality", "Paikannimet"),
            comment={"en": "Place name", "fi": "Paikan nimi"},
        ),
        _prop("MY.habitat", "MY.habitatEnum", _label("Habitat", "Elinympäristö")),
        _prop("MY.units", "MY.unit", _label("Units", "Havainnot"), isEmbeddable=True, maxOccurs="unbounded"),
    ],
    "MZ.gatheringEvent": [
        _prop("MY.dateBegin", "xsd:dateTime", _label("Begin date", "Alkupäivä")),
        _prop("MY.dateEnd", "xsd:dateTime", _label("End date", "Loppupäivä")),
    ],
    "MY.unit": [
        _prop(
            "MY.identifications",
            "MY.identification",
            _label("Identifications", "Määritykset"),
            isEmbeddable=True,
            maxOccurs="unbounded",
        ),
        _prop("MY.recordBasis", "MY.recordBasisEnum", _label("Record basis", "Havaintotapa"), minOccurs="1"),
        _prop("MY.count", "xsd:positiveInteger", _label("Count", "Määrä")),
        _prop("MY.individualCount", "xsd:nonNegativeInteger", _label("Individual count", "Yksilömäärä")),
        _prop("MY.weight", "xsd:decimal", _label("Weight", "Paino")),
        _prop("MY.facts", "MZ.keyValue", _label("Facts", "Faktat")),
    ],
    "MY.identification": [
        _prop("MY.taxon", "xsd:string", _label("Taxon", "Taksoni")),
        _prop("MY.taxonID", "xsd:string", _label("Taxon ID", "Taksonin tunniste")),
        _prop("MY.taxonVerbatim", "xsd:string", _label("Taxon verbatim", "Taksoni sanatarkasti")),
    ],
    "MNP.namedPlace": [
        _prop("MNP.name", "xsd:string", _label("Name", "Nimi")),
        _prop("MNP.alternativeIDs", "xsd:string", _label("Alternative IDs"), maxOccurs="unbounded"),
    ],
})

ALT_RANGES: dict[str, list[dict[str, Any]]] = {
    "MX.secureLevels": [
        {"id": "MX.secureLevelNone", "value": _label("No restriction", "Ei karkeistusta", "Ingen begränsning")},
        {"id": "MX.secureLevelKM1", "value": _label("1 km")},
        {"id": "MX.secureLevelKM5", "value": _label("5 km")},
        {"id": "MX.secureLevelKM10", "value": _label("10 km")},
    ],
    "MY.recordBasisEnum": [
        {"id": "MY.recordBasisHumanObservationSeen", "value": _label("Seen", "Nähty", "Sett")},
        {"id": "MY.recordBasisHumanObservationHeard", "value": _label("Heard", "Kuultu", "Hört")},
    ],
    "MY.habitatEnum": [
        {"id": "MY.habitatForest", "value": _label("Forest", "Metsä")},
        {"id": "MY.habitatForestDry", "value": _label("Dry forest", "Kuiva metsä"), "altParent": "MY.habitatForest"},
        {"id": "MY.habitatMire", "value": _label("Mire", "Suo")},
    ],
}

TAXON_SETS: dict[str, list[str]] = {
    "MX.taxonSetSykeButterflyCensus": ["MX.60912", "MX.60913"],
    "MX.taxonSetBirds": ["MX.27748"],
}

SPECIES: list[dict[str, Any]] = [
    {"id": "MX.60912", "scientificName": "Papilio machaon", "vernacularName": "ritariperhonen"},
    {"id": "MX.60913", "scientificName": "Iphiclides podalirius"},
]


class FakeCatalog:
    """In-memory metadata catalog and taxonomy API recording every request.

    With `suspend=True` every request yields to the event loop once, like a
    network round trip, so concurrent lookups overlap.
    """

    def __init__(self, *, suspend: bool = False) -> None:
        self.calls: list[tuple[str, dict[str, Any]]] = []
        self.suspend = suspend

    async def fetch_json(self, path: str, query: dict[str, Any] | None = None) -> Any:
        query = query or {}
        self.calls.append((path, query))
        if self.suspend:
            await asyncio.sleep(0)
        if path == "/metadata/alts":
            return ALT_RANGES
        if path.startswith("/metadata/alts/"):
            return ALT_RANGES.get(path.removeprefix("/metadata/alts/"), [])
        if path == "/metadata/classes":
            return {"results": [{"class": name} for name in CLASS_PROPERTIES]}
        if path.startswith("/metadata/classes/") and path.endswith("/properties"):
            class_name = path.removeprefix("/metadata/classes/").removesuffix("/properties")
            return {"results": CLASS_PROPERTIES.get(class_name, [])}
        if path == "/taxa":
            return {"results": [{"id": taxon_id} for taxon_id in TAXON_SETS.get(query["taxonSets"], [])]}
        if path == "/taxa/MX.37600/species":
            return {"results": SPECIES}
        raise AssertionError(f"Unexpected catalog path {path}")

    def count(self, path: str) -> int:
        return sum(1 for called, _ in self.calls if called == path)


class FakeStore:
    """In-memory form storage answering `get_form` like the store service."""

    def __init__(self, forms: dict[str, dict[str, Any]] | None = None) -> None:
        self.forms: dict[str, dict[str, Any]] = dict(forms or {})
        self.requested: list[str] = []

    async def get_form(self, form_id: str) -> dict[str, Any]:
        self.requested.append(form_id)
        if form_id not in self.forms:
            raise StoreError(status=404, store_error=f"Form {form_id} not found")
        return self.forms[form_id]


@pytest.fixture
def catalog() -> FakeCatalog:
    return FakeCatalog()


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


@pytest.fixture
def metadata_service(catalog: FakeCatalog) -> MetadataService:
    return MetadataService(catalog, "en")


@pytest.fixture
def taxon_service(catalog: FakeCatalog) -> TaxonService:
    return TaxonService(catalog)


@pytest.fixture
def field_service(metadata_service: MetadataService, store: FakeStore, taxon_service: TaxonService) -> FieldService:
    return FieldService(metadata_service, store, taxon_service)


@pytest.fixture
def suspending_catalog() -> FakeCatalog:
    return FakeCatalog(suspend=True)

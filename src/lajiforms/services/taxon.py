"""Taxonomy lookups."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from lajiforms import logger

if TYPE_CHECKING:
    from lajiforms.typing.protocol import CatalogClient

TAXON_SET_PREFIX = "...taxonSet:"
_SPECIES_ROOT_TAXON = "MX.37600"


def parse_taxon_set_reference(value: str) -> list[str] | None:
    """Return the taxon set ids of a `...taxonSet:<id>[,<id>...]` string.

    Returns:
        list[str] | None: Ids, or None when the value is not a reference.
    """
    if not value.startswith(TAXON_SET_PREFIX):
        return None
    return [taxon_set.strip() for taxon_set in value[len(TAXON_SET_PREFIX) :].split(",") if taxon_set.strip()]


class TaxonService:
    """Taxon set and species lookups against the taxonomy API."""

    def __init__(self, api_client: CatalogClient, *, page_size: int = 1000) -> None:
        self._api_client = api_client
        self._page_size = page_size

    async def get_taxon_set(self, taxon_set: str) -> list[str]:
        """Return the taxon ids belonging to one taxon set."""
        payload = await self._api_client.fetch_json(
            "/taxa",
            {"pageSize": self._page_size, "taxonSets": taxon_set, "selectedFields": "id"},
        )
        return [taxon["id"] for taxon in (payload or {}).get("results") or []]

    async def get_taxon_sets(self, taxon_sets: list[str]) -> list[str]:
        """Return the concatenated taxon ids of several taxon sets, one request per set."""
        results = await asyncio.gather(*(self.get_taxon_set(taxon_set) for taxon_set in taxon_sets))
        taxa = [taxon_id for result in results for taxon_id in result]
        logger.info("Taxon sets expanded", extra={"taxon_sets": taxon_sets, "taxa": len(taxa)})
        return taxa

    async def get_species_by_informal_groups(self, informal_groups: list[str] | str) -> list[dict[str, Any]]:
        """Return Finnish species of the given informal taxon groups."""
        payload = await self._api_client.fetch_json(
            f"/taxa/{_SPECIES_ROOT_TAXON}/species",
            {
                "informalGroupFilters": informal_groups,
                "selectedFields": "id,scientificName,vernacularName",
                "lang": "fi",
                "taxonRanks": "MX.species",
                "onlyFinnish": True,
                "pageSize": self._page_size,
            },
        )
        return list((payload or {}).get("results") or [])

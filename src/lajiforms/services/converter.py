"""Shared tree walk of the two output converters."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from lajiforms.exceptions import UnprocessableError
from lajiforms.processing.translation import unprefix_prop
from lajiforms.typing.enums import PropertyRange
from lajiforms.typing.models import Property

if TYPE_CHECKING:
    from lajiforms.services.metadata import MetadataService


def map_field_type(field_type: str | None) -> PropertyRange:
    """Guess the catalog range of a field declaring a literal type."""
    match field_type:
        case "checkbox":
            return PropertyRange.BOOLEAN
        case _:
            return PropertyRange.STRING


def listed_values(listed: list[str] | str | None) -> set[str] | None:
    """Members named by a whitelist or blacklist option; a single string names one member."""
    if listed is None:
        return None
    if isinstance(listed, str):
        return {listed}
    return set(listed)


def map_unknown_field_to_property(field: dict[str, Any]) -> Property:
    """Build a synthetic property for a field missing from the catalog.

    Args:
        field (dict[str, Any]): Author field without catalog counterpart.

    Raises:
        UnprocessableError: If the field carries no literal `type`.

    Returns:
        Property: Optional, single-valued, non-embeddable property.
    """
    name = field.get("name", "")
    if not field.get("type"):
        raise UnprocessableError(message=f"Bad field {name}")
    return Property(
        property=name,
        shortName=unprefix_prop(name),
        range=[map_field_type(field["type"]).to_str()],
    )


class ConverterService[T](ABC):
    """Converts an expanded master into one output format."""

    def __init__(self, metadata_service: MetadataService) -> None:
        self.metadata_service = metadata_service

    @property
    def lang(self) -> str:
        return self.metadata_service.lang

    async def get_properties(self, fields: list[dict[str, Any]], prop: Property) -> dict[str, Property]:
        """Resolve every child field of an embeddable property.

        Raises:
            UnprocessableError: If a child is unknown to the catalog and has no `type`.

        Returns:
            dict[str, Property]: Properties keyed by unprefixed field name.
        """
        known = await self.metadata_service.get_properties(fields, prop)
        resolved: dict[str, Property] = {}
        for field in fields:
            name = unprefix_prop(field["name"])
            resolved[name] = known.get(name) or map_unknown_field_to_property(field)
        return resolved

    @abstractmethod
    async def convert(
        self,
        master: dict[str, Any],
        root_field: dict[str, Any] | None = None,
        root_property: Property | None = None,
    ) -> T:
        """Convert an expanded master.

        Args:
            master (dict[str, Any]): Self-contained expanded master.
            root_field (dict[str, Any] | None): Synthetic container field.
            root_property (Property | None): Catalog property of the container.

        Returns:
            T: Converted output.
        """

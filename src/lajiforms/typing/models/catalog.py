"""Metadata catalog models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from lajiforms.processing.translation import unprefix_prop

LocalizedText = dict[str, str] | str


class Property(BaseModel):
    """Catalog metadata for one property of a class."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    property: str
    short_name: str | None = Field(default=None, alias="shortName")
    range: list[str] = Field(default_factory=list)
    label: LocalizedText = Field(default_factory=dict)
    comment: LocalizedText | None = None
    is_embeddable: bool = Field(default=False, alias="isEmbeddable")
    multi_language: bool = Field(default=False, alias="multiLanguage")
    min_occurs: str = Field(default="0", alias="minOccurs")
    max_occurs: str = Field(default="1", alias="maxOccurs")
    required: bool = False
    domain: list[str] = Field(default_factory=list)
    is_root: bool = Field(default=False, exclude=True)

    @field_validator("range", mode="before")
    @classmethod
    def _range_as_list(cls, value: Any) -> Any:
        if isinstance(value, str):
            return [value]
        return value

    @field_validator("min_occurs", "max_occurs", mode="before")
    @classmethod
    def _occurs_as_str(cls, value: Any) -> Any:
        if isinstance(value, int):
            return str(value)
        return value

    @property
    def name(self) -> str:
        """Unprefixed property name used as the schema key."""
        return self.short_name or unprefix_prop(self.property)

    @property
    def range_id(self) -> str:
        """The class or primitive type of the property."""
        return self.range[0] if self.range else ""

    @property
    def unbounded(self) -> bool:
        """Whether the property holds a list of values."""
        return self.max_occurs == "unbounded"

    @property
    def is_required(self) -> bool:
        """Whether the catalog declares the property mandatory."""
        try:
            min_occurs = int(self.min_occurs)
        except ValueError:
            min_occurs = 0
        return min_occurs > 0 or self.required


class RangeEntry(BaseModel):
    """One member of an enumerable alt range."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str
    value: LocalizedText | None = None
    vernacular_name: LocalizedText | None = Field(default=None, alias="vernacularName")
    alt_parent: str | None = Field(default=None, alias="altParent")


class CatalogClass(BaseModel):
    """A class known to the catalog."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    class_: str = Field(alias="class")
    label: LocalizedText | None = None

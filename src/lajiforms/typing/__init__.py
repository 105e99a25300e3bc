"""Typing-centric domain modules."""

from lajiforms.typing.enums import LANGS, ExpandedFieldType, Format, Lang, PropertyRange
from lajiforms.typing.models import (
    CatalogClass,
    Field,
    FieldOptions,
    FormExtensionField,
    Master,
    Property,
    RangeEntry,
)
from lajiforms.typing.protocol import CatalogClient, FormStore

__all__ = [
    "LANGS",
    "CatalogClass",
    "CatalogClient",
    "ExpandedFieldType",
    "Field",
    "FieldOptions",
    "FormExtensionField",
    "FormStore",
    "Format",
    "Lang",
    "Master",
    "Property",
    "PropertyRange",
    "RangeEntry",
]

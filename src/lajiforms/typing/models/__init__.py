"""Core domain model exports."""

from lajiforms.typing.models.catalog import CatalogClass, Property, RangeEntry
from lajiforms.typing.models.form import (
    Field,
    FieldOptions,
    FormExtensionField,
    Master,
    is_form_extension_field,
    validate_master,
)

__all__ = [
    "CatalogClass",
    "Field",
    "FieldOptions",
    "FormExtensionField",
    "Master",
    "Property",
    "RangeEntry",
    "is_form_extension_field",
    "validate_master",
]

"""Compiler services."""

from lajiforms.services.converter import ConverterService
from lajiforms.services.expanded_json import ExpandedJSONService
from lajiforms.services.field_service import FieldService
from lajiforms.services.form_expander import FormExpanderService
from lajiforms.services.forms import FormsService
from lajiforms.services.metadata import MetadataService
from lajiforms.services.schema import SchemaService
from lajiforms.services.taxon import TaxonService
from lajiforms.services.uischema import UiSchemaService

__all__ = [
    "ConverterService",
    "ExpandedJSONService",
    "FieldService",
    "FormExpanderService",
    "FormsService",
    "MetadataService",
    "SchemaService",
    "TaxonService",
    "UiSchemaService",
]

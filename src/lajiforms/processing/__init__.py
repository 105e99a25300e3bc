"""Pure helpers over JSON trees."""

from lajiforms.processing.default_state import get_default_form_state
from lajiforms.processing.json_schema import array_schema, enum_schema, object_schema
from lajiforms.processing.merge import deep_merge, merge_translations
from lajiforms.processing.translation import (
    multi_lang,
    remove_translations,
    translate,
    translate_for_lang,
    unprefix_prop,
)

__all__ = [
    "array_schema",
    "deep_merge",
    "enum_schema",
    "get_default_form_state",
    "merge_translations",
    "multi_lang",
    "object_schema",
    "remove_translations",
    "translate",
    "translate_for_lang",
    "unprefix_prop",
]

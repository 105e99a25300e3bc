"""Project enums."""

from __future__ import annotations

from enum import StrEnum


class _EnumMixin(StrEnum):
    """Shared conversion helpers for user-facing enums."""

    @classmethod
    def from_str(cls, value: str) -> _EnumMixin:
        """Parse enum from string.

        Args:
            value: Raw string value.

        Raises:
            ValueError: If the value is not supported.

        Returns:
            _EnumMixin: Parsed enum value.
        """
        try:
            return cls(value)
        except ValueError as exc:
            supported = ", ".join(member.value for member in cls)
            message = f"Unsupported {cls.__name__} value '{value}'. Expected one of: {supported}"
            raise ValueError(message) from exc

    def to_str(self) -> str:
        """Return string representation.

        Returns:
            str: Enum string value.
        """
        return self.value


class Lang(_EnumMixin):
    """Languages a form can be translated to."""

    FI = "fi"
    SV = "sv"
    EN = "en"

    @classmethod
    def is_lang(cls, value: object) -> bool:
        """Return whether the value names a supported language."""
        return isinstance(value, str) and value in cls._value2member_map_


LANGS: tuple[Lang, ...] = (Lang.FI, Lang.SV, Lang.EN)


class Format(_EnumMixin):
    """Compiled output formats."""

    SCHEMA = "schema"
    JSON = "json"


class PropertyRange(_EnumMixin):
    """Primitive ranges of catalog properties."""

    STRING = "xsd:string"
    BOOLEAN = "xsd:boolean"
    INTEGER = "xsd:integer"
    NON_NEGATIVE_INTEGER = "xsd:nonNegativeInteger"
    POSITIVE_INTEGER = "xsd:positiveInteger"
    DECIMAL = "xsd:decimal"
    DATE_TIME = "xsd:dateTime"
    KEY_VALUE = "MZ.keyValue"
    KEY_ANY = "MZ.keyAny"


class ExpandedFieldType(_EnumMixin):
    """Field node types of the expanded JSON format."""

    TEXT = "text"
    CHECKBOX = "checkbox"
    INTEGER = "integer"
    NON_NEGATIVE_INTEGER = "integer:nonNegativeInteger"
    POSITIVE_INTEGER = "integer:positiveInteger"
    NUMBER = "number"
    SELECT = "select"
    FIELDSET = "fieldset"
    COLLECTION = "collection"

"""Authored form models.

The pipeline works on plain JSON trees, since patches and translations address
arbitrary paths. `validate_master` checks the shape of an incoming master
before it enters the pipeline.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field as PydanticField, ValidationError

from lajiforms.exceptions import UnprocessableError


class FieldOptions(BaseModel):
    """Per-field options understood by the compiler."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    default: Any = None
    exclude_from_copy: bool | None = PydanticField(default=None, alias="excludeFromCopy")
    whitelist: list[str] | str | None = None
    blacklist: list[str] | str | None = None
    value_options: dict[str, Any] | None = None
    unique_items: bool | None = PydanticField(default=None, alias="uniqueItems")
    min_items: int | None = PydanticField(default=None, alias="minItems")
    max_items: int | None = PydanticField(default=None, alias="maxItems")


class FormExtensionField(BaseModel):
    """Field node splicing another form's field tree in at its position."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    form_id: str = PydanticField(alias="formID")


class Field(BaseModel):
    """A node in the author's field tree."""

    model_config = ConfigDict(extra="allow")

    name: str
    fields: list[Field | FormExtensionField] | None = None
    options: FieldOptions | None = None
    validators: dict[str, Any] | None = None
    warnings: dict[str, Any] | None = None
    label: str | None = None
    type: str | None = None


class Master(BaseModel):
    """The authored, compact form definition."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    id: str | None = None
    fields: list[Field | FormExtensionField] | None = None
    options: dict[str, Any] | None = None
    translations: dict[str, dict[str, str]] | None = None
    ui_schema: dict[str, Any] | None = PydanticField(default=None, alias="uiSchema")
    base_form_id: str | None = PydanticField(default=None, alias="baseFormID")
    # Operations are checked by jsonpatch when applied.
    patch: list[dict[str, Any]] | None = None
    context: str | None = None


def validate_master(master: Any) -> Master:
    """Check the shape of an authored master.

    Args:
        master (Any): Decoded JSON of a master.

    Raises:
        UnprocessableError: If the master is not shaped like a form definition.

    Returns:
        Master: The validated model.
    """
    try:
        return Master.model_validate(master)
    except ValidationError as exc:
        error = exc.errors()[0]
        location = ".".join(str(part) for part in error["loc"]) or "master"
        raise UnprocessableError(message=f"Invalid master at {location}: {error['msg']}") from exc


def is_form_extension_field(field: dict[str, Any]) -> bool:
    """Return whether a raw field node is a form extension."""
    return "formID" in field and "name" not in field

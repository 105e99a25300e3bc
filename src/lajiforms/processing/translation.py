"""Translation key handling and property name helpers."""

from __future__ import annotations

from typing import Any

TRANSLATION_KEY_PREFIX = "@"


def unprefix_prop(name: str) -> str:
    """Strip the namespace prefix of a catalog identifier.

    Args:
        name (str): Identifier such as `MY.gatherings`.

    Returns:
        str: The identifier without namespace, e.g. `gatherings`.
    """
    return name.split(".")[-1]


def has_prefix(name: str) -> bool:
    """Return whether the identifier carries a namespace prefix."""
    return "." in name


def multi_lang(value: dict[str, str] | str | None, lang: str) -> str | None:
    """Pick the text for a language from a per-language map.

    Args:
        value (dict[str, str] | str | None): Per-language map or a plain string.
        lang (str): Language code.

    Returns:
        str | None: The text, or None when the language is missing.
    """
    if isinstance(value, dict):
        return value.get(lang)
    return value


def translate(obj: Any, translations: dict[str, str]) -> Any:
    """Replace `@key` string leaves with their translation.

    Keys without a translation are left as they are. Dictionary keys are never
    translated.

    Args:
        obj (Any): JSON tree.
        translations (dict[str, str]): Translation table of one language.

    Returns:
        Any: A translated copy of the tree.
    """
    if isinstance(obj, dict):
        return {key: translate(value, translations) for key, value in obj.items()}
    if isinstance(obj, list):
        return [translate(item, translations) for item in obj]
    if isinstance(obj, str) and obj.startswith(TRANSLATION_KEY_PREFIX) and obj in translations:
        return translations[obj]
    return obj


def translate_for_lang(form: dict[str, Any], lang: str | None) -> dict[str, Any]:
    """Translate a form with its own translation table and drop the table.

    Args:
        form (dict[str, Any]): Form carrying a `translations` attribute.
        lang (str | None): Requested language, or None for untranslated output.

    Returns:
        dict[str, Any]: The language-scoped form, or the form untouched when no
        language was requested.
    """
    if not lang:
        return form
    translations = (form.get("translations") or {}).get(lang)
    translated = translate(form, translations) if translations else form
    return remove_translations(translated, lang)


def remove_translations(form: dict[str, Any], lang: str | None) -> dict[str, Any]:
    """Strip the translation table from language-scoped output."""
    if not lang:
        return form
    return {key: value for key, value in form.items() if key != "translations"}

"""Helpers for reading Notion page property values."""

from typing import Optional


def plain_text(prop: Optional[dict]) -> str:
    """
    Get the text of a title, rich_text, select or formula property.

    Args:
        prop: Property value dictionary from a page

    Returns:
        Concatenated plain text, or "" if the property is empty/missing
    """
    if not prop:
        return ""

    kind = prop.get("type")

    if kind in ("title", "rich_text"):
        return "".join(part.get("plain_text", "") for part in prop.get(kind) or [])

    if kind == "select":
        return (prop.get("select") or {}).get("name", "")

    if kind == "formula":
        value = formula_value(prop)
        return "" if value is None else str(value)

    return ""


def first_text(prop: Optional[dict]) -> Optional[str]:
    """Get the plain text of the first rich text fragment, if any."""
    if not prop:
        return None
    kind = prop.get("type") or ("title" if "title" in prop else "rich_text")
    fragments = prop.get(kind) or []
    if not fragments:
        return None
    return fragments[0].get("plain_text") or None


def checkbox(prop: Optional[dict]) -> bool:
    """Get a checkbox value (False when missing)."""
    if not prop:
        return False
    return bool(prop.get("checkbox"))


def number(prop: Optional[dict]) -> Optional[float]:
    """Get a number property value."""
    if not prop:
        return None
    return prop.get("number")


def formula_value(prop: Optional[dict]):
    """Get the computed value of a formula property."""
    if not prop:
        return None
    formula = prop.get("formula") or {}
    kind = formula.get("type")
    if kind:
        return formula.get(kind)
    # Untyped payloads: prefer string, then number
    if formula.get("string") is not None:
        return formula["string"]
    return formula.get("number")


def date_start(prop: Optional[dict]) -> Optional[str]:
    """
    Get the date part (YYYY-MM-DD) of a date property's start.

    Datetimes such as "2024-02-01T09:00:00.000+09:00" keep their date part.
    """
    if not prop:
        return None
    value = (prop.get("date") or {}).get("start")
    if not value:
        return None
    return value[:10]


def file_url(prop: Optional[dict]) -> Optional[str]:
    """Get the URL of the first file in a files property."""
    if not prop:
        return None
    files = prop.get("files") or []
    if not files:
        return None
    first = files[0]
    return (first.get("file") or {}).get("url") or (first.get("external") or {}).get("url")


def rich_text_value(content: str) -> dict:
    """Build a rich_text property value for page updates."""
    return {"rich_text": [{"type": "text", "text": {"content": content}}]}


def text_block(block_type: str, content: str) -> dict:
    """Build a simple text block (paragraph, heading_3, ...)."""
    return {
        "type": block_type,
        block_type: {"rich_text": [{"type": "text", "text": {"content": content}}]},
    }

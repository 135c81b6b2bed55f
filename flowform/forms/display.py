"""Human-readable labels for dynamic table entries."""

from flowform.forms.validation import _field_attr

# Field names preferred as a row label when the first field is empty
PRIORITY_FIELD_NAMES = (
    "name",
    "label",
    "title",
    "customername",
    "productname",
    "aircraftmodel",
    "registrationnumber",
)

MAX_LABEL_LENGTH = 30


def _as_text(value) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return ",".join(_as_text(v) for v in value)
    return str(value)


def _has_value(data: dict, name: str) -> bool:
    value = data.get(name)
    return value is not None and _as_text(value).strip() != ""


def _render(value, label: str) -> str:
    if isinstance(value, dict):
        return f"{label}: [Object]"
    if isinstance(value, (list, tuple)):
        return f"{label}: [Array]"
    text = _as_text(value)
    if len(text) > MAX_LABEL_LENGTH:
        text = text[:MAX_LABEL_LENGTH - 3] + "..."
    return text


def display_value_for_row(data: dict | None, fields, row_id: str | None = None) -> str:
    """Pick a short label for an entry.

    Tries the first active field, then the priority names, then any
    non-empty active field; falls back to the tail of the entry id.
    """
    short_id = (row_id or "Unknown")[-4:]
    if not data or not fields:
        return f"Entry ID: ...{short_id}" if row_id else "N/A"

    active = [f for f in fields if not _field_attr(f, "is_archived", default=False)]
    if not active:
        return f"Entry ID: ...{short_id}" if row_id else "N/A (No active fields)"

    def label_of(f):
        return _field_attr(f, "label") or _field_attr(f, "name")

    first = active[0]
    if _has_value(data, _field_attr(first, "name")):
        return _render(data[_field_attr(first, "name")], label_of(first))

    for wanted in PRIORITY_FIELD_NAMES:
        for f in active:
            name = _field_attr(f, "name")
            if name.lower() == wanted and _has_value(data, name):
                return _render(data[name], label_of(f))

    for f in active:
        name = _field_attr(f, "name")
        if _has_value(data, name):
            return _render(data[name], label_of(f))

    return f"Entry (ID: ...{short_id})"

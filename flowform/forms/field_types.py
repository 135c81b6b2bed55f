"""
Field Type Registry.

Every dynamic field has one of the kinds below. The enum values are the
labels stored in the database and exchanged over the API, so they must
not change once data exists.
"""

from enum import Enum


class FieldType(str, Enum):
    TEXT_INPUT = "Text Input"
    TEXT_AREA = "Text Area"
    NUMBER = "Number"
    DATE = "Date"
    TIME = "Time"
    DATETIME = "Date/Time"
    DOCUMENT_UPLOAD = "Document Upload"
    DROPDOWN_LIST = "Dropdown List"
    CHECKBOX_GROUP = "Checkbox Group"
    RADIO_BUTTON_GROUP = "Radio Button Group"
    BOOLEAN_TOGGLE = "Boolean/Toggle"

    @classmethod
    def parse(cls, value):
        """Resolve a stored label or enum member name to a FieldType.

        Raises ValueError for anything else.
        """
        if isinstance(value, cls):
            return value
        try:
            return cls(value)
        except ValueError:
            pass
        try:
            return cls[str(value).upper()]
        except KeyError:
            raise ValueError(f"Unknown field type: {value!r}") from None


# Kinds whose values are picked from the field's configured options.
CHOICE_TYPES = frozenset({
    FieldType.DROPDOWN_LIST,
    FieldType.CHECKBOX_GROUP,
    FieldType.RADIO_BUTTON_GROUP,
})

FIELD_TYPE_LABELS = [t.value for t in FieldType]

# Validation rule keys accepted on a field definition.
VALIDATION_RULE_KEYS = frozenset({
    "regex", "minLength", "maxLength", "min", "max", "email", "url", "phoneNumber",
})


def is_file_type(field_type) -> bool:
    return FieldType.parse(field_type) is FieldType.DOCUMENT_UPLOAD

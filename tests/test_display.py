"""Entry display labels."""

from flowform.forms.display import display_value_for_row


def _f(name, label=None, archived=False):
    return {"name": name, "label": label or name.title(), "type": "Text Input", "is_archived": archived}


def test_first_field_value_wins():
    fields = [_f("code"), _f("name")]
    assert display_value_for_row({"code": "C-1", "name": "Acme"}, fields, "abcd1234") == "C-1"


def test_priority_name_when_first_empty():
    fields = [_f("code"), _f("notes"), _f("customerName")]
    data = {"code": "", "notes": "misc", "customerName": "Acme"}
    assert display_value_for_row(data, fields, "abcd1234") == "Acme"


def test_any_non_empty_field_next():
    fields = [_f("code"), _f("notes")]
    assert display_value_for_row({"notes": "misc"}, fields, "abcd1234") == "misc"


def test_archived_fields_skipped():
    fields = [_f("code", archived=True), _f("notes")]
    assert display_value_for_row({"code": "C-1", "notes": "misc"}, fields, "x") == "misc"


def test_long_values_truncated():
    label = display_value_for_row({"name": "x" * 50}, [_f("name")], "id")
    assert label == "x" * 27 + "..."
    assert len(label) == 30


def test_collections_rendered_as_placeholders():
    fields = [_f("tags", "Tags"), _f("meta", "Meta")]
    assert display_value_for_row({"tags": ["a"]}, fields, "id") == "Tags: [Array]"
    assert display_value_for_row({"tags": [], "meta": {"k": 1}}, fields, "id") == "Meta: [Object]"


def test_booleans_and_numbers_as_text():
    assert display_value_for_row({"flag": False}, [_f("flag")], "id") == "false"
    assert display_value_for_row({"qty": 0}, [_f("qty")], "id") == "0"


def test_fallbacks():
    fields = [_f("code")]
    assert display_value_for_row({"code": ""}, fields, "abcd1234") == "Entry (ID: ...1234)"
    assert display_value_for_row({}, fields, "abcd1234") == "Entry ID: ...1234"
    assert display_value_for_row({}, fields) == "N/A"
    assert display_value_for_row({"code": "x"}, [_f("code", archived=True)]) == "N/A (No active fields)"

"""
Dynamic Fields — definition CRUD, archiving and access control over the API.
"""

import pytest

API = "/api/v1"


def _post(client, url, data=None, headers=None):
    return client.post(API + url, json=data or {}, headers=headers)


def _get(client, url, headers=None):
    return client.get(API + url, headers=headers)


def _put(client, url, data=None, headers=None):
    return client.put(API + url, json=data or {}, headers=headers)


def _create_field(client, headers, **overrides):
    payload = {"name": "customer_name", "label": "Customer Name", "type": "Text Input"}
    payload.update(overrides)
    res = _post(client, "/fields", payload, headers)
    assert res.status_code == 201, res.get_json()
    return res.get_json()


# ═════════════════════════════════════════════════════════════════════════════
# Create / read / update
# ═════════════════════════════════════════════════════════════════════════════

class TestFieldCrud:
    def test_create_field(self, client, admin_headers):
        field = _create_field(
            client, admin_headers,
            category="Sales", is_required=True, validation_rules={"maxLength": "40", "bogus": 1},
        )
        assert field["name"] == "customer_name"
        assert field["type"] == "Text Input"
        assert field["category"] == "Sales"
        assert field["is_required"] is True
        assert field["validation_rules"] == {"maxLength": 40}
        assert field["is_archived"] is False

    def test_type_accepts_enum_name(self, client, admin_headers):
        field = _create_field(client, admin_headers, name="qty", label="Qty", type="number")
        assert field["type"] == "Number"

    def test_get_field(self, client, admin_headers):
        field = _create_field(client, admin_headers)
        res = _get(client, f"/fields/{field['id']}", admin_headers)
        assert res.status_code == 200
        assert res.get_json()["label"] == "Customer Name"

    def test_get_missing_field(self, client, admin_headers):
        res = _get(client, "/fields/nope", admin_headers)
        assert res.status_code == 404
        assert res.get_json()["code"] == "ERR_NOT_FOUND"

    def test_duplicate_name_conflict(self, client, admin_headers):
        _create_field(client, admin_headers)
        res = _post(client, "/fields", {"name": "customer_name", "label": "Again"}, admin_headers)
        assert res.status_code == 409

    @pytest.mark.parametrize("payload", [
        {"name": "", "label": "X"},
        {"name": "has space", "label": "X"},
        {"name": "ok_name", "label": ""},
        {"name": "ok_name", "label": "X", "type": "Signature"},
        {"name": "ok_name", "label": "X", "validation_rules": {"regex": "("}},
    ])
    def test_invalid_definitions(self, client, admin_headers, payload):
        res = _post(client, "/fields", payload, admin_headers)
        assert res.status_code == 422

    def test_choice_type_requires_options(self, client, admin_headers):
        res = _post(client, "/fields", {"name": "size", "label": "Size", "type": "Dropdown List"},
                    admin_headers)
        assert res.status_code == 422
        assert res.get_json()["details"] == {"options": "required"}

    def test_choice_options_normalised(self, client, admin_headers):
        field = _create_field(
            client, admin_headers, name="size", label="Size", type="Radio Button Group",
            options=["S", {"value": "M", "label": "Medium"}],
        )
        assert field["options"] == [{"value": "S", "label": "S"}, {"value": "M", "label": "Medium"}]

    def test_default_value_must_fit_type(self, client, admin_headers):
        res = _post(client, "/fields",
                    {"name": "qty", "label": "Qty", "type": "Number", "default_value": "lots"},
                    admin_headers)
        assert res.status_code == 422
        field = _create_field(client, admin_headers, name="qty", label="Qty", type="Number",
                              default_value="5")
        assert field["default_value"] == 5

    def test_update_revalidates_merged_definition(self, client, admin_headers):
        field = _create_field(client, admin_headers)
        res = _put(client, f"/fields/{field['id']}", {"label": "Client"}, admin_headers)
        assert res.status_code == 200
        assert res.get_json()["label"] == "Client"
        assert res.get_json()["name"] == "customer_name"

        res = _put(client, f"/fields/{field['id']}", {"type": "Checkbox Group"}, admin_headers)
        assert res.status_code == 422

    def test_update_name_conflict(self, client, admin_headers):
        _create_field(client, admin_headers)
        other = _create_field(client, admin_headers, name="other", label="Other")
        res = _put(client, f"/fields/{other['id']}", {"name": "customer_name"}, admin_headers)
        assert res.status_code == 409

    def test_field_types_listing(self, client, member_headers):
        res = _get(client, "/fields/types", member_headers)
        assert res.status_code == 200
        assert "Document Upload" in res.get_json()
        assert len(res.get_json()) == 11


# ═════════════════════════════════════════════════════════════════════════════
# Listing & archive
# ═════════════════════════════════════════════════════════════════════════════

class TestFieldListing:
    def test_ordered_by_label(self, client, admin_headers):
        _create_field(client, admin_headers, name="b", label="Bravo")
        _create_field(client, admin_headers, name="a", label="Alpha")
        labels = [f["label"] for f in _get(client, "/fields", admin_headers).get_json()]
        assert labels == ["Alpha", "Bravo"]

    def test_archive_hides_from_default_and_available(self, client, admin_headers):
        keep = _create_field(client, admin_headers, name="keep", label="Keep")
        gone = _create_field(client, admin_headers, name="gone", label="Gone")
        res = _post(client, f"/fields/{gone['id']}/archive", headers=admin_headers)
        assert res.status_code == 200
        assert res.get_json()["is_archived"] is True

        def ids(url):
            return [f["id"] for f in _get(client, url, admin_headers).get_json()]

        assert ids("/fields") == [keep["id"]]
        assert ids("/fields/available") == [keep["id"]]
        assert set(ids("/fields?archived=include")) == {keep["id"], gone["id"]}
        assert ids("/fields?archived=only") == [gone["id"]]

        # still resolvable by id
        assert _get(client, f"/fields/{gone['id']}", admin_headers).status_code == 200

    def test_unarchive(self, client, admin_headers):
        field = _create_field(client, admin_headers)
        _post(client, f"/fields/{field['id']}/archive", headers=admin_headers)
        res = _post(client, f"/fields/{field['id']}/unarchive", headers=admin_headers)
        assert res.get_json()["is_archived"] is False
        assert len(_get(client, "/fields/available", admin_headers).get_json()) == 1

    def test_archive_leaves_tables_and_entries_untouched(self, client, admin_headers):
        f1 = _create_field(client, admin_headers, name="code", label="Code")
        f2 = _create_field(client, admin_headers, name="note", label="Note")
        table = _post(client, "/tables",
                      {"name": "orders", "label": "Orders", "field_ids": [f1["id"], f2["id"]]},
                      admin_headers).get_json()
        entry = _post(client, f"/tables/{table['id']}/entries",
                      {"code": "A1", "note": "n"}, admin_headers).get_json()

        _post(client, f"/fields/{f2['id']}/archive", headers=admin_headers)

        table_after = _get(client, f"/tables/{table['id']}", admin_headers).get_json()
        assert table_after["field_ids"] == [f1["id"], f2["id"]]
        entry_after = _get(client, f"/tables/{table['id']}/entries/{entry['id']}",
                           admin_headers).get_json()
        assert entry_after["data"] == {"code": "A1", "note": "n"}


# ═════════════════════════════════════════════════════════════════════════════
# Access control
# ═════════════════════════════════════════════════════════════════════════════

class TestFieldAccess:
    def test_requires_sign_in(self, client):
        assert _get(client, "/fields").status_code == 401

    def test_member_can_read(self, client, member_headers):
        assert _get(client, "/fields", member_headers).status_code == 200

    def test_member_cannot_create(self, client, member_headers):
        res = _post(client, "/fields", {"name": "x", "label": "X"}, member_headers)
        assert res.status_code == 403
        assert res.get_json()["code"] == "ERR_FORBIDDEN"

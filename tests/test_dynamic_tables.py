"""
Dynamic Tables — definitions, entries with file uploads, subscriptions.
"""

import io

import pytest

from flowform.core.exceptions import ValidationError
from flowform.services import dynamic_field_service, dynamic_table_service

API = "/api/v1"


def _post(client, url, data=None, headers=None):
    return client.post(API + url, json=data or {}, headers=headers)


def _get(client, url, headers=None):
    return client.get(API + url, headers=headers)


def _put(client, url, data=None, headers=None):
    return client.put(API + url, json=data or {}, headers=headers)


def _multipart(client, method, url, data, headers):
    return client.open(API + url, method=method, data=data, headers=headers,
                       content_type="multipart/form-data")


# ── fixtures ──

@pytest.fixture()
def fields():
    return {
        "title": dynamic_field_service.create_field(
            {"name": "title", "label": "Title", "type": "Text Input", "is_required": True}),
        "qty": dynamic_field_service.create_field(
            {"name": "qty", "label": "Quantity", "type": "Number", "default_value": 1}),
        "contract": dynamic_field_service.create_field(
            {"name": "contract", "label": "Contract", "type": "Document Upload"}),
    }


@pytest.fixture()
def table(fields):
    return dynamic_table_service.create_table({
        "name": "orders",
        "label": "Orders",
        "field_ids": [fields["title"]["id"], fields["qty"]["id"], fields["contract"]["id"]],
    })


# ═════════════════════════════════════════════════════════════════════════════
# Table definitions
# ═════════════════════════════════════════════════════════════════════════════

class TestTableDefinitions:
    def test_create_via_api(self, client, admin_headers, fields):
        res = _post(client, "/tables", {
            "name": "customers", "label": "Customers",
            "field_ids": [fields["title"]["id"], fields["qty"]["id"]],
        }, admin_headers)
        assert res.status_code == 201
        assert res.get_json()["field_ids"] == [fields["title"]["id"], fields["qty"]["id"]]

    def test_unknown_field_ids_rejected(self, client, admin_headers, fields):
        res = _post(client, "/tables", {
            "name": "customers", "label": "Customers",
            "field_ids": [fields["title"]["id"], "missing-id"],
        }, admin_headers)
        assert res.status_code == 422
        assert res.get_json()["details"] == {"field_ids": ["missing-id"]}

    def test_at_least_one_field(self, client, admin_headers):
        res = _post(client, "/tables", {"name": "empty", "label": "Empty", "field_ids": []},
                    admin_headers)
        assert res.status_code == 422

    def test_duplicate_name(self, client, admin_headers, table, fields):
        res = _post(client, "/tables", {
            "name": "orders", "label": "Again", "field_ids": [fields["title"]["id"]],
        }, admin_headers)
        assert res.status_code == 409

    def test_get_with_fields_in_table_order(self, client, admin_headers, table):
        res = _get(client, f"/tables/{table['id']}?include_fields=1", admin_headers)
        assert [f["name"] for f in res.get_json()["fields"]] == ["title", "qty", "contract"]

    def test_update_reorders_fields(self, client, admin_headers, table, fields):
        new_order = [fields["qty"]["id"], fields["title"]["id"]]
        res = _put(client, f"/tables/{table['id']}", {"field_ids": new_order}, admin_headers)
        assert res.status_code == 200
        assert res.get_json()["field_ids"] == new_order
        assert res.get_json()["name"] == "orders"

    def test_archive_keeps_entries(self, client, admin_headers, table):
        dynamic_table_service.add_entry(table["id"], {"title": "A"})
        _post(client, f"/tables/{table['id']}/archive", headers=admin_headers)

        assert _get(client, "/tables", admin_headers).get_json() == []
        assert len(_get(client, "/tables?archived=only", admin_headers).get_json()) == 1
        entries = _get(client, f"/tables/{table['id']}/entries", admin_headers).get_json()
        assert len(entries) == 1

    def test_member_cannot_create(self, client, member_headers, fields):
        res = _post(client, "/tables", {
            "name": "x", "label": "X", "field_ids": [fields["title"]["id"]],
        }, member_headers)
        assert res.status_code == 403


# ═════════════════════════════════════════════════════════════════════════════
# Entries
# ═════════════════════════════════════════════════════════════════════════════

class TestEntries:
    def test_defaults(self, client, admin_headers, table):
        res = _get(client, f"/tables/{table['id']}/entries/defaults", admin_headers)
        assert res.get_json() == {"title": "", "qty": 1, "contract": None}

    def test_add_json_entry(self, client, admin_headers, table):
        res = _post(client, f"/tables/{table['id']}/entries", {"title": "First", "qty": "3"},
                    admin_headers)
        assert res.status_code == 201
        assert res.get_json()["data"] == {"title": "First", "qty": 3}

    def test_add_rejects_invalid_values(self, client, admin_headers, table, blob_store):
        res = _multipart(client, "POST", f"/tables/{table['id']}/entries", {
            "qty": "many",
            "contract": (io.BytesIO(b"%PDF"), "c.pdf"),
        }, admin_headers)
        assert res.status_code == 422
        failing = {e["field"] for e in res.get_json()["details"]["fields"]}
        assert failing == {"title", "qty"}
        assert blob_store.calls == []
        assert dynamic_table_service.list_entries(table["id"]) == []

    def test_add_with_file_upload(self, client, admin_headers, table, blob_store):
        res = _multipart(client, "POST", f"/tables/{table['id']}/entries", {
            "title": "With file",
            "contract": (io.BytesIO(b"%PDF-v1"), "signed contract.pdf"),
        }, admin_headers)
        assert res.status_code == 201
        entry = res.get_json()
        path = f"dynamicTableEntries/{table['id']}/{entry['id']}/contract/signed_contract.pdf"
        assert entry["data"]["contract"] == path
        assert blob_store.objects[path] == b"%PDF-v1"

    def test_multipart_data_part(self, client, admin_headers, table):
        res = _multipart(client, "POST", f"/tables/{table['id']}/entries", {
            "data": '{"title": "From JSON part", "qty": 4}',
        }, admin_headers)
        assert res.status_code == 201
        assert res.get_json()["data"]["qty"] == 4

    def test_replace_file_deletes_old_first(self, client, admin_headers, table, blob_store):
        entry = _multipart(client, "POST", f"/tables/{table['id']}/entries", {
            "title": "Doc", "contract": (io.BytesIO(b"v1"), "v1.pdf"),
        }, admin_headers).get_json()
        old = entry["data"]["contract"]
        blob_store.calls.clear()

        res = _multipart(client, "PUT", f"/tables/{table['id']}/entries/{entry['id']}", {
            "contract": (io.BytesIO(b"v2"), "v2.pdf"),
        }, admin_headers)
        assert res.status_code == 200
        new = res.get_json()["data"]["contract"]
        assert blob_store.calls == [("delete", old), ("upload", new)]
        assert res.get_json()["data"]["title"] == "Doc"
        assert old not in blob_store.objects

    def test_clear_file(self, client, admin_headers, table, blob_store):
        entry = _multipart(client, "POST", f"/tables/{table['id']}/entries", {
            "title": "Doc", "contract": (io.BytesIO(b"v1"), "v1.pdf"),
        }, admin_headers).get_json()

        res = _put(client, f"/tables/{table['id']}/entries/{entry['id']}", {"contract": None},
                   admin_headers)
        assert res.status_code == 200
        assert res.get_json()["data"]["contract"] is None
        assert blob_store.objects == {}

    def test_update_without_file_keeps_path(self, client, admin_headers, table, blob_store):
        entry = _multipart(client, "POST", f"/tables/{table['id']}/entries", {
            "title": "Doc", "contract": (io.BytesIO(b"v1"), "v1.pdf"),
        }, admin_headers).get_json()
        blob_store.calls.clear()

        res = _put(client, f"/tables/{table['id']}/entries/{entry['id']}", {"title": "Renamed"},
                   admin_headers)
        assert res.get_json()["data"]["contract"] == entry["data"]["contract"]
        assert blob_store.calls == []

    def test_upload_failure_writes_nothing(self, client, admin_headers, table, blob_store):
        blob_store.fail_uploads = True
        res = _multipart(client, "POST", f"/tables/{table['id']}/entries", {
            "title": "Doc", "contract": (io.BytesIO(b"v1"), "v1.pdf"),
        }, admin_headers)
        assert res.status_code == 502
        assert res.get_json()["code"] == "ERR_STORAGE"
        assert dynamic_table_service.list_entries(table["id"]) == []

    def test_archived_field_value_preserved_on_update(self, table, fields):
        entry = dynamic_table_service.add_entry(table["id"], {"title": "A", "qty": 2})
        dynamic_field_service.set_field_archived(fields["qty"]["id"], True)

        updated = dynamic_table_service.update_entry(table["id"], entry["id"], {"title": "B"})
        assert updated["data"]["title"] == "B"
        assert updated["data"]["qty"] == 2

    def test_entry_of_other_table_is_not_found(self, client, admin_headers, table, fields):
        other = dynamic_table_service.create_table(
            {"name": "other", "label": "Other", "field_ids": [fields["title"]["id"]]})
        entry = dynamic_table_service.add_entry(other["id"], {"title": "x"})
        res = _get(client, f"/tables/{table['id']}/entries/{entry['id']}", admin_headers)
        assert res.status_code == 404

    def test_archive_entry_and_choices(self, client, admin_headers, table):
        keep = dynamic_table_service.add_entry(table["id"], {"title": "Keep me"})
        gone = dynamic_table_service.add_entry(table["id"], {"title": "Archive me"})
        res = _post(client, f"/tables/{table['id']}/entries/{gone['id']}/archive",
                    headers=admin_headers)
        assert res.get_json()["is_archived"] is True

        choices = _get(client, f"/tables/{table['id']}/entries/choices", admin_headers).get_json()
        assert choices == [{"id": keep["id"], "label": "Keep me"}]

        default = _get(client, f"/tables/{table['id']}/entries", admin_headers).get_json()
        assert [e["id"] for e in default] == [keep["id"]]
        everything = _get(client, f"/tables/{table['id']}/entries?archived=include",
                          admin_headers).get_json()
        assert {e["id"] for e in everything} == {keep["id"], gone["id"]}

    def test_member_reads_but_cannot_write(self, client, member_headers, table):
        assert _get(client, f"/tables/{table['id']}/entries", member_headers).status_code == 200
        res = _post(client, f"/tables/{table['id']}/entries", {"title": "x"}, member_headers)
        assert res.status_code == 403


# ═════════════════════════════════════════════════════════════════════════════
# Subscriptions
# ═════════════════════════════════════════════════════════════════════════════

class TestSubscriptions:
    def test_initial_snapshot_and_updates(self, fields):
        snapshots = []
        unsubscribe = dynamic_table_service.subscribe_to_dynamic_tables(snapshots.append)
        assert snapshots == [[]]

        dynamic_table_service.create_table(
            {"name": "zeta", "label": "Zeta", "field_ids": [fields["title"]["id"]]})
        dynamic_table_service.create_table(
            {"name": "alpha", "label": "Alpha", "field_ids": [fields["title"]["id"]]})
        assert [[t["label"] for t in s] for s in snapshots] == [[], ["Zeta"], ["Alpha", "Zeta"]]

        unsubscribe()
        dynamic_table_service.create_table(
            {"name": "beta", "label": "Beta", "field_ids": [fields["title"]["id"]]})
        assert len(snapshots) == 3

    def test_failing_subscriber_isolated(self, fields):
        errors, received = [], []

        def broken(_snapshot):
            raise RuntimeError("listener crashed")

        dynamic_table_service.subscribe_to_dynamic_tables(broken, errors.append)
        dynamic_table_service.subscribe_to_dynamic_tables(received.append)

        dynamic_table_service.create_table(
            {"name": "t", "label": "T", "field_ids": [fields["title"]["id"]]})
        assert len(received) == 2
        assert len(errors) == 2
        assert all(isinstance(e, RuntimeError) for e in errors)

    def test_archive_publishes(self, table):
        snapshots = []
        dynamic_table_service.subscribe_to_dynamic_tables(snapshots.append)
        dynamic_table_service.set_table_archived(table["id"], True)
        assert snapshots[-1][0]["is_archived"] is True


def test_unknown_table_field_ids_service_level(fields):
    with pytest.raises(ValidationError):
        dynamic_table_service.create_table(
            {"name": "x", "label": "X", "field_ids": [fields["title"]["id"], "nope"]})

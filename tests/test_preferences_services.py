import json

from propdash.schemas.list_view import PersistedPreference, SortDirection
from propdash.services import preferences as preference_service
from propdash.services.preference_store import InMemoryPreferenceStore
from tests.mocks import FailingPreferenceStore


def test_storage_keys_are_namespaced_per_entity(contacts):
    assert preference_service.storage_key(contacts, "sort_by", namespace="") == "contacts_sort_by"
    assert (
        preference_service.storage_key(contacts, "visible_columns", namespace="pm:")
        == "pm:contacts_visible_columns"
    )


def test_load_without_stored_values_returns_defaults(store, contacts):
    preference = preference_service.load_preference(store, contacts)

    assert preference.visible_columns == contacts.default_visible_columns
    assert preference.sort_key == "created_at"
    assert preference.sort_direction == SortDirection.desc


def test_unknown_column_ids_are_dropped_and_locked_column_prepended(store, contacts):
    store.set("contacts_visible_columns", json.dumps(["email", "legacy_column", "status"]))

    preference = preference_service.load_preference(store, contacts, namespace="")

    assert preference.visible_columns == ["contact_id", "email", "status"]


def test_locked_column_is_moved_first_and_duplicates_removed(contacts):
    columns = preference_service.sanitize_visible_columns(
        contacts, ["status", "contact_id", "status", 7]
    )
    assert columns == ["contact_id", "status"]


def test_list_without_known_ids_keeps_only_locked_column(store, contacts):
    assert preference_service.sanitize_visible_columns(contacts, ["bogus"]) == ["contact_id"]

    store.set("contacts_visible_columns", json.dumps([]))
    preference = preference_service.load_preference(store, contacts, namespace="")

    assert preference.visible_columns == ["contact_id"]


def test_unreadable_column_json_falls_back_to_defaults(store, contacts, caplog):
    store.set("contacts_visible_columns", "[not json")

    preference = preference_service.load_preference(store, contacts, namespace="")

    assert preference.visible_columns == contacts.default_visible_columns
    assert "unreadable" in caplog.text


def test_non_list_column_value_falls_back_to_defaults(store, contacts):
    store.set("contacts_visible_columns", json.dumps({"email": True}))

    preference = preference_service.load_preference(store, contacts, namespace="")

    assert preference.visible_columns == contacts.default_visible_columns


def test_invalid_sort_key_falls_back_to_default_key_and_direction(store, contacts):
    store.set("contacts_sort_by", "favourite_colour")
    store.set("contacts_sort_direction", "asc")

    preference = preference_service.load_preference(store, contacts, namespace="")

    assert preference.sort_key == "created_at"
    assert preference.sort_direction == SortDirection.desc


def test_invalid_direction_keeps_valid_key(store, contacts):
    store.set("contacts_sort_by", "full_name")
    store.set("contacts_sort_direction", "sideways")

    preference = preference_service.load_preference(store, contacts, namespace="")

    assert preference.sort_key == "full_name"
    assert preference.sort_direction == SortDirection.desc


def test_save_then_load_uses_plain_strings_for_sort(contacts):
    store = InMemoryPreferenceStore()
    preference = PersistedPreference(
        visible_columns=["contact_id", "full_name"],
        sort_key="full_name",
        sort_direction=SortDirection.asc,
    )

    assert preference_service.save_preference(store, contacts, preference, namespace="") is True

    assert store.get("contacts_sort_by") == "full_name"
    assert store.get("contacts_sort_direction") == "asc"
    assert json.loads(store.get("contacts_visible_columns")) == ["contact_id", "full_name"]
    assert preference_service.load_preference(store, contacts, namespace="") == preference


def test_store_failures_are_swallowed(contacts, caplog):
    store = FailingPreferenceStore()

    preference = preference_service.load_preference(store, contacts)
    saved = preference_service.save_sort(store, contacts, sort_key="status")

    assert preference.sort_key == contacts.default_sort_key
    assert saved is False
    assert store.write_attempts == 1
    assert "Error saving preference" in caplog.text


def test_reset_writes_defaults(store, reports):
    store.set("reports_sort_by", "netIncome")

    preference = preference_service.reset_preference(store, reports, namespace="")

    assert preference.sort_key == "property"
    assert store.get("reports_sort_by") == "property"
    assert store.get("reports_sort_direction") == "asc"


def test_order_columns_follows_declaration(contacts):
    assert preference_service.order_columns(contacts, {"status", "contact_id", "email"}) == [
        "contact_id",
        "email",
        "status",
    ]

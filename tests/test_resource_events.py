"""Tests for listing normalisation and push event classification."""

from erpsync.resources.events import (
    Control,
    Created,
    Deleted,
    Refresh,
    Unrecognized,
    Updated,
    classify_event,
    event_payload,
)
from erpsync.resources.models import CacheConfig, item_id, normalize_listing, same_id


# ── Listing Tests ────────────────────────────────────────────────────


class TestNormalizeListing:
    """The three response shapes a resource endpoint may return."""

    def test_bare_list(self):
        listing = normalize_listing([{"id": 1}, None, {"id": 2}])
        assert listing.items == [{"id": 1}, {"id": 2}]
        assert listing.pagination is None

    def test_data_field_with_pagination(self):
        listing = normalize_listing({"data": [{"id": 1}], "pagination": {"page": 2, "total": 40}})
        assert listing.items == [{"id": 1}]
        assert listing.pagination == {"page": 2, "total": 40}

    def test_items_field(self):
        assert normalize_listing({"items": [{"id": 3}]}).items == [{"id": 3}]

    def test_empty_page_is_not_wrapped(self):
        listing = normalize_listing({"data": [], "pagination": {"page": 3, "total": 0}})
        assert listing.items == []
        assert listing.pagination == {"page": 3, "total": 0}
        assert normalize_listing({"items": []}).items == []

    def test_null_data_falls_back_to_items(self):
        assert normalize_listing({"data": None, "items": [{"id": 4}]}).items == [{"id": 4}]

    def test_single_object_wrapped(self):
        assert normalize_listing({"id": 9, "name": "dashboard"}).items == [{"id": 9, "name": "dashboard"}]

    def test_nested_object_wrapped(self):
        assert normalize_listing({"data": {"totalContacts": 12}}).items == [{"totalContacts": 12}]

    def test_empty_and_none(self):
        assert normalize_listing(None).items == []
        assert normalize_listing([]).items == []

    def test_ids(self):
        assert item_id({"id": 4}) == 4
        assert item_id({"name": "x"}) is None
        assert item_id("nope") is None
        assert same_id(1, "1")
        assert not same_id(None, None)
        assert not same_id(1, 2)

    def test_cache_config_defaults(self):
        config = CacheConfig()
        assert config.auto_fetch is True
        assert config.refresh_on_unrecognized is True
        assert "stock_adjusted" in config.refresh_events


# ── Classification Tests ─────────────────────────────────────────────


class TestClassifyEvent:
    """Every envelope maps to exactly one event variant."""

    def test_created(self):
        event = classify_event({"type": "contact_created", "data": {"id": 1, "name": "A"}})
        assert event == Created("contact_created", {"id": 1, "name": "A"})

    def test_generic_suffixes(self):
        assert isinstance(classify_event({"type": "created", "data": {"id": 1}}), Created)
        assert isinstance(classify_event({"type": "supplier_updated", "data": {"id": 1}}), Updated)
        assert isinstance(classify_event({"type": "employee_deleted", "data": {"id": 1}}), Deleted)

    def test_updated_exposes_id(self):
        event = classify_event({"type": "deal_updated", "data": {"id": 7, "stage": "won"}})
        assert isinstance(event, Updated)
        assert event.id == 7

    def test_deleted_carries_id(self):
        assert classify_event({"type": "product_deleted", "data": {"id": 3}}) == Deleted("product_deleted", 3)

    def test_flat_payload_without_data(self):
        event = classify_event({"type": "contact_updated", "id": 2, "name": "B"})
        assert event == Updated("contact_updated", {"id": 2, "name": "B"})

    def test_delta_without_id_is_unrecognized(self):
        event = classify_event({"type": "contact_updated", "data": {"name": "B"}})
        assert isinstance(event, Unrecognized)

    def test_unknown_kind_is_unrecognized(self):
        event = classify_event({"type": "bulk_sync", "data": {"count": 3}})
        assert event == Unrecognized("bulk_sync", {"count": 3})

    def test_control_events(self):
        assert classify_event({"type": "connection_established"}) == Control("connection_established")
        assert isinstance(classify_event({"type": "ping"}), Control)

    def test_refresh_only_for_matching_endpoint(self):
        message = {"type": "stock_adjusted", "data": {"type": "increase"}}
        assert isinstance(classify_event(message, "/inventory/stock"), Refresh)
        assert classify_event(message, "/crm/contacts") == Control("stock_adjusted")

    def test_custom_refresh_events(self):
        event = classify_event({"type": "payroll_run"}, "/hrms/payroll", {"payroll_run": ("payroll",)})
        assert isinstance(event, Refresh)

    def test_suffix_must_be_whole_word(self):
        assert isinstance(classify_event({"type": "uncreated", "data": {"id": 1}}), Unrecognized)

    def test_event_payload(self):
        assert event_payload({"type": "x", "data": [1]}) == [1]
        assert event_payload({"type": "x", "id": 1}) == {"id": 1}

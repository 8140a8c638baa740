from datetime import datetime, timezone

import pytest

from personalization.domain.entities import InteractionAction
from personalization.domain.errors import MalformedInput
from personalization.realtime.events import (
    build_profile,
    generate_content_id,
    parse_content,
    parse_market,
    parse_profile_update,
    parse_timestamp,
)


class TestParseTimestamp:

    def test_epoch_milliseconds(self):
        assert parse_timestamp(1_700_000_000_000) == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)

    def test_iso_string_with_z(self):
        assert parse_timestamp("2024-05-01T10:00:00Z") == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)

    def test_naive_datetime_is_utc(self):
        assert parse_timestamp(datetime(2024, 5, 1)).tzinfo == timezone.utc

    @pytest.mark.parametrize("value", [None, "yesterday", True, []])
    def test_invalid(self, value):
        with pytest.raises(MalformedInput):
            parse_timestamp(value)

    @pytest.mark.parametrize("value", [1e20, -1e20, float("inf"), float("nan"), 10**30])
    def test_out_of_range_epoch(self, value):
        with pytest.raises(MalformedInput):
            parse_timestamp(value)


class TestParseProfileUpdate:

    def test_camel_case_payload(self):
        update = parse_profile_update({
            "address": "0x789",
            "viewedPosts": ["a", "b"],
            "likedPosts": ["a"],
            "selectedCategories": ["Bilim", "Futbol"],
            "interactions": [
                {"postId": "a", "timestamp": "2024-05-01T11:00:00Z", "action": "view"},
            ],
        })

        assert update.address == "0x789"
        assert update.viewed_content_ids == frozenset({"a", "b"})
        assert update.liked_content_ids == frozenset({"a"})
        assert update.selected_categories == ("Bilim", "Futbol")
        assert update.interactions[0].action == InteractionAction.VIEW

    def test_absent_fields_stay_none(self):
        update = parse_profile_update({"selected_categories": ["Spor"]})
        assert update.address is None
        assert update.viewed_content_ids is None
        assert update.interactions is None

    def test_malformed_interactions_are_dropped(self):
        update = parse_profile_update({
            "interactions": [
                {"postId": "a", "timestamp": 1_700_000_000_000, "action": "like"},
                {"postId": "b", "timestamp": 1_700_000_000_000, "action": "dislike"},
                "garbage",
            ],
        })
        assert [i.content_id for i in update.interactions] == ["a"]

    def test_out_of_range_timestamp_drops_only_that_interaction(self):
        update = parse_profile_update({
            "interactions": [
                {"postId": "p1", "timestamp": 1e20, "action": "view"},
                {"postId": "p2", "timestamp": 1_700_000_000_000, "action": "view"},
            ],
        })
        assert [i.content_id for i in update.interactions] == ["p2"]

    def test_malformed_collection_is_ignored(self):
        assert parse_profile_update({"likedPosts": "a,b"}).liked_content_ids is None

    def test_empty_payload(self):
        assert parse_profile_update(None).address is None


class TestParseContent:

    def test_aliases(self):
        item = parse_content({
            "id": "p1",
            "type": "video",
            "category": "Spor",
            "content": "Derbi bu akşam",
            "likes": "12",
            "timestamp": 1_700_000_000_000,
            "creator": "0xabc",
        })
        assert item.content_id == "p1"
        assert item.kind == "video"
        assert item.body == "Derbi bu akşam"
        assert item.likes == 12
        assert item.author == "0xabc"
        assert item.created_at is not None

    def test_generates_id_and_defaults(self):
        item = parse_content({"likes": "many", "timestamp": "not a date"})
        assert item.content_id
        assert item.kind == "post"
        assert item.likes == 0
        assert item.created_at is None

    @pytest.mark.parametrize("likes", [float("inf"), float("-inf"), float("nan"), 1e400])
    def test_non_finite_likes_default_to_zero(self, likes):
        item = parse_content({"id": "c", "likes": likes})
        assert item.likes == 0

    def test_out_of_range_created_at_is_dropped(self):
        assert parse_content({"id": "c", "timestamp": 1e20}).created_at is None


class TestParseMarket:

    def test_aliases(self):
        market = parse_market({
            "id": "m1",
            "question": "Will it rain?",
            "resolved": True,
            "outcome": 1,
            "createdAt": 1_700_000_000_000,
            "orders": [
                {"user": "0x1", "outcome": 1, "isBid": True, "price": "0.5", "amount": 10, "createdAt": "2024-05-01T10:00:00Z"},
                {"user": "0x2", "outcome": 0, "is_bid": False, "price": 0.4, "amount": 5},
            ],
        })

        assert market.market_id == "m1"
        assert market.question == "Will it rain?"
        assert market.resolved is True
        assert market.outcome == 1
        assert market.created_at == datetime.fromtimestamp(1_700_000_000, tz=timezone.utc)
        assert [o.is_bid for o in market.orders] == [True, False]
        assert market.orders[0].price == 0.5
        assert market.orders[0].created_at == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)
        assert market.orders[1].created_at is None

    @pytest.mark.parametrize(
        "order",
        [
            "not-an-order",
            {"user": "0x1", "price": float("inf"), "amount": 1},
            {"user": "0x1", "price": 0.5},
            {"user": "0x1", "price": True, "amount": 1},
            {"user": "0x1", "price": 0.5, "amount": 1, "createdAt": 1e20},
        ],
    )
    def test_malformed_orders_are_dropped(self, order):
        good = {"user": "0x2", "price": 0.5, "amount": 1}
        market = parse_market({"id": "m1", "orders": [order, good]})
        assert [o.user for o in market.orders] == ["0x2"]

    def test_malformed_fields_fall_back(self):
        market = parse_market({"id": "m1", "outcome": "yes", "createdAt": "soon", "orders": "none"})
        assert market.outcome == 0
        assert market.created_at is None
        assert market.orders == ()

    def test_missing_payload_is_empty_market(self):
        assert parse_market(None).orders == ()

    def test_non_object_is_rejected(self):
        with pytest.raises(MalformedInput):
            parse_market(["m1"])


def test_build_profile_prefers_payload_address(now):
    update = parse_profile_update({"address": "0xabc", "selectedCategories": ["Spor"]})

    profile = build_profile(update, "anonymous", now)

    assert profile.identity == "0xabc"
    assert profile.selected_categories == ["Spor"]
    assert profile.last_active_at == now
    assert build_profile(parse_profile_update({}), "anonymous", now).identity == "anonymous"


def test_generate_content_id_format():
    first, second = generate_content_id(), generate_content_id()
    millis, suffix = first.split("-")
    assert millis.isdigit()
    assert len(suffix) == 10
    assert first != second

"""Tests for the Warp value model and its builder."""

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from warpstore.i18n import LocaleManager
from warpstore.warp import (
    EulerDirection,
    Vector3,
    Warp,
    WarpBuilder,
    WarpType,
    build_warp,
    default_welcome_message,
)

ORIGIN = Vector3(x=0, y=64, z=0)
FACING_NORTH = EulerDirection(yaw=180, pitch=0)


def builder(name: str = "spawn") -> WarpBuilder:
    return WarpBuilder(name, "player-1", "overworld", ORIGIN, FACING_NORTH)


class TestWarpBuilder:
    def test_defaults_when_no_optional_value_is_set(self):
        before = datetime.now(timezone.utc)
        warp = builder().build()
        after = datetime.now(timezone.utc)

        assert warp.visits == 0
        assert warp.type == WarpType.PUBLIC
        assert before <= warp.creation_date <= after
        assert warp.invited_players == frozenset()
        assert warp.invited_groups == frozenset()
        assert warp.welcome_message == "Welcome to '%warp%'!"
        assert warp.id is None

    def test_required_values_are_kept(self):
        warp = builder().build()

        assert warp.name == "spawn"
        assert warp.creator == "player-1"
        assert warp.world_identifier == "overworld"
        assert warp.position == ORIGIN
        assert warp.rotation == FACING_NORTH

    def test_setters_return_the_builder(self):
        b = builder()
        assert b.set_type(WarpType.PRIVATE) is b
        assert b.add_invited_player("p") is b
        assert b.add_invited_players(["q"]) is b
        assert b.add_invited_group("g") is b
        assert b.add_invited_groups(["h"]) is b
        assert b.set_visits(3) is b
        assert b.set_welcome_message("hi") is b
        assert b.set_creation_date(datetime(2020, 1, 1, tzinfo=timezone.utc)) is b

    def test_same_player_invited_twice_counts_once(self):
        warp = builder().add_invited_player("player-2").add_invited_player("player-2").build()

        assert warp.invited_players == frozenset({"player-2"})
        assert len(warp.invited_players) == 1

    def test_bulk_invitations_collapse_duplicates(self):
        warp = (
            builder()
            .add_invited_players(["a", "b", "a"])
            .add_invited_group("builders")
            .add_invited_groups(["builders", "mods"])
            .build()
        )

        assert warp.invited_players == frozenset({"a", "b"})
        assert warp.invited_groups == frozenset({"builders", "mods"})

    def test_optional_values_are_applied(self):
        created = datetime(2014, 5, 1, 12, 30, tzinfo=timezone.utc)
        warp = (
            builder()
            .set_type(WarpType.PRIVATE)
            .set_visits(42)
            .set_welcome_message("Hello!")
            .set_creation_date(created)
            .build()
        )

        assert warp.type == WarpType.PRIVATE
        assert warp.visits == 42
        assert warp.welcome_message == "Hello!"
        assert warp.creation_date == created

    def test_default_welcome_message_follows_locale(self):
        with LocaleManager.using("de_DE"):
            warp = builder().build()

        assert warp.welcome_message == "Willkommen bei '%warp%'!"

    @pytest.mark.parametrize("name", ["", "   "])
    def test_empty_name_is_rejected(self, name):
        with pytest.raises(ValidationError):
            builder(name).build()

    def test_negative_visits_are_rejected(self):
        with pytest.raises(ValidationError):
            builder().set_visits(-1).build()

    def test_identifiers_with_list_separator_are_rejected(self):
        with pytest.raises(ValidationError):
            builder().add_invited_player("a,b").build()
        with pytest.raises(ValidationError):
            builder().add_invited_group("").build()

    def test_overlong_name_is_rejected(self):
        with pytest.raises(ValidationError):
            builder("x" * 33).build()


class TestBuildWarp:
    def test_matches_builder_defaults(self):
        warp = build_warp("spawn", "player-1", "overworld", ORIGIN, FACING_NORTH)

        assert warp.visits == 0
        assert warp.type == WarpType.PUBLIC
        assert warp.welcome_message == default_welcome_message()

    def test_keyword_options(self):
        warp = build_warp(
            "mine",
            "player-1",
            "overworld",
            ORIGIN,
            FACING_NORTH,
            invited_players=["p", "p"],
            invited_groups=["g"],
            warp_type=WarpType.PRIVATE,
            visits=7,
            welcome_message="Dig!",
        )

        assert warp.invited_players == frozenset({"p"})
        assert warp.invited_groups == frozenset({"g"})
        assert warp.type == WarpType.PRIVATE
        assert warp.visits == 7
        assert warp.welcome_message == "Dig!"


class TestWarp:
    def test_is_immutable(self):
        warp = builder().build()

        with pytest.raises(ValidationError):
            warp.visits = 10

    def test_derived_copies_leave_the_original_untouched(self):
        warp = builder().build()

        private = warp.with_type(WarpType.PRIVATE)
        visited = warp.visited()

        assert warp.type == WarpType.PUBLIC
        assert private.type == WarpType.PRIVATE
        assert visited.visits == warp.visits + 1
        assert visited.creation_date == warp.creation_date

    def test_derived_copies_are_validated(self):
        warp = builder().build()

        with pytest.raises(ValidationError):
            warp.with_invited_players(["bad,id"])
        with pytest.raises(ValidationError):
            warp.with_welcome_message("x" * 101)

    def test_naive_creation_date_is_taken_as_utc(self):
        warp = builder().set_creation_date(datetime(2020, 1, 1, 8, 0)).build()

        assert warp.creation_date == datetime(2020, 1, 1, 8, 0, tzinfo=timezone.utc)

    def test_visits_per_day(self):
        created = datetime(2020, 1, 1, tzinfo=timezone.utc)
        warp = builder().set_creation_date(created).set_visits(30).build()

        assert warp.visits_per_day(now=created + timedelta(days=10)) == pytest.approx(3.0)
        # younger than a day counts as one day
        assert warp.visits_per_day(now=created + timedelta(hours=2)) == pytest.approx(30.0)

    def test_welcome_text_replaces_placeholders(self):
        warp = builder().set_welcome_message("Welcome to '%warp%' by %creator%").build()

        assert warp.welcome_text() == "Welcome to 'spawn' by player-1"

    def test_invitation_helpers(self):
        warp = builder().add_invited_player("p").add_invited_group("g").build()

        assert warp.is_creator("player-1")
        assert warp.is_player_invited("p")
        assert not warp.is_player_invited("q")
        assert warp.is_group_invited("g")
        assert str(warp) == "spawn"

    @pytest.mark.parametrize("y", [32768, -32769, 70000])
    def test_height_outside_column_range_is_rejected(self, y):
        with pytest.raises(ValidationError):
            Vector3(x=0, y=y, z=0)

    def test_height_at_column_limits(self):
        assert Vector3(x=0, y=32767, z=0).y == 32767
        assert Vector3(x=0, y=-32768, z=0).y == -32768

    def test_rotation_outside_column_range_is_rejected(self):
        with pytest.raises(ValidationError):
            EulerDirection(yaw=40000, pitch=0)

    def test_floored_position(self):
        position = Vector3(x=-0.5, y=70, z=12.9)

        assert (position.floor_x, position.floor_y, position.floor_z) == (-1, 70, 12)

    def test_equality_covers_all_fields(self):
        created = datetime(2020, 1, 1, tzinfo=timezone.utc)
        first = builder().set_creation_date(created).build()
        second = builder().set_creation_date(created).build()

        assert first == second
        assert first != second.with_id(1)
        assert isinstance(first, Warp)

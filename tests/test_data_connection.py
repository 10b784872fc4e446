"""Contract tests run against both backends."""

from datetime import datetime, timezone

import pytest
from sqlalchemy import insert, select

from warpstore.storage import DuplicateWarp, StorageError
from warpstore.warp import EulerDirection, Vector3, WarpBuilder, WarpType


def stored_row(store, warp_id):
    return store._run("Test Read", lambda conn: conn.execute(
        select(store.table).where(store.table.c.id == warp_id)
    ).mappings().one_or_none())


class TestCreateAndLoad:
    def test_empty_table_loads_nothing(self, store):
        assert store.load_all() == {}

    def test_create_assigns_an_identity(self, store, spawn):
        stored = store.create(spawn)

        assert spawn.id is None
        assert stored.id is not None
        assert stored.name == spawn.name

    def test_round_trip_keeps_every_field(self, store, spawn_builder):
        created = datetime(2015, 3, 14, 15, 9, 26, 535000, tzinfo=timezone.utc)
        warp = (
            spawn_builder
            .set_type(WarpType.PRIVATE)
            .add_invited_players(["player-3", "player-2"])
            .add_invited_groups(["mods", "builders"])
            .set_visits(12)
            .set_welcome_message("Hi from %creator%")
            .set_creation_date(created)
            .build()
        )
        warp = warp.with_location("nether", Vector3(x=-12.25, y=-3, z=8.75), EulerDirection(yaw=-90, pitch=45))

        stored = store.create(warp)
        loaded = store.load_all()

        assert loaded == {"spawn": stored}

    def test_spawn_with_default_welcome_message(self, store, spawn):
        store.create(spawn)

        loaded = store.load_all()["spawn"]

        assert loaded.welcome_message == "Welcome to '%warp%'!"
        assert loaded.welcome_text() == "Welcome to 'spawn'!"
        assert loaded.visits == 0
        assert loaded.type == WarpType.PUBLIC

    def test_invitation_lists_are_stored_sorted(self, store, spawn_builder):
        stored = store.create(spawn_builder.add_invited_players(["c", "a", "b"]).build())

        assert stored_row(store, stored.id)["permissions"] == "a,b,c"
        assert stored_row(store, stored.id)["groupPermissions"] == ""

    def test_duplicate_name_is_rejected(self, store, spawn):
        store.create(spawn)

        with pytest.raises(DuplicateWarp):
            store.create(spawn)

        assert len(store.load_all()) == 1

    def test_duplicate_identity_is_rejected(self, store, spawn):
        stored = store.create(spawn)
        hub = WarpBuilder("hub", "player-1", "overworld", spawn.position, spawn.rotation).build()

        with pytest.raises(DuplicateWarp):
            store.create(hub.with_id(stored.id))

    def test_duplicate_warp_is_a_storage_error(self):
        assert issubclass(DuplicateWarp, StorageError)

    def test_undecodable_rows_are_skipped(self, store, spawn):
        store.create(spawn)
        store._run("Test Insert", lambda conn: conn.execute(insert(store.table).values(
            name="   ", creator="player-1", world="overworld", x=0, y=0, z=0, yaw=0, pitch=0,
            publicAll=True, permissions="", groupPermissions="", welcomeMessage="", visits=0,
        )))

        assert list(store.load_all()) == ["spawn"]

    def test_missing_optional_columns_decode_to_defaults(self, store):
        store._run("Test Insert", lambda conn: conn.execute(insert(store.table).values(
            name="old", creator="player-1", world="overworld", x=1.5, y=70, z=2.5, yaw=10, pitch=5,
            publicAll=False, permissions=None, welcomeMessage="", creationDate=None,
        )))

        warp = store.load_all()["old"]

        assert warp.invited_players == frozenset()
        assert warp.invited_groups == frozenset()
        assert warp.visits == 0
        assert warp.type == WarpType.PRIVATE
        assert warp.creation_date.tzinfo is not None


class TestDelete:
    def test_delete_removes_the_row(self, store, spawn):
        stored = store.create(spawn)

        store.delete(stored)

        assert store.load_all() == {}

    def test_deleting_twice_is_harmless(self, store, spawn):
        stored = store.create(spawn)

        store.delete(stored)
        store.delete(stored)

        assert store.load_all() == {}

    def test_name_can_be_reused_after_delete(self, store, spawn):
        store.delete(store.create(spawn))

        assert store.create(spawn).name == "spawn"

    def test_unsaved_warp_cannot_be_deleted(self, store, spawn):
        with pytest.raises(ValueError):
            store.delete(spawn)


class TestFieldScopedUpdates:
    def test_update_visibility(self, store, spawn):
        stored = store.create(spawn)

        store.update_visibility(stored.with_type(WarpType.PRIVATE))

        assert store.load_all()["spawn"].type == WarpType.PRIVATE

    def test_update_creator(self, store, spawn):
        stored = store.create(spawn)

        store.update_creator(stored.with_creator("player-9"))

        assert store.load_all()["spawn"].creator == "player-9"

    def test_update_location(self, store, spawn):
        stored = store.create(spawn)
        moved = stored.with_location("end", Vector3(x=100.5, y=12, z=-7.25), EulerDirection(yaw=45, pitch=-30))

        store.update_location(moved)

        loaded = store.load_all()["spawn"]
        assert loaded.world_identifier == "end"
        assert loaded.position == Vector3(x=100.5, y=12, z=-7.25)
        assert loaded.rotation == EulerDirection(yaw=45, pitch=-30)

    def test_update_permissions(self, store, spawn):
        stored = store.create(spawn)

        store.update_permissions(stored.with_invited_players({"player-2", "player-3"}))

        assert store.load_all()["spawn"].invited_players == frozenset({"player-2", "player-3"})

    def test_update_group_permissions(self, store, spawn):
        stored = store.create(spawn)

        store.update_group_permissions(stored.with_invited_groups({"mods"}))

        assert store.load_all()["spawn"].invited_groups == frozenset({"mods"})

    def test_update_welcome_message(self, store, spawn):
        stored = store.create(spawn)

        store.update_welcome_message(stored.with_welcome_message("Hello"))

        assert store.load_all()["spawn"].welcome_message == "Hello"

    def test_update_only_touches_its_columns(self, store, spawn):
        stored = store.create(spawn)
        # the in-memory copy is stale apart from the creator
        store.update_welcome_message(stored.with_welcome_message("Hello"))

        store.update_creator(stored.with_creator("player-9"))

        loaded = store.load_all()["spawn"]
        assert loaded.creator == "player-9"
        assert loaded.welcome_message == "Hello"

    def test_update_visits(self, store, spawn):
        stored = store.create(spawn)

        store.update_visits(stored.visited().visited())

        assert store.load_all()["spawn"].visits == 2

    def test_visits_never_decrease(self, store, spawn_builder):
        stored = store.create(spawn_builder.set_visits(5).build())
        fewer = spawn_builder.set_visits(3).build().with_id(stored.id)

        store.update_visits(fewer)

        assert store.load_all()["spawn"].visits == 5

    def test_update_of_deleted_warp_changes_nothing(self, store, spawn):
        stored = store.create(spawn)
        store.delete(stored)

        store.update_creator(stored.with_creator("player-9"))

        assert store.load_all() == {}

    def test_unsaved_warp_cannot_be_updated(self, store, spawn):
        with pytest.raises(ValueError):
            store.update_visibility(spawn)

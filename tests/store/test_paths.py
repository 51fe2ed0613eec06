"""Tests for path keys and push ids."""

from chatwarden.store import paths
from chatwarden.store.paths import PushIdGenerator, path_key

PUSH_ID_LENGTH = 20
ID_COUNT = 500


class TestPathKey:
    def test_dots_replaced(self) -> None:
        assert path_key("alice@example.com") == "alice@example_com"

    def test_other_path_characters_replaced(self) -> None:
        assert path_key("a/b#c$d[e]f") == "a_b_c_d_e_f"

    def test_plain_identifier_unchanged(self) -> None:
        assert path_key("uid-123") == "uid-123"

    def test_non_string_identifier(self) -> None:
        assert path_key(1.5) == "1_5"

    def test_idempotent(self) -> None:
        assert path_key(path_key("x.y")) == path_key("x.y")


class TestPathBuilders:
    def test_user_paths_use_path_key(self) -> None:
        assert paths.ban("a.b") == "banned/a_b"
        assert paths.mute("a.b") == "muted/a_b"
        assert paths.shadowban("a.b") == "shadowbanned/a_b"
        assert paths.admin("a.b") == "admins/a_b"

    def test_last_message_keys_user_and_room(self) -> None:
        assert paths.last_message("u.1", "room.x") == "last_message/u_1/room_x"

    def test_resolve_room_defaults_to_global(self) -> None:
        assert paths.resolve_room("") == "global"
        assert paths.resolve_room(None) == "global"
        assert paths.resolve_room("general") == "general"


class TestPushIds:
    def test_length(self) -> None:
        assert len(PushIdGenerator()()) == PUSH_ID_LENGTH

    def test_same_millisecond_ids_are_unique_and_sorted(self) -> None:
        gen = PushIdGenerator()
        ids = [gen(1_000) for _ in range(ID_COUNT)]
        assert len(set(ids)) == ID_COUNT
        assert ids == sorted(ids)

    def test_later_time_sorts_after(self) -> None:
        gen = PushIdGenerator()
        first = gen(1_000)
        second = gen(2_000)
        assert first < second

    def test_clock_going_backwards_still_sorts_after(self) -> None:
        gen = PushIdGenerator()
        first = gen(5_000)
        second = gen(4_000)
        assert first < second

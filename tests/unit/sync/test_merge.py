"""Unit tests for reconciliation merge rules."""

from datetime import UTC, datetime, timedelta

import pytest

from softer.conversation.models import Message
from softer.rooms.lifecycle import RoomLifecycle
from softer.rooms.models import (
    Active,
    Defunct,
    DefunctReason,
    DefunctReasonKind,
    Locked,
    Need,
    NeedType,
    PendingCapture,
    PendingHumans,
    TurnState,
)
from softer.sync.merge import (
    MergeStrategy,
    merge_messages,
    merge_room,
    merge_room_for_write,
    merge_turn_for_write,
    merge_turn_state,
)
from tests.factories.rooms import RoomSpecFactory

T0 = datetime(2026, 2, 1, tzinfo=UTC)


def msg(text: str, offset: int, id: str | None = None) -> Message:
    kwargs = {"id": id} if id else {}
    return Message(
        room_id="room",
        author_id="a",
        author_name="Ada",
        text=text,
        created_at=T0 + timedelta(seconds=offset),
        **kwargs,
    )


# =============================================================================
# Tests: turn state
# =============================================================================


class TestMergeTurnState:
    def test_takes_max_index_and_union_of_hands(self) -> None:
        local = TurnState(current_turn_index=4, raised_hands=frozenset({"a"}))
        remote = TurnState(current_turn_index=6, raised_hands=frozenset({"b"}))

        merged = merge_turn_state(local, remote)

        assert merged.current_turn_index == 6
        assert merged.raised_hands == frozenset({"a", "b"})

    @pytest.mark.parametrize("local_index, remote_index", [(0, 0), (3, 9), (9, 3), (7, 7)])
    def test_never_decreases_local_index(self, local_index: int, remote_index: int) -> None:
        merged = merge_turn_state(
            TurnState(current_turn_index=local_index),
            TurnState(current_turn_index=remote_index),
        )
        assert merged.current_turn_index >= local_index

    def test_need_follows_higher_index(self) -> None:
        need = Need(type=NeedType.LIGHTWARD_TURN)
        local = TurnState(current_turn_index=5, current_need=need)
        remote = TurnState(current_turn_index=4)

        assert merge_turn_state(local, remote).current_need == need
        assert merge_turn_state(remote, local).current_need == need

    def test_need_follows_remote_on_tie(self) -> None:
        need = Need(type=NeedType.LIGHTWARD_TURN)
        claimed = need.claimed("device-b", T0)

        merged = merge_turn_state(
            TurnState(current_turn_index=3, current_need=need),
            TurnState(current_turn_index=3, current_need=claimed),
        )
        assert merged.current_need == claimed

        cleared = merge_turn_state(
            TurnState(current_turn_index=3, current_need=claimed),
            TurnState(current_turn_index=3),
        )
        assert cleared.current_need is None


# =============================================================================
# Tests: room
# =============================================================================


class TestMergeRoom:
    @pytest.fixture
    def spec(self):
        return RoomSpecFactory.create()

    def test_missing_remote_keeps_local(self, spec) -> None:
        local = RoomLifecycle(spec=spec, state=Active())
        assert merge_room(local, None) is local

    def test_remote_wins_outright(self, spec) -> None:
        local = RoomLifecycle(spec=spec, state=Active(turn=TurnState(current_turn_index=9)))
        remote = RoomLifecycle(spec=spec, state=Active(turn=TurnState(current_turn_index=2)))

        assert merge_room(local, remote, MergeStrategy.REMOTE_WINS) is remote

    def test_active_rooms_merge_turns(self, spec) -> None:
        local = RoomLifecycle(spec=spec, state=Active(turn=TurnState(current_turn_index=9)))
        remote = RoomLifecycle(spec=spec, state=Active(turn=TurnState(current_turn_index=2)))

        merged = merge_room(local, remote)

        assert merged.turn_state.current_turn_index == 9

    def test_signals_union(self, spec) -> None:
        a, b = sorted(spec.human_ids)
        local = RoomLifecycle(spec=spec, state=PendingHumans(signaled=frozenset({a})))
        remote = RoomLifecycle(spec=spec, state=PendingHumans(signaled=frozenset({b})))

        assert merge_room(local, remote).state == PendingHumans(signaled=frozenset({a, b}))

    def test_later_phase_wins(self, spec) -> None:
        pending = RoomLifecycle(spec=spec, state=PendingCapture())
        active = RoomLifecycle(spec=spec, state=Active())

        assert merge_room(pending, active).state == Active()
        assert merge_room(active, pending).state == Active()

    def test_terminal_state_comes_from_remote(self, spec) -> None:
        local = RoomLifecycle(spec=spec, state=Locked(cenotaph="fin", final_turn=TurnState()))
        defunct = Defunct(reason=DefunctReason(kind=DefunctReasonKind.PARTICIPANT_DEPARTED))
        remote = RoomLifecycle(spec=spec, state=defunct)

        assert merge_room(local, remote).state == defunct

    def test_terminal_beats_active(self, spec) -> None:
        local = RoomLifecycle(spec=spec, state=Active(turn=TurnState(current_turn_index=40)))
        remote = RoomLifecycle(spec=spec, state=Locked(cenotaph="fin", final_turn=TurnState(current_turn_index=38)))

        assert merge_room(local, remote).is_locked

    def test_phase_outranks_recency(self, spec) -> None:
        older_active = RoomLifecycle(spec=spec, state=Active(), modified_at=T0)
        newer_pending = RoomLifecycle(
            spec=spec, state=PendingCapture(), modified_at=T0 + timedelta(minutes=5)
        )

        assert merge_room(older_active, newer_pending).state == Active()


class TestMergeForWrite:
    @pytest.fixture
    def spec(self):
        return RoomSpecFactory.create()

    @pytest.fixture
    def claimed(self) -> Need:
        return Need(type=NeedType.LIGHTWARD_TURN).claimed("device-a", T0)

    def test_stored_claim_survives_tie(self, claimed) -> None:
        stored = TurnState(current_turn_index=3, current_need=claimed)
        local = TurnState(current_turn_index=3, current_need=Need(type=NeedType.LIGHTWARD_TURN))

        assert merge_turn_for_write(stored, local, "device-b").current_need == claimed
        assert merge_turn_for_write(stored, TurnState(current_turn_index=3)).current_need == claimed

    def test_owner_replaces_its_claim(self, claimed) -> None:
        stored = TurnState(current_turn_index=3, current_need=claimed)
        local = TurnState(current_turn_index=3)

        assert merge_turn_for_write(stored, local, "device-a") == local

    def test_unclaimed_stored_need_yields_to_writer(self) -> None:
        stored = TurnState(current_turn_index=3, current_need=Need(type=NeedType.LIGHTWARD_TURN))
        local = TurnState(current_turn_index=3, current_need=Need(type=NeedType.LIGHTWARD_TURN))

        assert merge_turn_for_write(stored, local, "device-b") == local

    def test_writer_keeps_its_hands_on_tie(self, claimed) -> None:
        stored = TurnState(current_turn_index=3, raised_hands=frozenset({"a"}), current_need=claimed)
        local = TurnState(current_turn_index=3)

        assert merge_turn_for_write(stored, local, "device-b").raised_hands == frozenset()

    def test_stored_further_along_is_kept(self, claimed) -> None:
        stored = TurnState(current_turn_index=4, current_need=claimed)
        local = TurnState(current_turn_index=2, raised_hands=frozenset({"a"}))

        merged = merge_turn_for_write(stored, local, "device-b")

        assert merged.current_turn_index == 4
        assert merged.current_need == claimed
        assert merged.raised_hands == frozenset({"a"})

    def test_room_write_unions_hands_and_keeps_claim(self, spec, claimed) -> None:
        stored = RoomLifecycle(
            spec=spec,
            state=Active(turn=TurnState(current_turn_index=3, raised_hands=frozenset({"a"}), current_need=claimed)),
        )
        local = RoomLifecycle(
            spec=spec,
            state=Active(turn=TurnState(current_turn_index=3, raised_hands=frozenset({"b"}))),
        )

        merged = merge_room_for_write(stored, local, "device-b")

        assert merged.turn_state.raised_hands == frozenset({"a", "b"})
        assert merged.current_need == claimed

    def test_room_write_outside_active_follows_merge_room(self, spec) -> None:
        stored = RoomLifecycle(spec=spec, state=PendingHumans(signaled=frozenset({"a"})))
        local = RoomLifecycle(spec=spec, state=PendingHumans(signaled=frozenset({"b"})))

        merged = merge_room_for_write(stored, local)

        assert merged.state == PendingHumans(signaled=frozenset({"a", "b"}))


# =============================================================================
# Tests: messages
# =============================================================================


class TestMergeMessages:
    def test_union_by_id_sorted_by_time(self) -> None:
        a, b, c = msg("a", 1), msg("b", 2), msg("c", 3)

        assert merge_messages([c, a], [b, a]) == [a, b, c]

    def test_idempotent(self) -> None:
        messages = [msg("a", 1), msg("b", 2)]

        assert merge_messages(messages, messages) == messages
        assert merge_messages(merge_messages(messages)) == messages

    def test_associative_and_commutative(self) -> None:
        a = [msg("a", 1), msg("b", 4)]
        b = [msg("c", 2), a[1]]
        c = [msg("d", 3), msg("e", 5)]

        left = merge_messages(merge_messages(a, b), c)
        right = merge_messages(a, merge_messages(b, c))

        assert left == right
        assert merge_messages(a, b) == merge_messages(b, a)

    def test_same_timestamp_ordered_by_id(self) -> None:
        first, second = msg("first", 1, id="m1"), msg("second", 1, id="m2")

        assert merge_messages([second], [first]) == [first, second]
        assert merge_messages([first], [second]) == [first, second]

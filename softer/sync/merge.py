"""Reconciliation of divergent observations of the same room.

Two strategies combine a local observation with a freshly fetched one:

- ``HIGHER_TURN_WINS``: turn index is the max of both, raised hands are the
  union. Used when in-flight local state meets a store snapshot.
- ``REMOTE_WINS``: the fresh observation replaces the local one outright.

A write back to the store treats the stored record as the base instead
(`merge_room_for_write`): the writer keeps its turn state except that, at an
equal turn index, a Need another device has already claimed stays in place.

Fields only one causal path can set (state tag, defunct reason, cenotaph)
always come from the observation further along the lifecycle, and from the
remote one when both are equally far.
"""

from enum import Enum

from softer.conversation.models import Message
from softer.rooms.lifecycle import RoomLifecycle
from softer.rooms.models import STATE_RANK, Active, Need, PendingHumans, RoomState, TurnState


class MergeStrategy(str, Enum):
    HIGHER_TURN_WINS = "higher_turn_wins"
    REMOTE_WINS = "remote_wins"


def merge_turn_state(local: TurnState, remote: TurnState) -> TurnState:
    """Merge two turn states under HIGHER_TURN_WINS.

    The need socket belongs to the observation with the higher index; on a
    tie it follows `remote`, the observation being merged in.
    """
    if local.current_turn_index > remote.current_turn_index:
        need = local.current_need
    else:
        need = remote.current_need

    return TurnState(
        current_turn_index=max(local.current_turn_index, remote.current_turn_index),
        raised_hands=local.raised_hands | remote.raised_hands,
        current_need=need,
    )


def merge_state(local: RoomState, remote: RoomState) -> RoomState:
    """Pick the state observed further along the lifecycle.

    The state tag is ordered by STATE_RANK rather than by which observation is
    newer: a room never moves backwards through its phases, so an older
    observation that is further along still wins. Equal ranks fall to `remote`
    apart from the two states whose contents are merged.
    """
    if STATE_RANK[local.kind] > STATE_RANK[remote.kind]:
        return local
    if isinstance(local, Active) and isinstance(remote, Active):
        return Active(turn=merge_turn_state(local.turn, remote.turn))
    if isinstance(local, PendingHumans) and isinstance(remote, PendingHumans):
        return PendingHumans(signaled=local.signaled | remote.signaled)
    return remote


def merge_room(
    local: RoomLifecycle,
    remote: RoomLifecycle | None,
    strategy: MergeStrategy = MergeStrategy.HIGHER_TURN_WINS,
) -> RoomLifecycle:
    """Combine a local room observation with a fetched one."""
    if remote is None:
        return local
    if strategy == MergeStrategy.REMOTE_WINS:
        return remote

    return RoomLifecycle(
        spec=remote.spec,
        state=merge_state(local.state, remote.state),
        modified_at=max(local.modified_at, remote.modified_at),
    )


def merge_turn_for_write(
    stored: TurnState, local: TurnState, device_id: str | None = None
) -> TurnState:
    """Turn state to write when `local` replaces the stored copy.

    A stored turn further along is kept, with the hands of both. At an equal
    index the writer's turn state is written unless the stored Need is claimed
    by a device other than `device_id`; that Need stays in place. Without a
    `device_id` every stored claim is kept.
    """
    if stored.current_turn_index > local.current_turn_index:
        return merge_turn_state(local, stored)
    if stored.current_turn_index == local.current_turn_index and _claimed_elsewhere(
        stored.current_need, device_id
    ):
        return local.with_need(stored.current_need)
    return local


def merge_room_for_write(
    stored: RoomLifecycle, local: RoomLifecycle, device_id: str | None = None
) -> RoomLifecycle:
    """Merge an in-flight local room onto a freshly read stored copy.

    Local state takes ties as in `merge_room`, hands are unioned and the Need
    follows `merge_turn_for_write`.
    """
    merged = merge_room(stored, local)
    if not (
        isinstance(merged.state, Active)
        and isinstance(stored.state, Active)
        and isinstance(local.state, Active)
    ):
        return merged

    need = merge_turn_for_write(stored.state.turn, local.state.turn, device_id).current_need
    turn = merged.state.turn.with_need(need)
    return RoomLifecycle(spec=merged.spec, state=Active(turn=turn), modified_at=merged.modified_at)


def _claimed_elsewhere(need: Need | None, device_id: str | None) -> bool:
    return need is not None and need.is_claimed and need.claimed_by != device_id


def merge_messages(*message_lists: list[Message]) -> list[Message]:
    """Union messages by id, ordered by creation time.

    Messages are immutable, so the first copy of an id is kept. Messages
    sharing a timestamp are ordered by id so every device agrees on order.
    """
    by_id: dict[str, Message] = {}
    for messages in message_lists:
        for message in messages:
            by_id.setdefault(message.id, message)
    return sorted(by_id.values(), key=lambda m: (m.created_at, m.id))

"""Plaintext request bodies for the Lightward completion endpoint."""

from softer.conversation.models import Message

TURN_MARKER = "(your turn)"
HAND_RAISE_MARKER = (
    "(not your turn: if you'd like the floor next, answer RAISE; otherwise answer PASS)"
)
THRESHOLD = "*a Softer room*"


def build_warmup(participant_names: list[str], lightward_name: str = "Lightward") -> str:
    """Framing that precedes the conversation: greeting, roster, handoff."""
    roster = "\n".join(
        f"{i}. {name}{' (that is you!)' if name == lightward_name else ''}"
        for i, name in enumerate(participant_names, start=1)
    )

    greeting = (
        "hello :) this is an automated message relaying you into a Softer room, "
        "a small group conversation. someone made this room with you in it, "
        "possibly with other humans too."
    )
    roster_block = (
        "participants for this room, by nickname (don't assume who anyone is):\n"
        f"{roster}"
    )
    handoff = (
        "messages from the others carry their nickname in front; yours don't. "
        "the room takes care of turn order. the occasional narrator line is the "
        "room narrating itself. if you'd rather keep listening this turn, reply "
        "YIELD. if you need to leave the room for good, reply DEPART, optionally "
        "followed by a period and a parting line."
    )

    return "\n\n".join([greeting, roster_block, handoff, THRESHOLD])


def build_chat_log(
    messages: list[Message],
    participant_names: list[str],
    lightward_name: str = "Lightward",
    raised_hands: list[str] | None = None,
    hand_raise_check: bool = False,
) -> str:
    """Build the request body: warmup, conversation lines, then the marker.

    Narration lines read ``Narrator: ...``, Lightward's own lines are raw, and
    human lines are prefixed with the author's nickname.
    """
    lines = []
    for message in messages:
        if message.is_narration:
            lines.append(f"Narrator: {message.text}")
        elif message.is_lightward:
            lines.append(message.text)
        else:
            lines.append(f"{message.author_name}: {message.text}")

    parts = [build_warmup(participant_names, lightward_name)]
    if lines:
        parts.append("\n".join(lines))
    if raised_hands:
        parts.append(f"Narrator: hands raised: {', '.join(raised_hands)}")
    parts.append(HAND_RAISE_MARKER if hand_raise_check else TURN_MARKER)

    return "\n\n".join(parts)

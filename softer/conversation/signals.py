"""Interpretation of Lightward's signal words.

A response that starts with a reserved word changes what happens to the
turn instead of being shown as speech. YIELD is checked before DEPART.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict

YIELD_WORD = "YIELD"
DEPART_WORD = "DEPART"
RAISE_WORD = "RAISE"


class Signal(str, Enum):
    SPEECH = "speech"
    YIELD = "yield"
    DEPART = "depart"


class LightwardReply(BaseModel):
    """A completion response classified by its signal word."""

    model_config = ConfigDict(frozen=True)

    signal: Signal
    speech: str | None = None


def interpret_response(text: str) -> LightwardReply:
    """Classify a completion response.

    - ``YIELD...``: Lightward passes its turn, nothing is said.
    - ``DEPART...``: Lightward leaves; text after ``DEPART.`` is a parting line.
    - anything else: ordinary speech, kept verbatim.
    """
    trimmed = text.strip()
    upper = trimmed.upper()

    if upper.startswith(YIELD_WORD):
        return LightwardReply(signal=Signal.YIELD)

    if upper.startswith(DEPART_WORD):
        remainder = trimmed[len(DEPART_WORD):]
        if remainder.startswith("."):
            remainder = remainder[1:]
        farewell = remainder.strip()
        return LightwardReply(signal=Signal.DEPART, speech=farewell or None)

    return LightwardReply(signal=Signal.SPEECH, speech=text)


def wants_to_speak(check_response: str) -> bool:
    """Whether a hand-raise check response asks for the floor."""
    return RAISE_WORD in check_response.strip().upper()

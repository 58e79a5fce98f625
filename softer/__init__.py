"""Softer: turn-based group conversations between humans and Lightward.

Rooms move through a creation workflow (resolve participants, authorize
payment, ask Lightward, wait for every human to signal presence, capture
payment) and then run a turn loop synchronised across devices through a
versioned record store.
"""

__version__ = "0.1.0"

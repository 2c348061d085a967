"""
PawMatch — ORM model registry.

Importing every model here ensures that Alembic (and any other tool that
inspects ``Base.metadata``) discovers all tables automatically.
"""

from pawmatch.models.dog import Dog
from pawmatch.models.match import Match, Swipe
from pawmatch.models.conversation import Conversation, Message
from pawmatch.models.playdate import PlaydateRequest

__all__ = [
    "Dog",
    "Match",
    "Swipe",
    "Conversation",
    "Message",
    "PlaydateRequest",
]

"""
Reactions to link content and the history used to revert it.
"""

from walltaker.reactions.history import HistoryStore
from walltaker.reactions.processor import (
    InMemoryCollaborators,
    LinkReactionProcessor,
    ReactionCollaborators,
    comment_text,
    notification_text,
)

__all__ = [
    'HistoryStore',
    'InMemoryCollaborators',
    'LinkReactionProcessor',
    'ReactionCollaborators',
    'comment_text',
    'notification_text',
]

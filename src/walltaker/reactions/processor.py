"""
Link reaction processing.

When a link owner reacts to the content their link shows, the person who
set it is notified, the reaction is logged in the link's comment feed, a
climax is recorded when appropriate, and a rejected post is replaced by the
most recent different post from the link's history.
"""

import logging
import threading
from contextlib import contextmanager
from typing import Dict, Iterator, List, Optional, Protocol, Tuple, Union

from walltaker.core.events import EventEmitter, LinkReactedEvent
from walltaker.core.exceptions import ErrorContext, HistoryStoreError, ReactionError
from walltaker.models import HistoryEntry, Link, ReactionType
from walltaker.reactions.history import HistoryStore


logger = logging.getLogger(__name__)

NOTIFICATION_KIND = "post_response"

NOTIFICATION_TEMPLATES = {
    ReactionType.ACCEPTED: "{username} loved your post!",
    ReactionType.REJECTED: "{username} did not like your post.",
    ReactionType.CLIMAXED: "{username} came to your post!",
}

COMMENT_TEMPLATES = {
    ReactionType.ACCEPTED: "> loved it! {url}",
    ReactionType.REJECTED: "> hated it. {url}",
    ReactionType.CLIMAXED: "> came to it! {url}",
}

CLIMAX_RATING = 3


class ReactionCollaborators(Protocol):
    """Persistence for the side effects of a reaction."""

    def create_notification(self, user_id: int, kind: str, text: str, link_ref: str) -> None:
        ...

    def create_comment(self, user_id: int, link_id: int, text: str) -> None:
        ...

    def record_climax(self, user_id: int, caused_by_id: Optional[int],
                      rating: int, is_ruined: bool) -> None:
        ...


class InMemoryCollaborators:
    """Keeps reaction side effects in lists. Useful for previews and tests."""

    def __init__(self):
        self.notifications: List[Dict] = []
        self.comments: List[Dict] = []
        self.climaxes: List[Dict] = []

    def create_notification(self, user_id, kind, text, link_ref):
        self.notifications.append(
            {'user_id': user_id, 'kind': kind, 'text': text, 'link': link_ref}
        )

    def create_comment(self, user_id, link_id, text):
        self.comments.append({'user_id': user_id, 'link_id': link_id, 'text': text})

    def record_climax(self, user_id, caused_by_id, rating, is_ruined):
        self.climaxes.append({
            'user_id': user_id,
            'caused_by_id': caused_by_id,
            'rating': rating,
            'is_ruined': is_ruined,
        })


def notification_text(link: Link, reaction: ReactionType, note: Optional[str] = None) -> str:
    """Message sent to whoever set the link's content."""
    text = NOTIFICATION_TEMPLATES[reaction].format(username=link.username)
    if note:
        text = f'{text} "{note}"'
    return text


def comment_text(link: Link, reaction: ReactionType) -> str:
    """Short-form log line for the link's comment feed."""
    return COMMENT_TEMPLATES[reaction].format(url=link.post_url or "")


class LinkReactionProcessor:
    """
    State machine driven by reaction events.

    Reactions on the same link are processed one at a time. For a
    rejection, history cleanup and the choice of replacement content happen
    in one transaction, and the link is only changed after it commits, so a
    failure leaves both history and link as they were.
    """

    def __init__(self, history: HistoryStore,
                 collaborators: Optional[ReactionCollaborators] = None,
                 emitter: Optional[EventEmitter] = None):
        """
        Initialize the processor.

        Args:
            history: Store of past link content
            collaborators: Notification/comment/climax persistence
            emitter: Event emitter for tracking
        """
        self.history = history
        self.collaborators = collaborators or InMemoryCollaborators()
        self.emitter = emitter or EventEmitter()

        self._locks_guard = threading.Lock()
        # link id -> [lock, number of reactions holding or waiting for it]
        self._link_locks: Dict[int, List] = {}

    @contextmanager
    def _link_lock(self, link_id: int) -> Iterator[None]:
        with self._locks_guard:
            entry = self._link_locks.setdefault(link_id, [threading.Lock(), 0])
            entry[1] += 1
        try:
            with entry[0]:
                yield
        finally:
            with self._locks_guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._link_locks[link_id]

    def on_link_react(self, link: Link, reaction: Union[ReactionType, str],
                      note: Optional[str] = None) -> Link:
        """
        Apply a reaction to a link.

        Args:
            link: Link being reacted to
            reaction: Kind of reaction
            note: Optional free text from the owner

        Returns:
            The same link, mutated; saving and broadcasting it is up to the caller

        Raises:
            ReactionError: If the reaction could not be applied. The link is
                unchanged in that case.
        """
        reaction = ReactionType(reaction)

        with self._link_lock(link.id):
            reacted_url = link.post_url
            removed, target = 0, None

            if reaction is ReactionType.REJECTED:
                removed, target = self._compute_revert(link)

            link.response_type = reaction
            link.response_text = note

            self._notify_setter(link, reaction, note)
            self._log_comments(link, reaction, note)

            if reaction is ReactionType.CLIMAXED:
                self._record_climax(link)

            if reaction is ReactionType.REJECTED:
                link.post_url = target.post_url if target else None
                link.post_thumbnail_url = target.post_thumbnail_url if target else None

        logger.info(f"Link {link.id} reaction '{reaction.value}' applied")
        self.emitter.emit(LinkReactedEvent(
            link_id=link.id,
            reaction=reaction.value,
            user_id=link.user_id,
            set_by_id=link.set_by_id,
            post_url=reacted_url,
            reverted_to=link.post_url if reaction is ReactionType.REJECTED else None,
            removed_history_entries=removed,
        ))
        return link

    def display_post(self, link: Link, post_url: str, thumbnail_url: Optional[str] = None,
                     description: Optional[str] = None, set_by_id: Optional[int] = None,
                     set_by_username: Optional[str] = None) -> Link:
        """
        Show new content on a link and record it in the link's history.

        Resets the link's reaction state.
        """
        with self._link_lock(link.id):
            self.history.append(link.id, post_url, thumbnail_url)
            link.set_post(post_url, thumbnail_url, description, set_by_id, set_by_username)
        return link

    def _compute_revert(self, link: Link) -> Tuple[int, Optional[HistoryEntry]]:
        try:
            return self.history.revert_target(link.id, link.post_url)
        except HistoryStoreError as e:
            raise ReactionError(
                f"Could not revert link {link.id}: {e.message}",
                link_id=link.id,
                cause=e,
                context=ErrorContext(operation="on_link_react", link_id=link.id, user_id=link.user_id)
            )

    def _notify_setter(self, link: Link, reaction: ReactionType, note: Optional[str]) -> None:
        if link.set_by_id is None:
            logger.debug(f"Link {link.id} has no setter to notify")
            return

        try:
            self.collaborators.create_notification(
                link.set_by_id, NOTIFICATION_KIND,
                notification_text(link, reaction, note), f"/links/{link.id}"
            )
        except Exception as e:
            logger.warning(f"Failed to create notification for link {link.id}: {e}")

    def _log_comments(self, link: Link, reaction: ReactionType, note: Optional[str]) -> None:
        texts = [comment_text(link, reaction)]
        if note:
            texts.append(note)

        for text in texts:
            try:
                self.collaborators.create_comment(link.user_id, link.id, text)
            except Exception as e:
                logger.warning(f"Failed to log reaction comment for link {link.id}: {e}")

    def _record_climax(self, link: Link) -> None:
        try:
            self.collaborators.record_climax(link.user_id, link.set_by_id, CLIMAX_RATING, False)
        except Exception as e:
            logger.warning(f"Failed to record climax for link {link.id}: {e}")

"""Side effects of mutating operations, applied in one place.

Operations describe what changed (``Effects``); ``EffectsDispatcher`` drops
the affected cache entries and emits notifications to subscribers.
"""

import logging
from typing import Callable, List

from pydantic import BaseModel, Field

from prbridge.models.notifications import Notification, PullRequestCommentsChanged
from prbridge.services.cache import KeyedCache

LOG = logging.getLogger("prbridge.services.effects")

Listener = Callable[[Notification], None]


class Effects(BaseModel):
    """Cache keys to invalidate and notifications to emit."""

    invalidate: List[str] = Field(default_factory=list)
    notifications: List[Notification] = Field(default_factory=list)


class ChangeNotifier:
    """Fire-and-forget fan-out of notifications to the hosting session."""

    def __init__(self) -> None:
        self._listeners: List[Listener] = []

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener``; return a callable that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def emit(self, notification: Notification) -> None:
        for listener in list(self._listeners):
            try:
                listener(notification)
            except Exception as e:
                LOG.warning("Notification listener failed for %s: %s", notification.type, e)


class EffectsDispatcher:
    """Applies ``Effects`` against the pull request cache and notifier."""

    def __init__(self, pull_requests: KeyedCache, notifier: ChangeNotifier) -> None:
        self._pull_requests = pull_requests
        self._notifier = notifier

    def apply(self, effects: Effects) -> None:
        for key in effects.invalidate:
            self._pull_requests.invalidate(key)
        for notification in effects.notifications:
            self._notifier.emit(notification)


def comments_changed(
    pull_request_id: str,
    file_path: str | None = None,
    comment_id: str | None = None,
) -> Effects:
    """Effects of any mutation of a pull request: drop its detail, tell the UI."""
    return Effects(
        invalidate=[pull_request_id],
        notifications=[
            PullRequestCommentsChanged(
                pull_request_id=pull_request_id,
                file_path=file_path,
                comment_id=comment_id,
            )
        ],
    )

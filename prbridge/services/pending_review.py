"""Draft inline comments staged per pull request until the review is submitted.

Entries live only in memory and are never sent anywhere until submit; the
normalizer renders them as pending notes in the detail response.
"""

import logging
from typing import Dict, List

from prbridge.models.review import PendingReviewEntry

LOG = logging.getLogger("prbridge.services.pending_review")


class PendingReviewStore:
    """Staged review comments keyed by pull request numeric id."""

    def __init__(self) -> None:
        self._entries: Dict[str, List[PendingReviewEntry]] = {}

    def stage(self, numeric_id: str, entry: PendingReviewEntry) -> int:
        """Append ``entry``; return how many entries are now staged."""
        staged = self._entries.setdefault(numeric_id, [])
        staged.append(entry)
        LOG.debug("Staged review comment %s for %s on %s", len(staged), numeric_id, entry.file_path)
        return len(staged)

    def has_pending_review(self, numeric_id: str) -> bool:
        return bool(self._entries.get(numeric_id))

    def entries(self, numeric_id: str) -> List[PendingReviewEntry]:
        """Copy of the staged entries, in staging order."""
        return list(self._entries.get(numeric_id, []))

    def clear(self, numeric_id: str) -> None:
        self._entries.pop(numeric_id, None)

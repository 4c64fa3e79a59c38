"""Data models: identity, GitLab payloads, canonical pull request, requests and responses (Pydantic)."""

from prbridge.models.base import CanonicalModel, ProviderErrorInfo
from prbridge.models.identity import (
    PullRequestId,
    PullRequestIdField,
    decode_pull_request_id,
    encode_pull_request_id,
)
from prbridge.models.notifications import DocumentMarkersChanged, Notification, PullRequestCommentsChanged
from prbridge.models.pull_request import (
    Author,
    CurrentUser,
    Discussion,
    Note,
    Position,
    PullRequest,
    PullRequestComment,
    PullRequestDetail,
    ReactionGroup,
    TimelineEvent,
    TimelineItem,
)
from prbridge.models.review import BatchItemResult, BatchResult, PendingReviewEntry, ReviewEventType

__all__ = [
    "Author",
    "BatchItemResult",
    "BatchResult",
    "CanonicalModel",
    "CurrentUser",
    "Discussion",
    "DocumentMarkersChanged",
    "Note",
    "Notification",
    "PendingReviewEntry",
    "Position",
    "ProviderErrorInfo",
    "PullRequest",
    "PullRequestComment",
    "PullRequestCommentsChanged",
    "PullRequestDetail",
    "PullRequestId",
    "PullRequestIdField",
    "ReactionGroup",
    "ReviewEventType",
    "TimelineEvent",
    "TimelineItem",
    "decode_pull_request_id",
    "encode_pull_request_id",
]

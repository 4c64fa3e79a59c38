"""Inbound boundary: method name + params in, result or error object out.

Params are validated into request models (pull request id tokens are decoded
here); results are serialized with camelCase keys.
"""

import logging
from typing import Any, Dict, Tuple, Type

from pydantic import BaseModel, ValidationError

from prbridge.adapters.gitlab import GitLabAdapter
from prbridge.exceptions import InvalidRequestError, ProviderError
from prbridge.models.base import CanonicalModel, ProviderErrorInfo
from prbridge.models.requests import (
    AssignableUsersRequest,
    CommentReplyRequest,
    CommentsForPathRequest,
    CreateCardRequest,
    CreateCommentRequest,
    CreatePullRequestRequest,
    DeleteCommentRequest,
    FetchBoardsRequest,
    FetchCardsRequest,
    FetchPullRequestRequest,
    InlineCommentRequest,
    MarkToDoDoneRequest,
    MergePullRequestRequest,
    MyPullRequestsRequest,
    OnOffRequest,
    PullRequestRequest,
    RepoInfoRequest,
    SetLabelsRequest,
    SubmitReviewRequest,
    ToggleApprovalRequest,
    ToggleMilestoneRequest,
    ToggleReactionRequest,
)

LOG = logging.getLogger("prbridge.router")

# method -> (request model, adapter method)
ROUTES: Dict[str, Tuple[Type[BaseModel], str]] = {
    "getBoards": (FetchBoardsRequest, "get_boards"),
    "getCards": (FetchCardsRequest, "get_cards"),
    "createCard": (CreateCardRequest, "create_card"),
    "getAssignableUsers": (AssignableUsersRequest, "get_assignable_users"),
    "getReviewers": (PullRequestRequest, "get_reviewers"),
    "getPullRequest": (FetchPullRequestRequest, "get_pull_request"),
    "getRepoInfo": (RepoInfoRequest, "get_repo_info"),
    "createPullRequest": (CreatePullRequestRequest, "create_pull_request"),
    "createPullRequestComment": (CreateCommentRequest, "create_pull_request_comment"),
    "createCommentReply": (CommentReplyRequest, "create_comment_reply"),
    "deletePullRequestComment": (DeleteCommentRequest, "delete_pull_request_comment"),
    "createPullRequestCommentAndClose": (CreateCommentRequest, "create_pull_request_comment_and_close"),
    "createPullRequestCommentAndReopen": (CreateCommentRequest, "create_pull_request_comment_and_reopen"),
    "createPullRequestInlineComment": (InlineCommentRequest, "create_pull_request_inline_comment"),
    "createPullRequestReviewComment": (InlineCommentRequest, "create_pull_request_review_comment"),
    "getPendingReview": (PullRequestRequest, "has_pending_review"),
    "submitReview": (SubmitReviewRequest, "submit_review"),
    "updatePullRequestSubscription": (OnOffRequest, "update_pull_request_subscription"),
    "lockPullRequest": (PullRequestRequest, "lock_pull_request"),
    "unlockPullRequest": (PullRequestRequest, "unlock_pull_request"),
    "createToDo": (PullRequestRequest, "create_todo"),
    "markToDoDone": (MarkToDoDoneRequest, "mark_todo_done"),
    "getMilestones": (PullRequestRequest, "get_milestones"),
    "getLabels": (PullRequestRequest, "get_labels"),
    "toggleMilestoneOnPullRequest": (ToggleMilestoneRequest, "toggle_milestone"),
    "setLabelOnPullRequest": (SetLabelsRequest, "set_labels"),
    "setWorkInProgressOnPullRequest": (OnOffRequest, "set_work_in_progress"),
    "toggleReaction": (ToggleReactionRequest, "toggle_reaction"),
    "togglePullRequestApproval": (ToggleApprovalRequest, "toggle_approval"),
    "mergePullRequest": (MergePullRequestRequest, "merge_pull_request"),
    "getPullRequestCommits": (PullRequestRequest, "get_pull_request_commits"),
    "getPullRequestFilesChanged": (PullRequestRequest, "get_pull_request_files_changed"),
    "getMyPullRequests": (MyPullRequestsRequest, "get_my_pull_requests"),
    "getCommentsForPath": (CommentsForPathRequest, "get_comments_for_path"),
}


def to_wire(value: Any) -> Any:
    """JSON-ready form of an operation result."""
    if isinstance(value, CanonicalModel):
        return value.to_wire()
    if isinstance(value, BaseModel):
        return value.model_dump(by_alias=True, mode="json", exclude_none=True)
    if isinstance(value, list):
        return [to_wire(v) for v in value]
    return value


def _error(type_: str, message: str) -> Dict[str, Any]:
    return {"error": ProviderErrorInfo(type=type_, message=message).to_wire()}


async def dispatch(adapter: GitLabAdapter, method: str, params: Dict[str, Any] | None = None) -> Dict[str, Any]:
    """Run ``method``; return ``{"result": ...}`` or ``{"error": {type, message}}``."""
    route = ROUTES.get(method)
    if route is None:
        return _error("UNKNOWN", f"Unknown method: {method}")
    model, attr = route
    try:
        request = model.model_validate(params or {})
    except ValidationError as e:
        LOG.warning("Invalid %s request: %s", method, e)
        return _error("UNKNOWN", str(e))

    pr_id = getattr(request, "pull_request_id", None)
    try:
        result = await getattr(adapter, attr)(request)
    except InvalidRequestError as e:
        LOG.warning("%s rejected: %s", method, e)
        return _error("UNKNOWN", e.message)
    except ProviderError as e:
        if pr_id is not None:
            e.add_context(pull_request=pr_id.full_reference)
        LOG.error("%s failed: %s (context: %s)", method, e, e.context)
        return _error("PROVIDER", e.message)
    except Exception as e:
        LOG.exception(
            "%s failed unexpectedly: %s (pull request: %s)",
            method,
            e,
            pr_id.full_reference if pr_id is not None else None,
        )
        return _error("PROVIDER", str(e) or type(e).__name__)
    return {"result": to_wire(result)}

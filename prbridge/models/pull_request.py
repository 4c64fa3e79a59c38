"""Canonical pull request, discussion and timeline models.

These are what the UI consumes. Field names are snake_case in Python and
camelCase on the wire (``model_dump(by_alias=True)``).
"""

from typing import Any, Dict, List, Literal, Union

from pydantic import Field

from prbridge.models.base import CanonicalModel, ProviderErrorInfo


class Author(CanonicalModel):
    name: str | None = None
    username: str | None = None
    avatar_url: str | None = None


class Position(CanonicalModel):
    """Diff anchor of a note."""

    file_path: str | None = None
    old_path: str | None = None
    new_path: str | None = None
    old_line: int | None = None
    new_line: int | None = None
    base_sha: str | None = None
    head_sha: str | None = None
    start_sha: str | None = None


class Note(CanonicalModel):
    id: str
    author: Author | None = None
    body: str = ""
    body_text: str | None = None
    body_html: str | None = None
    created_at: str
    updated_at: str | None = None
    position: Position | None = None
    resolvable: bool = False
    resolved: bool = False
    resolved_at: str | None = None
    resolved_by: Author | None = None
    system: bool = False
    system_note_icon_name: str | None = None
    user_permissions: Dict[str, Any] | None = None
    # discussion id without its gid prefix
    database_id: str | None = None
    merge_request_id_computed: str | None = None
    discussion_id: str | None = None
    state: str | None = None
    pending: bool | None = Field(default=None, alias="_pending")
    replies: List["Note"] = Field(default_factory=list)


class Discussion(CanonicalModel):
    """A thread: exactly one head note, the rest are ``notes[0].replies``."""

    id: str
    created_at: str
    reply_id: str | None = None
    resolvable: bool = False
    resolved: bool = False
    resolved_at: str | None = None
    resolved_by: Author | None = None
    position: Position | None = None
    pending: bool | None = Field(default=None, alias="_pending")
    notes: List[Note] = Field(default_factory=list)


class TimelineEvent(CanonicalModel):
    """Project activity, label or milestone change shown between discussions."""

    type: Literal["merge-request", "label", "milestone"]
    id: int
    action: str
    created_at: str
    author: Dict[str, Any] | None = None
    user: Dict[str, Any] | None = None
    label: Dict[str, Any] | None = None
    milestone: Dict[str, Any] | None = None
    resource_type: str | None = None
    project_id: int | None = None
    target_id: int | None = None
    target_title: str | None = None
    target_type: str | None = None


TimelineItem = Union[Discussion, TimelineEvent]


class ReactionGroup(CanonicalModel):
    content: str
    data: List[Dict[str, Any]] = Field(default_factory=list)


class References(CanonicalModel):
    full: str


class Repository(CanonicalModel):
    name: str
    name_with_owner: str
    url: str


class Viewer(CanonicalModel):
    login: str


class PendingReviewComments(CanonicalModel):
    total_count: int


class PendingReviewSummary(CanonicalModel):
    comments: PendingReviewComments


class PullRequest(CanonicalModel):
    """Normalized merge request."""

    id: str
    iid: str
    number: int
    id_computed: str
    provider_id: str | None = None
    title: str = ""
    description: str | None = None
    state: str = ""
    url: str = ""
    web_url: str = ""
    created_at: str
    merged_at: str | None = None
    merged: bool = False
    work_in_progress: bool = False
    reference: str = ""
    references: References
    base_ref_name: str
    head_ref_name: str
    base_ref_oid: str | None = None
    head_ref_oid: str | None = None
    repository: Repository
    project_id: int | str | None = None
    author: Author | None = None
    viewer: Viewer | None = None
    commit_count: int | None = None
    upvotes: int = 0
    downvotes: int = 0
    milestone: Dict[str, Any] | None = None
    subscribed: bool | None = None
    user_discussions_count: int | None = None
    discussion_locked: bool | None = None
    approved_by: List[Dict[str, Any]] = Field(default_factory=list)
    assignees: List[Dict[str, Any]] = Field(default_factory=list)
    participants: List[Dict[str, Any]] = Field(default_factory=list)
    labels: List[Dict[str, Any]] = Field(default_factory=list)
    current_user_todos: List[Dict[str, Any]] = Field(default_factory=list)
    time_estimate: int | None = None
    total_time_spent: int | None = None
    reaction_groups: List[ReactionGroup] = Field(default_factory=list)
    pending_review: PendingReviewSummary | None = None
    discussions: List[TimelineItem] = Field(default_factory=list)


class CurrentUser(CanonicalModel):
    id: str | None = None
    name: str | None = None
    username: str = ""


class PullRequestDetail(CanonicalModel):
    """Response of the pull request detail fetch."""

    current_user: CurrentUser | None = None
    project_name: str | None = None
    pull_request: PullRequest | None = None
    error: ProviderErrorInfo | None = None


class PullRequestComment(CanonicalModel):
    """Inline comment found for a file, used for editor markers."""

    id: str
    author: Dict[str, str]
    path: str
    text: str
    code: str = ""
    commit: str | None = None
    original_commit: str | None = None
    line: int | None = None
    original_line: int | None = None
    url: str
    created_at: int
    pull_request: Dict[str, Any]

"""GitLab-native payloads (REST and GraphQL), validated before normalizing."""

from typing import Any, Dict, List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Rest(BaseModel):
    model_config = ConfigDict(extra="ignore")


class _GraphQL(BaseModel):
    model_config = ConfigDict(extra="ignore", alias_generator=to_camel, populate_by_name=True)


# REST


class GitLabProject(_Rest):
    """Project as returned by ``GET /projects/:id``."""

    id: int
    path: str = ""
    path_with_namespace: str = ""
    issues_enabled: bool = False
    default_branch: str | None = None
    web_url: str | None = None
    # local repository path the project was resolved from, if any
    repo_path: str | None = None


class GitLabUser(_Rest):
    id: int
    name: str = ""
    username: str = ""
    avatar_url: str | None = None
    web_url: str | None = None


class GitLabReferences(_Rest):
    full: str = ""
    short: str | None = None


class GitLabMergeRequest(_Rest):
    """Merge request from the REST listing endpoints."""

    id: int
    iid: int
    title: str = ""
    description: str | None = None
    web_url: str = ""
    state: str = ""
    target_branch: str = ""
    source_branch: str = ""
    created_at: str | None = None
    updated_at: str | None = None
    references: GitLabReferences = Field(default_factory=GitLabReferences)


class GitLabNotePosition(_Rest):
    base_sha: str | None = None
    start_sha: str | None = None
    head_sha: str | None = None
    old_path: str | None = None
    new_path: str | None = None
    position_type: str | None = None
    old_line: int | None = None
    new_line: int | None = None


class GitLabNote(_Rest):
    """Merge request note from ``GET .../merge_requests/:iid/notes``."""

    id: int
    body: str = ""
    author: GitLabUser
    created_at: str
    updated_at: str | None = None
    system: bool = False
    position: GitLabNotePosition | None = None
    resolvable: bool = False
    resolved: bool = False


class GitLabProjectEvent(_Rest):
    """Project activity from ``GET /projects/:id/events``."""

    id: int
    action_name: str
    created_at: str
    author: Dict[str, Any] | None = None
    project_id: int | None = None
    target_id: int | None = None
    target_iid: int | None = None
    target_title: str | None = None
    target_type: str | None = None


class GitLabResourceEvent(_Rest):
    """Label or milestone change from ``resource_*_events``."""

    id: int
    action: str
    created_at: str
    user: Dict[str, Any] | None = None
    label: Dict[str, Any] | None = None
    milestone: Dict[str, Any] | None = None
    resource_type: str | None = None


class GitLabAward(_Rest):
    id: int
    name: str
    user: Dict[str, Any] | None = None
    awardable_id: int | None = None


class GitLabCommit(_Rest):
    id: str
    short_id: str
    title: str = ""
    message: str = ""
    author_name: str = ""
    author_email: str = ""
    authored_date: str | None = None
    committer_name: str = ""
    committer_email: str = ""
    committed_date: str | None = None
    created_at: str | None = None
    web_url: str | None = None


class GitLabDiffRefs(_Rest):
    base_sha: str | None = None
    head_sha: str | None = None
    start_sha: str | None = None


class GitLabChange(_Rest):
    old_path: str = ""
    new_path: str = ""
    diff: str | None = None
    sha: str | None = None


class GitLabChanges(_Rest):
    diff_refs: GitLabDiffRefs = Field(default_factory=GitLabDiffRefs)
    changes: List[GitLabChange] = Field(default_factory=list)


class GitLabIssue(_Rest):
    id: int
    iid: int
    title: str = ""
    description: str | None = None
    web_url: str = ""
    updated_at: str


# GraphQL


class GqlAuthor(_GraphQL):
    name: str | None = None
    username: str | None = None
    avatar_url: str | None = None


class GqlDiscussionRef(_GraphQL):
    id: str | None = None
    reply_id: str | None = None
    created_at: str | None = None


class GqlPosition(_GraphQL):
    x: int | None = None
    y: int | None = None
    new_line: int | None = None
    new_path: str | None = None
    old_line: int | None = None
    old_path: str | None = None
    file_path: str | None = None


class GqlNote(_GraphQL):
    id: str
    author: GqlAuthor | None = None
    body: str = ""
    body_html: str | None = None
    confidential: bool | None = None
    created_at: str
    updated_at: str | None = None
    discussion: GqlDiscussionRef | None = None
    position: GqlPosition | None = None
    resolvable: bool = False
    resolved: bool = False
    resolved_at: str | None = None
    resolved_by: GqlAuthor | None = None
    system: bool = False
    system_note_icon_name: str | None = None
    user_permissions: Dict[str, Any] | None = None


class GqlNoteConnection(_GraphQL):
    nodes: List[GqlNote] = Field(default_factory=list)


class GqlDiscussion(_GraphQL):
    id: str
    created_at: str
    reply_id: str | None = None
    resolvable: bool = False
    resolved: bool = False
    resolved_at: str | None = None
    resolved_by: GqlAuthor | None = None
    notes: GqlNoteConnection = Field(default_factory=GqlNoteConnection)


class GqlDiffRefs(_GraphQL):
    base_sha: str | None = None
    head_sha: str | None = None
    start_sha: str | None = None


class GqlSourceProject(_GraphQL):
    name: str = ""
    web_url: str = ""
    full_path: str = ""


class GqlMilestone(_GraphQL):
    id: str | None = None
    title: str = ""
    web_path: str | None = None
    due_date: str | None = None


class GqlNodes(_GraphQL):
    nodes: List[Dict[str, Any]] = Field(default_factory=list)


class GqlDiscussionConnection(_GraphQL):
    nodes: List[GqlDiscussion] = Field(default_factory=list)


class GqlMergeRequest(_GraphQL):
    """``project.mergeRequest`` of the GetPullRequest query."""

    id: str
    iid: str
    title: str = ""
    description: str | None = None
    web_url: str = ""
    state: str = ""
    created_at: str
    merged_at: str | None = None
    source_branch: str = ""
    target_branch: str = ""
    work_in_progress: bool = False
    reference: str = ""
    project_id: int | str | None = None
    author: GqlAuthor | None = None
    diff_refs: GqlDiffRefs | None = None
    commit_count: int | None = None
    source_project: GqlSourceProject
    upvotes: int = 0
    downvotes: int = 0
    milestone: GqlMilestone | None = None
    subscribed: bool | None = None
    user_discussions_count: int | None = None
    discussion_locked: bool | None = None
    approved_by: GqlNodes = Field(default_factory=GqlNodes)
    assignees: GqlNodes = Field(default_factory=GqlNodes)
    participants: GqlNodes = Field(default_factory=GqlNodes)
    labels: GqlNodes = Field(default_factory=GqlNodes)
    current_user_todos: GqlNodes = Field(default_factory=GqlNodes)
    time_estimate: int | None = None
    total_time_spent: int | None = None
    discussions: GqlDiscussionConnection = Field(default_factory=GqlDiscussionConnection)


class GqlCurrentUser(_GraphQL):
    id: str | None = None
    name: str | None = None
    username: str = ""


class GqlProject(_GraphQL):
    name: str = ""
    merge_request: GqlMergeRequest


class GqlPullRequestResponse(_GraphQL):
    """``data`` of the GetPullRequest query."""

    current_user: GqlCurrentUser
    project: GqlProject

"""Result models returned to the UI."""

from typing import Any, Dict, List, Literal

from pydantic import ConfigDict, Field

from prbridge.models.base import CanonicalModel, ProviderErrorInfo
from prbridge.models.review import BatchResult

DirectiveType = Literal[
    "addApprovedBy",
    "addNode",
    "addNodes",
    "addReaction",
    "removeNode",
    "removeReaction",
    "removeApprovedBy",
    "resolveReviewThread",
    "setLabels",
    "unresolveReviewThread",
    "updateDiscussionNote",
    "updateNode",
    "updatePullRequest",
    "updatePullRequestReview",
    "updatePullRequestReviewers",
    "updatePullRequestReviewComment",
    "updatePullRequestReviewCommentNode",
]


class Directive(CanonicalModel):
    """Instruction for the UI to patch its copy of the pull request."""

    type: DirectiveType
    data: Any = None


class Directives(CanonicalModel):
    directives: List[Directive] = Field(default_factory=list)

    @classmethod
    def single(cls, type: DirectiveType, data: Any) -> "Directives":
        return cls(directives=[Directive(type=type, data=data)])


class Board(CanonicalModel):
    id: int | str
    name: str
    path: str | None = None
    # GitLab shows a single assignee per issue
    single_assignee: bool = True


class BoardsResponse(CanonicalModel):
    boards: List[Board] = Field(default_factory=list)


class Card(CanonicalModel):
    id: int | str
    url: str
    title: str
    modified_at: int
    token_id: int | str
    body: str | None = None


class CardsResponse(CanonicalModel):
    cards: List[Card] = Field(default_factory=list)


class CreateCardResponse(CanonicalModel):
    """The created issue as GitLab returns it, plus ``url``."""

    model_config = ConfigDict(extra="allow")

    id: int | str
    iid: int | str | None = None
    title: str = ""
    url: str


class UsersResponse(CanonicalModel):
    users: List[Dict[str, Any]] = Field(default_factory=list)


class RepoPullRequest(CanonicalModel):
    # opaque pull request id token
    id: str
    iid: str
    url: str
    base_ref_name: str
    head_ref_name: str


class RepoInfo(CanonicalModel):
    id: str | None = None
    default_branch: str | None = None
    pull_requests: List[RepoPullRequest] = Field(default_factory=list)
    error: ProviderErrorInfo | None = None


class CreatePullRequestResponse(CanonicalModel):
    title: str | None = None
    url: str | None = None
    error: ProviderErrorInfo | None = None


class SubmitReviewResponse(CanonicalModel):
    success: bool = True
    batch: BatchResult = Field(default_factory=BatchResult)


class CommitPerson(CanonicalModel):
    name: str
    avatar_url: str
    user: Dict[str, str]


class Commit(CanonicalModel):
    oid: str
    abbreviated_oid: str
    author: CommitPerson
    committer: CommitPerson
    message: str
    authored_date: str | None = None
    url: str | None = None


class ChangedFile(CanonicalModel):
    sha: str | None = None
    status: str = ""
    additions: int = 0
    changes: int = 0
    deletions: int = 0
    filename: str
    patch: str | None = None
    diff_refs: Dict[str, Any] | None = None

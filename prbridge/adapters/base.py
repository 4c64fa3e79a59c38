"""Abstract base for pull request provider adapters."""

from abc import ABC, abstractmethod
from typing import Any, Dict, List

from prbridge.models.pull_request import PullRequestComment, PullRequestDetail
from prbridge.models.requests import (
    CommentsForPathRequest,
    CreateCommentRequest,
    DeleteCommentRequest,
    FetchBoardsRequest,
    FetchCardsRequest,
    FetchPullRequestRequest,
    MyPullRequestsRequest,
    PullRequestRequest,
    RepoInfoRequest,
    SubmitReviewRequest,
)
from prbridge.models.responses import BoardsResponse, CardsResponse, Directives, RepoInfo, SubmitReviewResponse


class ProviderAdapter(ABC):
    """Interface of a hosting provider (GitLab, GitHub, Bitbucket) to the UI.

    Each instance owns its caches and pending review store; instances for
    different accounts share nothing.
    """

    @property
    @abstractmethod
    def provider_id(self) -> str:
        """Provider id reported in normalized responses."""
        ...

    @abstractmethod
    async def connect(self) -> None:
        """Verify the credential and reset per-connection state."""
        ...

    @abstractmethod
    async def get_pull_request(self, request: FetchPullRequestRequest) -> PullRequestDetail:
        """Fetch (or return the cached) normalized pull request detail."""
        ...

    @abstractmethod
    async def get_repo_info(self, request: RepoInfoRequest) -> RepoInfo:
        """Project info and open pull requests of a remote."""
        ...

    @abstractmethod
    async def create_pull_request_comment(self, request: CreateCommentRequest) -> Directives:
        """Post a top-level comment."""
        ...

    @abstractmethod
    async def delete_pull_request_comment(self, request: DeleteCommentRequest) -> Directives:
        """Delete a comment."""
        ...

    @abstractmethod
    async def has_pending_review(self, request: PullRequestRequest) -> bool:
        """Whether review comments are staged for the pull request."""
        ...

    @abstractmethod
    async def submit_review(self, request: SubmitReviewRequest) -> SubmitReviewResponse:
        """Flush staged review comments and post the summary."""
        ...

    async def get_boards(self, request: FetchBoardsRequest) -> BoardsResponse:
        """Issue boards. Override if needed."""
        return BoardsResponse()

    async def get_cards(self, request: FetchCardsRequest) -> CardsResponse:
        """Issues assigned to the user. Override if needed."""
        return CardsResponse()

    async def get_comments_for_path(self, request: CommentsForPathRequest) -> List[PullRequestComment] | None:
        """Inline comments for a file. Override if needed."""
        return None

    async def get_my_pull_requests(self, request: MyPullRequestsRequest) -> List[List[Dict[str, Any]]]:
        """Pull requests matching saved queries. Override if needed."""
        raise NotImplementedError("get_my_pull_requests")

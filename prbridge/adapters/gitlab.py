"""GitLab adapter: every UI operation against one GitLab account.

REST is used for listings, events and most state changes; GraphQL for the
pull request detail, notes and a few mutations. Pull request ids arrive
already decoded (``PullRequestId``); the project path and iid are always
recombined into ``/projects/<path>/merge_requests/<iid>`` before a call.
"""

import asyncio
import logging
import os
import re
import time
from pathlib import Path
from typing import Any, Callable, Dict, List, Sequence
from urllib.parse import quote, urlencode

import requests
from pydantic import ValidationError

from prbridge.adapters.base import ProviderAdapter
from prbridge.adapters.normalizer import (
    comments_for_path,
    normalize_board,
    normalize_card,
    normalize_changes,
    normalize_commit,
    normalize_discussion,
    normalize_merge_request,
    normalize_my_pull_request,
    normalize_repo_pull_request,
    sort_newest_first,
)
from prbridge.adapters.pagination import fetch_all
from prbridge.adapters.queries import CREATE_NOTE, DESTROY_NOTE, GET_PULL_REQUEST, SET_LABELS, SET_WIP
from prbridge.adapters.timeline import assemble_timeline, label_events, milestone_events, project_events
from prbridge.adapters.transport import GitLabTransport
from prbridge.config import CacheConfig, GitLabConfig
from prbridge.connection import ProviderConnection
from prbridge.exceptions import InvalidRequestError, ProviderError, TransportError
from prbridge.models.base import ProviderErrorInfo
from prbridge.models.gitlab import (
    GitLabAward,
    GitLabChanges,
    GitLabCommit,
    GitLabIssue,
    GitLabMergeRequest,
    GitLabNote,
    GitLabProject,
    GitLabProjectEvent,
    GitLabResourceEvent,
    GqlDiscussion,
    GqlPullRequestResponse,
)
from prbridge.models.identity import PullRequestId
from prbridge.models.notifications import DocumentMarkersChanged
from prbridge.models.pull_request import PullRequestComment, PullRequestDetail, TimelineEvent
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
from prbridge.models.responses import (
    BoardsResponse,
    CardsResponse,
    ChangedFile,
    Commit,
    CreateCardResponse,
    CreatePullRequestResponse,
    Directive,
    Directives,
    RepoInfo,
    SubmitReviewResponse,
    UsersResponse,
)
from prbridge.models.review import BatchItemResult, BatchResult, PendingReviewEntry, ReviewEventType
from prbridge.services.cache import ExpiringCache, KeyedCache
from prbridge.services.effects import ChangeNotifier, EffectsDispatcher, comments_changed
from prbridge.services.git import GitRemote, GitRepository, GitRunnerError, load_repository, owner_from_remote
from prbridge.services.pending_review import PendingReviewStore

LOG = logging.getLogger("prbridge.adapters.gitlab")

# Any sort: term in a saved query keeps the server's ordering
_SORT_TERM_RE = re.compile(r"\bsort:")
_TODO_GID_RE = re.compile(r".*Todo/")

NOT_COMPATIBLE_MESSAGE = "PR Api is not compatible"


def _encode(path: str) -> str:
    """Project path as a single URL path segment."""
    return quote(path, safe="")


def _merge_request_path(pr_id: PullRequestId) -> str:
    return f"/projects/{_encode(pr_id.project_full_path)}/merge_requests/{pr_id.iid}"


def _query_string(query: str) -> str:
    """``key:value`` terms of a saved query as URL parameters."""
    pairs = []
    for term in query.split(" "):
        if not term:
            continue
        key, _, value = term.partition(":")
        pairs.append((key, value))
    return urlencode(pairs)


def _mutation_result(data: Dict[str, Any], field: str, node: str) -> Dict[str, Any]:
    """``node`` of a mutation payload; a rejected mutation raises its payload errors."""
    payload = data.get(field) or {}
    result = payload.get(node)
    if result is None:
        errors = [str(e) for e in payload.get("errors") or []]
        raise ProviderError("; ".join(errors) or f"{field} returned no {node}", context={"mutation": field})
    return result


class GitLabAdapter(ProviderAdapter):
    """GitLab (gitlab.com or self-managed) implementation."""

    def __init__(
        self,
        connection: ProviderConnection,
        config: GitLabConfig | None = None,
        cache_config: CacheConfig | None = None,
        repositories: Sequence[Path] | None = None,
        notifier: ChangeNotifier | None = None,
        session: requests.Session | None = None,
        clock: Callable[[], float] = time.monotonic,
        repository_loader: Callable[[Path], GitRepository] = load_repository,
    ) -> None:
        self._config = config or GitLabConfig()
        cache_config = cache_config or CacheConfig()
        self.connection = connection
        self.notifier = notifier or ChangeNotifier()
        self._transport = GitLabTransport(connection, timeout=self._config.timeout, session=session)
        self._repositories = [Path(p) for p in repositories or []]
        self._load_repository = repository_loader

        self._projects_by_remote_path: KeyedCache[str, GitLabProject] = KeyedCache("projects")
        self._pull_requests: KeyedCache[str, PullRequestDetail] = KeyedCache("pull requests")
        self._comments_by_path: ExpiringCache[str, asyncio.Task] = ExpiringCache(
            cache_config.comments_refresh_minutes * 60, clock=clock, name="comments"
        )
        self._pending = PendingReviewStore()
        self._effects = EffectsDispatcher(self._pull_requests, self.notifier)

        self._user_id: int | None = None
        self._username: str | None = None

    @property
    def provider_id(self) -> str:
        return self.connection.provider_id

    @property
    def transport(self) -> GitLabTransport:
        return self._transport

    def _changed(self, pr_id: PullRequestId, file_path: str | None = None, comment_id: str | None = None) -> None:
        self._effects.apply(comments_changed(pr_id.numeric_id, file_path=file_path, comment_id=comment_id))

    # Connection

    async def connect(self) -> None:
        """Look up the current user and reset per-connection caches."""
        response = await self._transport.get("/user")
        body = response.body or {}
        self._user_id = body.get("id")
        self._username = body.get("username")
        self._projects_by_remote_path.clear()
        self.connection.clear_token_error()
        self._transport.discard_client()
        LOG.info("Connected to %s as %s", self._transport.base_url, self._username)

    async def ensure_connected(self) -> None:
        if self._user_id is None:
            await self.connect()

    # Repositories and projects

    async def _open_repositories(self) -> List[GitRepository]:
        repos: List[GitRepository] = []
        for path in self._repositories:
            try:
                repos.append(await asyncio.to_thread(self._load_repository, path))
            except GitRunnerError as e:
                LOG.warning("Could not read remotes of %s: %s", path, e)
        return repos

    def _is_matching_remote(self, remote: GitRemote) -> bool:
        return remote.domain == self._config.remote_domain

    async def _remote_paths(self, repo_path: Path) -> List[str]:
        try:
            repo = await asyncio.to_thread(self._load_repository, repo_path)
        except GitRunnerError as e:
            LOG.warning("Could not read remotes of %s: %s", repo_path, e)
            return []
        return [r.path for r in repo.remotes if self._is_matching_remote(r)]

    async def _open_projects_by_remote_path(self) -> Dict[str, GitLabProject]:
        open_projects: Dict[str, GitLabProject] = {}
        for repo in await self._open_repositories():
            for remote in repo.remotes:
                if not self._is_matching_remote(remote) or remote.path in open_projects:
                    continue
                project = self._projects_by_remote_path.get(remote.path)
                if project is None:
                    try:
                        response = await self._transport.get(f"/projects/{_encode(remote.path)}")
                    except ProviderError as e:
                        LOG.error("Failed to get project %s: %s", remote.path, e)
                        continue
                    project = GitLabProject.model_validate({**response.body, "repo_path": str(repo.path)})
                    self._projects_by_remote_path.set(remote.path, project)
                open_projects[remote.path] = project
        return open_projects

    # Boards and cards

    async def get_boards(self, request: FetchBoardsRequest) -> BoardsResponse:
        """Issue-enabled projects of the open repositories, else all member projects."""
        await self.ensure_connected()
        try:
            open_projects = await self._open_projects_by_remote_path()
            if open_projects:
                projects = [p for p in open_projects.values() if p.issues_enabled]
            else:
                result = await fetch_all(self._transport, "/projects?min_access_level=20&with_issues_enabled=true")
                projects = [GitLabProject.model_validate(p) for p in result.items]
        except ProviderError as e:
            LOG.error("Failed to list boards: %s", e)
            return BoardsResponse()
        return BoardsResponse(boards=[normalize_board(p) for p in projects])

    async def get_cards(self, request: FetchCardsRequest) -> CardsResponse:
        """Open issues assigned to the current user."""
        await self.ensure_connected()
        params = urlencode({"state": "opened", "scope": "assigned_to_me"})
        try:
            response = await self._transport.get(f"/issues?{params}")
        except ProviderError as e:
            LOG.error("Failed to list cards: %s", e)
            return CardsResponse()
        return CardsResponse(cards=[normalize_card(GitLabIssue.model_validate(i)) for i in response.body or []])

    async def create_card(self, request: CreateCardRequest) -> CreateCardResponse:
        await self.ensure_connected()
        card: Dict[str, Any] = {"title": request.title, "description": request.description}
        if request.assignee:
            # the API takes several assignees, the UI shows one
            card["assignee_ids"] = request.assignee.get("id")
        response = await self._transport.post(f"/projects/{_encode(request.repo_name)}/issues?{urlencode(card)}", {})
        body = response.body or {}
        return CreateCardResponse.model_validate({**body, "url": body.get("web_url", "")})

    async def get_assignable_users(self, request: AssignableUsersRequest) -> UsersResponse:
        await self.ensure_connected()
        response = await self._transport.get(f"/projects/{_encode(request.board_id)}/users")
        return UsersResponse(users=[{**u, "displayName": u.get("name")} for u in response.body or []])

    async def get_reviewers(self, request: PullRequestRequest) -> UsersResponse:
        pr_id = request.pull_request_id
        response = await self._transport.get(f"/projects/{_encode(pr_id.project_full_path)}/users")
        return UsersResponse(
            users=[
                {**u, "avatarUrl": u.get("avatar_url"), "displayName": u.get("name")}
                for u in response.body or []
            ]
        )

    # Pull request detail

    async def _project_events(self, pr_id: PullRequestId) -> List[TimelineEvent]:
        response = await self._transport.get(f"/projects/{_encode(pr_id.project_full_path)}/events")
        return project_events(GitLabProjectEvent.model_validate(e) for e in response.body or [])

    async def _label_events(self, pr_id: PullRequestId) -> List[TimelineEvent]:
        response = await self._transport.get(f"{_merge_request_path(pr_id)}/resource_label_events")
        return label_events(GitLabResourceEvent.model_validate(e) for e in response.body or [])

    async def _milestone_events(self, pr_id: PullRequestId) -> List[TimelineEvent]:
        response = await self._transport.get(f"{_merge_request_path(pr_id)}/resource_milestone_events")
        return milestone_events(GitLabResourceEvent.model_validate(e) for e in response.body or [])

    async def get_pull_request(self, request: FetchPullRequestRequest) -> PullRequestDetail:
        """Normalized merge request with its discussions and activity as one timeline.

        Served from the cache unless ``force``. Only a fully assembled detail
        is cached: when the merge request itself cannot be loaded the result
        carries an error; when only the activity events fail, the detail is
        returned without them and is not cached. Callers get their own copy
        of a cached detail.
        """
        pr_id = request.pull_request_id
        key = pr_id.numeric_id
        await self.ensure_connected()

        if request.force:
            self._pull_requests.invalidate(key)
        else:
            cached = self._pull_requests.get(key)
            if cached is not None:
                return cached.model_copy(deep=True)

        try:
            data = await self._transport.query(
                GET_PULL_REQUEST, {"fullPath": pr_id.project_full_path, "iid": pr_id.iid}
            )
            response = GqlPullRequestResponse.model_validate(data)
            self._username = response.current_user.username
            awards = await self._transport.get(f"{_merge_request_path(pr_id)}/award_emoji")
            detail = normalize_merge_request(
                response,
                [GitLabAward.model_validate(a) for a in awards.body or []],
                self.provider_id,
                pending=self._pending.entries(key),
            )
        except (ProviderError, ValidationError) as e:
            LOG.error("Failed to get pull request %s: %s", pr_id.full_reference, e)
            return PullRequestDetail(error=ProviderErrorInfo(type="PROVIDER", message=str(e)))

        try:
            streams = await asyncio.gather(
                self._project_events(pr_id),
                self._label_events(pr_id),
                self._milestone_events(pr_id),
            )
        except (ProviderError, ValidationError) as e:
            LOG.error("Failed to get activity of pull request %s: %s", pr_id.full_reference, e)
            return detail

        detail.pull_request.discussions = assemble_timeline(detail.pull_request.discussions, *streams)
        self._pull_requests.set(key, detail.model_copy(deep=True))
        return detail

    def invalidate_pull_request(self, pr_id: PullRequestId) -> None:
        self._pull_requests.invalidate(pr_id.numeric_id)

    # Repository info and pull request creation

    async def get_repo_info(self, request: RepoInfoRequest) -> RepoInfo:
        """Project id, default branch and open merge requests of a remote."""
        owner, name = owner_from_remote(request.remote)
        project_path = _encode(f"{owner}/{name}")
        try:
            try:
                project = (await self._transport.get(f"/projects/{project_path}")).body or {}
            except ProviderError as e:
                LOG.error("Failed to get project %s/%s: %s", owner, name, e)
                return RepoInfo(error=ProviderErrorInfo(type="PROVIDER", message=str(e)))
            try:
                merge_requests = await fetch_all(self._transport, f"/projects/{project_path}/merge_requests?state=opened")
            except ProviderError as e:
                LOG.error("Failed to get merge requests of %s/%s: %s", owner, name, e)
                return RepoInfo(error=ProviderErrorInfo(type="PROVIDER", message=str(e)))
            return RepoInfo(
                id=str(project.get("iid") or project.get("id")),
                default_branch=project.get("default_branch"),
                pull_requests=[
                    normalize_repo_pull_request(GitLabMergeRequest.model_validate(mr))
                    for mr in merge_requests.items
                ],
            )
        except (ProviderError, ValidationError) as e:
            LOG.error("getRepoInfo failed for %s/%s: %s", owner, name, e)
            return RepoInfo(error=ProviderErrorInfo(type="PROVIDER", message=str(e)))

    async def is_pr_api_compatible(self) -> bool:
        """False when the server has no version endpoint (too old for merge request APIs)."""
        try:
            await self._transport.get("/version")
        except TransportError as e:
            if e.status_code == 404:
                return False
            raise
        return True

    async def create_pull_request(self, request: CreatePullRequestRequest) -> CreatePullRequestResponse:
        try:
            await self.ensure_connected()
            if not await self.is_pr_api_compatible():
                return CreatePullRequestResponse(
                    error=ProviderErrorInfo(type="UNKNOWN", message=NOT_COMPATIBLE_MESSAGE)
                )
            owner, name = owner_from_remote(request.remote)
            repo_info = await self.get_repo_info(RepoInfoRequest(remote=request.remote))
            if repo_info.error is not None:
                return CreatePullRequestResponse(error=repo_info.error)

            response = await self._transport.post(
                f"/projects/{_encode(f'{owner}/{name}')}/merge_requests",
                {
                    "title": request.title,
                    "source_branch": request.head_ref_name,
                    "target_branch": request.base_ref_name,
                    "description": request.description,
                },
                headers={"Content-Type": "application/json"},
            )
            body = response.body or {}
            return CreatePullRequestResponse(title=f"#{body.get('iid')} {body.get('title')}", url=body.get("web_url"))
        except ProviderError as e:
            LOG.error(
                "createPullRequest failed for %s (%s -> %s): %s",
                request.remote,
                request.head_ref_name,
                request.base_ref_name,
                e,
            )
            return CreatePullRequestResponse(error=ProviderErrorInfo(type="PROVIDER", message=f"GitLab: {e.message}"))

    # Comments

    async def create_pull_request_comment(self, request: CreateCommentRequest) -> Directives:
        """Top-level note; the UI receives the discussion that now holds it."""
        pr_id = request.pull_request_id
        data = await self._transport.mutate(
            CREATE_NOTE, {"noteableId": pr_id.numeric_id, "body": request.text, "iid": pr_id.iid}
        )
        note = _mutation_result(data, "createNote", "note")
        added = None
        for node in note["project"]["mergeRequest"]["discussions"]["nodes"]:
            if any(n.get("id") == note["id"] for n in node["notes"]["nodes"]):
                added = normalize_discussion(GqlDiscussion.model_validate(node), pr_id.encode()).to_wire()
                break
        self._changed(pr_id)
        return Directives.single("addNode", added)

    async def create_comment_reply(self, request: CommentReplyRequest) -> Dict[str, Any]:
        pr_id = request.pull_request_id
        response = await self._transport.post(
            f"{_merge_request_path(pr_id)}/discussions/{request.comment_id}/notes", {"body": request.text}
        )
        self._changed(pr_id, comment_id=request.comment_id)
        return response.body

    async def delete_pull_request_comment(self, request: DeleteCommentRequest) -> Directives:
        pr_id = request.pull_request_id
        await self._transport.mutate(DESTROY_NOTE, {"id": request.id})
        self._changed(pr_id, comment_id=request.id)
        return Directives.single("removeNode", {"id": request.id})

    async def _comment_and_set_state(self, request: CreateCommentRequest, state_event: str) -> Directives:
        pr_id = request.pull_request_id
        directives: List[Directive] = []
        if request.text:
            directives.extend((await self.create_pull_request_comment(request)).directives)

        response = await self._transport.put(_merge_request_path(pr_id), {"state_event": state_event})
        body = response.body or {}
        directives.append(
            Directive(
                type="updatePullRequest",
                data={
                    "mergedAt": body.get("merged_at"),
                    "mergeStatus": body.get("merge_status"),
                    "state": body.get("state"),
                    "updatedAt": body.get("updated_at"),
                    "closedAt": body.get("closed_at"),
                    "closedBy": body.get("closed_by"),
                },
            )
        )
        events = await self._project_events(pr_id)
        directives.append(Directive(type="addNodes", data=[e.to_wire() for e in events]))
        self._changed(pr_id)
        return Directives(directives=directives)

    async def create_pull_request_comment_and_close(self, request: CreateCommentRequest) -> Directives:
        return await self._comment_and_set_state(request, "close")

    async def create_pull_request_comment_and_reopen(self, request: CreateCommentRequest) -> Directives:
        return await self._comment_and_set_state(request, "reopen")

    async def _post_inline_comment(self, pr_id: PullRequestId, entry: PendingReviewEntry) -> Dict[str, Any]:
        """Post a diff note anchored to the new side of ``entry.file_path``."""
        payload = {
            "body": entry.text,
            "position": {
                "base_sha": entry.left_sha,
                "head_sha": entry.sha or entry.right_sha,
                "start_sha": entry.left_sha,
                "position_type": "text",
                "new_path": entry.file_path,
                "new_line": entry.start_line,
            },
        }
        response = await self._transport.post(f"{_merge_request_path(pr_id)}/discussions", payload)
        return response.body

    @staticmethod
    def _entry(request: InlineCommentRequest) -> PendingReviewEntry:
        return PendingReviewEntry(
            text=request.text,
            file_path=request.file_path,
            start_line=request.start_line,
            end_line=request.end_line,
            position=request.position,
            left_sha=request.left_sha,
            right_sha=request.right_sha,
            sha=request.sha,
        )

    async def create_pull_request_inline_comment(self, request: InlineCommentRequest) -> Any:
        """Inline comment; staged instead when a review is in progress."""
        pr_id = request.pull_request_id
        if self._pending.has_pending_review(pr_id.numeric_id):
            return await self.create_pull_request_review_comment(request)
        body = await self._post_inline_comment(pr_id, self._entry(request))
        self._changed(pr_id, file_path=request.file_path)
        return body

    async def create_pull_request_review_comment(self, request: InlineCommentRequest) -> bool:
        """Stage an inline comment in the pending review; nothing is sent."""
        pr_id = request.pull_request_id
        self._pending.stage(pr_id.numeric_id, self._entry(request))
        self._changed(pr_id, file_path=request.file_path)
        return True

    # Review

    async def has_pending_review(self, request: PullRequestRequest) -> bool:
        return self._pending.has_pending_review(request.pull_request_id.numeric_id)

    async def submit_review(self, request: SubmitReviewRequest) -> SubmitReviewResponse:
        """Post every staged comment, then the summary comment.

        Individual failures are logged and reported in the batch result; the
        staged list is cleared either way.
        """
        event = request.event_type or ReviewEventType.COMMENT.value
        try:
            event_type = ReviewEventType(event)
        except ValueError as e:
            raise InvalidRequestError(f"Invalid eventType: {event}") from e

        pr_id = request.pull_request_id
        key = pr_id.numeric_id
        batch = BatchResult()
        entries = self._pending.entries(key)
        LOG.info("Submitting %s review of %s with %s comments", event_type.value, pr_id.full_reference, len(entries))
        try:
            for entry in entries:
                try:
                    await self._post_inline_comment(pr_id, entry)
                except ProviderError as e:
                    LOG.warning("Failed to post review comment on %s (%s): %s", entry.file_path, pr_id.full_reference, e)
                    batch.items.append(BatchItemResult(entry=entry, ok=False, error=str(e)))
                else:
                    batch.items.append(BatchItemResult(entry=entry, ok=True))
        finally:
            self._pending.clear(key)
            self._changed(pr_id)

        if request.text:
            await self.create_pull_request_comment(CreateCommentRequest(pull_request_id=pr_id, text=request.text))
        return SubmitReviewResponse(success=not batch.failed, batch=batch)

    # Pull request state

    async def update_pull_request_subscription(self, request: OnOffRequest) -> Directives:
        pr_id = request.pull_request_id
        action = "subscribe" if request.on_off else "unsubscribe"
        response = await self._transport.post(f"{_merge_request_path(pr_id)}/{action}", {})
        self._changed(pr_id)
        return Directives.single("updatePullRequest", {"subscribed": (response.body or {}).get("subscribed")})

    async def _set_locked(self, pr_id: PullRequestId, locked: bool) -> Directives:
        response = await self._transport.put(_merge_request_path(pr_id), {"discussion_locked": locked})
        self._changed(pr_id)
        return Directives.single(
            "updatePullRequest", {"discussionLocked": (response.body or {}).get("discussion_locked")}
        )

    async def lock_pull_request(self, request: PullRequestRequest) -> Directives:
        return await self._set_locked(request.pull_request_id, True)

    async def unlock_pull_request(self, request: PullRequestRequest) -> Directives:
        return await self._set_locked(request.pull_request_id, False)

    async def create_todo(self, request: PullRequestRequest) -> Directives:
        pr_id = request.pull_request_id
        response = await self._transport.post(f"{_merge_request_path(pr_id)}/todo", {})
        self._changed(pr_id)
        return Directives.single("updatePullRequest", {"currentUserTodos": {"nodes": [response.body]}})

    async def mark_todo_done(self, request: MarkToDoDoneRequest) -> Directives:
        todo_id = _TODO_GID_RE.sub("", str(request.id))
        response = await self._transport.post(f"/todos/{todo_id}/mark_as_done", {})
        return Directives.single("updatePullRequest", {"currentUserTodos": {"nodes": [response.body]}})

    async def get_milestones(self, request: PullRequestRequest) -> List[Dict[str, Any]]:
        pr_id = request.pull_request_id
        response = await self._transport.get(f"/projects/{_encode(pr_id.project_full_path)}/milestones")
        return response.body or []

    async def get_labels(self, request: PullRequestRequest) -> List[Dict[str, Any]]:
        pr_id = request.pull_request_id
        response = await self._transport.get(f"/projects/{_encode(pr_id.project_full_path)}/labels")
        return response.body or []

    async def toggle_milestone(self, request: ToggleMilestoneRequest) -> Directives:
        pr_id = request.pull_request_id
        response = await self._transport.put(_merge_request_path(pr_id), {"milestone_id": request.milestone_id})
        self._changed(pr_id)
        return Directives.single("updatePullRequest", {"milestone": (response.body or {}).get("milestone")})

    async def set_work_in_progress(self, request: OnOffRequest) -> Directives:
        pr_id = request.pull_request_id
        data = await self._transport.mutate(
            SET_WIP, {"projectPath": pr_id.project_full_path, "iid": pr_id.iid, "wip": request.on_off}
        )
        merge_request = _mutation_result(data, "mergeRequestSetWip", "mergeRequest")
        self._changed(pr_id)
        return Directives.single(
            "updatePullRequest",
            {"workInProgress": merge_request.get("workInProgress"), "title": merge_request.get("title")},
        )

    async def set_labels(self, request: SetLabelsRequest) -> Directives:
        pr_id = request.pull_request_id
        data = await self._transport.mutate(
            SET_LABELS, {"projectPath": pr_id.project_full_path, "iid": pr_id.iid, "labelIds": request.label_ids}
        )
        merge_request = _mutation_result(data, "mergeRequestSetLabels", "mergeRequest")
        self._changed(pr_id)
        return Directives.single("setLabels", merge_request["labels"])

    async def toggle_reaction(self, request: ToggleReactionRequest) -> Directives:
        pr_id = request.pull_request_id
        path = f"{_merge_request_path(pr_id)}/award_emoji"
        if request.on_off:
            response = await self._transport.post(path, {"name": request.content})
            self._changed(pr_id)
            return Directives.single("addReaction", response.body)

        if not request.id:
            raise InvalidRequestError("MissingId")
        # DELETE answers with an empty body
        await self._transport.delete(f"{path}/{request.id}", raw=True)
        self._changed(pr_id)
        return Directives.single("removeReaction", {"content": request.content, "username": self._username})

    async def toggle_approval(self, request: ToggleApprovalRequest) -> Directives:
        pr_id = request.pull_request_id
        body: Dict[str, Any] | None = None
        if request.approve:
            body = (await self._transport.post(f"{_merge_request_path(pr_id)}/approve", {})).body
        else:
            try:
                body = (await self._transport.post(f"{_merge_request_path(pr_id)}/unapprove", {})).body
            except TransportError as e:
                # 404 when the user had not approved
                if e.status_code != 404:
                    raise
                LOG.warning("Unapprove of %s: %s", pr_id.full_reference, e)
        self._changed(pr_id)
        approved_by = None
        if body:
            approved_by = [
                {
                    "avatarUrl": a["user"].get("avatar_url"),
                    "username": a["user"].get("username"),
                    "name": a["user"].get("name"),
                }
                for a in body.get("approved_by", [])
            ]
        return Directives.single("addApprovedBy" if request.approve else "removeApprovedBy", approved_by)

    async def merge_pull_request(self, request: MergePullRequestRequest) -> Directives:
        pr_id = request.pull_request_id
        response = await self._transport.put(
            f"{_merge_request_path(pr_id)}/merge",
            {
                "merge_commit_message": request.message,
                "squash": request.squash_commits,
                "should_remove_source_branch": request.delete_source_branch,
            },
        )
        body = response.body or {}
        self._changed(pr_id)
        return Directives.single(
            "updatePullRequest",
            {
                "merged": True,
                "state": body.get("state"),
                "mergedAt": body.get("merged_at"),
                "updatedAt": body.get("updated_at"),
            },
        )

    # Listings

    async def get_pull_request_commits(self, request: PullRequestRequest) -> List[Commit]:
        response = await self._transport.get(f"{_merge_request_path(request.pull_request_id)}/commits")
        return [normalize_commit(GitLabCommit.model_validate(c)) for c in response.body or []]

    async def get_pull_request_files_changed(self, request: PullRequestRequest) -> List[ChangedFile]:
        pr_id = request.pull_request_id
        try:
            response = await self._transport.get(f"{_merge_request_path(pr_id)}/changes")
        except ProviderError as e:
            LOG.error("Failed to get changed files of %s: %s", pr_id.full_reference, e)
            return []
        return normalize_changes(GitLabChanges.model_validate(response.body or {}))

    async def _open_repository_paths(self) -> List[str]:
        paths: List[str] = []
        for repo in await self._open_repositories():
            for remote in repo.remotes:
                if self._is_matching_remote(remote):
                    owner, name = owner_from_remote(f"anything://{remote.domain}/{remote.path}")
                    paths.append(f"{owner}/{name}")
        return paths

    async def get_my_pull_requests(self, request: MyPullRequestsRequest) -> List[List[Dict[str, Any]]]:
        """Merge requests for each saved ``key:value`` query, one list per query.

        ``owner``/``repo`` or ``is_open`` restrict the results to those projects.
        """
        await self.ensure_connected()
        projects: set[str] | None = None
        if request.owner and request.repo:
            projects = {f"{request.owner}/{request.repo}"}
        if request.is_open:
            open_paths = await self._open_repository_paths()
            if not open_paths:
                LOG.info("getMyPullRequests: is_open requested but no repositories are open")
                return []
            projects = set(open_paths)

        responses = await asyncio.gather(
            *(
                self._transport.get(f"/merge_requests/?{_query_string(q)}&with_labels_details=true")
                for q in request.queries
            )
        )
        results: List[List[Dict[str, Any]]] = []
        for query, response in zip(request.queries, responses):
            items = [
                normalize_my_pull_request(pr, self.provider_id)
                for pr in response.body or []
                if pr.get("id")
                and (
                    projects is None
                    or ((pr.get("references") or {}).get("full") or "").partition("!")[0] in projects
                )
            ]
            if not _SORT_TERM_RE.search(query):
                items = sort_newest_first(items)
            results.append(items)
        return results

    # Comments for an editor file

    async def _merge_requests_by_state(self, remote_path: str, state: str) -> List[GitLabMergeRequest]:
        try:
            result = await fetch_all(self._transport, f"/projects/{_encode(remote_path)}/merge_requests?state={state}")
        except ProviderError as e:
            LOG.error("Failed to list %s merge requests of %s: %s", state, remote_path, e)
            return []
        return [GitLabMergeRequest.model_validate(mr) for mr in result.items]

    async def _merge_request_comments(
        self, remote_path: str, mr: GitLabMergeRequest, relative_path: str
    ) -> List[PullRequestComment]:
        try:
            result = await fetch_all(
                self._transport, f"/projects/{_encode(remote_path)}/merge_requests/{mr.iid}/notes"
            )
        except ProviderError as e:
            LOG.error("Failed to list notes of %s!%s: %s", remote_path, mr.iid, e)
            return []
        notes = [GitLabNote.model_validate(n) for n in result.items]
        return comments_for_path(notes, mr, relative_path)

    async def _comments_for_path(self, file_path: str, relative_path: str, repo_path: Path) -> List[PullRequestComment]:
        comments: List[PullRequestComment] = []
        for remote_path in await self._remote_paths(repo_path):
            opened, merged = await asyncio.gather(
                self._merge_requests_by_state(remote_path, "opened"),
                self._merge_requests_by_state(remote_path, "merged"),
            )
            per_mr = await asyncio.gather(
                *(self._merge_request_comments(remote_path, mr, relative_path) for mr in opened + merged)
            )
            for mr_comments in per_mr:
                comments.extend(mr_comments)
        if comments:
            self.notifier.emit(DocumentMarkersChanged(uri=Path(os.path.abspath(file_path)).as_uri()))
        return comments

    async def get_comments_for_path(self, request: CommentsForPathRequest) -> List[PullRequestComment] | None:
        """Cached inline comments for a file.

        On a miss (or an expired entry) the lookup starts in the background
        and None is returned; a ``DocumentMarkersChanged`` notification
        follows once comments are found, and later calls return them. A failed
        lookup is dropped, so the next call starts a new one.
        """
        repo_path = Path(request.repo_path)
        relative_path = os.path.relpath(request.file_path, repo_path).replace(os.sep, "/")
        key = f"{repo_path}|{relative_path}"

        task = self._comments_by_path.get(key)
        if task is not None:
            try:
                return await task
            except Exception as e:
                LOG.debug("Comments for %s unavailable: %s", key, e)
                self._forget_lookup(key, task)
                return None

        task = asyncio.ensure_future(self._comments_for_path(request.file_path, relative_path, repo_path))
        task.add_done_callback(lambda done: self._drop_failed_lookup(key, done))
        self._comments_by_path.set(key, task)
        return None

    def _forget_lookup(self, key: str, task: "asyncio.Future[List[PullRequestComment]]") -> None:
        if self._comments_by_path.get(key) is task:
            self._comments_by_path.invalidate(key)

    def _drop_failed_lookup(self, key: str, task: "asyncio.Future[List[PullRequestComment]]") -> None:
        """A failed or cancelled lookup leaves the cache so the next call starts over."""
        if task.cancelled():
            self._forget_lookup(key, task)
            return
        error = task.exception()
        if error is not None:
            LOG.error("Failed to get comments for %s: %s", key, error)
            self._forget_lookup(key, task)

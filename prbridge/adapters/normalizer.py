"""Map GitLab payloads onto the canonical pull request schema.

Every function here is pure: provider-native models in, canonical models out.
Timestamps are coerced to one UTC representation
(``YYYY-MM-DDTHH:MM:SS.mmmZ``) so timeline items from GraphQL and REST sort
correctly by plain string comparison.
"""

import hashlib
from datetime import UTC, datetime
from typing import Any, Dict, Iterable, List

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
    GqlAuthor,
    GqlDiscussion,
    GqlNote,
    GqlPosition,
    GqlPullRequestResponse,
)
from prbridge.models.identity import PullRequestId, encode_pull_request_id
from prbridge.models.pull_request import (
    Author,
    CurrentUser,
    Discussion,
    Note,
    PendingReviewComments,
    PendingReviewSummary,
    Position,
    PullRequest,
    PullRequestComment,
    PullRequestDetail,
    ReactionGroup,
    References,
    Repository,
    TimelineEvent,
    Viewer,
)
from prbridge.models.responses import Board, Card, ChangedFile, Commit, CommitPerson, RepoPullRequest
from prbridge.models.review import PendingReviewEntry

DISCUSSION_GID_PREFIXES = (
    "gid://gitlab/DiffDiscussion/",
    "gid://gitlab/IndividualNoteDiscussion/",
    "gid://gitlab/Discussion/",
)
MERGE_REQUEST_GID_PREFIX = "gid://gitlab/MergeRequest/"

PENDING_AUTHOR = Author(
    name="Pending",
    username="pending",
    avatar_url="https://about.gitlab.com/images/press/logo/png/gitlab-icon-rgb.png",
)
PENDING_STATE = "PENDING"


def parse_timestamp(value: str) -> datetime:
    """Parse ISO-8601 (``Z`` or offset); naive values are taken as UTC."""
    dt = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def format_timestamp(dt: datetime) -> str:
    dt = dt.astimezone(UTC)
    return f"{dt:%Y-%m-%dT%H:%M:%S}.{dt.microsecond // 1000:03d}Z"


def coerce_timestamp(value: str | None) -> str | None:
    """Canonical UTC form of an ISO-8601 string; unparseable values pass through."""
    if not value:
        return value
    try:
        return format_timestamp(parse_timestamp(value))
    except ValueError:
        return value


def to_epoch_ms(value: str | None) -> int:
    if not value:
        return 0
    return int(parse_timestamp(value).timestamp() * 1000)


def to_gravatar(email: str) -> str:
    digest = hashlib.md5(email.strip().lower().encode("utf-8")).hexdigest()
    return f"https://www.gravatar.com/avatar/{digest}.jpg?s=30&d=identicon"


def discussion_database_id(discussion_gid: str) -> str:
    """Discussion id without its ``gid://gitlab/...Discussion/`` prefix."""
    for prefix in DISCUSSION_GID_PREFIXES:
        discussion_gid = discussion_gid.replace(prefix, "")
    return discussion_gid


def _author(author: GqlAuthor | None) -> Author | None:
    if author is None:
        return None
    return Author(name=author.name, username=author.username, avatar_url=author.avatar_url)


def _position(position: GqlPosition | None) -> Position | None:
    if position is None:
        return None
    return Position(
        file_path=position.file_path,
        old_path=position.old_path,
        new_path=position.new_path,
        old_line=position.old_line,
        new_line=position.new_line,
    )


def normalize_note(note: GqlNote, merge_request_id_computed: str) -> Note:
    discussion_id = note.discussion.id if note.discussion else None
    return Note(
        id=note.id,
        author=_author(note.author),
        body=note.body,
        body_html=note.body_html,
        created_at=coerce_timestamp(note.created_at),
        updated_at=coerce_timestamp(note.updated_at),
        position=_position(note.position),
        resolvable=note.resolvable,
        resolved=note.resolved,
        resolved_at=coerce_timestamp(note.resolved_at),
        resolved_by=_author(note.resolved_by),
        system=note.system,
        system_note_icon_name=note.system_note_icon_name,
        user_permissions=note.user_permissions,
        discussion_id=discussion_id,
        database_id=discussion_database_id(discussion_id) if discussion_id else None,
        merge_request_id_computed=merge_request_id_computed if discussion_id else None,
    )


def split_discussion(discussion: Discussion) -> Discussion:
    """Move every note after the first into ``notes[0].replies``.

    The result always carries exactly one head note (or none, for an empty
    discussion).
    """
    if not discussion.notes:
        return discussion
    head, *rest = discussion.notes
    head = head.model_copy(update={"replies": [n for n in rest if n.id != head.id]})
    return discussion.model_copy(update={"notes": [head], "position": discussion.position or head.position})


def normalize_discussion(discussion: GqlDiscussion, merge_request_id_computed: str) -> Discussion:
    notes = [normalize_note(n, merge_request_id_computed) for n in discussion.notes.nodes]
    return split_discussion(
        Discussion(
            id=discussion.id,
            created_at=coerce_timestamp(discussion.created_at),
            reply_id=discussion.reply_id,
            resolvable=discussion.resolvable,
            resolved=discussion.resolved,
            resolved_at=coerce_timestamp(discussion.resolved_at),
            resolved_by=_author(discussion.resolved_by),
            notes=notes,
        )
    )


def group_reactions(awards: Iterable[GitLabAward]) -> List[ReactionGroup]:
    """Group award emoji by name, in order of first appearance."""
    order: Dict[str, List[Dict[str, Any]]] = {}
    for award in awards:
        order.setdefault(award.name, []).append(award.model_dump())
    return [ReactionGroup(content=name, data=data) for name, data in order.items()]


def pending_discussion(entries: List[PendingReviewEntry], now: datetime) -> Discussion:
    """Synthetic discussion rendering staged review comments as pending notes."""
    created_at = format_timestamp(now)
    notes = [
        Note(
            id=f"pending-{index}",
            author=PENDING_AUTHOR,
            state=PENDING_STATE,
            body=entry.text,
            body_text=entry.text,
            created_at=created_at,
            position=Position(old_path=entry.file_path, new_path=entry.file_path, new_line=entry.start_line),
            pending=True,
        )
        for index, entry in enumerate(entries)
    ]
    return Discussion(id="pending", created_at=created_at, pending=True, notes=notes)


def normalize_merge_request(
    data: GqlPullRequestResponse,
    awards: List[GitLabAward],
    provider_id: str | None,
    pending: List[PendingReviewEntry] | None = None,
    now: datetime | None = None,
) -> PullRequestDetail:
    """Canonical detail of the GetPullRequest query plus award emoji.

    Discussions are split into head note + replies; staged review comments
    become one trailing pending discussion.
    """
    mr = data.project.merge_request
    full_reference = f"{mr.source_project.full_path}{mr.reference}"
    id_computed = encode_pull_request_id(mr.id, full_reference)
    discussions: List[Any] = [normalize_discussion(d, id_computed) for d in mr.discussions.nodes]

    pending_review = None
    if pending:
        pending_review = PendingReviewSummary(comments=PendingReviewComments(total_count=len(pending)))
        discussions.append(pending_discussion(pending, now or datetime.now(UTC)))

    pull_request = PullRequest(
        id=mr.id,
        iid=mr.iid,
        number=int(mr.iid, 10),
        id_computed=id_computed,
        provider_id=provider_id,
        title=mr.title,
        description=mr.description,
        state=mr.state,
        url=mr.source_project.web_url,
        web_url=mr.web_url,
        created_at=coerce_timestamp(mr.created_at),
        merged_at=coerce_timestamp(mr.merged_at),
        merged=bool(mr.merged_at),
        work_in_progress=mr.work_in_progress,
        reference=mr.reference,
        references=References(full=full_reference),
        base_ref_name=mr.target_branch,
        head_ref_name=mr.source_branch,
        base_ref_oid=mr.diff_refs.base_sha if mr.diff_refs else None,
        head_ref_oid=mr.diff_refs.head_sha if mr.diff_refs else None,
        repository=Repository(
            name=mr.source_project.name,
            name_with_owner=mr.source_project.full_path,
            url=mr.source_project.web_url,
        ),
        project_id=mr.project_id,
        author=_author(mr.author),
        viewer=Viewer(login=data.current_user.username),
        commit_count=mr.commit_count,
        upvotes=mr.upvotes,
        downvotes=mr.downvotes,
        milestone=mr.milestone.model_dump(by_alias=True) if mr.milestone else None,
        subscribed=mr.subscribed,
        user_discussions_count=mr.user_discussions_count,
        discussion_locked=mr.discussion_locked,
        approved_by=mr.approved_by.nodes,
        assignees=mr.assignees.nodes,
        participants=mr.participants.nodes,
        labels=mr.labels.nodes,
        current_user_todos=mr.current_user_todos.nodes,
        time_estimate=mr.time_estimate,
        total_time_spent=mr.total_time_spent,
        reaction_groups=group_reactions(awards),
        pending_review=pending_review,
        discussions=discussions,
    )
    return PullRequestDetail(
        current_user=CurrentUser(
            id=data.current_user.id,
            name=data.current_user.name,
            username=data.current_user.username,
        ),
        project_name=data.project.name,
        pull_request=pull_request,
    )


def normalize_project_event(event: GitLabProjectEvent) -> TimelineEvent:
    return TimelineEvent(
        type="merge-request",
        id=event.id,
        action=event.action_name,
        created_at=coerce_timestamp(event.created_at),
        author=event.author,
        project_id=event.project_id,
        target_id=event.target_id,
        target_title=event.target_title,
        target_type=event.target_type,
    )


def normalize_label_event(event: GitLabResourceEvent) -> TimelineEvent:
    return TimelineEvent(
        type="label",
        id=event.id,
        action=event.action,
        created_at=coerce_timestamp(event.created_at),
        user=event.user,
        label=event.label,
        resource_type=event.resource_type,
    )


def normalize_milestone_event(event: GitLabResourceEvent) -> TimelineEvent:
    return TimelineEvent(
        type="milestone",
        id=event.id,
        action=event.action,
        created_at=coerce_timestamp(event.created_at),
        user=event.user,
        milestone=event.milestone,
        resource_type=event.resource_type,
    )


def normalize_repo_pull_request(mr: GitLabMergeRequest) -> RepoPullRequest:
    """Open merge request of a repository, with its opaque id token."""
    token = PullRequestId.from_reference(mr.iid, mr.references.full).encode()
    return RepoPullRequest(
        id=token,
        iid=str(mr.iid),
        url=mr.web_url,
        base_ref_name=mr.target_branch,
        head_ref_name=mr.source_branch,
    )


def normalize_note_comment(note: GitLabNote, mr: GitLabMergeRequest) -> PullRequestComment:
    """Inline REST note as an editor comment marker."""
    position = note.position
    return PullRequestComment(
        id=str(note.id),
        author={"id": str(note.author.id), "nickname": note.author.name},
        path=(position.new_path or "") if position else "",
        text=note.body,
        commit=position.head_sha if position else None,
        original_commit=position.base_sha if position else None,
        line=position.new_line if position else None,
        original_line=position.old_line if position else None,
        url=f"{mr.web_url}#note_{note.id}",
        created_at=to_epoch_ms(note.created_at),
        pull_request={
            "id": mr.iid,
            "url": mr.web_url,
            "isOpen": mr.state == "opened",
            "targetBranch": mr.target_branch,
            "sourceBranch": mr.source_branch,
        },
    )


def comments_for_path(notes: Iterable[GitLabNote], mr: GitLabMergeRequest, relative_path: str) -> List[PullRequestComment]:
    """Non-system notes anchored to ``relative_path`` on the new side."""
    return [
        normalize_note_comment(n, mr)
        for n in notes
        if not n.system and n.position is not None and n.position.new_path == relative_path
    ]


def normalize_commit(commit: GitLabCommit) -> Commit:
    author_avatar = to_gravatar(commit.author_email)
    committer_avatar = author_avatar
    if commit.author_email != commit.committer_email:
        committer_avatar = to_gravatar(commit.committer_email)
    return Commit(
        oid=commit.id,
        abbreviated_oid=commit.short_id,
        author=CommitPerson(name=commit.author_name, avatar_url=author_avatar, user={"login": commit.author_name}),
        committer=CommitPerson(
            name=commit.committer_name, avatar_url=committer_avatar, user={"login": commit.committer_name}
        ),
        message=commit.message,
        authored_date=commit.authored_date,
        url=commit.web_url,
    )


def normalize_changes(changes: GitLabChanges) -> List[ChangedFile]:
    diff_refs = changes.diff_refs.model_dump()
    return [
        ChangedFile(sha=c.sha, filename=c.new_path, patch=c.diff, diff_refs=diff_refs)
        for c in changes.changes
    ]


def normalize_card(issue: GitLabIssue) -> Card:
    return Card(
        id=issue.id,
        url=issue.web_url,
        title=issue.title,
        modified_at=to_epoch_ms(issue.updated_at),
        token_id=issue.iid,
        body=issue.description,
    )


def normalize_board(project: GitLabProject) -> Board:
    return Board(id=project.id, name=project.path_with_namespace, path=project.repo_path or project.path)


def normalize_my_pull_request(raw: Dict[str, Any], provider_id: str | None) -> Dict[str, Any]:
    """REST merge request from a saved query, shaped for the "my pull requests" list."""
    return {
        **raw,
        "id": f"{MERGE_REQUEST_GID_PREFIX}{raw['id']}",
        "providerId": provider_id,
        "createdAt": to_epoch_ms(raw.get("created_at")),
        "number": int(str(raw.get("iid")), 10),
    }


def sort_newest_first(items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    return sorted(items, key=lambda pr: pr.get("createdAt") or 0, reverse=True)

"""Repository remotes: read with ``git remote -v`` and parse into domain + path."""

import logging
import re
from pathlib import Path
from typing import List
from urllib.parse import urlparse

from pydantic import BaseModel, Field

from prbridge.services.git._run import _run_git

LOG = logging.getLogger("prbridge.services.git.remotes")

# git@host:group/repo.git (scp-like syntax, no scheme)
_SCP_RE = re.compile(r"^(?:[^@/]+@)?(?P<host>[^:/]+):(?P<path>[^/].*)$")
GIT_SUFFIX = ".git"


class GitRemote(BaseModel):
    """One fetch remote of a repository."""

    name: str
    url: str
    domain: str
    # project path on the host, e.g. group/subgroup/repo
    path: str


class GitRepository(BaseModel):
    path: Path
    remotes: List[GitRemote] = Field(default_factory=list)


def _strip_git_suffix(path: str) -> str:
    return path[: -len(GIT_SUFFIX)] if path.endswith(GIT_SUFFIX) else path


def parse_remote_url(url: str) -> tuple[str, str] | None:
    """Return ``(domain, path)`` of a remote URL, or None when unparseable."""
    url = url.strip()
    if "://" in url:
        parsed = urlparse(url)
        if not parsed.hostname:
            return None
        path = parsed.path.strip("/")
        return (parsed.hostname, _strip_git_suffix(path)) if path else None
    m = _SCP_RE.match(url)
    if not m:
        return None
    return m.group("host"), _strip_git_suffix(m.group("path").strip("/"))


def owner_from_remote(remote: str) -> tuple[str, str]:
    """Split a remote into ``(owner, name)``.

    Groups and subgroups stay in the owner: ``gitlab.com/a/b/c.git`` gives
    ``("a/b", "c")``.
    """
    parsed = parse_remote_url(remote)
    path = parsed[1] if parsed else _strip_git_suffix(remote.strip("/"))
    segments = [s for s in path.split("/") if s]
    if not segments:
        return "", ""
    return "/".join(segments[:-1]), segments[-1]


def parse_remotes(output: str) -> List[GitRemote]:
    """Parse ``git remote -v`` output; one entry per fetch remote."""
    remotes: List[GitRemote] = []
    for line in output.splitlines():
        parts = line.split()
        if len(parts) < 2:
            continue
        if len(parts) > 2 and parts[2] != "(fetch)":
            continue
        name, url = parts[0], parts[1]
        parsed = parse_remote_url(url)
        if parsed is None:
            LOG.debug("Skipping unparseable remote %s: %s", name, url)
            continue
        domain, path = parsed
        remotes.append(GitRemote(name=name, url=url, domain=domain, path=path))
    return remotes


def list_remotes(repo_dir: Path) -> List[GitRemote]:
    """Fetch remotes of the repository at ``repo_dir``."""
    return parse_remotes(_run_git(["remote", "-v"], Path(repo_dir), log=LOG))


def load_repository(repo_dir: Path) -> GitRepository:
    return GitRepository(path=Path(repo_dir), remotes=list_remotes(repo_dir))

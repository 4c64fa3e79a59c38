"""Git operations: repository remotes."""

from prbridge.services.git._run import GitRunnerError
from prbridge.services.git.remotes import (
    GitRemote,
    GitRepository,
    list_remotes,
    load_repository,
    owner_from_remote,
    parse_remote_url,
    parse_remotes,
)

__all__ = [
    "GitRemote",
    "GitRepository",
    "GitRunnerError",
    "list_remotes",
    "load_repository",
    "owner_from_remote",
    "parse_remote_url",
    "parse_remotes",
]

"""prbridge entry point.

Runs one adapter operation against GitLab and prints the JSON result.
Usage: prbridge pr <id> [--force] | prbridge mine <query>... | prbridge cards
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict

from prbridge.adapters.gitlab import GitLabAdapter
from prbridge.config import AppConfig, load_config
from prbridge.connection import ProviderConnection
from prbridge.logging import PRBridgeLogging
from prbridge.router import dispatch

LOG = logging.getLogger("prbridge.main")


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse CLI: global options plus one subcommand (pr | mine | cards)."""
    parser = argparse.ArgumentParser(
        prog="prbridge",
        description="prbridge - GitLab merge requests in the canonical pull request model",
    )
    parser.add_argument(
        "--config",
        "-c",
        type=Path,
        default=Path("config.yaml"),
        help="Path to YAML config file",
    )
    parser.add_argument(
        "--check",
        action="store_true",
        help="Only load and validate config, then exit",
    )
    parser.add_argument(
        "--repo",
        type=Path,
        action="append",
        default=None,
        help="Local repository whose remotes are open (repeatable; default: current directory)",
    )
    sub = parser.add_subparsers(dest="command")

    pr = sub.add_parser("pr", help="Print pull request detail")
    pr.add_argument("pull_request_id", help='Id token, e.g. {"id": "gid://gitlab/MergeRequest/1", "full": "group/repo!1"}')
    pr.add_argument("--force", action="store_true", help="Bypass the detail cache")

    mine = sub.add_parser("mine", help="Print my merge requests for saved queries")
    mine.add_argument("queries", nargs="+", help="Query of space-joined key:value terms, e.g. 'state:opened scope:all'")

    sub.add_parser("cards", help="Print issues assigned to me")
    return parser.parse_args(argv)


def build_adapter(config: AppConfig, repositories: list[Path]) -> GitLabAdapter:
    connection = ProviderConnection(
        config.gitlab.api_url,
        config.gitlab_token_resolved,
        provider_id=config.gitlab.provider_id,
    )
    return GitLabAdapter(
        connection,
        config=config.gitlab,
        cache_config=config.cache,
        repositories=repositories,
    )


async def _run(adapter: GitLabAdapter, args: argparse.Namespace) -> Dict[str, Any]:
    if args.command == "pr":
        return await dispatch(
            adapter, "getPullRequest", {"pullRequestId": args.pull_request_id, "force": args.force}
        )
    if args.command == "mine":
        return await dispatch(adapter, "getMyPullRequests", {"queries": args.queries})
    return await dispatch(adapter, "getCards", {})


def main(argv: list[str] | None = None) -> int:
    """Entry point: load config, run the subcommand, print JSON."""
    args = parse_args(argv)

    config_path = args.config
    if not config_path.is_file() and config_path == Path("config.yaml"):
        if Path("config.example.yaml").is_file():
            config_path = Path("config.example.yaml")
            logging.basicConfig(level=logging.INFO)
            LOG.warning("config.yaml not found, using config.example.yaml")

    config = load_config(config_path)
    PRBridgeLogging(config.logging).setup()

    if args.check:
        print("Config OK:", config.gitlab.api_url, config.gitlab.provider_id)
        return 0
    if args.command is None:
        print("No command given (pr | mine | cards)", file=sys.stderr)
        return 2
    if not config.gitlab_token_resolved:
        print("GitLab token is not configured (GITLAB_TOKEN or GITLAB_TOKEN_FILE)", file=sys.stderr)
        return 2

    adapter = build_adapter(config, args.repo or [Path.cwd()])
    try:
        output = asyncio.run(_run(adapter, args))
    except KeyboardInterrupt:
        return 0
    except Exception as e:
        LOG.exception("Fatal error: %s", e)
        return 1
    print(json.dumps(output, indent=2))
    return 1 if "error" in output else 0


if __name__ == "__main__":
    sys.exit(main())

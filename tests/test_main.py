"""Tests for the prbridge CLI."""

import json
from pathlib import Path
from unittest.mock import AsyncMock, patch

import pytest

from prbridge.adapters.gitlab import GitLabAdapter
from prbridge.config import load_config
from prbridge.main import build_adapter, main, parse_args


@pytest.fixture
def config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.delenv("GITLAB_TOKEN", raising=False)
    monkeypatch.delenv("GITLAB_TOKEN_FILE", raising=False)
    path = tmp_path / "config.yaml"
    path.write_text(
        "gitlab:\n"
        "  token: glpat-test\n"
        "  api_url: https://gitlab.example.com/api/v4\n"
        "  provider_id: gitlab*example\n"
        "logging:\n"
        "  level: WARNING\n"
    )
    return path


class TestParseArgs:
    """Argument parsing."""

    def test_pr_command(self) -> None:
        """pr takes the id token and --force."""
        args = parse_args(["pr", "{}", "--force"])
        assert args.command == "pr"
        assert args.pull_request_id == "{}"
        assert args.force is True

    def test_repeatable_repo(self) -> None:
        """--repo may be given several times."""
        args = parse_args(["--repo", "a", "--repo", "b", "cards"])
        assert args.repo == [Path("a"), Path("b")]


class TestMain:
    """main runs one operation and prints JSON."""

    def test_check(self, config_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """--check validates the config and exits 0."""
        assert main(["--config", str(config_file), "--check"]) == 0
        assert "Config OK: https://gitlab.example.com/api/v4 gitlab*example" in capsys.readouterr().out

    def test_no_command(self, config_file: Path) -> None:
        """Without a subcommand main exits 2."""
        assert main(["--config", str(config_file)]) == 2

    def test_missing_token(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Without a token main exits 2."""
        monkeypatch.delenv("GITLAB_TOKEN", raising=False)
        monkeypatch.delenv("GITLAB_TOKEN_FILE", raising=False)
        path = tmp_path / "config.yaml"
        path.write_text("gitlab: {}\n")
        assert main(["--config", str(path), "cards"]) == 2

    def test_pr_prints_result(self, config_file: Path, capsys: pytest.CaptureFixture[str]) -> None:
        """pr dispatches getPullRequest and prints the envelope."""
        dispatch = AsyncMock(return_value={"result": {"pullRequest": {"number": 5}}})
        with patch("prbridge.main.dispatch", dispatch):
            code = main(["--config", str(config_file), "pr", '{"id": "1", "full": "g/r!5"}', "--force"])

        assert code == 0
        assert json.loads(capsys.readouterr().out) == {"result": {"pullRequest": {"number": 5}}}
        _, method, params = dispatch.call_args[0]
        assert method == "getPullRequest"
        assert params == {"pullRequestId": '{"id": "1", "full": "g/r!5"}', "force": True}

    def test_error_envelope_exits_1(self, config_file: Path) -> None:
        """An error envelope gives exit code 1."""
        dispatch = AsyncMock(return_value={"error": {"type": "PROVIDER", "message": "boom"}})
        with patch("prbridge.main.dispatch", dispatch):
            assert main(["--config", str(config_file), "mine", "state:opened"]) == 1
        assert dispatch.call_args[0][1:] == ("getMyPullRequests", {"queries": ["state:opened"]})


class TestBuildAdapter:
    """build_adapter wires config into the adapter."""

    def test_connection_from_config(self, config_file: Path) -> None:
        """The connection carries the API URL, token and provider id."""
        adapter = build_adapter(load_config(config_file), [Path("/tmp/repo")])
        assert isinstance(adapter, GitLabAdapter)
        assert adapter.connection.base_url == "https://gitlab.example.com/api/v4"
        assert adapter.connection.access_token == "glpat-test"
        assert adapter.provider_id == "gitlab*example"

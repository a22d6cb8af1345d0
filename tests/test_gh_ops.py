"""Tests for gh_ops GitHub CLI wrapper functions."""

import json
import subprocess
from unittest import mock

import pytest

from prwatch import gh_ops
from prwatch.models import FetchFailure


def _node(number, repo="acme/app", updated="2024-05-01T10:00:00Z", **extra):
    node = {
        "repository": {"nameWithOwner": repo},
        "title": f"PR {number}",
        "url": f"https://github.com/{repo}/pull/{number}",
        "author": {"login": "alice"},
        "createdAt": "2024-05-01T08:00:00Z",
        "updatedAt": updated,
    }
    node.update(extra)
    return node


def _response(review_requested=(), interacted=(), login="me"):
    return json.dumps({
        "data": {
            "viewer": {"login": login},
            "reviewRequested": {"edges": [{"node": n} for n in review_requested]},
            "interacted": {"edges": [{"node": n} for n in interacted]},
        }
    })


def _completed(stdout="", returncode=0, stderr=""):
    return mock.Mock(returncode=returncode, stdout=stdout, stderr=stderr)


def _popen(stdout="", returncode=0, stderr=""):
    proc = mock.Mock(returncode=returncode, pid=4242)
    proc.communicate.return_value = (stdout, stderr)
    return proc


class TestFetchPullRequests:
    """Tests for fetch_pull_requests (gh api graphql)."""

    def test_parses_both_result_sets(self):
        interacted = _node(
            2,
            commits={"nodes": [{"commit": {"committedDate": "2024-05-01T12:00:00Z"}}]},
            comments={"nodes": [{"author": {"login": "me"}, "createdAt": "2024-05-01T09:00:00Z"}]},
            reviews={"nodes": [{"author": {"login": "bob"}, "submittedAt": "2024-05-01T09:30:00Z"}]},
        )
        with mock.patch("subprocess.Popen") as mock_popen:
            mock_popen.return_value = _popen(_response([_node(1)], [interacted]))
            result = gh_ops.fetch_pull_requests()

        assert result.viewer_login == "me"
        assert [pr.url for pr in result.review_requested] == ["https://github.com/acme/app/pull/1"]
        pr = result.interacted[0]
        assert pr.last_commit_at.hour == 12
        assert [c.author for c in pr.comments] == ["me"]
        assert [r.author for r in pr.reviews] == ["bob"]
        # Review-requested search doesn't ask for activity
        assert result.review_requested[0].last_commit_at is None

    def test_runs_graphql_query(self):
        with mock.patch("subprocess.Popen") as mock_popen:
            mock_popen.return_value = _popen(_response())
            gh_ops.fetch_pull_requests()

        cmd = mock_popen.call_args[0][0]
        assert cmd[:4] == ["gh", "api", "graphql", "-f"]
        assert cmd[4].startswith("query=")
        assert gh_ops.REVIEW_REQUESTED_SEARCH in cmd[4]
        assert gh_ops.INTERACTED_SEARCH in cmd[4]
        assert "first: 100" in cmd[4]

    def test_nonzero_exit_raises_with_stderr(self):
        with mock.patch("subprocess.Popen") as mock_popen:
            mock_popen.return_value = _popen(returncode=1, stderr="HTTP 401: Bad credentials\n")
            with pytest.raises(FetchFailure, match="Bad credentials"):
                gh_ops.fetch_pull_requests()

    def test_missing_gh_binary_raises(self):
        with mock.patch("subprocess.Popen", side_effect=FileNotFoundError("gh")):
            with pytest.raises(FetchFailure, match="Could not run gh"):
                gh_ops.fetch_pull_requests()

    def test_invalid_json_raises(self):
        with mock.patch("subprocess.Popen") as mock_popen:
            mock_popen.return_value = _popen("<html>oops</html>")
            with pytest.raises(FetchFailure, match="invalid JSON"):
                gh_ops.fetch_pull_requests()

    def test_graphql_errors_raise(self):
        payload = json.dumps({"errors": [{"message": "Something went wrong"}]})
        with mock.patch("subprocess.Popen") as mock_popen:
            mock_popen.return_value = _popen(payload)
            with pytest.raises(FetchFailure, match="Something went wrong"):
                gh_ops.fetch_pull_requests()

    def test_malformed_node_fails_whole_fetch(self):
        bad = _node(2)
        del bad["url"]
        with mock.patch("subprocess.Popen") as mock_popen:
            mock_popen.return_value = _popen(_response([_node(1), bad]))
            with pytest.raises(FetchFailure, match="url"):
                gh_ops.fetch_pull_requests()

    def test_missing_viewer_raises(self):
        payload = json.dumps({"data": {"reviewRequested": {"edges": []},
                                       "interacted": {"edges": []}}})
        with mock.patch("subprocess.Popen") as mock_popen:
            mock_popen.return_value = _popen(payload)
            with pytest.raises(FetchFailure, match="viewer"):
                gh_ops.fetch_pull_requests()


class TestCheckGh:
    """Tests for the startup check_gh guard."""

    def test_exits_when_gh_missing(self, capsys):
        with mock.patch("shutil.which", return_value=None):
            with pytest.raises(SystemExit) as exc:
                gh_ops.check_gh()
        assert exc.value.code == 1
        assert "https://cli.github.com" in capsys.readouterr().err

    def test_exits_when_not_authenticated(self, capsys):
        with mock.patch("shutil.which", return_value="/usr/bin/gh"), \
                mock.patch("subprocess.run", return_value=_completed(returncode=1)):
            with pytest.raises(SystemExit):
                gh_ops.check_gh()
        assert "gh auth login" in capsys.readouterr().err

    def test_passes_when_authenticated(self):
        with mock.patch("shutil.which", return_value="/usr/bin/gh"), \
                mock.patch("subprocess.run", return_value=_completed()) as mock_run:
            gh_ops.check_gh()
        assert mock_run.call_args[0][0] == ["gh", "auth", "status"]


class TestRunGh:
    """Tests for the killable gh subprocess wrapper."""

    def test_returns_completed_process(self):
        with mock.patch("subprocess.Popen", return_value=_popen("out", 2, "err")):
            result = gh_ops.run_gh("api", "user")
        assert result.args == ["gh", "api", "user"]
        assert (result.returncode, result.stdout, result.stderr) == (2, "out", "err")
        assert not gh_ops._running

    def test_timeout_kills_process(self):
        proc = _popen()
        proc.communicate.side_effect = [subprocess.TimeoutExpired(["gh"], 5), ("", "")]
        with mock.patch("subprocess.Popen", return_value=proc):
            with pytest.raises(subprocess.TimeoutExpired):
                gh_ops.run_gh("api", timeout=5)
        proc.kill.assert_called_once()
        assert not gh_ops._running

    def test_timeout_becomes_fetch_failure(self):
        proc = _popen()
        proc.communicate.side_effect = [subprocess.TimeoutExpired(["gh"], 60), ("", "")]
        with mock.patch("subprocess.Popen", return_value=proc):
            with pytest.raises(FetchFailure, match="timed out after 60s"):
                gh_ops.fetch_pull_requests()

    def test_terminate_running_kills_in_flight_process(self):
        """A gh call blocked in communicate() is killed from another thread."""
        proc = _popen()
        seen = []

        def communicate(timeout=None):
            seen.extend(gh_ops._running)
            gh_ops.terminate_running()
            return "", "killed"

        proc.communicate.side_effect = communicate
        with mock.patch("subprocess.Popen", return_value=proc):
            gh_ops.run_gh("api", "graphql")

        assert seen == [proc]
        proc.kill.assert_called_once()
        assert not gh_ops._running

    def test_terminate_running_with_nothing_running(self):
        gh_ops.terminate_running()

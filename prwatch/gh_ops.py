"""GitHub CLI wrapper for fetching the pull requests to review."""

import json
import shutil
import subprocess
import sys
import threading
from dataclasses import dataclass

from prwatch.models import FetchFailure, RawPullRequest, parse_search
from prwatch.paths import configure_logger, log_shell_command

_log = configure_logger("prwatch.gh_ops")

# Fixed result cap per search; no pagination beyond it
RESULT_CAP = 100

# A stalled gh call is killed after this long and reported as a fetch failure
GH_TIMEOUT_SECONDS = 60

# gh processes currently running, so quitting can kill them
_running: set[subprocess.Popen] = set()
_running_lock = threading.Lock()

REVIEW_REQUESTED_SEARCH = "type:pr state:open review-requested:@me draft:false"
INTERACTED_SEARCH = "type:pr state:open involves:@me -author:@me draft:false"

_PR_FIELDS = """
              repository {
                nameWithOwner
              }
              title
              url
              author {
                login
              }
              createdAt
              updatedAt"""

QUERY = f"""
query {{
  viewer {{
    login
  }}
  reviewRequested: search(query: "{REVIEW_REQUESTED_SEARCH}", type: ISSUE, first: {RESULT_CAP}) {{
    edges {{
      node {{
        ... on PullRequest {{{_PR_FIELDS}
        }}
      }}
    }}
  }}
  interacted: search(query: "{INTERACTED_SEARCH}", type: ISSUE, first: {RESULT_CAP}) {{
    edges {{
      node {{
        ... on PullRequest {{{_PR_FIELDS}
              commits(last: 1) {{
                nodes {{
                  commit {{
                    committedDate
                  }}
                }}
              }}
              comments(last: {RESULT_CAP}) {{
                nodes {{
                  author {{
                    login
                  }}
                  createdAt
                }}
              }}
              reviews(last: {RESULT_CAP}) {{
                nodes {{
                  author {{
                    login
                  }}
                  submittedAt
                }}
              }}
        }}
      }}
    }}
  }}
}}
"""


@dataclass
class QueryResult:
    """Both raw search result sets plus the viewer they were fetched for."""

    viewer_login: str
    review_requested: list[RawPullRequest]
    interacted: list[RawPullRequest]


def check_gh():
    """Check that gh CLI is installed and authenticated. Exit with guidance if not."""
    if not shutil.which("gh"):
        print(
            "Error: prwatch requires the GitHub CLI (gh).\n"
            "Install it: https://cli.github.com",
            file=sys.stderr,
        )
        raise SystemExit(1)

    result = subprocess.run(
        ["gh", "auth", "status"],
        capture_output=True,
        text=True,
    )
    if result.returncode != 0:
        print(
            "Error: gh CLI is not authenticated.\n"
            "Run: gh auth login",
            file=sys.stderr,
        )
        raise SystemExit(1)


def run_gh(*args: str, timeout: float = GH_TIMEOUT_SECONDS) -> subprocess.CompletedProcess:
    """Run a gh CLI command, logging it to the prwatch log file.

    The process is registered while it runs so ``terminate_running`` can
    kill it from another thread.  A call that outlives ``timeout`` is
    killed and ``subprocess.TimeoutExpired`` is raised.
    """
    cmd = ["gh", *args]
    log_shell_command(cmd, prefix="gh")
    proc = subprocess.Popen(
        cmd,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
    )
    with _running_lock:
        _running.add(proc)
    try:
        stdout, stderr = proc.communicate(timeout=timeout)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.communicate()
        log_shell_command(cmd, prefix="gh timeout")
        raise
    finally:
        with _running_lock:
            _running.discard(proc)
    if proc.returncode != 0:
        log_shell_command(cmd, prefix="gh", returncode=proc.returncode)
    return subprocess.CompletedProcess(cmd, proc.returncode, stdout, stderr)


def terminate_running() -> None:
    """Kill every gh process still running (called on quit)."""
    with _running_lock:
        procs = list(_running)
    for proc in procs:
        _log.info("killing in-flight gh process %d", proc.pid)
        try:
            proc.kill()
        except OSError as e:
            _log.debug("kill failed for gh process %d: %s", proc.pid, e)


def fetch_pull_requests() -> QueryResult:
    """Run the GraphQL query and parse both result sets.

    Raises:
        FetchFailure: gh is missing, exits non-zero, prints something other
            than JSON, or the response does not have the expected shape.
    """
    try:
        result = run_gh("api", "graphql", "-f", f"query={QUERY}")
    except OSError as e:
        raise FetchFailure(f"Could not run gh: {e}") from e
    except subprocess.TimeoutExpired as e:
        raise FetchFailure(f"gh api timed out after {e.timeout:g}s") from e

    if result.returncode != 0:
        error = (result.stderr or "").strip() or f"exit status {result.returncode}"
        raise FetchFailure(f"gh api failed: {error}")

    try:
        response = json.loads(result.stdout)
    except json.JSONDecodeError as e:
        raise FetchFailure(f"gh api returned invalid JSON: {e}") from e

    data = response.get("data") if isinstance(response, dict) else None
    if not isinstance(data, dict):
        errors = response.get("errors") if isinstance(response, dict) else None
        if errors:
            messages = "; ".join(str(e.get("message", e)) if isinstance(e, dict) else str(e)
                                 for e in errors)
            raise FetchFailure(f"GraphQL error: {messages}")
        raise FetchFailure("gh api response has no data")

    viewer = data.get("viewer")
    login = viewer.get("login") if isinstance(viewer, dict) else None
    if not isinstance(login, str):
        raise FetchFailure("Response is missing the viewer login")

    review_requested = parse_search(data, "reviewRequested")
    interacted = parse_search(data, "interacted", with_activity=True)
    _log.debug("fetched %d review-requested, %d interacted PRs for %s",
               len(review_requested), len(interacted), login)
    return QueryResult(login, review_requested, interacted)

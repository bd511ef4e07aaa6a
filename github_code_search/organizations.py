"""List all GitHub organizations using PyGithub."""

import logging
import sys
import time
from collections.abc import Iterator

from github import Auth, Github, GithubException, RateLimitExceededException

from .search_client import api_base_url
from .settings import get_settings

logging.getLogger("github").setLevel(logging.ERROR)
logging.getLogger("github.Requester").setLevel(logging.ERROR)
logging.getLogger("urllib3").setLevel(logging.ERROR)

ORGS_PAGE_SIZE = 100


def _log(msg: str):
    sys.stderr.write(f"[orgs] {msg}\n")
    sys.stderr.flush()


def get_github(server: str | None = None, token: str | None = None) -> Github:
    """Build a PyGithub client for github.com or an enterprise server."""
    settings = get_settings()
    token = token or settings.github_token
    server = server or settings.github_base_url

    # retry=None: rate limits are retried by the callers, honoring Retry-After
    kwargs = {"retry": None, "per_page": ORGS_PAGE_SIZE}
    if token:
        kwargs["auth"] = Auth.Token(token)
    if server:
        kwargs["base_url"] = api_base_url(server)
    return Github(**kwargs)


def _rate_limit_wait(e: GithubException) -> int | None:
    """Seconds to wait for a rate-limited request, or None if `e` is not a rate limit."""
    if e.status not in (403, 429):
        return None
    headers = {k.lower(): v for k, v in (e.headers or {}).items()}
    val = headers.get("retry-after")
    if val is not None:
        try:
            return max(0, int(val))
        except ValueError:
            return 0
    if not (isinstance(e, RateLimitExceededException) or "rate limit" in str(e).lower()):
        return None

    # Primary quota exhausted: wait until the window resets
    try:
        reset = int(headers["x-ratelimit-reset"])
    except (KeyError, ValueError):
        return 0
    return max(0, reset - int(time.time()) + 1)


def list_organizations(github: Github, verbose: bool = False) -> Iterator[str]:
    """Yield the login of every organization, one page at a time.

    Pages are chained with `since` (the id of the last organization seen).
    """
    since = None
    while True:
        try:
            orgs = github.get_organizations() if since is None else github.get_organizations(since=since)
            page = orgs.get_page(0)
        except GithubException as e:
            wait = _rate_limit_wait(e)
            if wait is None:
                raise
            if verbose:
                _log(f"Retry-After {wait}s (since {since})")
            time.sleep(wait)
            continue

        if verbose:
            _log(f"Results {len(page)} (since {since})")

        if not page:
            break

        for org in page:
            yield org.login
            since = org.id

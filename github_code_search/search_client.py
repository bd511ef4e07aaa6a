"""GitHub code search client using httpx + Cachetta.

Fetches one page of `search/code` at a time. Rate-limited responses are retried
for the same page until the API answers with something else; any other error
is raised to the caller.
"""

import hashlib
import json
import sys
import time
from datetime import timedelta
from pathlib import Path

import httpx
from cachetta import Cachetta

from .models import SEARCH_ORDER, SEARCH_SORT, PageCursor, RateInfo, RawMatch, SearchPage
from .settings import get_settings

DEFAULT_API_BASE = "https://api.github.com"
DEFAULT_CACHE_DIR = Path.home() / ".cache/github-code-search"
SEARCH_ENDPOINT = "search/code"

# Ask for text_matches[].fragment on every item
TEXT_MATCH_MEDIA_TYPE = "application/vnd.github.text-match+json"


class _RateLimitError(Exception):
    def __init__(self, wait):
        self.wait = wait


def api_base_url(server: str | None) -> str:
    """Map a server URL to its REST API root.

    Enterprise servers serve the API under /api/v3.
    """
    if not server:
        return DEFAULT_API_BASE
    base = server.rstrip("/")
    if httpx.URL(base).host == "api.github.com" or base.endswith("/api/v3"):
        return base
    return f"{base}/api/v3"


def _log(msg: str):
    sys.stderr.write(f"[search] {msg}\n")
    sys.stderr.flush()


class SearchClient:
    """Thin client for the code search endpoint."""

    def __init__(
        self,
        server: str | None = None,
        token: str | None = None,
        use_cache: bool = False,
        cache_dir: Path | None = None,
        verbose: bool = False,
        debug: bool = False,
    ):
        settings = get_settings()
        token = token or settings.github_token
        self.api_base = api_base_url(server or settings.github_base_url)
        self.verbose = verbose

        headers = {"Accept": TEXT_MATCH_MEDIA_TYPE}
        if token:
            headers["Authorization"] = f"bearer {token}"
        event_hooks = {}
        if debug:
            event_hooks = {"request": [_trace_request], "response": [_trace_response]}
        self._client = httpx.Client(headers=headers, timeout=30.0, event_hooks=event_hooks)

        self._last_request_time = 0.0
        self._min_interval = 1.0 / settings.requests_per_second if settings.requests_per_second > 0 else 0
        self.requests = 0
        self.rate_limit_hits = 0

        cache_dir = Path(cache_dir or DEFAULT_CACHE_DIR)
        api_base = self.api_base

        def _cache_path(endpoint, params=None):
            raw = f"{api_base}|{endpoint}|{json.dumps(params or {}, sort_keys=True)}"
            key = hashlib.sha256(raw.encode()).hexdigest()[:16]
            return cache_dir / f"{key}.json"

        # Pure fetch function -- no retry. Throttled here so cache hits go straight through.
        # Exceptions are not cached.
        def _do_fetch(endpoint, params=None):
            self._throttle()
            self.requests += 1
            resp = self._client.request("GET", f"{self.api_base}/{endpoint}", params=params)

            if _is_rate_limited(resp):
                raise _RateLimitError(_parse_retry_after(resp))

            if 200 <= resp.status_code < 300:
                return {
                    "status": resp.status_code,
                    "body": _json_body(resp),
                    "next_url": resp.links.get("next", {}).get("url"),
                    "rate": {
                        "limit": _int_header(resp, "x-ratelimit-limit"),
                        "remaining": _int_header(resp, "x-ratelimit-remaining"),
                        "reset": _int_header(resp, "x-ratelimit-reset"),
                    },
                }

            raise httpx.HTTPStatusError(
                f"GitHub API error {resp.status_code}: {_error_message(resp)}",
                request=resp.request,
                response=resp,
            )

        if use_cache:
            cache_dir.mkdir(parents=True, exist_ok=True)
            cache = Cachetta(path=_cache_path, duration=timedelta(minutes=settings.cache_ttl_minutes))
            self._fetch = cache(_do_fetch)
        else:
            self._fetch = _do_fetch

    def _throttle(self):
        now = time.time()
        elapsed = now - self._last_request_time
        if elapsed < self._min_interval:
            time.sleep(self._min_interval - elapsed)
        self._last_request_time = time.time()

    def fetch(self, query: str, cursor: PageCursor) -> SearchPage:
        """Fetch the page of results `cursor` points at.

        On a rate-limit response, sleeps for the Retry-After duration and asks
        for the same page again. The cursor is never touched here.
        """
        params = {
            "q": query,
            "page": cursor.page,
            "per_page": cursor.per_page,
            "sort": SEARCH_SORT,
            "order": SEARCH_ORDER,
        }

        while True:
            try:
                data = self._fetch(SEARCH_ENDPOINT, params)
            except _RateLimitError as e:
                self.rate_limit_hits += 1
                if self.verbose:
                    _log(f"Retry-After {e.wait}s on page {cursor.page}")
                time.sleep(e.wait)
                continue
            break

        body = data.get("body") or {}
        page = SearchPage(
            items=[RawMatch.from_api_item(item) for item in body.get("items", [])],
            next_page=_next_page(data.get("next_url")),
            total_count=body.get("total_count", 0),
            rate=RateInfo(**(data.get("rate") or {})),
        )

        if self.verbose:
            _log(f"Page {cursor.page}: {len(page.items)} results, total {page.total_count}")
            _log(f"NextPage {page.next_page}")
            _log(f"Rate {page.rate}")

        return page

    def close(self):
        self._client.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()


def _is_rate_limited(resp: httpx.Response) -> bool:
    if resp.status_code not in (403, 429):
        return False
    return "retry-after" in resp.headers or "rate limit" in resp.text.lower()


def _parse_retry_after(resp: httpx.Response) -> int:
    """Seconds to wait before retrying. Missing or malformed values mean no wait."""
    val = resp.headers.get("retry-after")
    if val is None:
        return 0
    try:
        return max(0, int(val))
    except ValueError:
        return 0


def _int_header(resp: httpx.Response, name: str) -> int | None:
    val = resp.headers.get(name)
    try:
        return int(val) if val is not None else None
    except ValueError:
        return None


def _json_body(resp: httpx.Response):
    if not resp.content:
        return {}
    try:
        return resp.json()
    except ValueError as e:
        raise httpx.DecodingError(
            f"GitHub API returned a non-JSON response ({resp.status_code}): {e}",
            request=resp.request,
        ) from e


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return resp.text
    if isinstance(body, dict) and body.get("message"):
        return body["message"]
    return resp.text


def _next_page(url: str | None) -> int | None:
    """Page number of the rel="next" URL from the Link header."""
    if not url:
        return None
    try:
        return int(httpx.URL(url).params.get("page"))
    except (TypeError, ValueError):
        return None


def _trace_request(request: httpx.Request):
    _log(f"> {request.method} {request.url}")


def _trace_response(response: httpx.Response):
    _log(f"< {response.status_code} {response.request.url}")

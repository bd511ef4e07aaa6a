"""Run a code search across every result page."""

import sys

from .aggregate import ResultAggregator
from .models import PageCursor, SearchQuery, SearchResult
from .search_client import SearchClient


def _log(msg: str):
    sys.stderr.write(f"[search] {msg}\n")
    sys.stderr.flush()


def search_code(
    client: SearchClient,
    query: SearchQuery,
    ignore_case: bool = False,
    accept_all: bool = False,
    highlight: bool = False,
    verbose: bool = False,
) -> SearchResult:
    """Fetch all pages for `query` and aggregate the matches.

    Pages are fetched one after another. Errors other than rate limits
    propagate, so a result is only returned once every page has been read.
    """
    aggregator = ResultAggregator(query.term, ignore_case=ignore_case, accept_all=accept_all, highlight=highlight)
    cursor = PageCursor()

    while True:
        if verbose:
            _log(f"Page {cursor.page}")

        page = client.fetch(query.text, cursor)
        for match in page.items:
            aggregator.fold(match)

        if page.next_page is None:
            break
        cursor.advance(page.next_page)

    aggregator.prune()
    return SearchResult(query=query.text, repos=aggregator.snapshot())

"""CLI for GitHub code search."""

import argparse
import base64
import sys
import webbrowser

import httpx
from github import GithubException

from .models import SearchQuery
from .organizations import get_github, list_organizations
from .render import RENDERERS
from .search import search_code
from .search_client import SearchClient


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="gitsearch",
        description="Search code on GitHub and group matches by repository and file",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "query",
        nargs="*",
        help="Search terms (joined with spaces; quoted when more than one word)",
    )
    parser.add_argument(
        "--server",
        default=None,
        help="Enterprise server URL (default: $GITHUB_BASE_URL, or https://api.github.com/)",
    )
    parser.add_argument(
        "--token",
        default=None,
        help="Authentication token (default: $GITHUB_TOKEN)",
    )
    parser.add_argument(
        "--filter",
        default="",
        help="Search qualifiers appended to the query (e.g. 'language:go org:acme')",
    )
    parser.add_argument(
        "--all",
        action="store_true",
        help="Keep every fragment the API returns, even without a literal match",
    )
    parser.add_argument(
        "--ignore-case",
        action="store_true",
        help="Case insensitive fragment matching",
    )
    parser.add_argument(
        "--highlight",
        action="store_true",
        help="Add a text fragment anchor to file URLs to highlight the match",
    )
    parser.add_argument(
        "--format",
        choices=sorted(RENDERERS),
        default="text",
        help="Output format (default: text)",
    )
    parser.add_argument(
        "--browse",
        action="store_true",
        help="With --format html, open the results in a browser",
    )
    parser.add_argument(
        "--cache",
        action="store_true",
        help="Cache search pages on disk (TTL: $CACHE_TTL_MINUTES, default 60)",
    )
    parser.add_argument(
        "--orgs",
        action="store_true",
        help="List all organizations instead of searching",
    )
    parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log pages, result counts and rate limit status to stderr",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Trace HTTP requests to stderr",
    )
    return parser


def main(argv: list[str] | None = None):
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        if args.orgs:
            _list_orgs(args)
        else:
            if not args.query:
                parser.error("a search query is required")
            _search(args)
    except KeyboardInterrupt:
        sys.exit(130)


def _list_orgs(args):
    github = get_github(args.server, args.token)
    try:
        for login in list_organizations(github, verbose=args.verbose):
            print(login, flush=True)
    except GithubException as e:
        sys.exit(f"List Organizations: {e}")


def _search(args):
    query = SearchQuery(term=" ".join(args.query), filters=args.filter)

    try:
        with SearchClient(
            server=args.server,
            token=args.token,
            use_cache=args.cache,
            verbose=args.verbose,
            debug=args.debug,
        ) as client:
            result = search_code(
                client,
                query,
                ignore_case=args.ignore_case,
                accept_all=args.all,
                highlight=args.highlight,
                verbose=args.verbose,
            )
    except httpx.HTTPError as e:
        sys.exit(f"Search: {e}")

    output = RENDERERS[args.format](result)

    if args.format == "html" and args.browse:
        # data: URLs may need a scheme handler to open on macOS
        url = "data:text/html;base64," + base64.b64encode(output.encode()).decode()
        if not webbrowser.open(url):
            sys.exit("Browse: no browser available")
    else:
        sys.stdout.write(output)


if __name__ == "__main__":
    main()

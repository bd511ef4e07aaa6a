"""Data models and constants for code search."""

from dataclasses import dataclass, field

SEARCH_PAGE_SIZE = 100  # GitHub Code Search API maximum per_page
SEARCH_SORT = "indexed"
SEARCH_ORDER = "desc"


@dataclass(frozen=True)
class SearchQuery:
    """Free-text term plus an optional qualifier expression.

    `term` is kept unquoted: it is what fragments are matched against and what
    highlight anchors are built from. `text` is what gets sent to the API.
    """

    term: str
    filters: str = ""

    @property
    def quoted_term(self) -> str:
        if " " in self.term:
            return f'"{self.term}"'
        return self.term

    @property
    def text(self) -> str:
        if self.filters:
            return f"{self.quoted_term} {self.filters}"
        return self.quoted_term


@dataclass
class PageCursor:
    """Page token for the search loop. Only the driver loop advances it."""

    page: int = 1
    per_page: int = SEARCH_PAGE_SIZE

    def advance(self, next_page: int) -> None:
        self.page = next_page


@dataclass(frozen=True)
class RawMatch:
    """One search result item, as returned by the API."""

    repo_name: str
    repo_url: str
    path: str
    url: str
    fragments: tuple[str, ...] = ()

    @classmethod
    def from_api_item(cls, item: dict) -> "RawMatch":
        repo = item.get("repository") or {}
        return cls(
            repo_name=repo.get("full_name", ""),
            repo_url=repo.get("html_url", ""),
            path=item.get("path", ""),
            url=item.get("html_url", ""),
            fragments=tuple(m.get("fragment") or "" for m in item.get("text_matches") or []),
        )


@dataclass
class RateInfo:
    """Remaining-quota metadata from X-RateLimit-* headers."""

    limit: int | None = None
    remaining: int | None = None
    reset: int | None = None

    def __str__(self) -> str:
        return f"{self.remaining}/{self.limit} remaining, resets at {self.reset}"


@dataclass
class SearchPage:
    """One fetched page of search results."""

    items: list[RawMatch]
    next_page: int | None = None
    total_count: int = 0
    rate: RateInfo = field(default_factory=RateInfo)


@dataclass
class FileRecord:
    path: str
    url: str
    matches: list[str] = field(default_factory=list)


@dataclass
class RepoRecord:
    name: str
    url: str
    files: list[FileRecord] = field(default_factory=list)


OrderedResultSet = tuple[tuple[str, RepoRecord], ...]


@dataclass(frozen=True)
class SearchResult:
    """Final, sorted search output handed to renderers."""

    query: str
    repos: OrderedResultSet = ()

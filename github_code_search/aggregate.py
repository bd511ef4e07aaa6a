"""Fold search results into per-repository, per-file match records."""

from urllib.parse import quote

from .models import FileRecord, OrderedResultSet, RawMatch, RepoRecord


def accept(fragment: str, term: str, ignore_case: bool = False, accept_all: bool = False) -> bool:
    """Whether a text fragment is a literal match for the search term.

    The API matches fragments under its own (fuzzier) rules, so a fragment can
    come back without containing the term at all.
    """
    if accept_all:
        return True
    if ignore_case:
        return term.lower() in fragment.lower()
    return term in fragment


def highlight_anchor(term: str) -> str:
    """URL text fragment that makes supporting browsers scroll to `term`."""
    return f"#:~:text={quote(term, safe='')}"


class ResultAggregator:
    """Accumulates matches across pages, keyed by repository full name.

    Only the search loop writes to it. Call `prune()` once the loop is done,
    then `snapshot()` for a sorted view.
    """

    def __init__(self, term: str, ignore_case: bool = False, accept_all: bool = False, highlight: bool = False):
        self.term = term
        self.ignore_case = ignore_case
        self.accept_all = accept_all
        self.anchor = highlight_anchor(term) if highlight else ""
        self.repos: dict[str, RepoRecord] = {}

    def fold(self, match: RawMatch) -> None:
        repo = self.repos.get(match.repo_name)
        if repo is None:
            repo = RepoRecord(name=match.repo_name, url=match.repo_url)
            self.repos[match.repo_name] = repo

        file = FileRecord(path=match.path, url=match.url + self.anchor)
        for fragment in match.fragments:
            if accept(fragment, self.term, ignore_case=self.ignore_case, accept_all=self.accept_all):
                file.matches.append(fragment)

        # Files without accepted fragments are never recorded
        if file.matches:
            repo.files.append(file)

    def prune(self) -> None:
        """Drop repositories that never got a file."""
        for name in [name for name, repo in self.repos.items() if not repo.files]:
            del self.repos[name]

    def snapshot(self) -> OrderedResultSet:
        return snapshot(self.repos)


def snapshot(repos: dict[str, RepoRecord]) -> OrderedResultSet:
    """Repositories sorted by full name, skipping any without files."""
    return tuple((name, repos[name]) for name in sorted(repos) if repos[name].files)

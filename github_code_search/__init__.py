"""Search code on GitHub and group the matches by repository and file.

Pages through the code search API, waits out rate limits without losing its
place, and keeps only fragments that literally contain the search term.
"""

from .cli import main
from .models import SearchQuery, SearchResult
from .search import search_code
from .search_client import SearchClient

__all__ = ["main", "SearchClient", "SearchQuery", "SearchResult", "search_code"]

if __name__ == "__main__":
    main()

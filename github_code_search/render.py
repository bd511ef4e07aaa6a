"""Text and HTML output for search results."""

import html

from .models import SearchResult

RULE_WIDTH = 80

HTML_STYLE = """
  body { margin: 8px; background-color: #f1f8ff; }
  h1, h2, h3, h4 { color: #333; margin-top: 10px; margin-bottom: 10px; }
  h1 { font-size: 1.5em; }
  h2 { font-size: 1.2em; margin-left: 20px; }
  h4 { margin-left: 20px; }
  a { text-decoration: none; color: inherit; }
  .results { margin-left: 20px; }
  .file { background-color: #e0e0e0; padding: 1px; margin-left: 30px; }
  pre { background-color: #d0f0ff; margin: 4px; }
"""


def render_text(result: SearchResult) -> str:
    """Plain text listing: repository, file paths, then each fragment's lines."""
    lines = ["", f"query: {result.query}"]
    for name, repo in result.repos:
        lines.append("-" * RULE_WIDTH)
        lines.append(name)
        for file in repo.files:
            lines.append(f"  {file.path}")
            for i, match in enumerate(file.matches):
                if i > 0:
                    lines.append("      ...")
                lines.extend(f"  |   {line}" for line in match.split("\n"))

    lines.append("")
    lines.append("=" * RULE_WIDTH)
    lines.append("Repositories:")
    lines.extend(f"  {repo.url}" for _, repo in result.repos)
    return "\n".join(lines) + "\n"


def render_html(result: SearchResult) -> str:
    """Standalone HTML page. All API-provided text is escaped."""
    esc = html.escape
    parts = [
        "<html><head><title>Search results</title>",
        '<meta name="viewport" content="width=device-width, initial-scale=1">',
        f"<style>{HTML_STYLE}</style></head><body>",
        f"<h1>Query</h1><h2>{esc(result.query)}</h2><h1>Results</h1>",
        '<div class="results">',
    ]
    for name, repo in result.repos:
        parts.append('<div class="repo">')
        parts.append(f'  <h3><a href="{esc(repo.url)}">{esc(name)}</a></h3>')
        for file in repo.files:
            parts.append(f'  <h4><a href="{esc(file.url)}">{esc(file.path)}</a></h4>')
            parts.append('  <div class="file">')
            parts.extend(f"    <pre>{esc(match)}</pre>" for match in file.matches)
            parts.append("  </div>")
        parts.append("</div>")

    parts.append("<hr/>")
    parts.append("<h2>Repositories</h2>")
    parts.append("<pre>")
    parts.extend(f"  {esc(repo.url)}" for _, repo in result.repos)
    parts.append("</pre>")
    parts.append("</div></body></html>")
    return "\n".join(parts) + "\n"


RENDERERS = {
    "text": render_text,
    "html": render_html,
}

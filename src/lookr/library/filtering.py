"""Search, category filtering and the derived category index."""

from __future__ import annotations

from collections.abc import Iterable

from lookr.models import Snippet

ALL_CATEGORIES = "All Categories"


def is_all_categories(selector: str) -> bool:
    return not selector.strip() or selector.strip().casefold() == ALL_CATEGORIES.casefold()


def matches(snippet: Snippet, query: str, category: str) -> bool:
    """True if *snippet* passes the category selector and the free-text query."""
    if not is_all_categories(category):
        if snippet.category.casefold() != category.strip().casefold():
            return False

    needle = query.strip().casefold()
    if not needle:
        return True
    return any(
        needle in field.casefold()
        for field in (snippet.title, snippet.content, snippet.category, snippet.keywords)
    )


def sort_by_recency(snippets: Iterable[Snippet]) -> list[Snippet]:
    """Most recently used first; ties broken by title, case-insensitively."""
    by_title = sorted(snippets, key=lambda s: s.title.casefold())
    return sorted(by_title, key=lambda s: s.last_used_utc, reverse=True)


def apply_search_and_category(
    snippets: Iterable[Snippet], query: str, category: str
) -> list[Snippet]:
    return sort_by_recency(s for s in snippets if matches(s, query, category))


def build_category_index(snippets: Iterable[Snippet]) -> list[str]:
    """Sentinel followed by the distinct categories, sorted case-insensitively.

    Categories are trimmed and deduplicated case-insensitively; the first
    spelling encountered wins.
    """
    seen: dict[str, str] = {}
    for snippet in snippets:
        category = snippet.category.strip()
        if category and category.casefold() not in seen:
            seen[category.casefold()] = category
    return [ALL_CATEGORIES, *sorted(seen.values(), key=str.casefold)]


def contains_category(index: list[str], selector: str) -> bool:
    wanted = selector.strip().casefold()
    return any(entry.casefold() == wanted for entry in index)

"""Lookr library engine: live collection, filtered views, debounced saves."""

from lookr.library.debounce import Debouncer
from lookr.library.engine import LibraryView, LibraryViewEngine
from lookr.library.filtering import ALL_CATEGORIES, apply_search_and_category

__all__ = [
    "ALL_CATEGORIES",
    "Debouncer",
    "LibraryView",
    "LibraryViewEngine",
    "apply_search_and_category",
]

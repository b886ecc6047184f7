"""Reading navigator: current page, bounds and bookmarks."""
import logging
from typing import Callable, List

from models.document import Document
from services.preferences import SessionPreferences

logger = logging.getLogger(__name__)

PageListener = Callable[[int], None]


class Navigator:
    """
    Owns the reading position for one document.

    Out-of-range navigation is ignored rather than raised. Every successful
    move is persisted and announced to page listeners, which the presentation
    layer uses as its scroll-to-top signal.
    """

    def __init__(self, document: Document, preferences: SessionPreferences):
        """
        Initialize the navigator from persisted preferences.

        Args:
            document: Loaded document
            preferences: Session preferences holding the persisted position and bookmarks
        """
        self.document = document
        self.preferences = preferences
        self._listeners: List[PageListener] = []

        saved_page = preferences.current_page
        if saved_page is None:
            self._current_page = 1
        else:
            self._current_page = self._clamp(saved_page)
            if self._current_page != saved_page:
                logger.info(
                    f"Persisted page {saved_page} is outside 1..{document.total_pages}, "
                    f"clamped to {self._current_page}"
                )
                preferences.set_current_page(self._current_page)

        # Drop bookmarks left over from a longer version of the document
        valid = [n for n in preferences.bookmarks if 1 <= n <= document.total_pages]
        if valid != preferences.bookmarks:
            logger.info(f"Dropping out-of-range bookmarks: {sorted(set(preferences.bookmarks) - set(valid))}")
            preferences.set_bookmarks(valid)

    def _clamp(self, page: int) -> int:
        return max(1, min(self.document.total_pages, page))

    @property
    def current_page(self) -> int:
        return self._current_page

    @property
    def total_pages(self) -> int:
        return self.document.total_pages

    @property
    def current_content(self) -> str:
        page = self.document.page(self._current_page)
        return page.content if page else ""

    @property
    def has_prev(self) -> bool:
        return self._current_page > 1

    @property
    def has_next(self) -> bool:
        return self._current_page < self.document.total_pages

    def add_listener(self, listener: PageListener) -> None:
        """Register a callback invoked with the new page number after each move."""
        self._listeners.append(listener)

    def go_to(self, page: int) -> bool:
        """
        Move to a page.

        Args:
            page: 1-indexed target page

        Returns:
            True if the position was set, False if the page is out of range
        """
        if page < 1 or page > self.document.total_pages:
            logger.debug(f"Ignoring navigation to page {page} (1..{self.document.total_pages})")
            return False

        self._current_page = page
        self.preferences.set_current_page(page)
        for listener in self._listeners:
            listener(page)
        return True

    def next(self) -> bool:
        return self.go_to(self._current_page + 1)

    def prev(self) -> bool:
        return self.go_to(self._current_page - 1)

    def jump_to(self, raw: str) -> bool:
        """Handle the page-jump form; non-numeric input is ignored."""
        try:
            page = int(str(raw).strip())
        except ValueError:
            logger.debug(f"Ignoring non-numeric page jump: {raw!r}")
            return False
        return self.go_to(page)

    # Bookmarks

    @property
    def bookmarks(self) -> List[int]:
        return list(self.preferences.bookmarks)

    @property
    def is_bookmarked(self) -> bool:
        return self._current_page in self.preferences.bookmarks

    def toggle_bookmark(self) -> bool:
        """
        Add or remove a bookmark on the current page.

        Returns:
            True if the page is bookmarked after the call
        """
        bookmarks = self.preferences.bookmarks
        if self._current_page in bookmarks:
            updated = [n for n in bookmarks if n != self._current_page]
        else:
            updated = sorted(bookmarks + [self._current_page])
        self.preferences.set_bookmarks(updated)
        logger.info(f"Bookmarks now {updated}")
        return self._current_page in updated

    def go_to_bookmark(self, page: int) -> bool:
        return self.go_to(page)

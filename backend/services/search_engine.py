"""Full-text search over the loaded document."""
import logging
import re
from typing import List, Optional

from config import SNIPPET_CONTEXT
from models.document import Document
from models.reading import SearchResult
from services.navigator import Navigator

logger = logging.getLogger(__name__)

ELLIPSIS = "..."


class SearchEngine:
    """Case-insensitive substring search producing one snippet per matching page."""

    def __init__(self, document: Optional[Document], context_chars: int = SNIPPET_CONTEXT):
        """
        Initialize the search engine.

        Args:
            document: Loaded document, or None while nothing is loaded
            context_chars: Characters of context kept on each side of a match
        """
        self.document = document
        self.context_chars = context_chars

    def search(self, query: str) -> List[SearchResult]:
        """
        Scan every page in order for the query.

        Only the first occurrence on each page is reported. The snippet always
        carries ellipsis markers on both ends, even when the window reaches the
        start or end of the page.

        Args:
            query: Text to find, matched as typed (case-insensitive)

        Returns:
            List of SearchResult in page order, empty for blank queries
        """
        if not query or not query.strip() or self.document is None:
            return []

        # Escaped regex keeps match offsets in the original string
        pattern = re.compile(re.escape(query), re.IGNORECASE)

        results = []
        for page in self.document.pages:
            match = pattern.search(page.content)
            if not match:
                continue
            start = max(0, match.start() - self.context_chars)
            end = min(len(page.content), match.end() + self.context_chars)
            snippet = ELLIPSIS + page.content[start:end] + ELLIPSIS
            results.append(SearchResult(page=page.number, snippet=snippet))

        logger.info(f"Search for {query[:50]!r} matched {len(results)} pages")
        return results

    @staticmethod
    def select(result: SearchResult, navigator: Navigator) -> bool:
        """Jump to the page of a chosen result."""
        return navigator.go_to(result.page)

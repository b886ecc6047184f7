"""Document loading service for the paginated book file."""
import json
import logging
import os
from typing import Any, Dict

from models.document import Document, Page

logger = logging.getLogger(__name__)


class DocumentLoader:
    """Loads the static book JSON: ``{title, total_pages, pages: [{page, content}]}``."""

    def __init__(self, document_path: str):
        """
        Initialize DocumentLoader.

        Args:
            document_path: Path to the book JSON file
        """
        self.document_path = document_path

    def load(self) -> Document:
        """
        Load and validate the book file.

        Returns:
            Immutable Document with pages ordered by page number

        Raises:
            FileNotFoundError: If the file does not exist
            ValueError: If the file is not valid JSON or violates the page layout
        """
        if not os.path.exists(self.document_path):
            logger.error(f"Document file not found: {self.document_path}")
            raise FileNotFoundError(self.document_path)

        try:
            with open(self.document_path, encoding="utf-8") as f:
                data = json.load(f)
        except json.JSONDecodeError as e:
            logger.error(f"Failed to parse document {self.document_path}: {e}")
            raise ValueError(f"Invalid document JSON: {e}") from e

        document = self.parse(data)
        logger.info(f"Loaded '{document.title}': {document.total_pages} pages")
        return document

    @staticmethod
    def parse(data: Dict[str, Any]) -> Document:
        """
        Build a Document from decoded JSON.

        Page numbers must be contiguous from 1, and ``total_pages`` (when present)
        must agree with the number of pages.
        """
        if not isinstance(data, dict):
            raise ValueError("Document must be a JSON object")

        title = data.get("title")
        if not isinstance(title, str):
            raise ValueError("Document 'title' must be a string")

        raw_pages = data.get("pages")
        if not isinstance(raw_pages, list) or not raw_pages:
            raise ValueError("Document must contain at least one page")

        pages = []
        for entry in raw_pages:
            if not isinstance(entry, dict):
                raise ValueError("Each page must be a JSON object")
            number = entry.get("page")
            content = entry.get("content") or ""
            if not isinstance(number, int) or isinstance(number, bool):
                raise ValueError(f"Invalid page number: {number!r}")
            if not isinstance(content, str):
                raise ValueError(f"Page {number} content must be a string")
            pages.append(Page(number=number, content=content))
        pages.sort(key=lambda page: page.number)

        numbers = [page.number for page in pages]
        if numbers != list(range(1, len(pages) + 1)):
            raise ValueError("Page numbers must be unique and contiguous starting at 1")

        total_pages = data.get("total_pages", len(pages))
        if total_pages != len(pages):
            raise ValueError(
                f"total_pages is {total_pages} but the document has {len(pages)} pages"
            )

        return Document(title=title, pages=tuple(pages))

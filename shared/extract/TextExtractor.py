"""
Text extraction for uploaded documents.

PDFs are read with pdfplumber, all pages joined into one text. Plain text
and markdown files are read as UTF-8. Anything else is not extractable.
"""

import asyncio
import os

import pdfplumber

from shared.exceptions import ExtractionError
from shared.helper.HelperConfig import HelperConfig

TEXT_EXTENSIONS = ("txt", "md", "markdown")


class TextExtractor:
    """Extracts the full text of a stored document."""

    def __init__(self, helper_config: HelperConfig):
        self.logging = helper_config.get_logger()

    def _extract_pdf(self, path: str) -> str:
        pages: list[str] = []
        with pdfplumber.open(path) as pdf:
            for page in pdf.pages:
                page_text = page.extract_text()
                if page_text:
                    pages.append(page_text)
        return "\n".join(pages)

    def _extract_text(self, path: str) -> str:
        with open(path, "r", encoding="utf-8") as handle:
            return handle.read()

    def extract(self, path: str) -> str:
        """Extract the full text of a document.

        Args:
            path (str): Filesystem path of the document.

        Returns:
            str: The document text.

        Raises:
            ExtractionError: If the file is missing, unsupported, unreadable or has no text.
        """
        if not os.path.isfile(path):
            raise ExtractionError(f"Document '{path}' does not exist.")

        extension = path.rsplit(".", 1)[-1].lower() if "." in path else ""
        try:
            if extension == "pdf":
                text = self._extract_pdf(path)
            elif extension in TEXT_EXTENSIONS:
                text = self._extract_text(path)
            else:
                raise ExtractionError(f"Unsupported document type '{extension}'.")
        except ExtractionError:
            raise
        except Exception as exc:
            raise ExtractionError("Could not read the document.", details=str(exc)) from exc

        if not text or not text.strip():
            raise ExtractionError("Could not extract content from the document.")
        return text

    async def do_extract(self, path: str) -> str:
        """Run extract() in a worker thread so parsing never blocks the event loop."""
        return await asyncio.to_thread(self.extract, path)

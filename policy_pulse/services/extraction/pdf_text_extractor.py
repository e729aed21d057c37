"""Service for turning PDF bytes into reconstructed document text.

Uses pdfplumber to read word-level fragments with their coordinates, then
hands them to the text reconstructor. pdfplumber reports positions with a
top-left origin; they are converted to the bottom-left PDF convention the
reconstructor expects.
"""

import asyncio
from io import BytesIO
from typing import List, Optional, Tuple

from policy_pulse.config import settings
from policy_pulse.core.exceptions import DocumentExtractionError
from policy_pulse.schemas.document import PositionedTextItem
from policy_pulse.services.extraction.text_reconstructor import (
    assemble_document_text,
    reconstruct_page_text,
)
from policy_pulse.utils.logging import get_logger

LOGGER = get_logger(__name__)


class PdfTextExtractor:
    """Extracts positioned text from PDFs and rebuilds readable text.

    Example usage:
        extractor = PdfTextExtractor()
        old_text, new_text = await extractor.extract_pair(old_bytes, new_bytes)
    """

    def __init__(
        self,
        y_tolerance: Optional[float] = None,
        x_tolerance: Optional[float] = None,
        word_y_tolerance: Optional[float] = None,
    ):
        """Initialize the extractor.

        Args:
            y_tolerance: Line-merge tolerance for the reconstructor
            x_tolerance: pdfplumber horizontal tolerance for word grouping
            word_y_tolerance: pdfplumber vertical tolerance for word grouping
        """
        self.y_tolerance = settings.line_y_tolerance if y_tolerance is None else y_tolerance
        self.x_tolerance = settings.pdf_x_tolerance if x_tolerance is None else x_tolerance
        self.word_y_tolerance = (
            settings.pdf_y_tolerance if word_y_tolerance is None else word_y_tolerance
        )
        self._pdfplumber = None

    @property
    def pdfplumber(self):
        """Lazy-load pdfplumber to avoid import overhead."""
        if self._pdfplumber is None:
            import pdfplumber
            self._pdfplumber = pdfplumber
        return self._pdfplumber

    def extract_page_items(self, pdf_bytes: bytes) -> List[List[PositionedTextItem]]:
        """Read every page of a PDF as positioned text fragments.

        Args:
            pdf_bytes: PDF file content as bytes

        Returns:
            One list of fragments per page, in page order

        Raises:
            DocumentExtractionError: If the bytes cannot be opened as a PDF
        """
        pages: List[List[PositionedTextItem]] = []
        try:
            with self.pdfplumber.open(BytesIO(pdf_bytes)) as pdf:
                for page in pdf.pages:
                    page_height = float(page.height)
                    words = page.extract_words(
                        keep_blank_chars=True,
                        x_tolerance=self.x_tolerance,
                        y_tolerance=self.word_y_tolerance,
                    )
                    pages.append([
                        PositionedTextItem(
                            text=word["text"],
                            x=float(word["x0"]),
                            y=page_height - float(word["bottom"]),
                        )
                        for word in words
                    ])
        except Exception as e:
            LOGGER.error(
                f"PDF text extraction failed: {e}",
                extra={"error_type": type(e).__name__, "byte_count": len(pdf_bytes or b"")},
                exc_info=True,
            )
            raise DocumentExtractionError("Could not read PDF content", original_error=e) from e

        return pages

    def extract_text(self, pdf_bytes: bytes) -> str:
        """Extract the normalized, page-marked text of a PDF."""
        page_items = self.extract_page_items(pdf_bytes)
        text = assemble_document_text(
            [reconstruct_page_text(items, y_tolerance=self.y_tolerance) for items in page_items]
        )
        LOGGER.debug(
            "Reconstructed document text",
            extra={"page_count": len(page_items), "char_count": len(text)},
        )
        return text

    async def extract_text_async(self, pdf_bytes: bytes) -> str:
        """Run extraction in a worker thread; pdfplumber parsing is blocking."""
        return await asyncio.to_thread(self.extract_text, pdf_bytes)

    async def extract_pair(self, old_bytes: bytes, new_bytes: bytes) -> Tuple[str, str]:
        """Extract the old and new documents concurrently."""
        old_text, new_text = await asyncio.gather(
            self.extract_text_async(old_bytes),
            self.extract_text_async(new_bytes),
        )
        return old_text, new_text

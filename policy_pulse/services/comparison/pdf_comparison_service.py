"""PDF comparison service: extraction plus one of the diff views."""

from typing import List, Optional, Tuple

from policy_pulse.config import settings
from policy_pulse.schemas.document import (
    PricedCoverageChange,
    StructuredDiff,
    TableDiff,
    TableSection,
    UnifiedDiff,
)
from policy_pulse.services.comparison.document_diff_service import (
    inline_diff,
    structured_diff,
    unified_diff,
)
from policy_pulse.services.comparison.table_diff_service import (
    diff_document_tables,
    merge_coverage_diff_with_prices,
)
from policy_pulse.services.comparison.table_extraction_service import extract_oop_rows
from policy_pulse.services.extraction.pdf_text_extractor import PdfTextExtractor
from policy_pulse.utils.logging import get_logger

LOGGER = get_logger(__name__)


class PdfComparisonService:
    """Compares two policy PDFs.

    Both documents are extracted concurrently, then diffed by pure
    functions; the service keeps no state between calls.
    """

    def __init__(self, extractor: Optional[PdfTextExtractor] = None):
        self.extractor = extractor or PdfTextExtractor()

    async def compare_texts(self, old_pdf: bytes, new_pdf: bytes) -> StructuredDiff:
        """Structured segment diff with summary counts."""
        old_text, new_text = await self.extractor.extract_pair(old_pdf, new_pdf)
        result = structured_diff(old_text, new_text)
        LOGGER.info(
            f"Structured PDF diff completed: {result.summary.total_segments} segments",
            extra={
                "granularity": result.granularity,
                "added": result.summary.added,
                "removed": result.summary.removed,
            },
        )
        return result

    async def compare_unified(
        self,
        old_pdf: bytes,
        new_pdf: bytes,
        old_name: str = "old.pdf",
        new_name: str = "new.pdf",
        context: Optional[int] = None,
    ) -> UnifiedDiff:
        """Unified patch labeled with the original file names."""
        old_text, new_text = await self.extractor.extract_pair(old_pdf, new_pdf)
        return unified_diff(
            old_text,
            new_text,
            old_name=old_name,
            new_name=new_name,
            context=settings.unified_context_lines if context is None else context,
        )

    async def compare_inline(
        self,
        old_pdf: bytes,
        new_pdf: bytes,
        max_equal_chunk_lines: Optional[int] = None,
    ) -> str:
        """Inline prefixed listing with long unchanged blocks collapsed."""
        old_text, new_text = await self.extractor.extract_pair(old_pdf, new_pdf)
        return inline_diff(
            old_text,
            new_text,
            max_equal_chunk_lines=(
                settings.inline_max_equal_chunk_lines
                if max_equal_chunk_lines is None
                else max_equal_chunk_lines
            ),
        )

    async def compare_tables(
        self,
        old_pdf: bytes,
        new_pdf: bytes,
        section: TableSection = TableSection.COVERAGE,
    ) -> TableDiff:
        """Row diff of the coverage or out-of-pocket table."""
        old_text, new_text = await self.extractor.extract_pair(old_pdf, new_pdf)
        result = diff_document_tables(old_text, new_text, section)
        LOGGER.info(
            f"Table diff completed for section '{section.value}'",
            extra={
                "old_count": result.old_count,
                "new_count": result.new_count,
                "added": len(result.added),
                "removed": len(result.removed),
                "changed": len(result.changed),
            },
        )
        return result

    async def compare_coverage_with_prices(
        self,
        old_pdf: bytes,
        new_pdf: bytes,
    ) -> Tuple[TableDiff, List[PricedCoverageChange]]:
        """Coverage table diff plus each change joined to the new out-of-pocket price."""
        old_text, new_text = await self.extractor.extract_pair(old_pdf, new_pdf)
        coverage_diff = diff_document_tables(old_text, new_text, TableSection.COVERAGE)
        priced = merge_coverage_diff_with_prices(coverage_diff, extract_oop_rows(new_text))
        LOGGER.info(
            f"Priced coverage diff completed: {len(priced)} changes",
            extra={"priced_count": sum(1 for change in priced if change.new_patient_pays is not None)},
        )
        return coverage_diff, priced

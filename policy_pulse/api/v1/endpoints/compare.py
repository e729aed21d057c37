"""PDF comparison endpoints."""

from typing import Annotated, Optional

from fastapi import APIRouter, Depends, File, HTTPException, Query, Request, UploadFile, status
from fastapi.responses import PlainTextResponse

from policy_pulse.api.dependencies import get_pdf_comparison_service
from policy_pulse.core.exceptions import DocumentExtractionError, ValidationError
from policy_pulse.schemas.document import CompareFormat, TableSection
from policy_pulse.schemas.responses import ApiResponse
from policy_pulse.services.comparison.pdf_comparison_service import PdfComparisonService
from policy_pulse.services.comparison.table_extraction_service import parse_section
from policy_pulse.utils.logging import get_logger
from policy_pulse.utils.responses import create_api_response, create_error_detail

LOGGER = get_logger(__name__)

router = APIRouter()


def _bad_request(request: Request, detail: str, code: str = "validation_error") -> HTTPException:
    error_detail = create_error_detail(
        title="Bad Request",
        status=status.HTTP_400_BAD_REQUEST,
        detail=detail,
        request=request,
        code=code,
    )
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error_detail.model_dump(mode="json"))


@router.post(
    "/compare",
    summary="Compare two policy PDFs",
    operation_id="compare_policy_pdfs",
    responses={200: {"content": {"text/plain": {}}, "model": ApiResponse}},
)
async def compare_pdfs(
    request: Request,
    format: str = Query("json", description="json, unified, inline or table"),
    context: int = Query(3, ge=0, description="Context lines for the unified patch"),
    section: str = Query("coverage", description="Table section for format=table: coverage or oop"),
    old_pdf: Optional[UploadFile] = File(None, alias="oldPdf"),
    new_pdf: Optional[UploadFile] = File(None, alias="newPdf"),
    comparison_service: Annotated[PdfComparisonService, Depends(get_pdf_comparison_service)] = None,
):
    """Diff two uploaded PDFs as a segment list, unified patch, inline listing or table diff."""
    try:
        mode = CompareFormat(format.strip().lower())
    except ValueError:
        raise _bad_request(request, f"Unknown format '{format}'")

    table_section = TableSection.COVERAGE
    if mode == CompareFormat.TABLE:
        try:
            table_section = parse_section(section)
        except ValidationError as e:
            raise _bad_request(request, e.message)

    if old_pdf is None or new_pdf is None:
        raise _bad_request(request, "Upload oldPdf and newPdf files.")

    old_bytes = await old_pdf.read()
    new_bytes = await new_pdf.read()
    if not old_bytes or not new_bytes:
        raise _bad_request(request, "Uploaded PDF files must not be empty.")

    meta = {
        "old_filename": old_pdf.filename,
        "new_filename": new_pdf.filename,
        "old_bytes": len(old_bytes),
        "new_bytes": len(new_bytes),
    }
    LOGGER.info(f"Comparing PDFs with format '{mode.value}'", extra=meta)

    try:
        if mode == CompareFormat.UNIFIED:
            result = await comparison_service.compare_unified(
                old_bytes,
                new_bytes,
                old_name=old_pdf.filename or "old.pdf",
                new_name=new_pdf.filename or "new.pdf",
                context=context,
            )
            return PlainTextResponse(result.patch)

        if mode == CompareFormat.INLINE:
            return PlainTextResponse(await comparison_service.compare_inline(old_bytes, new_bytes))

        if mode == CompareFormat.TABLE:
            if table_section == TableSection.COVERAGE:
                table_diff, priced = await comparison_service.compare_coverage_with_prices(old_bytes, new_bytes)
                data = table_diff.model_dump(mode="json")
                data["priced_changes"] = [change.model_dump(mode="json") for change in priced]
            else:
                table_diff = await comparison_service.compare_tables(old_bytes, new_bytes, table_section)
                data = table_diff.model_dump(mode="json")
            data["meta"] = {**meta, "section": table_section.value}
            return create_api_response(data=data, message="Table comparison completed", request=request)

        result = await comparison_service.compare_texts(old_bytes, new_bytes)
        data = result.model_dump(mode="json")
        data["meta"] = meta
        return create_api_response(data=data, message="Text comparison completed", request=request)
    except DocumentExtractionError as e:
        error_detail = create_error_detail(
            title="Unreadable Document",
            status=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=e.message,
            request=request,
            code=e.code,
        )
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail=error_detail.model_dump(mode="json"),
        )

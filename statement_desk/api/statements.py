"""
/api/v1/statements endpoints.
Parse a statement PDF, export transactions, apply user edits.
"""

from typing import Optional

import structlog
from fastapi import APIRouter, Depends, File, Query, Response, UploadFile, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from statement_desk.config import settings
from statement_desk.dependencies import get_pipeline, read_pdf_upload, verify_api_key
from statement_desk.models.enums import ExportFormat, ExportScope
from statement_desk.observability.cost_tracker import estimate_ocr_cost
from statement_desk.pipeline.exporter import export_transactions
from statement_desk.pipeline.orchestrator import StatementPipeline
from statement_desk.schemas.results import ParseOptions, ParseResult
from statement_desk.schemas.transactions import Transaction, TransactionUpdate, apply_transaction_update

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/v1/statements", tags=["statements"], dependencies=[Depends(verify_api_key)])


class ExportRequest(BaseModel):
    transactions: list[Transaction]
    format: ExportFormat
    scope: ExportScope = ExportScope.SINGLE
    file_stem: Optional[str] = None


class TransactionUpdateRequest(BaseModel):
    transaction: Transaction
    update: TransactionUpdate


@router.post(
    "/parse",
    response_model=ParseResult,
    responses={status.HTTP_422_UNPROCESSABLE_ENTITY: {"model": ParseResult}},
)
async def parse_statement(
    file: UploadFile = File(...),
    ai_enhanced: bool = Query(False),
    max_pages: int = Query(settings.DEFAULT_MAX_OCR_PAGES, ge=1),
    user_id: Optional[str] = Query(None),
    pipeline: StatementPipeline = Depends(get_pipeline),
):
    """Parse an uploaded statement PDF into transactions."""
    pdf_bytes = await read_pdf_upload(file)
    options = ParseOptions(
        ai_enhanced=ai_enhanced,
        max_pages=max_pages,
        user_id=user_id,
        source_file=file.filename,
    )

    result = await pipeline.parse(pdf_bytes, options)

    logger.info(
        "statement_parsed",
        file_name=file.filename,
        success=result.success,
        transactions=len(result.transactions),
    )
    if not result.success:
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=result.model_dump(mode="json"),
        )
    return result


@router.post("/export")
async def export_statement(body: ExportRequest):
    """Render transactions as a CSV or Excel download."""
    artifact = export_transactions(
        body.transactions,
        body.format,
        scope=body.scope,
        file_stem=body.file_stem,
    )
    return Response(
        content=artifact.content,
        media_type=artifact.mime_type,
        headers={"Content-Disposition": f'attachment; filename="{artifact.file_name}"'},
    )


@router.post("/transactions/update", response_model=Transaction)
async def update_transaction(body: TransactionUpdateRequest):
    """Apply a user edit (description, category or type) and return the new transaction."""
    return apply_transaction_update(body.transaction, body.update)


@router.get("/ocr-estimate")
async def ocr_estimate(page_count: int = Query(..., ge=0)):
    """Estimated cloud OCR cost for a scanned document of this many pages."""
    return estimate_ocr_cost(page_count)

"""
Report export endpoints (PDF and plain text).
"""
from typing import Annotated

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse, Response

from quiziq.core.database import DbSession
from quiziq.core.logging import get_logger
from quiziq.core.security import CurrentPrincipal
from quiziq.routers.deps import Registry, get_pdf_renderer
from quiziq.schemas.export import ExportRequest
from quiziq.services.rate_limit import now_ms
from quiziq.services.reports import PdfRenderer, build_report, render_html, render_txt

logger = get_logger(__name__)

router = APIRouter(prefix="/export", tags=["export"])


def _attachment(tracker_id: str, extension: str) -> dict[str, str]:
    filename = f"report-{tracker_id}-{now_ms()}.{extension}"
    return {"Content-Disposition": f'attachment; filename="{filename}"'}


@router.post("/pdf")
async def export_pdf(
    body: ExportRequest,
    principal: CurrentPrincipal,
    session: DbSession,
    registry: Registry,
    renderer: Annotated[PdfRenderer, Depends(get_pdf_renderer)],
) -> Response:
    tracker = await registry.get(principal, body.tracker_id)
    report = await build_report(session, tracker, body)
    pdf = await renderer.render(render_html(report))

    logger.info("PDF report exported", tracker_id=body.tracker_id, sections=body.sections)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers=_attachment(body.tracker_id, "pdf"),
    )


@router.post("/txt")
async def export_txt(
    body: ExportRequest,
    principal: CurrentPrincipal,
    session: DbSession,
    registry: Registry,
) -> PlainTextResponse:
    tracker = await registry.get(principal, body.tracker_id)
    report = await build_report(session, tracker, body)

    logger.info("TXT report exported", tracker_id=body.tracker_id, sections=body.sections)
    return PlainTextResponse(
        render_txt(report),
        headers=_attachment(body.tracker_id, "txt"),
    )

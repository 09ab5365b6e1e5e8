# printsheet/delivery/api/templates.py
from fastapi import APIRouter, Request, Depends, HTTPException, Query, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials
from fastapi.responses import Response
from typing import Literal
import secrets
import logging
import traceback
import asyncio

from printsheet.config.settings import settings
from printsheet.delivery.schemas.body import (
    CoverFitApplyRequest,
    CoverFitRequest,
    DominantColorRequest,
    LayoutSummary,
    RenderRequest,
    TemplateConfig,
)
from printsheet.domain.adjustments import cover_fit_zoom
from printsheet.domain.back_designs import BACK_DESIGNS, get_back_design
from printsheet.domain.layout import PAGE_SIZES, LayoutError
from printsheet.domain.template_service import TemplateService
from printsheet.infrastructure.cv.back_design import generate_back_design
from printsheet.infrastructure.cv.image_process import to_png_bytes
from printsheet.infrastructure.export.documents import ExportError, pdf_filename, zip_filename

router = APIRouter()
security = HTTPBasic()
logger = logging.getLogger("uvicorn.error")

def verify_basic_auth(creds: HTTPBasicCredentials = Depends(security)) -> None:
    ok_user = secrets.compare_digest(creds.username, settings.BASIC_AUTH_USERNAME)
    ok_pass = secrets.compare_digest(creds.password, settings.BASIC_AUTH_PASSWORD)
    if not (ok_user and ok_pass):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid authentication credentials",
            headers={"WWW-Authenticate": "Basic"},
        )

def get_service(request: Request) -> TemplateService:
    service = getattr(request.app.state, "template_service", None)
    if service is None:
        logger.error("Template service not initialized")
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Service is not ready. Please try again in a moment.",
        )
    return service

def _layout_error(e: LayoutError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(e))

@router.get("/page-sizes")
async def page_sizes():
    return {key: {"width": p.width, "height": p.height, "name": p.name} for key, p in PAGE_SIZES.items()}

@router.get("/back-designs")
async def back_designs():
    return [
        {
            "id": d.id,
            "name": d.name,
            "color": d.color,
            "textColor": d.text_color,
            "imageUrl": d.image_url,
            "subtitle": d.subtitle,
        }
        for d in BACK_DESIGNS
    ]

@router.get("/back-designs/{design_id}/preview")
async def back_design_preview(
    design_id: str,
    shape: Literal["coin", "card"] = "coin",
    size: int = Query(settings.BACK_DESIGN_PREVIEW_SIZE, ge=16, le=2048),
):
    design = get_back_design(design_id)
    if design is None:
        raise HTTPException(status_code=404, detail=f"Unknown back design '{design_id}'")
    if not design.is_generated:
        raise HTTPException(status_code=409, detail=f"Back design '{design_id}' is a static image: {design.image_url}")
    png = to_png_bytes(generate_back_design(design, size, shape == "coin"))
    return Response(content=png, media_type="image/png")

@router.post("/layout", response_model=LayoutSummary)
async def layout(config: TemplateConfig, service: TemplateService = Depends(get_service)):
    try:
        grid = service.layout_for(config)
    except LayoutError as e:
        raise _layout_error(e)
    width_px, height_px = config.page.pixel_size
    return LayoutSummary(**grid.summary(len(config.items)), page_width_px=width_px, page_height_px=height_px)

@router.post("/cover-fit")
async def cover_fit(body: CoverFitRequest):
    return {"zoom": cover_fit_zoom(body.width, body.height, max_zoom=settings.COVER_FIT_MAX_ZOOM)}

@router.post("/cover-fit/apply", dependencies=[Depends(verify_basic_auth)])
async def cover_fit_apply(body: CoverFitApplyRequest, service: TemplateService = Depends(get_service)):
    store = await service.apply_cover_fit(body.config, body.side, body.custom_back_images)
    return {"imageAdjustments": {k: v.model_dump(by_alias=True) for k, v in store.to_wire().items()}}

@router.post("/dominant-color", dependencies=[Depends(verify_basic_auth)])
async def dominant_color(body: DominantColorRequest, service: TemplateService = Depends(get_service)):
    return {"color": await service.dominant_color(body.source)}

@router.post("/render", dependencies=[Depends(verify_basic_auth)])
async def render(
    request: Request,
    body: RenderRequest,
    format: Literal["pdf", "zip"] = "pdf",
    service: TemplateService = Depends(get_service),
):
    config = body.config
    run_id = f"{config.list_name}/{config.template_type}"
    logger.info(f"=== ENDPOINT START render {run_id} ({len(config.items)} items, format={format}) ===")

    try:
        if await request.is_disconnected():
            logger.warning(f"[{run_id}] Client already disconnected")
            raise HTTPException(status_code=499, detail="Client closed request")

        async def render_and_export():
            result = await service.render(config, body.custom_back_images)
            if format == "pdf":
                return result, await service.export_pdf(result)
            return result, await service.export_zip(result)

        try:
            result, content = await asyncio.wait_for(render_and_export(), timeout=settings.RENDER_TIMEOUT_SECONDS)
        except asyncio.TimeoutError:
            logger.error(f"=== ENDPOINT TIMEOUT render {run_id} after {settings.RENDER_TIMEOUT_SECONDS}s ===")
            raise HTTPException(status_code=504, detail="Rendering timed out")

        if format == "pdf":
            media_type = "application/pdf"
            filename = pdf_filename(config.list_name, config.template_type, len(result.pages))
        else:
            media_type = "application/zip"
            filename = zip_filename(config.list_name, config.template_type)

        summary = result.summary()
        logger.info(f"=== ENDPOINT SUCCESS render {run_id}: {summary['pages_needed']} pages ===")
        return Response(content=content, media_type=media_type, headers={
            "Content-Disposition": f'attachment; filename="{filename}"',
            "X-Pages": str(len(result.pages)),
            "X-Items-Per-Page": str(summary["items_per_page"]),
            "Access-Control-Expose-Headers": "X-Pages, X-Items-Per-Page",
        })

    except HTTPException:
        raise
    except LayoutError as e:
        logger.warning(f"[{run_id}] Layout rejected: {e}")
        raise _layout_error(e)
    except ExportError as e:
        logger.error(f"[{run_id}] Export failed: {e}")
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(e))
    except Exception as e:
        logger.error(f"=== ENDPOINT ERROR render {run_id}: {e} ===\n{traceback.format_exc()}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error.",
        )

# templates_controller.py
import logging
from fastapi import APIRouter, Depends, File, Query, Response, UploadFile
from src.config import get_template_engine
from src.services.templates_pdf.engine import TemplateEngine
from src.services.templates_pdf.schemas import TemplateUpdateIn, UniformHeightIn

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/templates", tags=["Templates"])


# ---------- endpoints ----------
@router.post("/upload", status_code=201)
def upload_template(
    pdf: UploadFile = File(...),
    engine: TemplateEngine = Depends(get_template_engine),
):
    tpl = engine.upload_template(pdf.filename, pdf.file)
    return {
        "success": True,
        "templateId": tpl.id,
        "filename": tpl.filename,
        "pageCount": tpl.page_count,
        "message": "PDF subido correctamente",
    }


@router.get("")
def list_templates(engine: TemplateEngine = Depends(get_template_engine)):
    templates = engine.list_templates()
    return {"success": True, "templates": templates, "count": len(templates)}


@router.delete("")
def purge_templates(
    older_than_days: int = Query(..., ge=0, description="Borra plantillas con más de N días"),
    engine: TemplateEngine = Depends(get_template_engine),
):
    deleted = engine.purge_older_than(older_than_days)
    return {"success": True, "deleted": deleted}


@router.get("/{template_id}")
def get_template(template_id: int, engine: TemplateEngine = Depends(get_template_engine)):
    return {"success": True, "template": engine.get_template(template_id)}


@router.put("/{template_id}")
def rename_template(template_id: int, payload: TemplateUpdateIn,
                    engine: TemplateEngine = Depends(get_template_engine)):
    return {"success": True, "template": engine.rename_template(template_id, payload.name)}


@router.delete("/{template_id}")
def delete_template(template_id: int, engine: TemplateEngine = Depends(get_template_engine)):
    engine.delete_template(template_id)
    return {"success": True, "message": "Plantilla eliminada"}


@router.get("/{template_id}/pdf")
def serve_pdf(template_id: int, engine: TemplateEngine = Depends(get_template_engine)):
    return Response(content=engine.template_pdf(template_id), media_type="application/pdf")


@router.get("/{template_id}/pages/{page}/image")
def page_image(
    template_id: int,
    page: int,
    zoom: float = Query(1.0, gt=0, le=8),
    engine: TemplateEngine = Depends(get_template_engine),
):
    """PNG de la página al zoom pedido; el tamaño en píxeles va en los headers."""
    png, width, height = engine.page_image(template_id, page, zoom)
    return Response(
        content=png,
        media_type="image/png",
        headers={"X-Page-Width": str(width), "X-Page-Height": str(height)},
    )


@router.put("/{template_id}/uniform-height")
def set_uniform_height(template_id: int, payload: UniformHeightIn,
                       engine: TemplateEngine = Depends(get_template_engine)):
    tpl = engine.boxes.set_uniform_height(template_id, payload.height)
    return {"success": True, "uniformHeight": tpl.uniform_height}


@router.post("/{template_id}/uniform-height/apply")
def apply_uniform_height(template_id: int, engine: TemplateEngine = Depends(get_template_engine)):
    boxes = engine.boxes.apply_uniform_height(template_id)
    return {"success": True, "boxes": boxes, "count": len(boxes)}

import logging
import time
from fastapi import APIRouter, Depends, Response
from src.config import get_template_engine
from src.services.converter import MEDIA_TYPES
from src.services.templates_pdf.engine import TemplateEngine
from src.services.templates_pdf.errors import DocsMapperError
from src.services.templates_pdf.schemas import FillRequest

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/export", tags=["Export"])


def _export(payload: FillRequest, engine: TemplateEngine, target: str) -> Response:
    try:
        data = engine.fill_as(payload.templateId, payload.values, target)
    except DocsMapperError:
        raise
    except Exception as e:
        logger.exception("Error exportando plantilla %s a %s", payload.templateId, target)
        raise DocsMapperError(f"Error al exportar: {str(e)}") from e

    filename = f"filled-{int(time.time() * 1000)}.{target}"
    return Response(
        content=data,
        media_type=MEDIA_TYPES[target],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.post("/pdf")
def export_pdf(payload: FillRequest, engine: TemplateEngine = Depends(get_template_engine)):
    return _export(payload, engine, "pdf")


@router.post("/docx")
def export_docx(payload: FillRequest, engine: TemplateEngine = Depends(get_template_engine)):
    """PDF relleno convertido a DOCX (requiere LibreOffice en el servidor)."""
    return _export(payload, engine, "docx")


@router.post("/preview")
def preview(payload: FillRequest, engine: TemplateEngine = Depends(get_template_engine)):
    """Instrucciones de dibujo que generaría el export, sin generar el PDF."""
    instructions = engine.preview(payload.templateId, payload.values)
    return {"success": True, "instructions": instructions, "count": len(instructions)}


@router.get("/info")
def export_info(engine: TemplateEngine = Depends(get_template_engine)):
    return {
        "success": True,
        "formats": {
            "pdf": {
                "endpoint": "/api/v1/export/pdf",
                "method": "POST",
                "description": "PDF relleno",
                "available": True,
            },
            "docx": {
                "endpoint": "/api/v1/export/docx",
                "method": "POST",
                "description": "PDF relleno convertido a DOCX",
                "requirements": "LibreOffice instalado en el servidor",
                "available": engine.converter.available(),
            },
        },
    }

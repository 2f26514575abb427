from fastapi import APIRouter, Depends
from src.config import get_template_engine
from src.services.templates_pdf import transforms
from src.services.templates_pdf.engine import TemplateEngine
from src.services.templates_pdf.schemas import BulkBoxesIn, DrawBoxIn, MoveIn, Rect, ResizeIn

router = APIRouter(prefix="/api/v1/boxes", tags=["Boxes"])


@router.post("", status_code=201)
def save_boxes(payload: BulkBoxesIn, engine: TemplateEngine = Depends(get_template_engine)):
    """Alta masiva: { templateId, boxes: [{ page, x, y, width|w, height|h }] } en espacio documento."""
    boxes = engine.boxes.bulk_create(payload.templateId, [(b.page, b.rect()) for b in payload.boxes])
    return {
        "success": True,
        "boxIds": [b.id for b in boxes],
        "count": len(boxes),
        "message": f"Se crearon {len(boxes)} boxes",
    }


@router.post("/draw", status_code=201)
def draw_box(payload: DrawBoxIn, engine: TemplateEngine = Depends(get_template_engine)):
    """Alta de un box dibujado en pantalla (píxeles al zoom indicado)."""
    device = Rect(x=payload.x, y=payload.y, width=payload.width, height=payload.height)
    rect = transforms.rect_to_document(device, payload.zoom)
    box = engine.boxes.create(payload.templateId, payload.page, rect)
    return {"success": True, "box": box}


@router.get("/{template_id}")
def get_boxes_by_template(template_id: int, engine: TemplateEngine = Depends(get_template_engine)):
    boxes = engine.boxes.list_by_template(template_id)
    mapped = set(engine.fields.mapped_box_ids(template_id))
    return {
        "success": True,
        "boxes": boxes,
        "mappedBoxIds": [b.id for b in boxes if b.id in mapped],
        "count": len(boxes),
    }


@router.get("/{template_id}/page/{page}")
def get_boxes_by_page(template_id: int, page: int, engine: TemplateEngine = Depends(get_template_engine)):
    boxes = engine.boxes.list_by_page(template_id, page)
    return {"success": True, "boxes": boxes, "count": len(boxes), "page": page}


@router.patch("/{box_id}/move")
def move_box(box_id: int, payload: MoveIn, engine: TemplateEngine = Depends(get_template_engine)):
    return {"success": True, "box": engine.boxes.move(box_id, payload.x, payload.y)}


@router.patch("/{box_id}/resize")
def resize_box(box_id: int, payload: ResizeIn, engine: TemplateEngine = Depends(get_template_engine)):
    return {"success": True, "box": engine.boxes.resize(box_id, payload.width, payload.height)}


@router.delete("/{box_id}")
def delete_box(box_id: int, engine: TemplateEngine = Depends(get_template_engine)):
    engine.boxes.delete(box_id)
    return {"success": True, "message": "Box eliminado"}

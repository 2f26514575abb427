from fastapi import APIRouter, Depends
from src.config import get_template_engine
from src.services.templates_pdf.engine import TemplateEngine
from src.services.templates_pdf.schemas import FieldIn, FieldUpdateIn

router = APIRouter(prefix="/api/v1/mappings", tags=["Field mappings"])


@router.post("", status_code=201)
def create_field_mapping(payload: FieldIn, engine: TemplateEngine = Depends(get_template_engine)):
    field = engine.fields.create_field(
        payload.templateId,
        payload.fieldName,
        payload.fieldLabel,
        payload.fieldType,
        payload.fontSize,
        payload.boxIds,
    )
    return {"success": True, "fieldMappingId": field.id, "field": field}


@router.get("/{template_id}")
def get_mappings_by_template(template_id: int, engine: TemplateEngine = Depends(get_template_engine)):
    fields = engine.fields.list_fields(template_id)
    return {"success": True, "fields": fields, "count": len(fields)}


@router.get("/{template_id}/details")
def get_mappings_with_details(template_id: int, engine: TemplateEngine = Depends(get_template_engine)):
    fields = engine.fields.resolve(template_id)
    return {"success": True, "fields": fields, "count": len(fields)}


@router.put("/{field_id}")
def update_field_mapping(field_id: int, payload: FieldUpdateIn,
                         engine: TemplateEngine = Depends(get_template_engine)):
    field = engine.fields.update_field(
        field_id,
        label=payload.fieldLabel,
        value_type=payload.fieldType,
        font_size=payload.fontSize,
    )
    return {"success": True, "field": field}


@router.delete("/{field_id}")
def delete_field_mapping(field_id: int, engine: TemplateEngine = Depends(get_template_engine)):
    engine.fields.delete_field(field_id)
    return {"success": True, "message": "Campo eliminado"}

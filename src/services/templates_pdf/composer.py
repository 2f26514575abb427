import logging
import math
from typing import Iterable, List, Optional
from .errors import ConflictError, NotFoundError, ValidationError
from .locks import TemplateLocks
from .repo import TemplateRepository
from .schemas import VALUE_TYPES, Box, ResolvedBox, ResolvedField, TemplateField

logger = logging.getLogger(__name__)


def _ordered_unique(ids: Iterable[int]) -> List[int]:
    seen = set()
    out = []
    for i in ids:
        i = int(i)
        if i not in seen:
            seen.add(i)
            out.append(i)
    return out


def _check_value_type(value_type: str) -> str:
    if value_type not in VALUE_TYPES:
        raise ValidationError(
            f"fieldType inválido: {value_type!r} (permitidos: {', '.join(VALUE_TYPES)})")
    return value_type


def _check_font_size(font_size: float) -> float:
    size = float(font_size)
    if not math.isfinite(size) or size <= 0:
        raise ValidationError(f"fontSize debe ser > 0 (recibido {font_size!r})")
    return size


class FieldComposer:
    """Agrupa boxes en campos con nombre.

    Un box pertenece a lo sumo a un campo. El campo guarda ids de box,
    nunca los boxes; la geometría se resuelve recién en `resolve`.
    """

    def __init__(self, repo: TemplateRepository, locks: TemplateLocks):
        self.repo = repo
        self.locks = locks

    def _field(self, field_id: int) -> TemplateField:
        field = self.repo.get_field(field_id)
        if not field:
            raise NotFoundError(f"Campo {field_id} no encontrado")
        return field

    def _box(self, box_id: int) -> Box:
        box = self.repo.get_box(box_id)
        if not box:
            raise NotFoundError(f"Box {box_id} no encontrado")
        return box

    def select_for_field(self, box_id: int) -> Box:
        """Verifica que el box se pueda seleccionar para un campo nuevo."""
        box = self._box(box_id)
        field_id = self.repo.field_id_for_box(box_id)
        if field_id is not None:
            raise ConflictError(
                f"El box {box_id} ya está mapeado al campo {field_id}. "
                "Borrá ese campo primero para re-mapearlo.")
        return box

    def create_field(self, template_id: int, name: str, label: str, value_type: str = "text",
                     font_size: float = 10, box_ids: Optional[Iterable[int]] = None) -> TemplateField:
        name = (name or "").strip()
        label = (label or "").strip()
        if not name:
            raise ValidationError("fieldName es requerido")
        if not label:
            raise ValidationError("fieldLabel es requerido")
        value_type = _check_value_type(value_type)
        font_size = _check_font_size(font_size)
        ids = _ordered_unique(box_ids or [])
        if not ids:
            raise ValidationError("Se debe seleccionar al menos un box")

        with self.locks.hold(template_id):
            if not self.repo.get_template(template_id):
                raise NotFoundError(f"Plantilla {template_id} no encontrada")

            if any(f.name == name for f in self.repo.list_fields(template_id)):
                raise ValidationError(f"Ya existe un campo '{name}' en la plantilla {template_id}")

            # se re-chequea bajo el lock: la selección pudo quedar vieja
            for box_id in ids:
                box = self.select_for_field(box_id)
                if box.template_id != template_id:
                    raise ValidationError(
                        f"El box {box_id} pertenece a la plantilla {box.template_id}")

            field = self.repo.add_field(template_id, name, label, value_type, font_size, ids)

        logger.info("Plantilla %s: campo '%s' creado con boxes %s", template_id, name, ids)
        return field

    def update_field(self, field_id: int, label: Optional[str] = None,
                     value_type: Optional[str] = None, font_size: Optional[float] = None) -> TemplateField:
        """Actualiza label/tipo/tamaño. El nombre y los boxes no cambian."""
        template_id = self._field(field_id).template_id
        with self.locks.hold(template_id):
            field = self._field(field_id)
            if label is not None:
                label = label.strip()
                if not label:
                    raise ValidationError("fieldLabel no puede ser vacío")
                field.label = label
            if value_type is not None:
                field.value_type = _check_value_type(value_type)
            if font_size is not None:
                field.font_size = _check_font_size(font_size)
            self.repo.update_field(field)
        return field

    def delete_field(self, field_id: int) -> None:
        """Borra el campo; sus boxes vuelven al pool sin mapear."""
        template_id = self._field(field_id).template_id
        with self.locks.hold(template_id):
            self._field(field_id)
            self.repo.delete_field(field_id)
        logger.info("Campo %s borrado (plantilla %s)", field_id, template_id)

    def get_field(self, field_id: int) -> TemplateField:
        return self._field(field_id)

    def list_fields(self, template_id: int) -> List[TemplateField]:
        if not self.repo.get_template(template_id):
            raise NotFoundError(f"Plantilla {template_id} no encontrada")
        return self.repo.list_fields(template_id)

    def mapped_box_ids(self, template_id: int) -> List[int]:
        out: List[int] = []
        for f in self.list_fields(template_id):
            out.extend(f.box_ids)
        return out

    def resolve(self, template_id: int) -> List[ResolvedField]:
        """Campos (por id) con la geometría de cada box, ordenados por (página, id)."""
        with self.locks.hold(template_id):
            fields = self.list_fields(template_id)
            boxes = {b.id: b for b in self.repo.list_boxes(template_id)}

        resolved = []
        for f in fields:
            fboxes = [boxes[i] for i in f.box_ids if i in boxes]
            fboxes.sort(key=lambda b: (b.page, b.id))
            resolved.append(ResolvedField(
                id=f.id,
                name=f.name,
                label=f.label,
                value_type=f.value_type,
                font_size=f.font_size,
                boxes=[
                    ResolvedBox(id=b.id, page=b.page, x=b.x, y=b.y, width=b.width, height=b.height)
                    for b in fboxes
                ],
            ))
        return resolved

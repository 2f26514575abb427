# REPO
import itertools
import threading
from datetime import datetime
from typing import Dict, List, Optional, Protocol, Sequence, Tuple, runtime_checkable
from .schemas import Box, Rect, Template, TemplateField


@runtime_checkable
class TemplateRepository(Protocol):
    """Contrato del almacenamiento de plantillas, boxes y campos.

    Las implementaciones no validan reglas de negocio (eso lo hacen
    BoxStore y FieldComposer); sólo guardan y devuelven registros.
    - delete_template borra en cascada boxes y campos.
    - add_boxes es atómico: o se crean todos o ninguno.
    - box_ids de un campo conserva el orden de inserción.
    """

    def add_template(self, name: str, filename: str, file_path: str, page_count: int) -> Template: ...

    def get_template(self, template_id: int) -> Optional[Template]: ...

    def list_templates(self) -> List[Template]: ...

    def update_template(self, template: Template) -> None: ...

    def delete_template(self, template_id: int) -> None: ...

    def add_boxes(self, template_id: int, items: Sequence[Tuple[int, Rect]]) -> List[Box]: ...

    def get_box(self, box_id: int) -> Optional[Box]: ...

    def list_boxes(self, template_id: int, page: Optional[int] = None) -> List[Box]: ...

    def update_box(self, box: Box) -> None: ...

    def delete_box(self, box_id: int) -> None: ...

    def add_field(self, template_id: int, name: str, label: str, value_type: str,
                  font_size: float, box_ids: Sequence[int]) -> TemplateField: ...

    def get_field(self, field_id: int) -> Optional[TemplateField]: ...

    def list_fields(self, template_id: int) -> List[TemplateField]: ...

    def update_field(self, field: TemplateField) -> None: ...

    def delete_field(self, field_id: int) -> None: ...

    def field_id_for_box(self, box_id: int) -> Optional[int]: ...


class InMemoryTemplateRepository:
    """Repositorio en memoria. Es el backend por defecto y el de los tests."""

    def __init__(self):
        self._lock = threading.Lock()
        self._template_ids = itertools.count(1)
        self._box_ids = itertools.count(1)
        self._field_ids = itertools.count(1)
        self._templates: Dict[int, Template] = {}
        self._boxes: Dict[int, Box] = {}
        self._fields: Dict[int, TemplateField] = {}

    # ---------- plantillas ----------
    def add_template(self, name: str, filename: str, file_path: str, page_count: int) -> Template:
        with self._lock:
            tpl = Template(
                id=next(self._template_ids),
                name=name,
                filename=filename,
                file_path=file_path,
                page_count=page_count,
                created_at=datetime.now(),
            )
            self._templates[tpl.id] = tpl
            return tpl.model_copy()

    def get_template(self, template_id: int) -> Optional[Template]:
        tpl = self._templates.get(template_id)
        return tpl.model_copy() if tpl else None

    def list_templates(self) -> List[Template]:
        with self._lock:
            items = sorted(self._templates.values(), key=lambda t: (t.created_at, t.id), reverse=True)
            return [t.model_copy() for t in items]

    def update_template(self, template: Template) -> None:
        with self._lock:
            if template.id in self._templates:
                self._templates[template.id] = template.model_copy()

    def delete_template(self, template_id: int) -> None:
        with self._lock:
            self._templates.pop(template_id, None)
            for fid in [f.id for f in self._fields.values() if f.template_id == template_id]:
                del self._fields[fid]
            for bid in [b.id for b in self._boxes.values() if b.template_id == template_id]:
                del self._boxes[bid]

    # ---------- boxes ----------
    def add_boxes(self, template_id: int, items: Sequence[Tuple[int, Rect]]) -> List[Box]:
        with self._lock:
            created = [
                Box(
                    id=next(self._box_ids),
                    template_id=template_id,
                    page=page,
                    x=rect.x,
                    y=rect.y,
                    width=rect.width,
                    height=rect.height,
                )
                for page, rect in items
            ]
            for box in created:
                self._boxes[box.id] = box
            return [b.model_copy() for b in created]

    def get_box(self, box_id: int) -> Optional[Box]:
        box = self._boxes.get(box_id)
        return box.model_copy() if box else None

    def list_boxes(self, template_id: int, page: Optional[int] = None) -> List[Box]:
        with self._lock:
            items = [
                b for b in self._boxes.values()
                if b.template_id == template_id and (page is None or b.page == page)
            ]
            items.sort(key=lambda b: (b.page, b.id))
            return [b.model_copy() for b in items]

    def update_box(self, box: Box) -> None:
        with self._lock:
            if box.id in self._boxes:
                self._boxes[box.id] = box.model_copy()

    def delete_box(self, box_id: int) -> None:
        with self._lock:
            self._boxes.pop(box_id, None)

    # ---------- campos ----------
    def add_field(self, template_id: int, name: str, label: str, value_type: str,
                  font_size: float, box_ids: Sequence[int]) -> TemplateField:
        with self._lock:
            field = TemplateField(
                id=next(self._field_ids),
                template_id=template_id,
                name=name,
                label=label,
                value_type=value_type,
                font_size=font_size,
                box_ids=list(box_ids),
            )
            self._fields[field.id] = field
            return field.model_copy(deep=True)

    def get_field(self, field_id: int) -> Optional[TemplateField]:
        field = self._fields.get(field_id)
        return field.model_copy(deep=True) if field else None

    def list_fields(self, template_id: int) -> List[TemplateField]:
        with self._lock:
            items = sorted(
                (f for f in self._fields.values() if f.template_id == template_id),
                key=lambda f: f.id,
            )
            return [f.model_copy(deep=True) for f in items]

    def update_field(self, field: TemplateField) -> None:
        with self._lock:
            if field.id in self._fields:
                self._fields[field.id] = field.model_copy(deep=True)

    def delete_field(self, field_id: int) -> None:
        with self._lock:
            self._fields.pop(field_id, None)

    def field_id_for_box(self, box_id: int) -> Optional[int]:
        with self._lock:
            for f in self._fields.values():
                if box_id in f.box_ids:
                    return f.id
        return None

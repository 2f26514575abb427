import logging
import math
from typing import List, Optional, Sequence, Tuple
from .errors import ConflictError, NotFoundError, ValidationError
from .locks import TemplateLocks
from .repo import TemplateRepository
from .schemas import Box, Rect, Template

logger = logging.getLogger(__name__)


def _finite(value: float, what: str) -> float:
    v = float(value)
    if not math.isfinite(v):
        raise ValidationError(f"{what} debe ser un número finito")
    return v


class BoxStore:
    """Colección de boxes por plantilla, siempre en espacio documento.

    - La página de un box no cambia después de creado.
    - La geometría se puede mover/redimensionar hasta que un campo lo referencia.
    - Borrar un box referenciado por un campo se rechaza (ConflictError).
    """

    def __init__(self, repo: TemplateRepository, locks: TemplateLocks):
        self.repo = repo
        self.locks = locks

    # ---------- helpers ----------
    def _template(self, template_id: int) -> Template:
        tpl = self.repo.get_template(template_id)
        if not tpl:
            raise NotFoundError(f"Plantilla {template_id} no encontrada")
        return tpl

    def _box(self, box_id: int) -> Box:
        box = self.repo.get_box(box_id)
        if not box:
            raise NotFoundError(f"Box {box_id} no encontrado")
        return box

    def _ensure_unmapped(self, box: Box, action: str) -> None:
        field_id = self.repo.field_id_for_box(box.id)
        if field_id is not None:
            raise ConflictError(
                f"No se puede {action} el box {box.id}: pertenece al campo {field_id}")

    def _normalize(self, tpl: Template, page: int, rect: Rect, where: str = "") -> Tuple[int, Rect]:
        prefix = f"{where}: " if where else ""
        page = int(page)
        if page < 1 or page > tpl.page_count:
            raise ValidationError(
                f"{prefix}página {page} fuera de rango (1..{tpl.page_count})")

        x = _finite(rect.x, f"{prefix}x")
        y = _finite(rect.y, f"{prefix}y")
        width = _finite(rect.width, f"{prefix}width")
        height = _finite(rect.height, f"{prefix}height")
        if tpl.uniform_height is not None:
            height = tpl.uniform_height

        if width <= 0:
            raise ValidationError(f"{prefix}width debe ser > 0 (recibido {width})")
        if height <= 0:
            raise ValidationError(f"{prefix}height debe ser > 0 (recibido {height})")

        return page, Rect(x=max(0.0, x), y=max(0.0, y), width=width, height=height)

    # ---------- creación ----------
    def create(self, template_id: int, page: int, rect: Rect) -> Box:
        return self.bulk_create(template_id, [(page, rect)])[0]

    def bulk_create(self, template_id: int, items: Sequence[Tuple[int, Rect]]) -> List[Box]:
        """Crea todos los boxes o ninguno. Devuelve los boxes en el orden de entrada."""
        if not items:
            raise ValidationError("Se requiere al menos un box")

        with self.locks.hold(template_id):
            tpl = self._template(template_id)
            # validar todo antes de escribir nada
            normalized = [
                self._normalize(tpl, page, rect, where=f"boxes[{i}]" if len(items) > 1 else "")
                for i, (page, rect) in enumerate(items)
            ]
            created = self.repo.add_boxes(template_id, normalized)

        logger.info("Plantilla %s: %d boxes creados", template_id, len(created))
        return created

    # ---------- altura uniforme ----------
    def set_uniform_height(self, template_id: int, height: Optional[float]) -> Template:
        """Activa (height > 0) o desactiva (None) la altura uniforme de los boxes nuevos."""
        if height is not None:
            height = _finite(height, "height")
            if height <= 0:
                raise ValidationError(f"height debe ser > 0 (recibido {height})")

        with self.locks.hold(template_id):
            tpl = self._template(template_id)
            tpl.uniform_height = height
            self.repo.update_template(tpl)
        return tpl

    def apply_uniform_height(self, template_id: int) -> List[Box]:
        """Aplica la altura uniforme a los boxes existentes no mapeados."""
        with self.locks.hold(template_id):
            tpl = self._template(template_id)
            if tpl.uniform_height is None:
                raise ValidationError("La plantilla no tiene altura uniforme activa")

            updated = []
            for box in self.repo.list_boxes(template_id):
                if self.repo.field_id_for_box(box.id) is not None:
                    continue
                if box.height == tpl.uniform_height:
                    continue
                box.height = tpl.uniform_height
                self.repo.update_box(box)
                updated.append(box)

        logger.info("Plantilla %s: altura %s aplicada a %d boxes",
                    template_id, tpl.uniform_height, len(updated))
        return updated

    # ---------- mutación ----------
    def move(self, box_id: int, x: float, y: float) -> Box:
        x = _finite(x, "x")
        y = _finite(y, "y")
        template_id = self._box(box_id).template_id
        with self.locks.hold(template_id):
            box = self._box(box_id)
            self._ensure_unmapped(box, "mover")
            box.x = max(0.0, x)
            box.y = max(0.0, y)
            self.repo.update_box(box)
        return box

    def resize(self, box_id: int, width: float, height: float) -> Box:
        width = _finite(width, "width")
        height = _finite(height, "height")
        if width <= 0 or height <= 0:
            raise ValidationError(f"width y height deben ser > 0 (recibido {width}x{height})")

        template_id = self._box(box_id).template_id
        with self.locks.hold(template_id):
            box = self._box(box_id)
            self._ensure_unmapped(box, "redimensionar")
            box.width = width
            box.height = height
            self.repo.update_box(box)
        return box

    def delete(self, box_id: int) -> None:
        template_id = self._box(box_id).template_id
        with self.locks.hold(template_id):
            box = self._box(box_id)
            self._ensure_unmapped(box, "borrar")
            self.repo.delete_box(box.id)
        logger.info("Box %s borrado (plantilla %s)", box_id, template_id)

    # ---------- consulta ----------
    def get(self, box_id: int) -> Box:
        return self._box(box_id)

    def list_by_template(self, template_id: int) -> List[Box]:
        self._template(template_id)
        return self.repo.list_boxes(template_id)

    def list_by_page(self, template_id: int, page: int) -> List[Box]:
        self._template(template_id)
        return self.repo.list_boxes(template_id, page=page)

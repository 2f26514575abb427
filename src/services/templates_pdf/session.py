"""
Adaptadores de presentación del editor de boxes.

`EditorSession` reemplaza el estado global de la UI (página, zoom,
selección) por un objeto explícito; `BoxGesture` es la máquina de estados
idle/drawing/dragging que traduce eventos de puntero en espacio dispositivo
a operaciones de BoxStore. Ninguno de los dos depende de un toolkit gráfico.
"""
from enum import Enum
from typing import List, Optional
from . import transforms
from .boxes import BoxStore
from .composer import FieldComposer
from .errors import ValidationError
from .schemas import Box, Rect, TemplateField

MIN_ZOOM = 0.25
MAX_ZOOM = 4.0
DEFAULT_BOX_HEIGHT = 20.0
# ancho mínimo (espacio documento) para que un trazo se convierta en box
MIN_BOX_WIDTH = 10.0


class EditorSession:
    """Vista de una plantilla en edición. Una instancia por editor."""

    def __init__(self, template_id: int, page_count: int, boxes: BoxStore, fields: FieldComposer,
                 zoom: float = 1.0, box_height: float = DEFAULT_BOX_HEIGHT):
        self.template_id = template_id
        self.page_count = page_count
        self.boxes = boxes
        self.fields = fields
        self.page = 1
        self.zoom = 1.0
        self.set_zoom(zoom)
        self.box_height = box_height
        self.selection: List[int] = []

    # ---------- navegación ----------
    def go_to(self, page: int) -> int:
        if page < 1 or page > self.page_count:
            raise ValidationError(f"Página {page} fuera de rango (1..{self.page_count})")
        self.page = page
        return self.page

    def next_page(self) -> int:
        if self.page < self.page_count:
            self.page += 1
        return self.page

    def prev_page(self) -> int:
        if self.page > 1:
            self.page -= 1
        return self.page

    def set_zoom(self, zoom: float) -> float:
        if not (MIN_ZOOM <= zoom <= MAX_ZOOM):
            raise ValidationError(f"zoom debe estar entre {MIN_ZOOM} y {MAX_ZOOM} (recibido {zoom})")
        self.zoom = float(zoom)
        return self.zoom

    def visible_boxes(self) -> List[Box]:
        return self.boxes.list_by_page(self.template_id, self.page)

    def device_rect(self, box: Box) -> Rect:
        """Rectángulo del box en píxeles al zoom actual."""
        return transforms.rect_to_device(box.rect(), self.zoom)

    # ---------- selección ----------
    def toggle_selection(self, box_id: int) -> List[int]:
        if box_id in self.selection:
            self.selection.remove(box_id)
        else:
            self.fields.select_for_field(box_id)
            self.selection.append(box_id)
        return list(self.selection)

    def clear_selection(self) -> None:
        self.selection = []

    def submit_field(self, name: str, label: str, value_type: str = "text",
                     font_size: float = 10) -> TemplateField:
        """Crea el campo con la selección actual (el modal de "crear campo")."""
        field = self.fields.create_field(
            self.template_id, name, label, value_type, font_size, self.selection)
        self.clear_selection()
        return field


class GestureState(str, Enum):
    IDLE = "idle"
    DRAWING = "drawing"
    DRAGGING = "dragging"


class BoxGesture:
    """Máquina de estados de dibujo/arrastre de boxes.

    Los eventos llegan en espacio dispositivo relativo al origen de la página
    renderizada; cada evento se convierte con el zoom vigente de la sesión.
    """

    def __init__(self, session: EditorSession):
        self.session = session
        self.state = GestureState.IDLE
        self._start = (0.0, 0.0)
        self._box_id: Optional[int] = None
        self._offset = (0.0, 0.0)

    def _doc(self, px: float, py: float):
        return transforms.to_document((px, py), self.session.zoom)

    def press(self, px: float, py: float, box_id: Optional[int] = None) -> Optional[Box]:
        if self.state != GestureState.IDLE:
            return None
        x, y = self._doc(px, py)
        if box_id is None:
            self._start = (x, y)
            self.state = GestureState.DRAWING
            return None

        box = self.session.boxes.get(box_id)
        self._box_id = box.id
        self._offset = (x - box.x, y - box.y)
        self.state = GestureState.DRAGGING
        return None

    def _drag(self, px: float, py: float) -> Box:
        x, y = self._doc(px, py)
        return self.session.boxes.move(self._box_id, x - self._offset[0], y - self._offset[1])

    def move(self, px: float, py: float) -> Optional[Box]:
        if self.state != GestureState.DRAGGING:
            return None
        return self._drag(px, py)

    def release(self, px: float, py: float) -> Optional[Box]:
        state, self.state = self.state, GestureState.IDLE
        if state == GestureState.DRAGGING:
            box = self._drag(px, py)
            self._box_id = None
            return box
        if state != GestureState.DRAWING:
            return None

        end_x, _ = self._doc(px, py)
        start_x, start_y = self._start
        width = abs(end_x - start_x)
        if width <= MIN_BOX_WIDTH:
            return None
        rect = Rect(x=min(start_x, end_x), y=start_y, width=width, height=self.session.box_height)
        return self.session.boxes.create(self.session.template_id, self.session.page, rect)

    def cancel(self) -> None:
        self.state = GestureState.IDLE
        self._box_id = None

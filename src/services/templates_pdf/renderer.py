# src/services/templates_pdf/renderer.py
import logging
from typing import Callable, Dict, List, Protocol, Sequence, runtime_checkable
from .errors import DocumentError
from .schemas import DrawInstruction, ResolvedBox, ResolvedField

logger = logging.getLogger(__name__)

# alto de mayúscula / em aproximado para Helvetica; ajustar si se cambia la fuente
CAP_HEIGHT_RATIO = 0.7

TextWidth = Callable[[str, float], float]


@runtime_checkable
class PageCanvas(Protocol):
    """Documento de salida sobre el que se dibuja el texto.

    Coordenadas en espacio documento: origen arriba-izquierda, y hacia abajo,
    `(x, y)` es el origen de la línea base del texto.
    """

    page_count: int

    def text_width(self, text: str, size: float) -> float: ...

    def draw_text(self, page: int, x: float, y: float, text: str, size: float) -> None: ...

    def to_bytes(self) -> bytes: ...


def place_text(box: ResolvedBox, text_width: float, font_size: float):
    """Posición (x, y de línea base) del texto centrado en el box.

    - x centrado, pero nunca antes de box.x (el texto largo desborda a la derecha).
    - línea base a (alto - fontSize*0.7)/2 por encima del borde inferior del box.
    """
    x = max(box.x, box.x + (box.width - text_width) / 2)
    bottom = box.y + box.height
    y = bottom - (box.height - font_size * CAP_HEIGHT_RATIO) / 2
    return x, y


class FillRenderer:
    """Expande cada campo en sus boxes y genera una instrucción de texto por box."""

    def plan(self, fields: Sequence[ResolvedField], values: Dict[str, str],
             text_width: TextWidth) -> List[DrawInstruction]:
        out: List[DrawInstruction] = []
        for field in fields:
            value = values.get(field.name)
            if value is None or not str(value).strip():
                continue
            value = str(value)
            width = float(text_width(value, field.font_size))
            for box in field.boxes:
                x, y = place_text(box, width, field.font_size)
                out.append(DrawInstruction(
                    page=box.page,
                    x=x,
                    y=y,
                    text=value,
                    font_size=field.font_size,
                    field_name=field.name,
                    box_id=box.id,
                ))
        return out

    def check_pages(self, instructions: Sequence[DrawInstruction], page_count: int) -> None:
        for ins in instructions:
            if ins.page < 1 or ins.page > page_count:
                raise DocumentError(
                    f"El campo '{ins.field_name}' (box {ins.box_id}) apunta a la página "
                    f"{ins.page}, pero el documento tiene {page_count}")

    def render(self, fields: Sequence[ResolvedField], values: Dict[str, str],
               canvas: PageCanvas) -> List[DrawInstruction]:
        """Dibuja todo o nada: las páginas se validan antes del primer trazo."""
        instructions = self.plan(fields, values, canvas.text_width)
        self.check_pages(instructions, canvas.page_count)

        for ins in instructions:
            canvas.draw_text(ins.page, ins.x, ins.y, ins.text, ins.font_size)

        logger.info("Relleno: %d instrucciones de texto en %d campos",
                    len(instructions), len({i.field_name for i in instructions}))
        return instructions

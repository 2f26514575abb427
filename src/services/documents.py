import fitz
import os
from typing import Tuple
from src.services.templates_pdf.errors import DocumentError, ValidationError

DEFAULT_FONT = "helv"


def open_pdf(data: bytes) -> "fitz.Document":
    """Abre un PDF desde bytes; cualquier falla de lectura es DocumentError."""
    try:
        doc = fitz.open(stream=data, filetype="pdf")
    except Exception as e:
        raise DocumentError(f"PDF ilegible: {str(e)}")
    if not doc.is_pdf or doc.page_count < 1:
        doc.close()
        raise DocumentError("El archivo no es un PDF válido o no tiene páginas")
    return doc


def read_bytes(file_path: str) -> bytes:
    if not os.path.exists(file_path):
        raise DocumentError(f"Archivo PDF no encontrado: {os.path.basename(file_path)}")
    with open(file_path, "rb") as fh:
        return fh.read()


def render_page(file_path: str, page: int, zoom: float) -> Tuple[bytes, int, int]:
    """Rasteriza una página a PNG.

    Devuelve (png, ancho_px, alto_px): el tamaño natural de la página a ese
    zoom, que es el espacio dispositivo sobre el que se dibujan los boxes.
    """
    if zoom <= 0:
        raise ValidationError(f"zoom debe ser > 0 (recibido {zoom})")
    with open_pdf(read_bytes(file_path)) as doc:
        if page < 1 or page > doc.page_count:
            raise DocumentError(f"Página {page} fuera de rango (1..{doc.page_count})")
        pix = doc[page - 1].get_pixmap(matrix=fitz.Matrix(zoom, zoom))
        return pix.tobytes("png"), pix.width, pix.height


class PdfCanvas:
    """PageCanvas sobre PyMuPDF. Conserva el contenido del PDF original.

    Los boxes viven en el espacio de la página tal como se ve (el mismo del
    raster de `render_page`, con /Rotate aplicado), origen arriba-izquierda y
    y hacia abajo. PyMuPDF escribe en la página sin rotar, así que el punto
    pasa por `derotation_matrix` y el texto se rota con la página.
    """

    def __init__(self, data: bytes, fontname: str = DEFAULT_FONT, color=(0, 0, 0)):
        self.doc = open_pdf(data)
        self.fontname = fontname
        self.color = color

    @property
    def page_count(self) -> int:
        return self.doc.page_count

    def text_width(self, text: str, size: float) -> float:
        # el ancho a lo largo de la línea base no depende de la rotación
        return fitz.get_text_length(text, fontname=self.fontname, fontsize=size)

    def draw_text(self, page: int, x: float, y: float, text: str, size: float) -> None:
        pdf_page = self.doc[page - 1]
        pdf_page.insert_text(
            fitz.Point(x, y) * pdf_page.derotation_matrix,
            text,
            fontsize=size,
            fontname=self.fontname,
            color=self.color,
            rotate=pdf_page.rotation,
        )

    def to_bytes(self) -> bytes:
        return self.doc.tobytes(garbage=3, deflate=True)

    def close(self) -> None:
        self.doc.close()

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

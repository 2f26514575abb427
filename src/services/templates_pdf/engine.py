# src/services/templates_pdf/engine.py
import logging
import os
from datetime import datetime, timedelta
from typing import BinaryIO, Dict, List, Optional
from src.services import documents
from src.services.converter import FormatConverter
from src.services.uploads import Uploads
from .boxes import BoxStore
from .composer import FieldComposer
from .errors import DocumentError, NotFoundError, ValidationError
from .locks import TemplateLocks
from .renderer import FillRenderer
from .repo import TemplateRepository
from .schemas import DrawInstruction, Template
from .session import EditorSession

logger = logging.getLogger(__name__)


class TemplateEngine:
    """Punto de entrada de los controllers: plantillas, boxes, campos y exportación."""

    def __init__(self, repo: TemplateRepository, uploads: Uploads,
                 converter: Optional[FormatConverter] = None, fontname: str = documents.DEFAULT_FONT):
        self.repo = repo
        self.uploads = uploads
        self.converter = converter or FormatConverter()
        self.fontname = fontname
        self.locks = TemplateLocks()
        self.boxes = BoxStore(repo, self.locks)
        self.fields = FieldComposer(repo, self.locks)
        self.renderer = FillRenderer()

    # ---------- plantillas ----------
    def upload_template(self, filename: str, stream: BinaryIO) -> Template:
        path, content = self.uploads.save_pdf(filename, stream)
        try:
            with documents.open_pdf(content) as doc:
                pages = doc.page_count
        except DocumentError:
            self.uploads.remove_file(path)
            raise

        name = os.path.splitext(os.path.basename(filename))[0]
        tpl = self.repo.add_template(name=name, filename=filename, file_path=path, page_count=pages)
        logger.info("Plantilla %s subida: %s (%d páginas)", tpl.id, filename, pages)
        return tpl

    def get_template(self, template_id: int) -> Template:
        tpl = self.repo.get_template(template_id)
        if not tpl:
            raise NotFoundError(f"Plantilla {template_id} no encontrada")
        return tpl

    def list_templates(self) -> List[Template]:
        return self.repo.list_templates()

    def rename_template(self, template_id: int, name: str) -> Template:
        name = (name or "").strip()
        if not name:
            raise ValidationError("name es requerido")
        with self.locks.hold(template_id):
            tpl = self.get_template(template_id)
            tpl.name = name
            self.repo.update_template(tpl)
        return tpl

    def delete_template(self, template_id: int) -> None:
        """Borra la plantilla con sus boxes y campos; el archivo se borra best-effort."""
        with self.locks.hold(template_id):
            tpl = self.get_template(template_id)
            # primero la fila: si falla, el PDF sigue en disco
            self.repo.delete_template(template_id)
            self.uploads.remove_file(tpl.file_path)
        self.locks.discard(template_id)
        logger.info("Plantilla %s borrada", template_id)

    def purge_older_than(self, days: int, now: Optional[datetime] = None) -> int:
        if days < 0:
            raise ValidationError("days debe ser >= 0")
        limit = (now or datetime.now()) - timedelta(days=days)
        old = [t.id for t in self.repo.list_templates() if t.created_at < limit]
        for template_id in old:
            self.delete_template(template_id)
        return len(old)

    def open_session(self, template_id: int, zoom: float = 1.0) -> EditorSession:
        tpl = self.get_template(template_id)
        return EditorSession(tpl.id, tpl.page_count, self.boxes, self.fields, zoom=zoom)

    def template_pdf(self, template_id: int) -> bytes:
        return documents.read_bytes(self.get_template(template_id).file_path)

    def page_image(self, template_id: int, page: int, zoom: float):
        return documents.render_page(self.get_template(template_id).file_path, page, zoom)

    # ---------- exportación ----------
    def preview(self, template_id: int, values: Dict[str, str]) -> List[DrawInstruction]:
        """Instrucciones de dibujo sin generar el PDF."""
        self.get_template(template_id)
        fields = self.fields.resolve(template_id)
        with documents.PdfCanvas(self.template_pdf(template_id), fontname=self.fontname) as canvas:
            instructions = self.renderer.plan(fields, values, canvas.text_width)
            self.renderer.check_pages(instructions, canvas.page_count)
        return instructions

    def fill_pdf(self, template_id: int, values: Dict[str, str]) -> bytes:
        """Genera el PDF relleno completo o falla; nunca devuelve un PDF a medias."""
        self.get_template(template_id)
        fields = self.fields.resolve(template_id)
        source = self.template_pdf(template_id)
        with documents.PdfCanvas(source, fontname=self.fontname) as canvas:
            self.renderer.render(fields, values, canvas)
            return canvas.to_bytes()

    def fill_as(self, template_id: int, values: Dict[str, str], target: str) -> bytes:
        if target == "pdf":
            return self.fill_pdf(template_id, values)
        return self.converter.convert(self.fill_pdf(template_id, values), target)

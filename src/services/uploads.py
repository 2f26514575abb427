import logging
import os
import time
import uuid
from typing import BinaryIO, Tuple
from src.services.templates_pdf.errors import ValidationError

logger = logging.getLogger(__name__)


class Uploads:
    """Servicio para guardar y borrar los PDF subidos."""

    def __init__(self, upload_dir: str):
        self.upload_dir = upload_dir

    def save_pdf(self, filename: str, stream: BinaryIO) -> Tuple[str, bytes]:
        """
        Valida que el archivo sea PDF y lo guarda en el directorio de uploads.
        Devuelve (ruta, contenido).
        """
        if not filename or not filename.lower().endswith(".pdf"):
            raise ValidationError("El archivo debe ser un PDF")

        content = stream.read()
        if not content:
            raise ValidationError("El archivo está vacío")

        os.makedirs(self.upload_dir, exist_ok=True)
        path = os.path.join(self.upload_dir, f"{uuid.uuid4().hex}.pdf")
        with open(path, "wb") as fh:
            fh.write(content)
        return path, content

    def remove_file(self, path: str) -> None:
        """
        Borra un archivo subido con hasta 3 reintentos. Si ya no existe,
        lo registra y sigue.
        """
        for attempt in range(3):
            try:
                os.unlink(path)
                return
            except FileNotFoundError:
                logger.warning("Archivo %s no encontrado, se continúa con el borrado", path)
                return
            except PermissionError:
                time.sleep(0.1 * (attempt + 1))
            except OSError as e:
                logger.warning("No se pudo borrar %s: %s", path, e)
                return
        logger.warning("No se pudo borrar %s tras 3 intentos", path)

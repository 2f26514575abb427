# src/services/converter.py
import logging
import os
import shutil
import subprocess
import tempfile
from src.services.templates_pdf.errors import ConversionError, ValidationError

logger = logging.getLogger(__name__)

# formato destino -> (extensión, filtro de importación de LibreOffice)
TARGETS = {
    "docx": ("docx", "writer_pdf_import"),
    "odt": ("odt", "writer_pdf_import"),
}

MEDIA_TYPES = {
    "pdf": "application/pdf",
    "docx": "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "odt": "application/vnd.oasis.opendocument.text",
}


class FormatConverter:
    """Convierte el PDF relleno a otro formato con LibreOffice en modo headless."""

    def __init__(self, soffice_bin: str = "soffice", timeout: float = 120):
        self.soffice_bin = soffice_bin
        self.timeout = timeout

    def available(self) -> bool:
        return shutil.which(self.soffice_bin) is not None

    def convert(self, pdf_bytes: bytes, target: str = "docx") -> bytes:
        if target not in TARGETS:
            raise ValidationError(
                f"Formato destino no soportado: {target!r} (permitidos: {', '.join(TARGETS)})")
        if not self.available():
            raise ConversionError(
                f"LibreOffice ('{self.soffice_bin}') no está instalado o no está en el PATH")

        ext, infilter = TARGETS[target]
        tmpdir = tempfile.mkdtemp(prefix="docsmapper_")
        try:
            src = os.path.join(tmpdir, "filled.pdf")
            with open(src, "wb") as fh:
                fh.write(pdf_bytes)

            cmd = [
                self.soffice_bin, "--headless",
                f"--infilter={infilter}",
                "--convert-to", ext,
                "--outdir", tmpdir,
                src,
            ]
            try:
                subprocess.run(cmd, check=True, stdout=subprocess.PIPE,
                               stderr=subprocess.PIPE, timeout=self.timeout)
            except subprocess.TimeoutExpired:
                raise ConversionError(f"LibreOffice no terminó en {self.timeout}s")
            except subprocess.CalledProcessError as e:
                stderr = (e.stderr or b"").decode("utf-8", "replace").strip()
                raise ConversionError(f"LibreOffice falló (código {e.returncode}): {stderr}")
            except OSError as e:
                raise ConversionError(f"No se pudo ejecutar LibreOffice: {str(e)}")

            out = os.path.join(tmpdir, f"filled.{ext}")
            if not os.path.exists(out):
                raise ConversionError("LibreOffice no generó el archivo convertido")
            with open(out, "rb") as fh:
                data = fh.read()
            logger.info("Conversión pdf -> %s: %d bytes", ext, len(data))
            return data
        finally:
            shutil.rmtree(tmpdir, ignore_errors=True)

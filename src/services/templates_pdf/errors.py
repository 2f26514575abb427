# src/services/templates_pdf/errors.py
from typing import Any, Dict


class DocsMapperError(Exception):
    """Error de dominio con un tipo discriminable y un mensaje legible."""

    kind = "error"
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> Dict[str, Any]:
        return {"error": self.kind, "message": self.message}


class ValidationError(DocsMapperError):
    """Entrada mal formada o incompleta. Nunca se reintenta."""

    kind = "validation_error"
    status_code = 400


class ConflictError(DocsMapperError):
    """Violación de unicidad o exclusividad (box ya mapeado, box referenciado)."""

    kind = "conflict"
    status_code = 409


class NotFoundError(DocsMapperError):
    kind = "not_found"
    status_code = 404


class DocumentError(DocsMapperError):
    """PDF ilegible o página fuera de rango contra el documento real."""

    kind = "document_error"
    status_code = 422


class ConversionError(DocsMapperError):
    """El conversor externo (LibreOffice) no está disponible o falló."""

    kind = "conversion_error"
    status_code = 502

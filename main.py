import logging
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from src.config import CORS_ORIGINS, LOG_LEVEL
from src.controllers.boxes_controller import router as boxes_router
from src.controllers.export_controller import router as export_router
from src.controllers.fields_controller import router as fields_router
from src.controllers.templates_controller import router as templates_router
from src.services.templates_pdf.errors import DocsMapperError, ValidationError

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="DocsMapper API", version="1.0.0")

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Incluir routers
app.include_router(templates_router)
app.include_router(boxes_router)
app.include_router(fields_router)
app.include_router(export_router)


@app.exception_handler(DocsMapperError)
async def docsmapper_error_handler(request: Request, exc: DocsMapperError):
    if exc.status_code >= 500:
        logger.error("%s %s: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    # mismo formato que los errores de dominio; el status sigue siendo 422
    errors = exc.errors()
    message = "; ".join(
        f"{'.'.join(str(p) for p in e.get('loc', ()))}: {e.get('msg', '')}" for e in errors)
    content = ValidationError(message or "Request inválido").to_dict()
    content["detail"] = jsonable_encoder(errors)
    return JSONResponse(status_code=422, content=content)


@app.get("/")
async def root():
    return {
        "message": "DocsMapper API",
        "endpoints": {
            # Plantillas
            "POST /api/v1/templates/upload": "Subir PDF",
            "GET /api/v1/templates": "Lista plantillas",
            "GET /api/v1/templates/{id}": "Obtener plantilla",
            "DELETE /api/v1/templates/{id}": "Eliminar plantilla (boxes y campos incluidos)",
            # Boxes
            "POST /api/v1/boxes": "Alta masiva de boxes",
            "GET /api/v1/boxes/{templateId}": "Boxes de una plantilla",
            # Campos
            "POST /api/v1/mappings": "Crear campo",
            "GET /api/v1/mappings/{templateId}/details": "Campos con geometría",
            # Exportación
            "POST /api/v1/export/pdf": "PDF relleno",
            "POST /api/v1/export/docx": "DOCX relleno",
        },
    }


@app.get("/health")
async def health_check():
    return {"status": "healthy", "service": "DocsMapper"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)

# config.py
import logging
import os
from functools import lru_cache
from dotenv import load_dotenv
load_dotenv()

logger = logging.getLogger(__name__)

UPLOAD_DIR = os.getenv("UPLOAD_DIR", "uploads")
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "memory").lower()
SOFFICE_BIN = os.getenv("SOFFICE_BIN", "soffice")
CONVERSION_TIMEOUT = float(os.getenv("CONVERSION_TIMEOUT", "120"))
FONT_NAME = os.getenv("FONT_NAME", "helv")
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "http://localhost:5173").split(",") if o.strip()]


def get_db_connection_string():
    import pyodbc

    # Para SQL Server con instancia nombrada
    server = os.getenv('DB_SERVER', 'localhost')
    database = os.getenv('DB_NAME', 'DocsMapper')
    username = os.getenv('DB_USER')
    password = os.getenv('DB_PASSWORD')

    possible_drivers = [
        "ODBC Driver 18 for SQL Server",
        "ODBC Driver 17 for SQL Server",
        "ODBC Driver 13 for SQL Server",
        "SQL Server Native Client 11.0",
        "SQL Server"
    ]

    available_drivers = [d for d in pyodbc.drivers() if any(
        pd in d for pd in possible_drivers)]

    if not available_drivers:
        raise RuntimeError(
            "No se encontraron drivers ODBC para SQL Server. "
            "Instalá 'ODBC Driver 18 for SQL Server' o usá STORAGE_BACKEND=memory."
        )

    driver = available_drivers[0]
    logger.info("Usando driver ODBC: %s", driver)
    # Opción 1: Si usas autenticación de Windows
    if not username and not password:
        return (
            f"DRIVER={{{driver}}};"
            f"SERVER={server};"
            f"DATABASE={database};"
            "Trusted_Connection=yes;"
            "TrustServerCertificate=yes;"
        )

    # Opción 2: Con usuario/contraseña
    return (
        f"DRIVER={{{driver}}};"
        f"SERVER={server};"
        f"DATABASE={database};"
        f"UID={username};"
        f"PWD={password};"
        "TrustServerCertificate=yes;"
    )


def create_repository():
    if STORAGE_BACKEND == "sql":
        from src.services.templates_pdf.repo_sql import SQLTemplateRepository
        repo = SQLTemplateRepository(get_db_connection_string())
        repo.ensure_schema()
        return repo
    if STORAGE_BACKEND != "memory":
        raise RuntimeError(f"STORAGE_BACKEND inválido: {STORAGE_BACKEND!r} (memory | sql)")
    from src.services.templates_pdf.repo import InMemoryTemplateRepository
    return InMemoryTemplateRepository()


def create_template_engine():
    from src.services.converter import FormatConverter
    from src.services.templates_pdf.engine import TemplateEngine
    from src.services.uploads import Uploads
    return TemplateEngine(
        repo=create_repository(),
        uploads=Uploads(UPLOAD_DIR),
        converter=FormatConverter(SOFFICE_BIN, timeout=CONVERSION_TIMEOUT),
        fontname=FONT_NAME,
    )


@lru_cache(maxsize=1)
def get_template_engine():
    return create_template_engine()

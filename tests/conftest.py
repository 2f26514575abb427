import io

import fitz
import pytest
from fastapi.testclient import TestClient

from main import app
from src.config import get_template_engine
from src.services.converter import FormatConverter
from src.services.templates_pdf.engine import TemplateEngine
from src.services.templates_pdf.repo import InMemoryTemplateRepository
from src.services.uploads import Uploads

MISSING_SOFFICE = "docsmapper-test-no-soffice"


def make_pdf(pages: int = 2, width: float = 595, height: float = 842) -> bytes:
    doc = fitz.open()
    for i in range(pages):
        page = doc.new_page(width=width, height=height)
        page.insert_text(fitz.Point(50, 50), f"Formulario pagina {i + 1}", fontsize=10)
    data = doc.tobytes()
    doc.close()
    return data


@pytest.fixture
def pdf_bytes():
    return make_pdf(2)


@pytest.fixture
def engine(tmp_path):
    return TemplateEngine(
        repo=InMemoryTemplateRepository(),
        uploads=Uploads(str(tmp_path / "uploads")),
        converter=FormatConverter(MISSING_SOFFICE),
    )


@pytest.fixture
def template(engine, pdf_bytes):
    return engine.upload_template("form.pdf", io.BytesIO(pdf_bytes))


@pytest.fixture
def client(engine):
    app.dependency_overrides[get_template_engine] = lambda: engine
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()

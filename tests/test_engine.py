import io
import os
from datetime import datetime, timedelta

import fitz
import numpy as np
import pytest

from conftest import make_pdf
from src.services.templates_pdf.errors import (
    ConversionError, DocumentError, NotFoundError, ValidationError)
from src.services.templates_pdf.schemas import Rect


def test_upload_reads_page_count(engine, template):
    assert template.page_count == 2
    assert template.name == "form"
    assert os.path.exists(template.file_path)


def test_upload_rejects_non_pdf_name(engine, pdf_bytes):
    with pytest.raises(ValidationError):
        engine.upload_template("form.docx", io.BytesIO(pdf_bytes))


def test_upload_rejects_unreadable_pdf(engine, tmp_path):
    with pytest.raises(DocumentError):
        engine.upload_template("broken.pdf", io.BytesIO(b"%PDF-1.4 garbage"))
    assert engine.list_templates() == []
    assert os.listdir(tmp_path / "uploads") == []


def test_delete_template_cascades(engine, template):
    a, b = engine.boxes.bulk_create(template.id, [
        (1, Rect(x=10, y=10, width=50, height=20)),
        (2, Rect(x=10, y=10, width=50, height=20)),
    ])
    field = engine.fields.create_field(template.id, "a", "A", "text", 10, [a.id, b.id])

    engine.delete_template(template.id)

    assert not os.path.exists(template.file_path)
    with pytest.raises(NotFoundError):
        engine.get_template(template.id)
    with pytest.raises(NotFoundError):
        engine.boxes.get(a.id)
    with pytest.raises(NotFoundError):
        engine.fields.get_field(field.id)
    with pytest.raises(NotFoundError):
        engine.boxes.list_by_template(template.id)


def test_failed_repository_delete_keeps_file(engine, template, monkeypatch):
    def broken(template_id):
        raise RuntimeError("base de datos no disponible")

    monkeypatch.setattr(engine.repo, "delete_template", broken)
    with pytest.raises(RuntimeError):
        engine.delete_template(template.id)
    assert engine.get_template(template.id) == template
    assert os.path.exists(template.file_path)


def test_delete_template_with_missing_file_continues(engine, template, caplog):
    os.unlink(template.file_path)
    engine.delete_template(template.id)
    with pytest.raises(NotFoundError):
        engine.get_template(template.id)
    assert "no encontrado" in caplog.text


def test_purge_older_than(engine, template, pdf_bytes):
    newer = engine.upload_template("newer.pdf", io.BytesIO(pdf_bytes))
    old = engine.get_template(template.id)
    old.created_at = datetime.now() - timedelta(days=10)
    engine.repo.update_template(old)

    assert engine.purge_older_than(7) == 1
    assert [t.id for t in engine.list_templates()] == [newer.id]


def test_fill_pdf_draws_every_box(engine, template):
    a, b, c = engine.boxes.bulk_create(template.id, [
        (1, Rect(x=100, y=200, width=150, height=30)),
        (1, Rect(x=100, y=300, width=150, height=30)),
        (2, Rect(x=50, y=100, width=200, height=30)),
    ])
    engine.fields.create_field(template.id, "name", "Name", "text", 12, [a.id, b.id, c.id])

    data = engine.fill_pdf(template.id, {"name": "Alice"})

    with fitz.open(stream=data, filetype="pdf") as doc:
        assert doc.page_count == 2
        # el contenido original se conserva
        assert "Formulario pagina 1" in doc[0].get_text()
        hits1 = doc[0].search_for("Alice")
        hits2 = doc[1].search_for("Alice")
    assert len(hits1) == 2
    assert len(hits2) == 1

    width = fitz.get_text_length("Alice", fontname="helv", fontsize=12)
    expected_x = 100 + (150 - width) / 2
    assert sorted(h.x0 for h in hits1) == pytest.approx([expected_x, expected_x], abs=1.0)
    for hit in hits1:
        # el texto queda dentro del alto de su box
        assert 200 <= hit.y0 < 330


def test_fill_pdf_skips_blank_values(engine, template):
    a, b = engine.boxes.bulk_create(template.id, [
        (1, Rect(x=100, y=200, width=150, height=30)),
        (1, Rect(x=100, y=300, width=150, height=30)),
    ])
    engine.fields.create_field(template.id, "fieldA", "A", "text", 12, [a.id])
    engine.fields.create_field(template.id, "fieldB", "B", "text", 12, [b.id])

    instructions = engine.preview(template.id, {"fieldA": " ", "fieldB": "X"})
    assert [i.box_id for i in instructions] == [b.id]


def test_fill_fails_when_template_file_has_fewer_pages(engine, template):
    box = engine.boxes.create(template.id, 2, Rect(x=10, y=10, width=100, height=20))
    engine.fields.create_field(template.id, "late", "Late", "text", 10, [box.id])
    # el archivo fue reemplazado por uno de una sola página
    with open(template.file_path, "wb") as fh:
        fh.write(make_pdf(1))

    with pytest.raises(DocumentError):
        engine.fill_pdf(template.id, {"late": "value"})
    with pytest.raises(DocumentError):
        engine.preview(template.id, {"late": "value"})


def test_fill_missing_source_file(engine, template):
    os.unlink(template.file_path)
    with pytest.raises(DocumentError):
        engine.fill_pdf(template.id, {})


def test_fill_unknown_template(engine):
    with pytest.raises(NotFoundError):
        engine.fill_pdf(404, {"a": "b"})


def test_fill_as_docx_without_converter(engine, template):
    with pytest.raises(ConversionError):
        engine.fill_as(template.id, {}, "docx")


def test_page_image_size_tracks_zoom(engine, template):
    png, w1, h1 = engine.page_image(template.id, 1, 1.0)
    _, w2, h2 = engine.page_image(template.id, 1, 2.0)
    assert png.startswith(b"\x89PNG")
    assert (w1, h1) == (595, 842)
    assert (w2, h2) == (1190, 1684)
    with pytest.raises(DocumentError):
        engine.page_image(template.id, 3, 1.0)


def rotated_pdf(rotation=90):
    doc = fitz.open()
    page = doc.new_page(width=595, height=842)
    page.set_rotation(rotation)
    data = doc.tobytes()
    doc.close()
    return data


def ink_bbox(page):
    """(x0, y0, x1, y1) de los píxeles oscuros del raster de la página."""
    pix = page.get_pixmap(alpha=False)
    arr = np.frombuffer(pix.samples, dtype=np.uint8).reshape(pix.height, pix.width, pix.n)
    ys, xs = np.nonzero(arr.min(axis=2) < 128)
    assert len(xs), "la página no tiene texto dibujado"
    return xs.min(), ys.min(), xs.max(), ys.max()


@pytest.mark.parametrize("rotation", [90, 180, 270])
def test_fill_lands_inside_box_on_rotated_page(engine, rotation):
    tpl = engine.upload_template("rotated.pdf", io.BytesIO(rotated_pdf(rotation)))
    _, width, height = engine.page_image(tpl.id, 1, 1.0)
    if rotation in (90, 270):
        assert (width, height) == (842, 595)

    box = engine.boxes.create(tpl.id, 1, Rect(x=50, y=50, width=200, height=30))
    engine.fields.create_field(tpl.id, "greeting", "Greeting", "text", 12, [box.id])
    data = engine.fill_pdf(tpl.id, {"greeting": "HELLO"})

    with fitz.open(stream=data, filetype="pdf") as doc:
        x0, y0, x1, y1 = ink_bbox(doc[0])
    assert 50 <= x0 and x1 <= 250
    assert 50 <= y0 and y1 <= 80
    # texto horizontal: más ancho que alto
    assert (x1 - x0) > (y1 - y0)

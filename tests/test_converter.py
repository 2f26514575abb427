import os
import subprocess

import pytest

from src.services import converter as converter_module
from src.services.converter import FormatConverter
from src.services.templates_pdf.errors import ConversionError, ValidationError


def test_missing_binary():
    conv = FormatConverter("docsmapper-test-no-soffice")
    assert conv.available() is False
    with pytest.raises(ConversionError):
        conv.convert(b"%PDF-1.4", "docx")


def test_unsupported_target():
    with pytest.raises(ValidationError):
        FormatConverter().convert(b"%PDF-1.4", "xlsx")


@pytest.fixture
def fake_soffice(monkeypatch):
    calls = []
    monkeypatch.setattr(converter_module.shutil, "which", lambda name: f"/usr/bin/{name}")

    def run(cmd, **kwargs):
        calls.append((cmd, kwargs))
        outdir = cmd[cmd.index("--outdir") + 1]
        ext = cmd[cmd.index("--convert-to") + 1]
        with open(os.path.join(outdir, f"filled.{ext}"), "wb") as fh:
            fh.write(b"converted:" + ext.encode())
        return subprocess.CompletedProcess(cmd, 0, b"", b"")

    monkeypatch.setattr(converter_module.subprocess, "run", run)
    return calls


def test_convert_runs_headless_libreoffice(fake_soffice):
    data = FormatConverter("soffice", timeout=30).convert(b"%PDF-1.4", "docx")
    assert data == b"converted:docx"

    (cmd, kwargs), = fake_soffice
    assert cmd[:3] == ["soffice", "--headless", "--infilter=writer_pdf_import"]
    assert kwargs["timeout"] == 30
    assert kwargs["check"] is True
    # el directorio temporal se limpia
    assert not os.path.exists(cmd[cmd.index("--outdir") + 1])


def test_convert_to_odt(fake_soffice):
    assert FormatConverter().convert(b"%PDF-1.4", "odt") == b"converted:odt"


def test_process_failure(monkeypatch):
    monkeypatch.setattr(converter_module.shutil, "which", lambda name: "/usr/bin/soffice")

    def run(cmd, **kwargs):
        raise subprocess.CalledProcessError(1, cmd, stderr=b"source file could not be loaded")

    monkeypatch.setattr(converter_module.subprocess, "run", run)
    with pytest.raises(ConversionError) as exc:
        FormatConverter().convert(b"%PDF-1.4", "docx")
    assert "could not be loaded" in exc.value.message


def test_timeout(monkeypatch):
    monkeypatch.setattr(converter_module.shutil, "which", lambda name: "/usr/bin/soffice")

    def run(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs["timeout"])

    monkeypatch.setattr(converter_module.subprocess, "run", run)
    with pytest.raises(ConversionError):
        FormatConverter(timeout=1).convert(b"%PDF-1.4", "docx")


def test_missing_output(monkeypatch):
    monkeypatch.setattr(converter_module.shutil, "which", lambda name: "/usr/bin/soffice")
    monkeypatch.setattr(converter_module.subprocess, "run",
                        lambda cmd, **kwargs: subprocess.CompletedProcess(cmd, 0, b"", b""))
    with pytest.raises(ConversionError):
        FormatConverter().convert(b"%PDF-1.4", "docx")

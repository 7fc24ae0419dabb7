from io import BytesIO

from docx import Document
from fastapi.testclient import TestClient

from notes_parser.core.docx_extractor import extract_docx_text
from notes_parser.main import app

client = TestClient(app)

DOCX_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"


def _docx_bytes(doc):
    buf = BytesIO()
    doc.save(buf)
    return buf.getvalue()


def test_parse_docx_paragraphs():
    doc = Document()
    doc.add_paragraph("Client: Acme Corp")
    doc.add_paragraph("Industry: Software")
    doc.add_paragraph("Competitors: Foo, Bar")

    files = {"file": ("acme_notes.docx", _docx_bytes(doc), DOCX_TYPE)}
    r = client.post("/parse", files=files)
    assert r.status_code == 200
    data = r.json()

    assert data["data"]["client_name"] == "Acme Corp"
    assert data["data"]["industry"] == "Software"
    assert [c["name"] for c in data["data"]["competitors"]] == ["Foo", "Bar"]
    assert data["metadata"]["file_name"] == "acme_notes.docx"


def test_docx_tables_become_pipe_rows():
    doc = Document()
    doc.add_paragraph("Client: Acme Corp")
    table = doc.add_table(rows=2, cols=2)
    table.cell(0, 0).text = "Tier 1"
    table.cell(0, 1).text = "IGN, GameSpot"
    table.cell(1, 0).text = "Tier 2"
    table.cell(1, 1).text = "PC Gamer"

    text = extract_docx_text(_docx_bytes(doc))
    assert text == "Client: Acme Corp\n\n| Tier 1 | IGN, GameSpot |\n| Tier 2 | PC Gamer |"


def test_unreadable_docx_rejected():
    files = {"file": ("broken.docx", b"not a zip archive", DOCX_TYPE)}
    r = client.post("/parse", files=files)
    assert r.status_code == 422

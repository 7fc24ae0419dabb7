from fastapi.testclient import TestClient

from notes_parser.main import app

client = TestClient(app)

MINIMAL_BRIEF = "Client: Acme Corp\nIndustry: Software\nCompetitors: Foo, Bar"


def test_health():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_root():
    r = client.get("/")
    assert r.status_code == 200
    assert r.json()["status"] == "running"


def test_parse_txt_upload():
    files = {"file": ("acme_notes.txt", MINIMAL_BRIEF.encode(), "text/plain")}
    r = client.post("/parse", files=files)
    assert r.status_code == 200
    data = r.json()

    assert data["data"]["client_name"] == "Acme Corp"
    assert data["data"]["industry"] == "Software"
    assert [c["name"] for c in data["data"]["competitors"]] == ["Foo", "Bar"]
    assert data["metadata"]["file_name"] == "acme_notes.txt"
    assert data["metadata"]["file_size"] == len(MINIMAL_BRIEF.encode())
    assert 0.0 <= data["confidence"]["overall"] <= 1.0


def test_parse_markdown_upload():
    text = "# Acme Corp Client Notes\n\n**Industry**: Software\n\n## Competitors\n- Foo\n- Bar"
    files = {"file": ("acme.md", text.encode(), "text/markdown")}
    r = client.post("/parse", files=files)
    assert r.status_code == 200
    data = r.json()["data"]

    assert data["client_name"] == "Acme Corp"
    assert data["industry"] == "Software"
    assert [c["name"] for c in data["competitors"]] == ["Foo", "Bar"]


def test_parse_text_endpoint():
    r = client.post("/parse/text", json={"text": MINIMAL_BRIEF, "metadata": {"file_name": "pasted"}})
    assert r.status_code == 200
    data = r.json()

    assert data["data"]["client_name"] == "Acme Corp"
    assert data["metadata"]["file_name"] == "pasted"
    assert data["from_cache"] is False


def test_parse_text_endpoint_empty_text():
    r = client.post("/parse/text", json={"text": ""})
    assert r.status_code == 200
    data = r.json()

    assert data["data"]["client_name"] == ""
    assert data["confidence"]["overall"] == 0.0
    assert [w["level"] for w in data["warnings"]].count("error") == 1


def test_empty_file_rejected():
    files = {"file": ("empty.txt", b"", "text/plain")}
    r = client.post("/parse", files=files)
    assert r.status_code == 400


def test_unsupported_format_rejected():
    files = {"file": ("logo.png", b"\x89PNG\r\n\x1a\n", "image/png")}
    r = client.post("/parse", files=files)
    assert r.status_code == 415


def test_unreadable_pdf_rejected():
    files = {"file": ("broken.pdf", b"this is not a pdf", "application/pdf")}
    r = client.post("/parse", files=files)
    assert r.status_code == 422


def test_learned_patterns_endpoint():
    r = client.get("/learned-patterns/client_name")
    assert r.status_code == 200
    assert isinstance(r.json(), list)


def test_learned_patterns_unknown_field():
    r = client.get("/learned-patterns/favorite_color")
    assert r.status_code == 404

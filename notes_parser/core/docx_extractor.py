from io import BytesIO
from typing import List

from docx import Document


def extract_docx_text(docx_bytes: bytes) -> str:
    """
    Deterministically extract text from a DOCX: non-empty paragraphs in order,
    then each table row as a pipe-delimited line (| cell | cell |).
    """
    doc = Document(BytesIO(docx_bytes))
    out: List[str] = []
    for p in doc.paragraphs:
        t = (p.text or "").strip()
        if t:
            out.append(t)

    for table in doc.tables:
        rows = []
        for row in table.rows:
            cells = [(cell.text or "").strip() for cell in row.cells]
            if any(cells):
                rows.append("| " + " | ".join(cells) + " |")
        if rows:
            out.append("")
            out.extend(rows)
    return "\n".join(out)

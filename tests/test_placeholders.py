import fitz
import pytest

from core.placeholders import build_placeholder, placeholder_pdf
from util.constants import PLACEHOLDER_MARKER


def test_pdf_placeholder_carries_marker_in_text_and_metadata():
    data = placeholder_pdf(client_id="C1", slot="nic_proof")

    with fitz.open(stream=data, filetype="pdf") as doc:
        assert doc.page_count == 1
        text = doc.load_page(0).get_text()
        assert PLACEHOLDER_MARKER in text
        assert "nic_proof" in text
        assert doc.metadata["keywords"] == PLACEHOLDER_MARKER


@pytest.mark.parametrize(
    "ext,magic",
    [
        ("pdf", b"%PDF"),
        ("png", b"\x89PNG\r\n\x1a\n"),
        ("PNG", b"\x89PNG\r\n\x1a\n"),
        ("jpg", b"\xff\xd8"),
        ("dob_proof-1.jpeg", b"\xff\xd8"),
        ("unknown", b"%PDF"),
    ],
)
def test_build_placeholder_matches_extension(ext, magic):
    data = build_placeholder(ext, client_id="C1", slot="dob_proof")
    assert data.startswith(magic)

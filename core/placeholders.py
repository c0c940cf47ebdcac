# core/placeholders.py
from typing import Final
import fitz
from util.constants import PLACEHOLDER_MARKER
from util.functions import normalize_extension

IMAGE_FORMATS: Final[dict[str, str]] = {"png": "png", "jpg": "jpg", "jpeg": "jpg"}

# A4 in PDF points
_PAGE_WIDTH, _PAGE_HEIGHT = 595, 842


def placeholder_pdf(*, client_id: str, slot: str) -> bytes:
    """
    One-page PDF standing in for a lost document. The marker appears both in the
    page text and in the document metadata (title/keywords).
    """
    doc = fitz.open()
    try:
        page = doc.new_page(width=_PAGE_WIDTH, height=_PAGE_HEIGHT)
        page.insert_text((72, 100), PLACEHOLDER_MARKER, fontsize=32)
        page.insert_text(
            (72, 140),
            f"The original '{slot}' document of client {client_id} was not found.",
            fontsize=11,
        )
        page.insert_text(
            (72, 160),
            "This file was generated by document repair. Upload the original again.",
            fontsize=11,
        )
        doc.set_metadata(
            {
                "title": f"{PLACEHOLDER_MARKER}: {slot}",
                "subject": f"Missing document for client {client_id}",
                "keywords": PLACEHOLDER_MARKER,
                "creator": "document repair",
            }
        )
        return doc.tobytes()
    finally:
        doc.close()


def build_placeholder(ext: str, *, client_id: str, slot: str) -> bytes:
    """
    Minimal valid document for the extension of the missing file:
    PNG/JPEG render the placeholder page, anything else gets the PDF itself.
    """
    pdf = placeholder_pdf(client_id=client_id, slot=slot)
    image_format = IMAGE_FORMATS.get(normalize_extension(ext))
    if image_format is None:
        return pdf
    with fitz.open(stream=pdf, filetype="pdf") as doc:
        pix = doc.load_page(0).get_pixmap(dpi=36)
        return pix.tobytes(image_format)

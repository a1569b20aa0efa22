"""PDF fixtures generated with PyMuPDF."""

import fitz

FILLER = (
    "The quick brown fox jumps over the lazy dog while the notebook keeps track.",
    "Each page carries enough extracted text to count as a text based document.",
    "Readers take notes beside the chapters and search them later on demand.",
)


def page_text(heading: str, lines: int = 6) -> str:
    body = [FILLER[i % len(FILLER)] for i in range(lines)]
    return "\n".join([heading, *body])


def write_pdf(path, pages, toc=None, metadata=None, password=None):
    """Write a PDF whose pages contain the given strings."""
    doc = fitz.open()
    for text in pages:
        page = doc.new_page()
        if text:
            page.insert_text((72, 72), text, fontsize=10)
    if toc:
        doc.set_toc(toc)
    if metadata:
        doc.set_metadata(metadata)
    if password:
        doc.save(
            str(path),
            encryption=fitz.PDF_ENCRYPT_AES_256,
            user_pw=password,
            owner_pw=password + "-owner",
        )
    else:
        doc.save(str(path))
    doc.close()
    return path

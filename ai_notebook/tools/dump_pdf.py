"""Print the extracted text of the first pages of a PDF."""

import argparse
import logging

from ai_notebook.main.config import LOG_FORMAT
from ai_notebook.main.services.pdf_processor import load_pdf_pages

logger = logging.getLogger(__name__)

DEFAULT_PDF_PATH = "pdfs/book_senior_mindset.pdf"
MAX_PAGES = 10
RULE = "=" * 60


def dump_pdf(path: str, max_pages: int = MAX_PAGES):
    pages = load_pdf_pages(path)
    print(f"Total pages: {len(pages)}")
    for i, content in enumerate(pages[:max_pages], start=1):
        print(f"\n{RULE}")
        print(f"PAGE {i}")
        print(RULE)
        print(content)


def main(argv=None):
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("path", nargs="?", default=DEFAULT_PDF_PATH, help="PDF to read")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format=LOG_FORMAT)
    try:
        dump_pdf(args.path)
    except Exception:
        logger.exception("Failed to read %s", args.path)


if __name__ == "__main__":
    main()

# printsheet/infrastructure/export/documents.py
"""
Packaging of rendered pages: individual PNG files (bundled as a zip for
download) or one merged PDF whose pages match the physical page size.
"""
import io
import logging
import re
import zipfile
from typing import List, Sequence, Tuple

import img2pdf

from printsheet.domain.layout import PageSize

logger = logging.getLogger(__name__)


class ExportError(RuntimeError):
    """Assembling an export failed. Rendered pages are untouched and can be re-exported."""


def safe_filename(name: str) -> str:
    return re.sub(r'[<>:"/\\|?*]', '_', name).strip() or "list"


def page_filename(list_name: str, template_type: str, index: int) -> str:
    # index is 0-based, file names are 1-based
    return f"{safe_filename(list_name)}-{template_type}-page{index + 1}.png"


def pdf_filename(list_name: str, template_type: str, page_count: int) -> str:
    return f"{safe_filename(list_name)}-{template_type}-{page_count}pages.pdf"


def zip_filename(list_name: str, template_type: str) -> str:
    return f"{safe_filename(list_name)}-{template_type}-pages.zip"


def individual_files(pngs: Sequence[bytes], list_name: str, template_type: str) -> List[Tuple[str, bytes]]:
    return [(page_filename(list_name, template_type, i), png) for i, png in enumerate(pngs)]


def build_zip(pngs: Sequence[bytes], list_name: str, template_type: str) -> bytes:
    buf = io.BytesIO()
    try:
        with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zout:
            for name, png in individual_files(pngs, list_name, template_type):
                zout.writestr(name, png)
    except (OSError, zipfile.BadZipFile) as e:
        raise ExportError(f"Failed to build page archive: {e}") from e
    return buf.getvalue()


def page_size_pt(page: PageSize) -> Tuple[float, float]:
    """PDF page size in points, long side chosen by the page orientation."""
    short, long = sorted((page.width, page.height))
    if page.orientation == "landscape":
        width, height = long, short
    else:
        width, height = short, long
    return img2pdf.mm_to_pt(width), img2pdf.mm_to_pt(height)


def build_pdf(pngs: Sequence[bytes], page: PageSize) -> bytes:
    """
    Merge page images into one PDF, one image per page, each image filling
    its page exactly.
    """
    if not pngs:
        raise ExportError("No pages to export.")
    layout = img2pdf.get_layout_fun(page_size_pt(page), fit=img2pdf.FitMode.exact)
    try:
        pdf = img2pdf.convert(list(pngs), layout_fun=layout)
    except Exception as e:
        logger.error(f"PDF assembly failed: {type(e).__name__}: {e}")
        raise ExportError(f"Failed to assemble PDF: {e}") from e
    logger.info(f"PDF assembled: {len(pngs)} pages, {page.name} {page.orientation}.")
    return pdf

"""
Single-page A4 PDF from a captured screen region.

The client captures the report area as an image; it is scaled to the page
width and placed at the top of one A4 page. Anything taller than the page is
cut off.
"""
import io
import logging

from PIL import Image, UnidentifiedImageError

from core.exceptions import InvalidFileTypeError

logger = logging.getLogger(__name__)

A4_WIDTH_MM = 210
A4_HEIGHT_MM = 297
PDF_DPI = 150

# A4 at PDF_DPI: 1240 x 1754 pixels
PAGE_WIDTH_PX = round(A4_WIDTH_MM / 25.4 * PDF_DPI)
PAGE_HEIGHT_PX = round(A4_HEIGHT_MM / 25.4 * PDF_DPI)


def _flatten(image: Image.Image) -> Image.Image:
    # PDF pages have no alpha channel; composite onto white
    if image.mode in ("RGBA", "LA") or (image.mode == "P" and "transparency" in image.info):
        rgba = image.convert("RGBA")
        background = Image.new("RGB", rgba.size, "white")
        background.paste(rgba, mask=rgba.getchannel("A"))
        return background
    return image.convert("RGB")


def render_region_pdf(image_bytes: bytes) -> bytes:
    """
    Place a captured region image on a single A4 page.

    Raises:
        InvalidFileTypeError: If the bytes are not a readable image.
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as source:
            source.load()
            image = _flatten(source)
    except (UnidentifiedImageError, OSError) as e:
        logger.error(f"Unreadable report image: {e}")
        raise InvalidFileTypeError("Report image could not be read") from e

    scaled_height = max(1, round(image.height * PAGE_WIDTH_PX / image.width))
    scaled = image.resize((PAGE_WIDTH_PX, scaled_height), Image.Resampling.LANCZOS)

    page = Image.new("RGB", (PAGE_WIDTH_PX, PAGE_HEIGHT_PX), "white")
    page.paste(scaled.crop((0, 0, PAGE_WIDTH_PX, min(scaled_height, PAGE_HEIGHT_PX))), (0, 0))

    if scaled_height > PAGE_HEIGHT_PX:
        logger.info(f"Report image taller than one page, {scaled_height - PAGE_HEIGHT_PX}px cut off")

    buffer = io.BytesIO()
    page.save(buffer, format="PDF", resolution=PDF_DPI)
    return buffer.getvalue()

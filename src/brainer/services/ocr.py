"""
OCR Service

Extracts text from uploaded screenshots with Tesseract (pytesseract + Pillow).
Tesseract is CPU-bound and synchronous, so it runs in a worker thread.
"""

from __future__ import annotations

import asyncio
import io
import logging

import pytesseract
from PIL import Image

from brainer.core.config import settings

logger = logging.getLogger(__name__)

TESSERACT_CONFIG = "--oem 3 --psm 6"  # LSTM engine, uniform text block


def _extract(image_bytes: bytes, language: str) -> str:
    with Image.open(io.BytesIO(image_bytes)) as image:
        return pytesseract.image_to_string(
            image, lang=language, config=TESSERACT_CONFIG
        ).strip()


async def extract_text(image_bytes: bytes) -> str:
    """
    Run OCR on an image.

    Returns:
        Extracted text, stripped. An empty string means no text was found.

    Raises:
        Any Pillow/Tesseract error; the caller decides how to degrade.
    """
    logger.info("Performing OCR on screenshot (%d bytes)", len(image_bytes))
    return await asyncio.to_thread(_extract, image_bytes, settings.TESSERACT_LANGUAGE)

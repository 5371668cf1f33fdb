"""Core logic for OCR: run tesseract on a frame and parse its text into lines."""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Protocol

import pytesseract
from PIL import Image

from live_set_splitter.exceptions import ExternalToolError
from live_set_splitter.matching.artist import matches_artist

MIN_TEXT_LENGTH = 4

logger = logging.getLogger(__name__)


class OcrEngine(Protocol):
    def recognize(self, image: Image.Image, psm: str | None = None) -> str: ...


class TesseractEngine:
    """OCR engine backed by the tesseract binary through pytesseract."""

    def __init__(self, lang: str = "eng"):
        self.lang = lang

    def recognize(self, image: Image.Image, psm: str | None = None) -> str:
        config = f"--psm {psm}" if psm else ""
        try:
            return pytesseract.image_to_string(image, lang=self.lang, config=config)
        except pytesseract.TesseractNotFoundError as e:
            raise ExternalToolError("tesseract", "required tool not found on PATH") from e
        except pytesseract.TesseractError as e:
            logger.error(f"tesseract failed with psm={psm}")
            raise ExternalToolError("tesseract", f"OCR failed (status {e.status})", e.message) from e


@dataclass
class OcrResult:
    """Text lines of one image and whether the first line is the artist name."""
    lines: List[str]
    is_overlay: bool


def parse_ocr_output(text: str, artist: str) -> OcrResult | None:
    """Split OCR text into trimmed non-empty lines.

    Returns None when the engine found nothing useful (fewer than 4
    characters overall).
    """
    detected = text.strip()
    if len(detected) < MIN_TEXT_LENGTH:
        return None
    lines = [line.strip() for line in detected.splitlines() if line.strip()]
    if not lines:
        return None
    return OcrResult(lines=lines, is_overlay=matches_artist(lines[0], artist))


def high_contrast(image: Image.Image, threshold: int) -> Image.Image:
    """Grayscale then threshold: pixels brighter than ``threshold`` become white, the rest black."""
    gray = image.convert("L")
    return gray.point(lambda value: 255 if value > threshold else 0)


def load_variants(frame_path: Path, threshold: int) -> List[Image.Image]:
    """The raw crop and its high-contrast version, in the order they are OCR'd."""
    with Image.open(frame_path) as img:
        image = img.convert("RGB")
    return [image, high_contrast(image, threshold)]


def read_text(engine: OcrEngine, image: Image.Image, artist: str, psm: str | None) -> OcrResult | None:
    text = engine.recognize(image, psm)
    result = parse_ocr_output(text, artist)
    if result is not None:
        logger.debug(f"OCR psm={psm} overlay={result.is_overlay}: {' | '.join(result.lines)}")
    return result

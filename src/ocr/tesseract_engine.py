"""Tesseract OCR wrapper for ingredient label photos.

Decodes uploaded image bytes, runs the configured preprocessing and returns
the recognized text together with a word-level confidence summary.
"""

import io
from dataclasses import dataclass

import numpy as np
import pytesseract
from PIL import Image, UnidentifiedImageError
from pytesseract import TesseractError, TesseractNotFoundError

from src.errors import OCRError
from src.preprocessing.pipeline import LabelPreprocessor
from src.utils.config import OCRConfig, PreprocessingConfig
from src.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass
class OCRResult:
    """Text recognized on one label photo."""

    text: str
    confidence: float
    word_count: int
    language: str


def decode_image(image_bytes: bytes) -> np.ndarray:
    """Decode uploaded bytes into an RGB numpy array.

    Args:
        image_bytes: Raw bytes of the uploaded file.

    Returns:
        The decoded image.

    Raises:
        OCRError: If the bytes are not a readable image.
    """
    try:
        with Image.open(io.BytesIO(image_bytes)) as img:
            return np.array(img.convert("RGB"))
    except (UnidentifiedImageError, OSError) as exc:
        raise OCRError(f"Uploaded file is not a readable image: {exc}") from exc


class TesseractEngine:
    """Runs Tesseract over label photos.

    Args:
        config: OCR configuration (binary path, language, segmentation mode).
        preprocessing: Preprocessing configuration. Defaults to the standard
            label preprocessing.
    """

    def __init__(
        self,
        config: OCRConfig,
        preprocessing: PreprocessingConfig | None = None,
    ) -> None:
        if config.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = config.tesseract_cmd
        self.config = config
        self.preprocessor = LabelPreprocessor(preprocessing or PreprocessingConfig())

    def extract_text(self, image_bytes: bytes, lang: str | None = None) -> OCRResult:
        """Extract text from an uploaded image.

        Args:
            image_bytes: Raw bytes of the uploaded image.
            lang: OCR language code. Defaults to the configured language.

        Returns:
            OCRResult with the full text and average word confidence. The
            text may be empty when nothing legible was found.

        Raises:
            OCRError: If the image cannot be decoded or Tesseract fails.
        """
        lang = lang or self.config.default_lang
        tess_config = f"--psm {self.config.psm}"

        image = self.preprocessor.process(decode_image(image_bytes))
        pil_image = Image.fromarray(image)

        try:
            text = pytesseract.image_to_string(pil_image, lang=lang, config=tess_config)
            data = pytesseract.image_to_data(
                pil_image,
                lang=lang,
                config=tess_config,
                output_type=pytesseract.Output.DICT,
            )
        except (TesseractError, TesseractNotFoundError, RuntimeError) as exc:
            logger.error("Tesseract failed: %s", exc)
            raise OCRError(f"OCR failed: {exc}") from exc

        confidences = [
            float(conf)
            for conf, word in zip(data["conf"], data["text"])
            if float(conf) > 0 and word.strip()
        ]
        avg_conf = sum(confidences) / len(confidences) / 100.0 if confidences else 0.0

        logger.info(
            "OCR extracted %d words with average confidence %.2f",
            len(confidences),
            avg_conf,
        )
        return OCRResult(
            text=text.strip(),
            confidence=avg_conf,
            word_count=len(confidences),
            language=lang,
        )

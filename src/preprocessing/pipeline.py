"""Preprocessing for food-label photos ahead of OCR.

Phone photos of ingredient panels are often small, noisy and unevenly lit.
The pipeline converts them to grayscale, upscales narrow images so small
print reaches a size Tesseract reads well, smooths sensor noise and can
optionally binarize.
"""

import cv2
import numpy as np

from src.utils.config import PreprocessingConfig
from src.utils.logger import get_logger

logger = get_logger(__name__)


def to_gray(image: np.ndarray) -> np.ndarray:
    """Convert an RGB or RGBA image to grayscale.

    Args:
        image: Input image as decoded by Pillow (RGB, RGBA or grayscale).

    Returns:
        Single-channel image.
    """
    if image.ndim == 2:
        return image
    if image.shape[2] == 4:
        return cv2.cvtColor(image, cv2.COLOR_RGBA2GRAY)
    return cv2.cvtColor(image, cv2.COLOR_RGB2GRAY)


def upscale(image: np.ndarray, min_width: int) -> np.ndarray:
    """Enlarge an image so that its width is at least ``min_width``.

    Images that are already wide enough are returned unchanged.
    """
    height, width = image.shape[:2]
    if width == 0 or width >= min_width:
        return image

    scale = min_width / width
    result = cv2.resize(
        image,
        (min_width, max(1, round(height * scale))),
        interpolation=cv2.INTER_CUBIC,
    )
    logger.debug("Upscaled image from %dx%d by %.2f", width, height, scale)
    return result


def denoise(image: np.ndarray) -> np.ndarray:
    """Smooth noise with a bilateral filter, keeping glyph edges sharp."""
    return cv2.bilateralFilter(image, 9, 75, 75)


def binarize(image: np.ndarray) -> np.ndarray:
    """Binarize a grayscale image with Otsu's threshold."""
    _, binary = cv2.threshold(image, 0, 255, cv2.THRESH_BINARY + cv2.THRESH_OTSU)
    return binary


class LabelPreprocessor:
    """Configurable preprocessing applied to every uploaded label photo.

    Args:
        config: Preprocessing configuration controlling which steps run.
    """

    def __init__(self, config: PreprocessingConfig) -> None:
        self.config = config

    def process(self, image: np.ndarray) -> np.ndarray:
        """Run the enabled preprocessing steps on an image.

        Args:
            image: Decoded upload as a numpy array.

        Returns:
            The image to hand to OCR. When preprocessing is disabled the
            input is returned as is.
        """
        if not self.config.enabled:
            return image

        result = to_gray(image)
        result = upscale(result, self.config.min_width)

        if self.config.denoise_enabled:
            result = denoise(result)

        if self.config.binarize_enabled:
            result = binarize(result)

        logger.debug("Preprocessed label image to shape %s", result.shape)
        return result

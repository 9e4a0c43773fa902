"""Shared test fixtures for the ingredient scanner test suite."""

import copy
import io
from pathlib import Path

import numpy as np
import pytest
from PIL import Image

FLAT_RESULT = {
    "is_healthy": "Unhealthy",
    "unhealthy_ingredients": {"Sugar": ""},
    "health_impacts": {"Sugar": "Raises blood sugar (3 months)"},
}

STRUCTURED_RESULT = {
    "ingredients_analyzed": [
        {
            "name": "Sugar",
            "type": "Natural",
            "processing_level": "Processed",
            "safety_level": "Limit Not Specified",
            "health_impact": "Linked to diabetes",
        },
        {
            "name": "Palm Oil",
            "type": "Natural",
            "processing_level": "Processed",
            "safety_level": "Below Safe Limit",
            "health_impact": "High in saturated fat",
        },
    ],
    "product_labels": ["Unhealthy", "Processed"],
    "total_alerts": 2,
    "suggested_alternatives": [
        {
            "name": "Tata Soulfull Ragi Bites",
            "brand": "Tata Soulfull",
            "category": "Snacks",
            "buy_link": "https://www.amazon.in/dp/B000000000",
        }
    ],
}


@pytest.fixture
def sample_image() -> np.ndarray:
    """Create a synthetic RGB label image."""
    image = np.full((120, 300, 3), 255, dtype=np.uint8)
    image[40:80, 30:270] = (20, 20, 20)
    return image


@pytest.fixture
def image_bytes(sample_image: np.ndarray) -> bytes:
    """Encode the synthetic label image as PNG bytes."""
    buf = io.BytesIO()
    Image.fromarray(sample_image).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def project_root() -> Path:
    """Return the project root directory."""
    return Path(__file__).parent.parent


@pytest.fixture
def config_dir(project_root: Path) -> Path:
    """Return the configs directory path."""
    return project_root / "configs"


@pytest.fixture
def flat_result() -> dict:
    """A valid v1 analysis result."""
    return copy.deepcopy(FLAT_RESULT)


@pytest.fixture
def structured_result() -> dict:
    """A valid v2 analysis result."""
    return copy.deepcopy(STRUCTURED_RESULT)

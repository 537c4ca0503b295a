"""
Pytest Configuration and Fixtures

Shared fixtures for the lung scan analysis tests.
"""
from io import BytesIO

import numpy as np
import pytest
from PIL import Image

from model.inference import ClinicalRecord, InferenceConfig
from preprocessing.highlight import HighlightSpec


@pytest.fixture
def gray_scan() -> np.ndarray:
    """A 200x200 mid-gray scan with no red at all."""
    return np.full((200, 200, 3), 100, dtype=np.uint8)


@pytest.fixture
def red_scan() -> np.ndarray:
    arr = np.zeros((10, 10, 3), dtype=np.uint8)
    arr[..., 0] = 255
    return arr


@pytest.fixture
def png_bytes(gray_scan) -> bytes:
    buf = BytesIO()
    Image.fromarray(gray_scan).save(buf, format="PNG")
    return buf.getvalue()


@pytest.fixture
def high_risk_record() -> ClinicalRecord:
    # 25 + 30 + 15 = 70
    return ClinicalRecord(age=65, smoking_history=1, chronic_cough=1)


@pytest.fixture
def low_risk_record() -> ClinicalRecord:
    return ClinicalRecord(age=30)


@pytest.fixture
def instant_config() -> InferenceConfig:
    return InferenceConfig(clinical_delay_s=0.0, image_delay_s=0.0)


@pytest.fixture
def instant_spec() -> HighlightSpec:
    return HighlightSpec(processing_delay_s=0.0)

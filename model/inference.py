"""
inference.py

Scoring backends for lung scan decision support.

Neither backend is a medical model. Both are deterministic stand-ins that
keep the repository runnable end-to-end:

1) ClinicalRiskModel: hand-weighted point sum over a short clinical form
2) RedPixelImageModel: fraction of red-dominant pixels in a highlighted scan

Each backend turns its input into a ModelOpinion (direction + confidence).
The async wrappers at the bottom simulate the latency of a remote model and
run pixel work in a worker thread, so callers get a non-blocking contract.
"""

from __future__ import annotations

import asyncio
import logging
import math
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import numpy as np
from PIL import Image
from starlette.concurrency import run_in_threadpool


logger = logging.getLogger(__name__)

ImageLike = Union[np.ndarray, Image.Image]


# ----------------------------
# Config
# ----------------------------

@dataclass(frozen=True)
class InferenceConfig:
    clinical_delay_s: float = 1.5
    image_delay_s: float = 2.0
    red_margin: int = 20
    red_percent_threshold: float = 1.0
    image_confidence_cap: float = 95.0
    clinical_positive_threshold: int = 50


# ----------------------------
# Types / Contracts
# ----------------------------

_FLAG_FIELDS = ("gender", "smoking_history", "chronic_cough", "shortness_of_breath", "chest_pain")


@dataclass(frozen=True)
class ClinicalRecord:
    """Clinical form input. gender: 0 = female, 1 = male; other flags 0/1."""

    age: int
    gender: int = 0
    smoking_history: int = 0
    chronic_cough: int = 0
    shortness_of_breath: int = 0
    chest_pain: int = 0

    def __post_init__(self) -> None:
        if isinstance(self.age, bool) or not isinstance(self.age, (int, np.integer)):
            raise ValueError(f"age must be an integer, got {self.age!r}")
        if self.age < 0:
            raise ValueError(f"age must be non-negative, got {self.age}")
        for name in _FLAG_FIELDS:
            value = getattr(self, name)
            if value not in (0, 1):
                raise ValueError(f"{name} must be 0 or 1, got {value!r}")

    @property
    def is_male(self) -> bool:
        return self.gender == 1


@dataclass(frozen=True)
class ModelOpinion:
    predicted_positive: bool
    confidence: float

    def __post_init__(self) -> None:
        if not 0.0 <= self.confidence <= 100.0:
            raise ValueError(f"confidence must be within [0, 100], got {self.confidence}")

    def to_dict(self) -> dict:
        return {"predicted_positive": self.predicted_positive, "confidence": self.confidence}


@dataclass(frozen=True)
class ClinicalAssessment:
    opinion: ModelOpinion
    risk_score: int
    backend: str


@dataclass(frozen=True)
class ImageAssessment:
    opinion: ModelOpinion
    red_pixels: int
    total_pixels: int
    red_percentage: float
    backend: str


def round_half_up(x: float) -> int:
    """Round .5 upwards, unlike the banker's rounding of round()."""
    return int(math.floor(x + 0.5))


def clamp_confidence(x: float) -> float:
    """Clamp into [0, 100]; an int stays an int."""
    return max(0, min(100, x))


def to_rgb_array(image: ImageLike) -> np.ndarray:
    """Return an (H, W, 3) array; an alpha channel is dropped."""
    if isinstance(image, Image.Image):
        return np.asarray(image.convert("RGB"))
    arr = np.asarray(image)
    if arr.ndim != 3 or arr.shape[-1] not in (3, 4):
        raise ValueError("Expected image array of shape (H, W, 3) or (H, W, 4)")
    return arr[..., :3]


# ----------------------------
# Clinical backend
# ----------------------------

class ClinicalRiskModel:
    """
    Weighted point sum over age bracket, smoking history, symptoms and sex.

    Age brackets are exclusive (the highest matching one counts); every
    other factor is additive. The maximum score is 105.
    """

    backend_name = "clinical-weighted-sum"

    def __init__(self, config: Optional[InferenceConfig] = None) -> None:
        self.config = config or InferenceConfig()

    @staticmethod
    def risk_score(record: ClinicalRecord) -> int:
        score = 0
        if record.age > 60:
            score += 25
        elif record.age > 50:
            score += 15
        elif record.age > 40:
            score += 10

        if record.smoking_history == 1:
            score += 30

        if record.chronic_cough == 1:
            score += 15
        if record.shortness_of_breath == 1:
            score += 15
        if record.chest_pain == 1:
            score += 15

        if record.is_male:
            score += 5
        return score

    def predict(self, record: ClinicalRecord) -> ClinicalAssessment:
        score = self.risk_score(record)
        positive = score >= self.config.clinical_positive_threshold
        raw_confidence = score if positive else 100 - score
        # a full house of risk factors sums to 105
        opinion = ModelOpinion(predicted_positive=positive, confidence=clamp_confidence(raw_confidence))
        logger.debug("Clinical risk score %d -> %s", score, opinion)
        return ClinicalAssessment(opinion=opinion, risk_score=score, backend=self.backend_name)


# ----------------------------
# Image backend
# ----------------------------

def count_red_pixels(rgb: np.ndarray, margin: int = 20) -> int:
    """Pixels whose red channel exceeds both green and blue by more than margin."""
    px = rgb.astype(np.int16)
    r, g, b = px[..., 0], px[..., 1], px[..., 2]
    return int(((r > g + margin) & (r > b + margin)).sum())


class RedPixelImageModel:
    """
    Treats the share of red-dominant pixels as a cancer signal.

    Meant to run on the output of preprocessing.highlight, which paints
    suspicious regions red. Confidence ranges over 50..95 in either direction.
    """

    backend_name = "red-pixel-fraction"

    def __init__(self, config: Optional[InferenceConfig] = None) -> None:
        self.config = config or InferenceConfig()

    def red_percentage(self, image: ImageLike) -> Tuple[int, int, float]:
        rgb = to_rgb_array(image)
        total = int(rgb.shape[0] * rgb.shape[1])
        if total == 0:
            return 0, 0, 0.0
        red = count_red_pixels(rgb, margin=self.config.red_margin)
        return red, total, red * 100.0 / total

    def predict(self, image: ImageLike) -> ImageAssessment:
        cfg = self.config
        red, total, pct = self.red_percentage(image)

        positive = pct > cfg.red_percent_threshold
        if positive:
            confidence = min(50.0 + pct * 5.0, cfg.image_confidence_cap)
        else:
            confidence = min(50.0 + (10.0 - pct) * 5.0, cfg.image_confidence_cap)

        opinion = ModelOpinion(
            predicted_positive=positive,
            confidence=clamp_confidence(round_half_up(confidence)),
        )
        logger.debug("Red pixels %d/%d (%.3f%%) -> %s", red, total, pct, opinion)
        return ImageAssessment(
            opinion=opinion,
            red_pixels=red,
            total_pixels=total,
            red_percentage=pct,
            backend=self.backend_name,
        )


# ----------------------------
# Async contract
# ----------------------------

async def predict_from_clinical_data(
    record: ClinicalRecord,
    config: Optional[InferenceConfig] = None,
) -> ClinicalAssessment:
    cfg = config or InferenceConfig()
    if cfg.clinical_delay_s > 0:
        await asyncio.sleep(cfg.clinical_delay_s)
    return ClinicalRiskModel(cfg).predict(record)


async def predict_from_image(
    image: ImageLike,
    config: Optional[InferenceConfig] = None,
) -> ImageAssessment:
    cfg = config or InferenceConfig()
    if cfg.image_delay_s > 0:
        await asyncio.sleep(cfg.image_delay_s)
    # pixel counting is CPU-bound, keep it off the event loop
    return await run_in_threadpool(RedPixelImageModel(cfg).predict, image)

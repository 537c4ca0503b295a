"""
combination.py

Arbitration between the clinical and the image opinion.

- agreement:            average the two confidences
- strong disagreement:  defer to the more confident model, minus a penalty
- weak disagreement:    declare the case uncertain
"""

from __future__ import annotations

import logging
from dataclasses import dataclass

from model.inference import ModelOpinion, clamp_confidence, round_half_up


logger = logging.getLogger(__name__)

CANCER_DETECTED = "Cancer Detected"
NO_CANCER_DETECTED = "No Cancer Detected"
UNCERTAIN = "Uncertain, further tests needed"

VERDICT_LABELS = (CANCER_DETECTED, NO_CANCER_DETECTED, UNCERTAIN)

STRONG_DISAGREEMENT_GAP = 30
DISAGREEMENT_PENALTY = 10


@dataclass(frozen=True)
class CombinedVerdict:
    label: str
    confidence: float

    def __post_init__(self) -> None:
        if self.label not in VERDICT_LABELS:
            raise ValueError(f"Unknown verdict label: {self.label!r}")
        if not 0.0 <= self.confidence <= 100.0:
            raise ValueError(f"confidence must be within [0, 100], got {self.confidence}")

    def to_dict(self) -> dict:
        return {"label": self.label, "confidence": self.confidence}


@dataclass(frozen=True)
class AnalysisResult:
    """One completed analysis: both model opinions and the arbitrated verdict."""

    clinical: ModelOpinion
    image: ModelOpinion
    verdict: CombinedVerdict

    def to_dict(self) -> dict:
        return {
            "prediction": self.verdict.label,
            "confidence": self.verdict.confidence,
            "clinical_model": self.clinical.to_dict(),
            "image_model": self.image.to_dict(),
        }


def _label_for(opinion: ModelOpinion) -> str:
    return CANCER_DETECTED if opinion.predicted_positive else NO_CANCER_DETECTED


def combine_predictions(clinical: ModelOpinion, image: ModelOpinion) -> CombinedVerdict:
    if clinical.predicted_positive == image.predicted_positive:
        confidence = round_half_up((clinical.confidence + image.confidence) / 2)
        verdict = CombinedVerdict(_label_for(clinical), clamp_confidence(confidence))
        logger.debug("Models agree: %s", verdict)
        return verdict

    diff = abs(clinical.confidence - image.confidence)

    if diff > STRONG_DISAGREEMENT_GAP:
        winner = image if image.confidence > clinical.confidence else clinical
        verdict = CombinedVerdict(
            _label_for(winner),
            clamp_confidence(winner.confidence - DISAGREEMENT_PENALTY),
        )
        logger.debug("Models disagree by %.1f, trusting %s: %s", diff, winner, verdict)
        return verdict

    verdict = CombinedVerdict(UNCERTAIN, clamp_confidence(round_half_up(50 + diff / 4)))
    logger.debug("Models disagree by %.1f without a clear winner: %s", diff, verdict)
    return verdict

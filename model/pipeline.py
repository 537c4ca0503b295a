"""
pipeline.py

End-to-end analysis of one lung scan plus clinical form.

    highlight image -> clinical opinion -> image opinion -> combined verdict

Steps run one after another and each awaits its simulated model latency, so
a caller (an HTTP handler, a UI loop) is never blocked. Every run closes over
its own inputs; there is no shared state between concurrent analyses.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

import numpy as np

from model.combination import AnalysisResult, combine_predictions
from model.inference import (
    ClinicalAssessment,
    ClinicalRecord,
    ImageAssessment,
    ImageLike,
    InferenceConfig,
    predict_from_clinical_data,
    predict_from_image,
    to_rgb_array,
)
from preprocessing.highlight import HighlightResult, HighlightSpec, load_rgb, process_image
from reports.text_report import DEFAULT_REPORT_FILENAME, format_percent, generate_report, save_report


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisRun:
    result: AnalysisResult
    clinical: ClinicalAssessment
    image: ImageAssessment
    highlighted: HighlightResult

    def to_dict(self) -> Dict[str, Any]:
        return {
            **self.result.to_dict(),
            "clinical_risk_score": self.clinical.risk_score,
            "red_percentage": round(self.image.red_percentage, 4),
            "highlighted_regions": self.highlighted.regions_as_dicts(),
            "backends": {"clinical": self.clinical.backend, "image": self.image.backend},
            "disclaimer": "Demo backends only. Not a diagnostic model.",
        }


def validate_inputs(record: Any, image: Any) -> None:
    if image is None:
        raise ValueError("A lung scan image is required")
    if not isinstance(record, ClinicalRecord):
        raise ValueError("Clinical data is required")
    if record.age <= 0:
        raise ValueError("Please enter a valid age")
    # raises on a malformed array
    to_rgb_array(image)


async def analyze(
    record: ClinicalRecord,
    image: ImageLike,
    config: Optional[InferenceConfig] = None,
    highlight_spec: Optional[HighlightSpec] = None,
    rng: Optional[np.random.Generator] = None,
) -> AnalysisRun:
    validate_inputs(record, image)
    cfg = config or InferenceConfig()

    logger.info("Processing image")
    highlighted = await process_image(image, spec=highlight_spec, rng=rng)

    logger.info("Running clinical model")
    clinical = await predict_from_clinical_data(record, cfg)

    logger.info("Running image model")
    image_assessment = await predict_from_image(highlighted.image, cfg)

    verdict = combine_predictions(clinical.opinion, image_assessment.opinion)
    logger.info("Analysis complete: %s (%s)", verdict.label, format_percent(verdict.confidence))

    return AnalysisRun(
        result=AnalysisResult(
            clinical=clinical.opinion,
            image=image_assessment.opinion,
            verdict=verdict,
        ),
        clinical=clinical,
        image=image_assessment,
        highlighted=highlighted,
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Analyze a lung scan together with clinical data.")
    parser.add_argument("--image", required=True, help="Path to scan image (png/jpg).")
    parser.add_argument("--age", type=int, required=True)
    parser.add_argument("--gender", type=int, choices=(0, 1), default=0, help="0 = female, 1 = male")
    parser.add_argument("--smoking", type=int, choices=(0, 1), default=0)
    parser.add_argument("--cough", type=int, choices=(0, 1), default=0)
    parser.add_argument("--breathless", type=int, choices=(0, 1), default=0)
    parser.add_argument("--chest_pain", type=int, choices=(0, 1), default=0)
    parser.add_argument("--seed", type=int, default=None)
    parser.add_argument("--no_delay", action="store_true", help="Skip simulated model latency.")
    parser.add_argument("--out", default=DEFAULT_REPORT_FILENAME, help="Report output path.")
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)

    record = ClinicalRecord(
        age=args.age,
        gender=args.gender,
        smoking_history=args.smoking,
        chronic_cough=args.cough,
        shortness_of_breath=args.breathless,
        chest_pain=args.chest_pain,
    )
    config = InferenceConfig(clinical_delay_s=0.0, image_delay_s=0.0) if args.no_delay else InferenceConfig()
    spec = HighlightSpec(processing_delay_s=0.0) if args.no_delay else HighlightSpec()

    run = asyncio.run(
        analyze(record, load_rgb(args.image), config=config, highlight_spec=spec, rng=np.random.default_rng(args.seed))
    )
    save_report(generate_report(record, run.result), args.out)

    print(f"Final decision: {run.result.verdict.label} ({format_percent(run.result.verdict.confidence)})")
    print(f"Wrote: {args.out}")


if __name__ == "__main__":
    main()

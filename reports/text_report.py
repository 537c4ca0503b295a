"""
text_report.py

Plain-text export of a lung scan analysis.

The report is a one-way artifact meant for download: it is never parsed back.
Given the same record, result and timestamp the output is byte-identical.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime
from typing import Optional

from model.combination import CANCER_DETECTED, NO_CANCER_DETECTED, UNCERTAIN, AnalysisResult
from model.inference import ClinicalRecord


logger = logging.getLogger(__name__)

DEFAULT_REPORT_FILENAME = "lung-scan-report.txt"
TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"
NO_ANALYSIS_MESSAGE = "No analysis has been performed yet."

RECOMMENDATIONS = {
    CANCER_DETECTED: "Immediate follow-up with specialist recommended.",
    NO_CANCER_DETECTED: "Regular screening recommended as per standard guidelines.",
    UNCERTAIN: "Additional diagnostic tests recommended for conclusive diagnosis.",
}

RULE = "=" * 42


def _yes_no(flag: int) -> str:
    return "Yes" if flag == 1 else "No"


def format_percent(value: float) -> str:
    # 70.0 -> "70", 72.5 -> "72.5"
    return f"{value:g}%"


def generate_report(
    record: ClinicalRecord,
    result: Optional[AnalysisResult],
    generated_at: Optional[datetime] = None,
) -> str:
    if result is None:
        return NO_ANALYSIS_MESSAGE

    ts = (generated_at or datetime.now()).strftime(TIMESTAMP_FORMAT)
    verdict = result.verdict

    lines = [
        "LUNG SCAN INSIGHT SYSTEM - ANALYSIS REPORT",
        RULE,
        f"Generated: {ts}",
        "",
        "PATIENT DATA:",
        "------------",
        f"Age: {record.age}",
        f"Gender: {'Male' if record.is_male else 'Female'}",
        f"Smoking History: {_yes_no(record.smoking_history)}",
        "Symptoms:",
        f"- Chronic Cough: {_yes_no(record.chronic_cough)}",
        f"- Shortness of Breath: {_yes_no(record.shortness_of_breath)}",
        f"- Chest Pain: {_yes_no(record.chest_pain)}",
        "",
        "ANALYSIS RESULTS:",
        "----------------",
        f"Final Decision: {verdict.label}",
        f"Confidence: {format_percent(verdict.confidence)}",
        "",
        "MODEL DETAILS:",
        "-------------",
        f"Image Analysis Confidence: {format_percent(result.image.confidence)}",
        f"Clinical Data Model Confidence: {format_percent(result.clinical.confidence)}",
        "",
        "RECOMMENDATION:",
        "--------------",
        RECOMMENDATIONS[verdict.label],
        "",
        "This is an automated analysis and should be reviewed by a healthcare professional.",
        RULE,
    ]
    return "\n".join(lines) + "\n"


def save_report(report: str, out_path: str = DEFAULT_REPORT_FILENAME) -> str:
    os.makedirs(os.path.dirname(out_path) or ".", exist_ok=True)
    with open(out_path, "w", encoding="utf-8") as f:
        f.write(report)
    logger.info("Wrote report to %s", out_path)
    return out_path

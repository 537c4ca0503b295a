"""
api/app.py

Minimal REST API for lung scan decision support.

This service stands in for the browser front-end. Each request is one
analysis run:
- accepts a scan upload (PNG/JPG) plus the clinical form fields
- paints simulated suspicious regions onto the scan
- scores clinical data and image, then arbitrates between them
- returns the verdict as JSON, or as a downloadable text report

NOTE:
This is a demo-grade serving layer. It is not a diagnostic tool.
"""

from __future__ import annotations

import base64
import logging
from typing import Any, Dict, Optional

import numpy as np
from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.responses import PlainTextResponse
from PIL import Image
from starlette.concurrency import run_in_threadpool

from model.inference import ClinicalRecord, InferenceConfig
from model.pipeline import AnalysisRun, analyze
from preprocessing.highlight import HighlightSpec, decode_image, encode_png
from reports.text_report import DEFAULT_REPORT_FILENAME, generate_report


logger = logging.getLogger(__name__)

ALLOWED_CONTENT_TYPES = {"image/png", "image/jpeg", "image/jpg"}

app = FastAPI(
    title="Lung Scan Insight API (Demo)",
    description="Combines a clinical risk score and an image score into a decision-support verdict (non-diagnostic).",
    version="0.1.0",
)


async def _read_image(file: UploadFile, file_bytes: bytes) -> Image.Image:
    if file.content_type not in ALLOWED_CONTENT_TYPES:
        raise HTTPException(status_code=400, detail="Only PNG/JPG uploads are supported")
    try:
        return await run_in_threadpool(decode_image, file_bytes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail="Invalid image file") from e


def _build_record(**fields: int) -> ClinicalRecord:
    try:
        return ClinicalRecord(**fields)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e


async def _run(
    file: UploadFile,
    record: ClinicalRecord,
    seed: Optional[int],
    simulate_latency: bool,
) -> AnalysisRun:
    img = await _read_image(file, await file.read())

    if simulate_latency:
        config, spec = InferenceConfig(), HighlightSpec()
    else:
        config = InferenceConfig(clinical_delay_s=0.0, image_delay_s=0.0)
        spec = HighlightSpec(processing_delay_s=0.0)

    try:
        return await analyze(record, img, config=config, highlight_spec=spec, rng=np.random.default_rng(seed))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e)) from e


@app.get("/health")
def health() -> Dict[str, str]:
    return {"status": "ok"}


@app.post("/analyze")
async def analyze_scan(
    file: UploadFile = File(...),
    age: int = Form(...),
    gender: int = Form(0),
    smoking_history: int = Form(0),
    chronic_cough: int = Form(0),
    shortness_of_breath: int = Form(0),
    chest_pain: int = Form(0),
    seed: Optional[int] = None,
    simulate_latency: bool = False,
) -> Dict[str, Any]:
    """
    Returns:
      - prediction / confidence: the combined verdict
      - clinical_model / image_model: the two opinions it was built from
      - red_percentage, highlighted_regions: what the image model saw
      - highlighted_image: the highlighted scan as a base64 PNG
      - disclaimer: decision-support framing
    """
    record = _build_record(
        age=age,
        gender=gender,
        smoking_history=smoking_history,
        chronic_cough=chronic_cough,
        shortness_of_breath=shortness_of_breath,
        chest_pain=chest_pain,
    )
    run = await _run(file, record, seed, simulate_latency)
    png = await run_in_threadpool(encode_png, run.highlighted.image)
    return {**run.to_dict(), "highlighted_image": base64.b64encode(png).decode("ascii")}


@app.post("/report", response_class=PlainTextResponse)
async def download_report(
    file: UploadFile = File(...),
    age: int = Form(...),
    gender: int = Form(0),
    smoking_history: int = Form(0),
    chronic_cough: int = Form(0),
    shortness_of_breath: int = Form(0),
    chest_pain: int = Form(0),
    seed: Optional[int] = None,
    simulate_latency: bool = False,
) -> PlainTextResponse:
    record = _build_record(
        age=age,
        gender=gender,
        smoking_history=smoking_history,
        chronic_cough=chronic_cough,
        shortness_of_breath=shortness_of_breath,
        chest_pain=chest_pain,
    )
    run = await _run(file, record, seed, simulate_latency)
    report = generate_report(record, run.result)
    return PlainTextResponse(
        report,
        headers={"Content-Disposition": f'attachment; filename="{DEFAULT_REPORT_FILENAME}"'},
    )

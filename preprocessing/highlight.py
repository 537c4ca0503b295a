"""
highlight.py

Simulated segmentation for lung scan images.

A real system would run clustering and denoising filters here and mark the
segments that look suspicious. This module only imitates the visible output
of that step: it paints 1-3 translucent red discs at random positions in the
central part of the scan. Downstream, model.inference counts those red
pixels, so the pair behaves like a (meaningless) end-to-end detector.

Randomness comes from a numpy Generator so a run can be reproduced by seed.
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from dataclasses import asdict, dataclass
from io import BytesIO
from typing import List, Optional, Tuple, Union

import numpy as np
from PIL import Image, ImageDraw
from starlette.concurrency import run_in_threadpool


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class HighlightSpec:
    min_regions: int = 1
    max_regions: int = 3
    min_radius: float = 20.0
    max_radius: float = 60.0
    # centre placement, as fractions of width / height
    x_range: Tuple[float, float] = (0.15, 0.85)
    y_range: Tuple[float, float] = (0.2, 0.8)
    color: Tuple[int, int, int] = (255, 0, 0)
    opacity: float = 0.3
    processing_delay_s: float = 2.0


@dataclass(frozen=True)
class Region:
    x: float
    y: float
    radius: float


@dataclass(frozen=True)
class HighlightResult:
    image: Image.Image
    regions: Tuple[Region, ...]

    def regions_as_dicts(self) -> List[dict]:
        return [asdict(r) for r in self.regions]


def load_rgb(image_path: str) -> Image.Image:
    if not os.path.exists(image_path):
        raise FileNotFoundError(f"Image not found: {image_path}")
    return Image.open(image_path).convert("RGB")


def decode_image(file_bytes: bytes) -> Image.Image:
    try:
        img = Image.open(BytesIO(file_bytes))
        return img.convert("RGB")
    except Exception as e:
        raise ValueError("Invalid image file") from e


def encode_png(image: Image.Image) -> bytes:
    buf = BytesIO()
    image.save(buf, format="PNG")
    return buf.getvalue()


def _as_image(image: Union[Image.Image, np.ndarray]) -> Image.Image:
    if isinstance(image, Image.Image):
        return image.convert("RGB")
    arr = np.asarray(image)
    if arr.ndim != 3 or arr.shape[2] not in (3, 4):
        raise ValueError("Expected RGB image array (H, W, 3)")
    return Image.fromarray(np.ascontiguousarray(arr[..., :3], dtype=np.uint8))


def sample_regions(width: int, height: int, spec: HighlightSpec, rng: np.random.Generator) -> List[Region]:
    n = int(rng.integers(spec.min_regions, spec.max_regions + 1))
    x0, x1 = spec.x_range
    y0, y1 = spec.y_range
    regions = []
    for _ in range(n):
        x = rng.random() * width * (x1 - x0) + width * x0
        y = rng.random() * height * (y1 - y0) + height * y0
        radius = rng.random() * (spec.max_radius - spec.min_radius) + spec.min_radius
        regions.append(Region(x=float(x), y=float(y), radius=float(radius)))
    return regions


def highlight_regions(
    image: Union[Image.Image, np.ndarray],
    spec: Optional[HighlightSpec] = None,
    rng: Optional[np.random.Generator] = None,
) -> HighlightResult:
    """
    Return a copy of image with translucent discs painted over random regions.
    The input is left untouched.
    """
    spec = spec or HighlightSpec()
    rng = rng if rng is not None else np.random.default_rng()

    base = _as_image(image).convert("RGBA")
    w, h = base.size
    regions = sample_regions(w, h, spec, rng)

    alpha = int(spec.opacity * 255 + 0.5)
    fill = (*spec.color, alpha)

    # one layer per disc so overlaps darken like repeated canvas fills
    out = base
    for r in regions:
        layer = Image.new("RGBA", base.size, (0, 0, 0, 0))
        ImageDraw.Draw(layer).ellipse(
            [r.x - r.radius, r.y - r.radius, r.x + r.radius, r.y + r.radius],
            fill=fill,
        )
        out = Image.alpha_composite(out, layer)

    logger.debug("Highlighted %d region(s) on %dx%d image", len(regions), w, h)
    return HighlightResult(image=out.convert("RGB"), regions=tuple(regions))


async def process_image(
    image: Union[Image.Image, np.ndarray],
    spec: Optional[HighlightSpec] = None,
    rng: Optional[np.random.Generator] = None,
) -> HighlightResult:
    spec = spec or HighlightSpec()
    if spec.processing_delay_s > 0:
        await asyncio.sleep(spec.processing_delay_s)
    return await run_in_threadpool(highlight_regions, image, spec=spec, rng=rng)


def main() -> None:
    parser = argparse.ArgumentParser(description="Paint simulated suspicious regions onto a scan image.")
    parser.add_argument("--image", required=True, help="Path to input scan image (png/jpg).")
    parser.add_argument("--out", default="examples/highlighted.png", help="Where to write the highlighted image.")
    parser.add_argument("--seed", type=int, default=None)
    args = parser.parse_args()

    logging.basicConfig(level=logging.INFO)

    result = highlight_regions(load_rgb(args.image), rng=np.random.default_rng(args.seed))

    os.makedirs(os.path.dirname(args.out) or ".", exist_ok=True)
    result.image.save(args.out)

    print(f"Highlighted {len(result.regions)} regions")
    print(f"Wrote: {args.out}")


if __name__ == "__main__":
    main()

"""
Unit Tests for Simulated Region Highlighting
"""
import sys

import numpy as np
import pytest
from PIL import Image

from model.inference import RedPixelImageModel, count_red_pixels
from preprocessing.highlight import (
    HighlightSpec,
    decode_image,
    encode_png,
    highlight_regions,
    load_rgb,
    main,
    process_image,
    sample_regions,
)


class TestSampleRegions:

    def test_regions_stay_in_central_band(self):
        spec = HighlightSpec()
        rng = np.random.default_rng(0)
        for _ in range(50):
            regions = sample_regions(400, 300, spec, rng)
            assert 1 <= len(regions) <= 3
            for r in regions:
                assert 0.15 * 400 <= r.x < 0.85 * 400
                assert 0.2 * 300 <= r.y < 0.8 * 300
                assert 20 <= r.radius < 60

    def test_region_count_is_configurable(self):
        spec = HighlightSpec(min_regions=2, max_regions=2)
        assert len(sample_regions(100, 100, spec, np.random.default_rng(1))) == 2


class TestHighlightRegions:

    def test_seeded_runs_are_reproducible(self, gray_scan):
        a = highlight_regions(gray_scan, rng=np.random.default_rng(7))
        b = highlight_regions(gray_scan, rng=np.random.default_rng(7))
        assert a.regions == b.regions
        assert np.array_equal(np.asarray(a.image), np.asarray(b.image))

    def test_input_is_not_mutated(self, gray_scan):
        before = gray_scan.copy()
        highlight_regions(gray_scan, rng=np.random.default_rng(3))
        assert np.array_equal(gray_scan, before)

    def test_painted_regions_read_as_red(self, gray_scan):
        result = highlight_regions(gray_scan, rng=np.random.default_rng(11))
        rgb = np.asarray(result.image)
        assert rgb.shape == gray_scan.shape
        assert count_red_pixels(rgb) > 0
        # a disc of radius >= 20 covers > 1% of a 200x200 scan
        assert RedPixelImageModel().predict(result.image).opinion.predicted_positive is True

    def test_accepts_pil_image(self, gray_scan):
        result = highlight_regions(Image.fromarray(gray_scan), rng=np.random.default_rng(5))
        assert result.image.mode == "RGB"
        assert result.image.size == (200, 200)

    def test_rejects_bad_shape(self):
        with pytest.raises(ValueError):
            highlight_regions(np.zeros((10, 10), dtype=np.uint8))

    def test_regions_as_dicts(self, gray_scan):
        result = highlight_regions(gray_scan, rng=np.random.default_rng(2))
        dicts = result.regions_as_dicts()
        assert len(dicts) == len(result.regions)
        assert set(dicts[0]) == {"x", "y", "radius"}

    async def test_process_image_without_delay(self, gray_scan, instant_spec):
        result = await process_image(gray_scan, spec=instant_spec, rng=np.random.default_rng(7))
        expected = highlight_regions(gray_scan, rng=np.random.default_rng(7))
        assert result.regions == expected.regions


class TestImageIO:

    def test_decode_png(self, png_bytes):
        img = decode_image(png_bytes)
        assert img.size == (200, 200)

    def test_decode_garbage(self):
        with pytest.raises(ValueError):
            decode_image(b"not an image")

    def test_load_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_rgb(str(tmp_path / "missing.png"))

    def test_load_from_disk(self, tmp_path, gray_scan):
        path = tmp_path / "scan.png"
        Image.fromarray(gray_scan).save(path)
        assert load_rgb(str(path)).size == (200, 200)

    def test_encode_png_round_trips_size(self, gray_scan):
        img = decode_image(encode_png(Image.fromarray(gray_scan)))
        assert img.size == (200, 200)


class TestCommandLine:

    def test_writes_highlighted_png(self, monkeypatch, capsys, tmp_path):
        src = tmp_path / "scan.png"
        Image.fromarray(np.full((120, 160, 3), 100, dtype=np.uint8)).save(src)
        out = tmp_path / "out" / "highlighted.png"
        monkeypatch.setattr(sys, "argv", [
            "lung-scan-highlight", "--image", str(src), "--seed", "7", "--out", str(out),
        ])
        main()

        highlighted = Image.open(out)
        assert highlighted.size == (160, 120)
        assert count_red_pixels(np.asarray(highlighted.convert("RGB"))) > 0
        assert "Highlighted" in capsys.readouterr().out

    def test_missing_image(self, monkeypatch, tmp_path):
        monkeypatch.setattr(sys, "argv", [
            "lung-scan-highlight", "--image", str(tmp_path / "nope.png"), "--out", str(tmp_path / "o.png"),
        ])
        with pytest.raises(FileNotFoundError):
            main()

from dchdigi.cli.viz import app
from dchdigi.vis.debug import (
    DebugHistograms,
    Histogram1D,
    read_debug_histograms,
    save_debug_png,
    write_debug_histograms,
)
from typer.testing import CliRunner
import numpy as np
import math
import pytest


def test_histogram_fill_and_merge():
    h = Histogram1D.uniform(4, 0.0, 1.0)
    for x in (-0.1, 0.0, 0.3, 0.3, 0.99, 1.0, 2.0):
        h.fill(x)
    np.testing.assert_array_equal(h.counts, [1, 2, 0, 1])
    assert (h.underflow, h.overflow, h.entries) == (1, 2, 7)

    other = Histogram1D.uniform(4, 0.0, 1.0)
    other.fill(0.6)
    h.merge(other)
    np.testing.assert_array_equal(h.counts, [1, 2, 1, 1])

    with pytest.raises(ValueError):
        h.merge(Histogram1D.uniform(5, 0.0, 1.0))


def test_mean_rms():
    h = Histogram1D.uniform(2, 0.0, 2.0)
    assert all(math.isnan(v) for v in h.mean_rms())
    h.fill(0.2)
    h.fill(1.7)
    mean, rms = h.mean_rms()
    assert math.isclose(mean, 1.0) and math.isclose(rms, 0.5)


def test_ranges_follow_resolutions():
    histos = DebugHistograms.for_resolutions(0.1, 0.01)
    assert histos.hists["hSz"].edges[-1] == pytest.approx(0.5)
    assert histos.hists["hSxy"].edges[0] == pytest.approx(-0.05)
    # zero resolution still gets a usable range
    histos = DebugHistograms.for_resolutions(0.0, 0.0)
    assert histos.hists["hSz"].edges[-1] > 0


def test_write_read_png(tmp_path):
    histos = DebugHistograms.for_resolutions(0.1, 0.01)
    rng = np.random.default_rng(0)
    for x in rng.normal(0.0, 0.1, 500):
        histos.fill("hSz", x)
    histos.fill("hDpw", 0.4)

    p = write_debug_histograms(tmp_path / "dbg" / "debug.h5", histos)
    back = read_debug_histograms(p)
    assert set(back.hists) == set(histos.hists)
    np.testing.assert_array_equal(back.hists["hSz"].counts, histos.hists["hSz"].counts)
    assert back.hists["hSz"].entries == 500

    out = save_debug_png(p)
    assert out.endswith("debug.png")
    assert (tmp_path / "dbg" / "debug.png").stat().st_size > 0


def test_viz_cli(tmp_path):
    histos = DebugHistograms.for_resolutions(0.1, 0.01)
    histos.fill("hDpw", 0.4)
    p = write_debug_histograms(tmp_path / "debug.h5", histos)

    runner = CliRunner()
    result = runner.invoke(app, ["debug-png", str(p), "--out", str(tmp_path / "x.png")])
    assert result.exit_code == 0, result.output
    assert (tmp_path / "x.png").exists()

    result = runner.invoke(app, ["debug-summary", str(p)])
    assert result.exit_code == 0, result.output
    assert "hDpw" in result.output and "entries=       1" in result.output

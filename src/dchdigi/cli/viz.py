from __future__ import annotations

import typer
from typing import Optional

from dchdigi.vis.debug import read_debug_histograms, save_debug_png

app = typer.Typer(help="Drift chamber digitization debug tools")

@app.command("debug-png")
def debug_png(
    h5_path: str = typer.Argument(..., help="Path to HDF5 file containing /histograms"),
    out: Optional[str] = typer.Option(None, "--out", "-o", help="Output PNG path (defaults to file.png)"),
):
    """Render the debug histograms of a digitization run to a PNG."""
    out_png = save_debug_png(h5_path, out_png=out)
    typer.echo(f"Wrote {out_png}")

@app.command("debug-summary")
def debug_summary(
    h5_path: str = typer.Argument(..., help="Path to HDF5 file containing /histograms"),
):
    """Print entries, mean and RMS of each debug histogram."""
    histos = read_debug_histograms(h5_path)
    for name in sorted(histos.hists):
        h = histos.hists[name]
        mean, rms = h.mean_rms()
        typer.echo(f"{name:6s} entries={h.entries:8d} under={h.underflow} over={h.overflow} "
                   f"mean={mean:.4g} rms={rms:.4g}")

if __name__ == "__main__":
    app()

from __future__ import annotations

from pathlib import Path
from typing import Optional
import typer

import numpy as np

from dchdigi.config.load import load_config
from dchdigi.digi.builder import DigiBuilder, digitize_events
from dchdigi.digi.errors import StartupError
from dchdigi.io.digi_store import write_init, write_digi_results
from dchdigi.io.sim_store import read_sim_events
from dchdigi.vis.debug import write_debug_histograms, save_debug_png


def run_pipeline(
    cfg_path: str,
    *,
    workers: Optional[int] = None,
    debug_histograms: Optional[bool] = None,
) -> Path:
    """
    Digitize all events of the configured input file.

    CLI flags (--workers, --debug-histograms/--no-debug-histograms) override
    the corresponding config fields when not None.

    Raises StartupError for configuration, geometry or cluster table
    problems. Events that fail to digitize are reported and stored with
    status=1; they do not stop the run.

    Returns
    -------
    Path to written HDF5 file.
    """
    cfg = load_config(cfg_path)

    # ---- apply CLI overrides on top of TOML ----
    if workers is not None:
        cfg.run.workers = workers
    if debug_histograms is not None:
        cfg.debug.create_histograms = debug_histograms

    diag_level = cfg.run.diagnostics_level

    if diag_level >= 1:
        print(f"[run] config = {cfg_path}")
        print(f"[run] input={cfg.io.input_path} -> output={cfg.io.output_path}")
        print(f"[run] zResolution={cfg.digi.z_resolution_mm} mm xyResolution={cfg.digi.xy_resolution_mm} mm "
              f"workers={cfg.run.workers} debug_histograms={cfg.debug.create_histograms}")

    # Geometry, decoder and cluster table: any failure here aborts the run
    builder = DigiBuilder.from_config(cfg)
    if diag_level >= 2:
        geo = builder.geometry
        print(f"[geometry] {geo.nsuperlayers} superlayers x {geo.nlayers_per_superlayer} layers, "
              f"half length {geo.half_length_cm} cm, twist {np.degrees(geo.twist_angle_rad):.2f} deg")
        print(f"[geometry] layer 1: r_sw={geo.layer(1).radius_sw_z0:.3f} cm, ncells={geo.layer(1).ncells}; "
              f"layer {geo.nlayers}: r_sw={geo.layer(geo.nlayers).radius_sw_z0:.3f} cm, "
              f"ncells={geo.layer(geo.nlayers).ncells}")
        print(f"[clusters] table with {builder.sampler.table.n_rows} dE/dx rows from {cfg.digi.cluster_table_path}")

    input_path = Path(cfg.io.input_path)
    if not input_path.is_file():
        raise StartupError(f"Input file not found: {input_path}")
    events = read_sim_events(input_path)
    n_hits = sum(len(ev.hits) for ev in events)
    if diag_level >= 1:
        print(f"[pipeline] Got {len(events)} events, {n_hits} sim hits")

    results, histos = digitize_events(builder, events, workers=cfg.run.workers, progress=cfg.run.progress)

    failed = [r for r in results if not r.ok]
    if diag_level >= 1:
        n_digis = sum(len(r.digis) for r in results)
        print(f"[pipeline] Built {n_digis} digis in {len(results) - len(failed)} events")
        for r in failed[:10] if diag_level < 2 else failed:
            print(f"[pipeline] Event failed: {r.failure}")
        if len(failed) > 10 and diag_level < 2:
            print(f"[pipeline] ... {len(failed) - 10} more failed events")

    sim_ptr = np.zeros(len(events) + 1, dtype=np.int64)
    sim_ptr[1:] = np.cumsum([len(ev.hits) for ev in events], dtype=np.int64)

    out_path = Path(cfg.io.output_path)
    out_path.parent.mkdir(parents=True, exist_ok=True)
    f = write_init(out_path, cfg_path)
    try:
        write_digi_results(f, results, sim_event_ptr=sim_ptr)
    finally:
        f.close()

    if histos is not None:
        debug_path = write_debug_histograms(cfg.debug.output_path, histos)
        if diag_level >= 1:
            print(f"[debug] Wrote histograms to {debug_path}")
        if cfg.debug.export_png:
            try:
                out_png = save_debug_png(debug_path)
                if diag_level >= 1:
                    print(f"[debug] Wrote PNG {out_png}")
            except (OSError, ValueError) as e:
                if diag_level >= 1:
                    print(f"[debug] PNG export failed: {e!r}")

    return out_path


# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------

app = typer.Typer(help="Drift chamber digitization (dchdigi.pipelines.core)")


@app.command()
def main(
    cfg_path: str = typer.Argument(
        ...,
        help="Path to TOML config file",
    ),
    workers: Optional[int] = typer.Option(
        None,
        "--workers",
        "-j",
        help="Override [run].workers (number of worker threads)",
    ),
    debug_histograms: Optional[bool] = typer.Option(
        None,
        "--debug-histograms / --no-debug-histograms",
        help="Override [debug].create_histograms",
    ),
):
    """
    Digitize the simulated drift chamber hits of a single config.
    """
    try:
        out_path = run_pipeline(cfg_path, workers=workers, debug_histograms=debug_histograms)
    except StartupError as exc:
        typer.echo(f"[run] startup failed: {exc}", err=True)
        raise typer.Exit(code=2)
    typer.echo(str(out_path))


if __name__ == "__main__":
    app()

"""
dchdigi.digi.builder

Per-hit digitization and the event loop.

For every simulated hit:
  1. decode the cell ID into (layer index, nphi),
  2. (once per event) seed the worker's random engine from (run, event),
  3. smear the hit in the wire frame,
  4. sample the ionization clusters,
  5. emit one DigiHit and one Association (weight 1.0).

Workers each own a DigiContext; geometry, decoder and cluster table are
shared read-only.
"""
from __future__ import annotations
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple
import os

import numpy as np
from tqdm import tqdm

from dchdigi.config.schemas import Config
from dchdigi.geometry.cellid import DCHCellIDDecoder
from dchdigi.geometry.dch import DCHGeometry
from dchdigi.geometry.wires import WireCalculator
from dchdigi.physics.hits import Association, DigiHit, SimEvent, SimHit
from dchdigi.vis.debug import DebugHistograms
from .clusters import ClusterSampler
from .errors import DecodingError, EventError, EventFailure
from .rng import RandomContext, UniqueIDSeeder
from .smearing import CM_TO_MM, MM_TO_CM, PositionSmearer, SmearDetails


@dataclass
class DigiContext:
    """Everything a worker mutates: its random engine and its debug histograms."""
    rng: RandomContext
    histos: Optional[DebugHistograms] = None


@dataclass
class EventResult:
    run_id: int
    event_id: int
    digis: List[DigiHit] = field(default_factory=list)
    associations: List[Association] = field(default_factory=list)
    failure: Optional[EventFailure] = None

    @property
    def ok(self) -> bool:
        return self.failure is None


class DigiBuilder:
    def __init__(
        self,
        decoder: DCHCellIDDecoder,
        wires: WireCalculator,
        sampler: ClusterSampler,
        seeder: UniqueIDSeeder,
        *,
        z_resolution_mm: float = 1.0,
        xy_resolution_mm: float = 0.1,
        debug_histograms: bool = False,
    ):
        self.decoder = decoder
        self.wires = wires
        self.smearer = PositionSmearer(wires)
        self.sampler = sampler
        self.seeder = seeder
        self.sigma_z_cm = z_resolution_mm * MM_TO_CM
        self.sigma_xy_cm = xy_resolution_mm * MM_TO_CM
        self.debug_histograms = debug_histograms

    @classmethod
    def from_config(cls, cfg: Config, *, debug_histograms: Optional[bool] = None) -> "DigiBuilder":
        """Build geometry, decoder and cluster table; raises StartupError on bad inputs."""
        from dchdigi.io.cluster_store import load_cluster_table

        geometry = DCHGeometry.from_cfg(cfg.geometry)
        decoder = DCHCellIDDecoder.from_descriptor(cfg.geometry.cellid_descriptor,
                                                   cfg.geometry.nlayers_per_superlayer)
        table = load_cluster_table(cfg.digi.cluster_table_path)
        return cls(
            decoder,
            WireCalculator(geometry),
            ClusterSampler(table),
            UniqueIDSeeder(cfg.run.base_seed, cfg.run.seed_name),
            z_resolution_mm=cfg.digi.z_resolution_mm,
            xy_resolution_mm=cfg.digi.xy_resolution_mm,
            debug_histograms=cfg.debug.create_histograms if debug_histograms is None else debug_histograms,
        )

    @property
    def geometry(self) -> DCHGeometry:
        return self.wires.geometry

    def new_context(self) -> DigiContext:
        rng = RandomContext(self.seeder, self.sigma_z_cm, self.sigma_xy_cm)
        histos = None
        if self.debug_histograms:
            histos = DebugHistograms.for_resolutions(self.sigma_z_cm, self.sigma_xy_cm)
        return DigiContext(rng=rng, histos=histos)

    # ---- per hit ----

    def decode(self, cell_id: int) -> Tuple[int, int]:
        ilayer, nphi = self.decoder.layer_and_nphi(cell_id)
        try:
            layer = self.geometry.layer(ilayer)
        except DecodingError as exc:
            raise DecodingError(f"cellID {int(cell_id):#x}: {exc}", cell_id=int(cell_id)) from exc
        if not (0 <= nphi < layer.ncells):
            raise DecodingError(
                f"cellID {int(cell_id):#x}: nphi={nphi} outside layer {ilayer} (0..{layer.ncells - 1})",
                cell_id=int(cell_id),
            )
        return ilayer, nphi

    def digitize_hit(self, hit: SimHit, ctx: DigiContext) -> Tuple[DigiHit, SmearDetails]:
        ilayer, nphi = self.decode(hit.cell_id)
        p_cm = np.asarray(hit.r_mm, dtype=np.float64) * MM_TO_CM

        d = self.smearer.smear_detailed(p_cm, ilayer, nphi, ctx.rng)
        ez = self.wires.wire_direction(ilayer, nphi)
        a = self.wires.wire_reference_point(ilayer, nphi)
        position_cm = a + d.along_wire * ez

        count, size = self.sampler.sample_clusters(hit.edep_GeV, hit.path_length_mm, ctx.rng.rng)

        digi = DigiHit(
            cell_id=int(hit.cell_id),
            t_ns=float(hit.t_ns),
            edep_GeV=float(hit.edep_GeV),
            position_mm=position_cm * CM_TO_MM,
            direction_sw=ez,
            distance_to_wire_mm=d.drift_distance * CM_TO_MM,
            along_wire_mm=d.along_wire * CM_TO_MM,
            cluster_count=count,
            cluster_size=size,
        )
        return digi, d

    def _fill_histos(self, ctx: DigiContext, event: SimEvent, details: Sequence[SmearDetails]) -> None:
        for hit, d in zip(event.hits, details):
            ilayer, nphi = self.decode(hit.cell_id)
            projection, _ = self.wires.project_on_wire(ilayer, nphi, np.asarray(hit.r_mm) * MM_TO_CM)
            ctx.histos.fill("hDpw", d.true_distance)
            ctx.histos.fill("hDww", np.linalg.norm(self.wires.hit_to_wire_vector(ilayer, nphi, projection)))
            ctx.histos.fill("hSz", d.delta_z)
            ctx.histos.fill("hSxy", d.delta_xy)

    # ---- per event ----

    def digitize_event(self, event: SimEvent, ctx: DigiContext) -> Tuple[List[DigiHit], List[Association]]:
        """Digitize one event; raises EventError (e.g. DecodingError) for the whole event."""
        ctx.rng.seed_for_event(event.run_id, event.event_id)
        try:
            digis: List[DigiHit] = []
            details: List[SmearDetails] = []
            for hit in event.hits:
                digi, d = self.digitize_hit(hit, ctx)
                digis.append(digi)
                details.append(d)
            associations = [Association(digi_index=i, sim_index=i, weight=1.0) for i in range(len(digis))]
            if ctx.histos is not None:
                self._fill_histos(ctx, event, details)
        finally:
            ctx.rng.end_event()
        return digis, associations

    def process_event(self, event: SimEvent, ctx: DigiContext) -> EventResult:
        """Like digitize_event, but per-event errors come back as EventResult.failure."""
        try:
            digis, associations = self.digitize_event(event, ctx)
        except EventError as exc:
            failure = EventFailure(exc.kind, str(exc), int(event.run_id), int(event.event_id))
            return EventResult(event.run_id, event.event_id, failure=failure)
        return EventResult(event.run_id, event.event_id, digis, associations)


def _resolve_workers(workers: int | str) -> int:
    if workers == "auto":
        return max(1, os.cpu_count() or 1)
    if isinstance(workers, int):
        return max(1, workers)
    raise ValueError("workers must be int or 'auto'")


def _process_chunk(builder: DigiBuilder, events: Sequence[SimEvent]) -> Tuple[List[EventResult], Optional[DebugHistograms]]:
    """Worker: one DigiContext for the whole chunk."""
    ctx = builder.new_context()
    results = [builder.process_event(ev, ctx) for ev in events]
    return results, ctx.histos


def digitize_events(
    builder: DigiBuilder,
    events: Sequence[SimEvent],
    workers: int | str = 1,
    progress: bool = False,
) -> Tuple[List[EventResult], Optional[DebugHistograms]]:
    """
    Digitize many events, optionally on a thread pool.

    Results come back in input order and do not depend on the number of
    workers: each event is seeded from its own (run, event).
    """
    events = list(events)
    n = len(events)
    workers = min(_resolve_workers(workers), max(1, n))

    if workers == 1:
        ctx = builder.new_context()
        it = tqdm(events, desc="digi", unit="event") if progress else events
        return [builder.process_event(ev, ctx) for ev in it], ctx.histos

    chunk = (n + workers - 1) // workers
    chunks = [events[i:i + chunk] for i in range(0, n, chunk)]

    results: List[EventResult] = []
    histos: Optional[DebugHistograms] = None
    pbar = tqdm(total=len(chunks), desc=f"digi x{workers}", unit="chunk") if progress else None
    with ThreadPoolExecutor(max_workers=workers) as ex:
        futs = [ex.submit(_process_chunk, builder, ch) for ch in chunks]
        # collect in submission order so output order matches input order
        for fut in futs:
            chunk_results, chunk_histos = fut.result()
            results.extend(chunk_results)
            if chunk_histos is not None:
                histos = chunk_histos if histos is None else histos.merge(chunk_histos)
            if pbar:
                pbar.update(1)
    if pbar:
        pbar.close()
    return results, histos

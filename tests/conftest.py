from dchdigi.config.schemas import GeometryCfg
from dchdigi.digi.builder import DigiBuilder
from dchdigi.digi.clusters import ClusterSampler
from dchdigi.digi.rng import UniqueIDSeeder
from dchdigi.geometry.cellid import DCHCellIDDecoder
from dchdigi.geometry.dch import DCHGeometry
from dchdigi.geometry.wires import WireCalculator
from dchdigi.sim.synth import make_toy_cluster_table
import pytest


@pytest.fixture
def geometry():
    return DCHGeometry.from_cfg(GeometryCfg())


@pytest.fixture
def wires(geometry):
    return WireCalculator(geometry)


@pytest.fixture
def decoder():
    cfg = GeometryCfg()
    return DCHCellIDDecoder.from_descriptor(cfg.cellid_descriptor, cfg.nlayers_per_superlayer)


@pytest.fixture
def toy_table():
    return make_toy_cluster_table()


@pytest.fixture
def make_builder(wires, decoder, toy_table):
    def _make(z_resolution_mm=1.0, xy_resolution_mm=0.1, debug_histograms=False, base_seed=0):
        return DigiBuilder(
            decoder, wires, ClusterSampler(toy_table), UniqueIDSeeder(base_seed),
            z_resolution_mm=z_resolution_mm,
            xy_resolution_mm=xy_resolution_mm,
            debug_histograms=debug_histograms,
        )
    return _make

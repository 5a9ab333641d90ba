from dchdigi.digi.rng import RandomContext, UniqueIDSeeder
from dchdigi.digi.smearing import PositionSmearer
from dchdigi.sim.synth import perpendicular_unit
import numpy as np
import math


def _point(wires, ilayer, nphi, along, offset, angle=0.0):
    ez = wires.wire_direction(ilayer, nphi)
    a = wires.wire_reference_point(ilayer, nphi)
    return a + along * ez + offset * perpendicular_unit(ez, angle)


def test_zero_resolution_is_exact(wires):
    smearer = PositionSmearer(wires)
    ctx = RandomContext(UniqueIDSeeder(), 0.0, 0.0)
    ctx.seed_for_event(0, 0)

    res = smearer.smear(wires.wire_reference_point(3, 10), 3, 10, ctx)
    assert abs(res.drift_distance) < 1e-12
    assert abs(res.along_wire) < 1e-12

    res = smearer.smear(_point(wires, 3, 10, 12.5, 0.5, angle=1.0), 3, 10, ctx)
    assert math.isclose(res.drift_distance, 0.5, abs_tol=1e-12)
    assert math.isclose(res.along_wire, 12.5, abs_tol=1e-9)


def test_details_are_consistent(wires):
    smearer = PositionSmearer(wires)
    ctx = RandomContext(UniqueIDSeeder(), 0.1, 0.01)
    ctx.seed_for_event(0, 1)
    d = smearer.smear_detailed(_point(wires, 60, 5, -40.0, 0.3), 60, 5, ctx)
    assert math.isclose(d.true_distance, 0.3, rel_tol=1e-12)
    assert math.isclose(d.true_along_wire, -40.0, abs_tol=1e-9)
    assert d.drift_distance == d.true_distance + d.delta_xy
    assert d.along_wire == d.true_along_wire + d.delta_z


def test_draw_order_z_then_xy(wires):
    smearer = PositionSmearer(wires)
    ctx = RandomContext(UniqueIDSeeder(), 0.1, 0.01)
    ctx.seed_for_event(4, 4)
    d = smearer.smear_detailed(_point(wires, 7, 7, 1.0, 0.2), 7, 7, ctx)

    ref = RandomContext(UniqueIDSeeder(), 0.1, 0.01)
    ref.seed_for_event(4, 4)
    assert d.delta_z == ref.gauss_z()
    assert d.delta_xy == ref.gauss_xy()


def test_empirical_resolutions(wires):
    sigma_z, sigma_xy = 0.1, 0.01   # cm
    smearer = PositionSmearer(wires)
    ctx = RandomContext(UniqueIDSeeder(), sigma_z, sigma_xy)
    ctx.seed_for_event(0, 99)
    p = _point(wires, 20, 40, 5.0, 0.4)

    n = 20000
    dxy = np.empty(n)
    dz = np.empty(n)
    for i in range(n):
        d = smearer.smear_detailed(p, 20, 40, ctx)
        dxy[i] = d.drift_distance - 0.4
        dz[i] = d.along_wire - 5.0

    assert abs(dxy.std() / sigma_xy - 1) < 0.03
    assert abs(dz.std() / sigma_z - 1) < 0.03
    assert abs(dxy.mean()) < 5 * sigma_xy / math.sqrt(n)
    assert abs(dz.mean()) < 5 * sigma_z / math.sqrt(n)

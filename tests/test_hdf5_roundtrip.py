from dchdigi.digi.builder import EventResult
from dchdigi.digi.errors import ErrorKind, EventFailure
from dchdigi.io.digi_store import STATUS_FAILED, STATUS_OK, read_digi, write_digi_results, write_init
from dchdigi.io.sim_store import iter_sim_events, read_sim_events, write_sim_events
from dchdigi.physics.hits import Association, DigiHit, SimEvent, SimHit
from dchdigi.sim.synth import synth_sim_events
import numpy as np


def test_sim_store_roundtrip(tmp_path, wires, decoder):
    events = synth_sim_events(wires, decoder, 4, hits_per_event=6, run_id=2, first_event=10,
                              rng=np.random.default_rng(0))
    events.insert(2, SimEvent(run_id=2, event_id=99))
    p = write_sim_events(tmp_path / "sim.h5", events)

    back = read_sim_events(p)
    assert [(e.run_id, e.event_id, len(e.hits)) for e in back] == \
        [(e.run_id, e.event_id, len(e.hits)) for e in events]
    for ev, bev in zip(events, back):
        for h, bh in zip(ev.hits, bev.hits):
            assert bh.cell_id == h.cell_id
            np.testing.assert_array_equal(bh.r_mm, h.r_mm)
            assert (bh.edep_GeV, bh.path_length_mm, bh.t_ns) == (h.edep_GeV, h.path_length_mm, h.t_ns)
    assert next(iter_sim_events(p)).event_id == 10


def _digi(cell_id, d):
    return DigiHit(cell_id=cell_id, t_ns=1.0, edep_GeV=2e-6,
                   position_mm=np.array([1.0, 2.0, d]), direction_sw=np.array([0.0, 0.0, 1.0]),
                   distance_to_wire_mm=d, along_wire_mm=-d, cluster_count=3, cluster_size=7)


def test_digi_store_roundtrip(tmp_path):
    ok0 = EventResult(0, 1, [_digi(5, 0.1), _digi(6, 0.2)],
                      [Association(0, 0), Association(1, 1)])
    bad = EventResult(0, 2, failure=EventFailure(ErrorKind.EVENT, "cellID 0x1: boom", 0, 2))
    ok1 = EventResult(0, 3, [_digi(7, 0.3)], [Association(0, 0)])
    # input had 2, 4 and 1 hits
    sim_ptr = np.array([0, 2, 6, 7], dtype=np.int64)

    cfg = tmp_path / "cfg.toml"
    cfg.write_text("# config\n")
    f = write_init(tmp_path / "digi.h5", cfg)
    try:
        write_digi_results(f, [ok0, bad, ok1], sim_event_ptr=sim_ptr)
    finally:
        f.close()

    t = read_digi(tmp_path / "digi.h5")
    np.testing.assert_array_equal(t.events["event"], [1, 2, 3])
    np.testing.assert_array_equal(t.events["status"], [STATUS_OK, STATUS_FAILED, STATUS_OK])
    assert t.events["error"][0] == "" and "boom" in t.events["error"][1]
    np.testing.assert_array_equal(t.digi["event_ptr"], [0, 2, 2, 3])
    np.testing.assert_array_equal(t.digi["cell_id"], [5, 6, 7])
    np.testing.assert_allclose(t.digi["distance_to_wire_mm"], [0.1, 0.2, 0.3])
    assert t.digi["position_mm"].shape == (3, 3)
    np.testing.assert_array_equal(t.assoc["digi_index"], [0, 1, 2])
    np.testing.assert_array_equal(t.assoc["sim_index"], [0, 1, 6])
    np.testing.assert_array_equal(t.assoc["weight"], [1.0, 1.0, 1.0])
    assert t.event_slice(1) == slice(2, 2)
    assert t.event_slice(2) == slice(2, 3)

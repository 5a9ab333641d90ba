from dchdigi.config.load import load_config
from dchdigi.config.schemas import Config
from dchdigi.digi.errors import StartupError
import pytest

MINIMAL = """
[io]
input_path = "sim.h5"
output_path = "digi.h5"

[digi]
cluster_table_path = "clusters.h5"
"""


def test_minimal_config_defaults(tmp_path):
    p = tmp_path / "cfg.toml"
    p.write_text(MINIMAL)
    cfg = load_config(p)
    assert isinstance(cfg, Config)
    assert cfg.run.workers == "auto"
    assert cfg.run.diagnostics_level == 1
    assert cfg.run.seed_name == "DCHdigi"
    assert cfg.digi.z_resolution_mm == 1.0
    assert cfg.digi.xy_resolution_mm == 0.1
    assert cfg.geometry.cellid_descriptor == "system:5,superlayer:5,layer:4,nphi:11,stereosign:-2"
    assert cfg.geometry.nsuperlayers == 14 and cfg.geometry.nlayers_per_superlayer == 8
    assert cfg.debug.create_histograms is False
    assert cfg.debug.output_path == "dch_digi_alg_debug.h5"


def test_full_config(tmp_path):
    p = tmp_path / "cfg.toml"
    p.write_text(MINIMAL + """
[run]
workers = 4
diagnostics_level = 0
base_seed = 17

[geometry]
nsuperlayers = 2
twist_angle_deg = 20.0

[debug]
create_histograms = true
export_png = false
""")
    cfg = load_config(p)
    assert cfg.run.workers == 4
    assert cfg.run.base_seed == 17
    assert cfg.geometry.nsuperlayers == 2
    assert cfg.geometry.ncell0 == 192
    assert cfg.geometry.twist_angle_deg == 20.0
    assert cfg.debug.create_histograms and not cfg.debug.export_png


@pytest.mark.parametrize("extra", [
    "[run]\ndiagnostics_level = 5\n",
    "[run]\nworkers = -1\n",
    "[run]\nworkers = \"many\"\n",
])
def test_invalid_run_section(tmp_path, extra):
    p = tmp_path / "cfg.toml"
    p.write_text(MINIMAL + extra)
    with pytest.raises(StartupError):
        load_config(p)


def test_invalid_resolution(tmp_path):
    p = tmp_path / "cfg.toml"
    p.write_text(MINIMAL.replace('cluster_table_path = "clusters.h5"',
                                 'cluster_table_path = "clusters.h5"\nxy_resolution_mm = -0.1'))
    with pytest.raises(StartupError):
        load_config(p)


def test_missing_sections_and_files(tmp_path):
    p = tmp_path / "cfg.toml"
    p.write_text('[io]\ninput_path = "a"\noutput_path = "b"\n')
    with pytest.raises(StartupError):
        load_config(p)

    p.write_text("[io\ninput_path = ")
    with pytest.raises(StartupError):
        load_config(p)

    with pytest.raises(StartupError):
        load_config(tmp_path / "nope.toml")

"""Unit tests for the &LSDISP namelist parser and writer."""

import pytest

from pylsdisp.core.models import ConfigParseError, DispersionConfig, InvalidConfigError
from pylsdisp.data.config_parser import parse_config, parse_namelist, write_config


SAMPLE = """\
! convective test case
&LSDISP
 USTAR = 0.3, WSTAR = 1.5, OBUKHOV = -50.0,
 ZI = 1000.0, Z0 = 0.1,
 XMIN = 0.0, XMAX = 2000.0, ZMIN = 0.0, ZMAX = 500.0,
 NUMPAR = 500,   ! particles
 VS = 0.01, X0 = 0.0, H0 = 100.0,
 NXGRID = 20, NZGRID = 10,
 SEED = 42,
/
"""


def test_parse_sample():
    config = parse_config(SAMPLE)

    assert config.ustar == 0.3
    assert config.L == -50.0
    assert config.z_i == 1000.0
    assert config.n_particles == 500
    assert config.nxgrid == 20
    assert config.seed == 42
    # defaults fill unspecified run settings
    assert config.C0 == 4.0
    assert config.chunk_size == 1000


def test_write_then_parse_preserves_config():
    original = DispersionConfig(
        ustar=0.25, wstar=0.0, L=75.5, z_i=300.0, z0=0.05,
        xmin=-100.0, xmax=900.0, zmin=0.0, zmax=150.0,
        n_particles=1234, vs=0.002, x0=0.0, h0=12.5,
        nxgrid=8, nzgrid=6, seed=7, dt_max=5.0, num_workers=3,
    )
    assert parse_config(write_config(original)) == original


def test_writer_omits_missing_seed():
    config = parse_config(SAMPLE.replace(" SEED = 42,\n", ""))
    assert config.seed is None
    assert "SEED" not in write_config(config)


def test_fortran_double_exponent():
    values = parse_namelist("&LSDISP\n VS = 1.5D-3, DTMIN = 2d-2 /\n")
    assert values["vs"] == pytest.approx(1.5e-3)
    assert values["dt_min"] == pytest.approx(2e-2)


def test_integer_written_as_float_is_accepted():
    values = parse_namelist("&LSDISP\n NUMPAR = 1.0E3 /\n")
    assert values["n_particles"] == 1000
    assert isinstance(values["n_particles"], int)


def test_unknown_keys_and_trailing_text_ignored():
    text = "&LSDISP\n USTAR = 0.3, COLOUR = 7 /\n USTAR = 9.9\n"
    assert parse_namelist(text) == {"ustar": 0.3}


def test_end_marker_terminates_block():
    text = "&LSDISP\n USTAR = 0.3\n&END\n WSTAR = 2.0\n"
    assert parse_namelist(text) == {"ustar": 0.3}


def test_missing_header():
    with pytest.raises(ConfigParseError) as exc_info:
        parse_namelist(" USTAR = 0.3 /\n")
    assert exc_info.value.expected == "&LSDISP"


def test_bad_value_reports_line_number():
    text = "&LSDISP\n USTAR = 0.3,\n NUMPAR = lots,\n/\n"
    with pytest.raises(ConfigParseError) as exc_info:
        parse_namelist(text)
    assert exc_info.value.line_number == 3
    assert exc_info.value.expected == "int"


def test_fractional_integer_rejected():
    with pytest.raises(ConfigParseError):
        parse_namelist("&LSDISP\n NXGRID = 2.5 /\n")


def test_missing_required_keys():
    with pytest.raises(ConfigParseError, match="USTAR"):
        parse_config(SAMPLE.replace("USTAR = 0.3, ", ""))


def test_parsed_config_is_validated():
    with pytest.raises(InvalidConfigError):
        parse_config(SAMPLE.replace("ZMAX = 500.0", "ZMAX = -5.0"))


def test_slash_directly_after_value_ends_block():
    text = "&LSDISP\n USTAR = 0.3, ZMAX = 50.0/\n WSTAR = 2.0\n"
    assert parse_namelist(text) == {"ustar": 0.3, "zmax": 50.0}

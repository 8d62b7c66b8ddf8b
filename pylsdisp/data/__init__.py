"""Data I/O: namelist config parser and result writers."""

from pylsdisp.data.config_parser import parse_config, parse_namelist, write_config
from pylsdisp.data.output_writer import CSVWriter, load_npz, save_npz

__all__ = [
    'CSVWriter',
    'load_npz',
    'parse_config',
    'parse_namelist',
    'save_npz',
    'write_config',
]

"""Namelist configuration parser and writer.

Reads a Fortran-style namelist block

    &LSDISP
     USTAR = 0.3, WSTAR = 1.5, OBUKHOV = -50.0,
     ...
    /

into a DispersionConfig, and writes a DispersionConfig back out in the
same format.
"""

from __future__ import annotations

import re
from dataclasses import MISSING, fields

from pylsdisp.core.models import ConfigParseError, DispersionConfig


# Mapping from namelist keys to DispersionConfig field names + types
_KEY_MAP: dict[str, tuple[str, type]] = {
    "USTAR": ("ustar", float),
    "WSTAR": ("wstar", float),
    "OBUKHOV": ("L", float),
    "ZI": ("z_i", float),
    "Z0": ("z0", float),
    "XMIN": ("xmin", float),
    "XMAX": ("xmax", float),
    "ZMIN": ("zmin", float),
    "ZMAX": ("zmax", float),
    "NUMPAR": ("n_particles", int),
    "VS": ("vs", float),
    "X0": ("x0", float),
    "H0": ("h0", float),
    "NXGRID": ("nxgrid", int),
    "NZGRID": ("nzgrid", int),
    "C0": ("C0", float),
    "SEED": ("seed", int),
    "MAXSTEPS": ("max_steps", int),
    "MAXTIME": ("max_travel_time", float),
    "DTFRAC": ("dt_fraction", float),
    "DTMIN": ("dt_min", float),
    "DTMAX": ("dt_max", float),
    "CHUNK": ("chunk_size", int),
    "NWORKERS": ("num_workers", int),
}

_REQUIRED_FIELDS = tuple(
    f.name for f in fields(DispersionConfig)
    if f.default is MISSING and f.default_factory is MISSING
)

_PAIR_RE = re.compile(r'(\w+)\s*=\s*([^,/\n]+)')


def _convert(value: str, field_type: type, key: str, line_number: int):
    # Fortran exponents may use D instead of E
    text = value.strip().upper().replace("D", "E")
    try:
        if field_type is int:
            if re.fullmatch(r'[+-]?\d+', text):
                return int(text)
            as_float = float(text)
            if not as_float.is_integer():
                raise ValueError(text)
            return int(as_float)
        return float(text)
    except ValueError:
        raise ConfigParseError(
            f"Cannot parse value '{value.strip()}' for {key}",
            line_number=line_number,
            expected=field_type.__name__,
        )


def parse_namelist(text: str) -> dict:
    """Parse the ``&LSDISP`` namelist into DispersionConfig keyword arguments.

    Unknown keys are ignored.

    Raises
    ------
    ConfigParseError
        If the block header is missing or a value cannot be converted.
    """
    lines = text.splitlines()
    start = None
    for idx, raw in enumerate(lines):
        if re.match(r'\s*&LSDISP\b', raw, flags=re.IGNORECASE):
            start = idx
            break
    if start is None:
        raise ConfigParseError(
            "Missing namelist header",
            line_number=1,
            expected="&LSDISP",
        )

    result: dict = {}
    for idx in range(start, len(lines)):
        line = re.sub(r'&LSDISP\b', '', lines[idx], flags=re.IGNORECASE)
        line = line.split("!", 1)[0]  # Fortran comment
        ended = bool(re.search(r'/\s*$', line)) or bool(
            re.search(r'&END\b', line, flags=re.IGNORECASE))
        for key_raw, val_raw in _PAIR_RE.findall(line):
            key = key_raw.strip().upper()
            if key in _KEY_MAP:
                field_name, field_type = _KEY_MAP[key]
                result[field_name] = _convert(val_raw, field_type, key, idx + 1)
        if ended:
            break
    return result


def parse_config(text: str) -> DispersionConfig:
    """Parse namelist text into a validated DispersionConfig.

    Raises
    ------
    ConfigParseError
        On format errors or missing required keys.
    InvalidConfigError
        If the parsed values violate a precondition.
    """
    values = parse_namelist(text)
    missing = [name for name in _REQUIRED_FIELDS if name not in values]
    if missing:
        keys = [k for k, (name, _) in _KEY_MAP.items() if name in missing]
        raise ConfigParseError(
            f"Missing required keys: {', '.join(keys)}",
            expected="all physical run parameters",
        )
    config = DispersionConfig(**values)
    config.validate()
    return config


# ---------------------------------------------------------------------------
# Namelist writer
# ---------------------------------------------------------------------------

# Reverse mapping: DispersionConfig field name → namelist key
_FIELD_TO_KEY: dict[str, str] = {v[0]: k for k, v in _KEY_MAP.items()}


def write_config(config: DispersionConfig) -> str:
    """Generate namelist text from a DispersionConfig.

    ``SEED`` is omitted when the config has no seed.
    """
    lines: list[str] = ["&LSDISP"]
    for field_name, key in _FIELD_TO_KEY.items():
        value = getattr(config, field_name)
        if value is None:
            continue
        if isinstance(value, float):
            lines.append(f" {key} = {value!r},")
        else:
            lines.append(f" {key} = {value},")
    lines.append(" /")
    return "\n".join(lines) + "\n"

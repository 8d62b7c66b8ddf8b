"""Output writers for dispersion results.

Provides CSVWriter for plain-text concentration and deposition tables and
NPZ save/load of the complete result for later post-processing.
"""

from __future__ import annotations

import csv
from pathlib import Path

import numpy as np

from pylsdisp.core.models import DispersionResult, RunDiagnostics


# ---------------------------------------------------------------------------
# CSVWriter
# ---------------------------------------------------------------------------

class CSVWriter:
    """Write result fields to CSV format."""

    @staticmethod
    def write_concentration(filepath: str | Path, result: DispersionResult) -> None:
        """Write one row per grid cell: x, z, concentration, residence_time.

        Parameters
        ----------
        filepath : str or Path
            Output file path.
        result : DispersionResult
            Completed run.
        """
        with open(filepath, "w", newline="", encoding="utf-8") as fh:
            writer = csv.writer(fh)
            writer.writerow(["x", "z", "concentration", "residence_time"])
            for i, x in enumerate(result.xgrid):
                for j, z in enumerate(result.zgrid):
                    writer.writerow([
                        float(x), float(z),
                        float(result.cgrid[i, j]), float(result.pgrid[i, j]),
                    ])

    @staticmethod
    def write_deposition(filepath: str | Path, result: DispersionResult) -> None:
        """Write one row per primary bin: x, count, fraction."""
        fraction = result.deposition_fraction
        with open(filepath, "w", newline="", encoding="utf-8") as fh:
            writer = csv.writer(fh)
            writer.writerow(["x", "count", "fraction"])
            for i, x in enumerate(result.xgrid):
                writer.writerow([float(x), int(result.depgrid[i]), float(fraction[i])])


# ---------------------------------------------------------------------------
# NPZ
# ---------------------------------------------------------------------------

_DIAG_KEYS = ("n_released", "n_deposited", "n_escaped", "n_aborted", "n_steps")


def save_npz(filepath: str | Path, result: DispersionResult) -> None:
    """Save all result arrays and scalar diagnostics to a compressed ``.npz``."""
    diag = result.diagnostics
    np.savez_compressed(
        filepath,
        xgrid=result.xgrid,
        zgrid=result.zgrid,
        cgrid=result.cgrid,
        depgrid=result.depgrid,
        pgrid=result.pgrid,
        cell_sizes=np.array([result.cell_size_primary, result.cell_size_height]),
        regime=np.array(result.regime),
        cancelled=np.array(diag.cancelled),
        **{key: np.array(getattr(diag, key)) for key in _DIAG_KEYS},
    )


def load_npz(filepath: str | Path) -> DispersionResult:
    """Load a result written by :func:`save_npz`.

    Abort reasons are not stored and come back empty.
    """
    with np.load(filepath) as data:
        diag = RunDiagnostics(
            cancelled=bool(data["cancelled"]),
            **{key: int(data[key]) for key in _DIAG_KEYS},
        )
        cell_sizes = data["cell_sizes"]
        return DispersionResult(
            xgrid=data["xgrid"],
            zgrid=data["zgrid"],
            cgrid=data["cgrid"],
            depgrid=data["depgrid"],
            pgrid=data["pgrid"],
            cell_size_primary=float(cell_sizes[0]),
            cell_size_height=float(cell_sizes[1]),
            regime=str(data["regime"]),
            diagnostics=diag,
        )

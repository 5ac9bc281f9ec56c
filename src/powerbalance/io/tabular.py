"""Import of tabulated cross-section and efficiency data.

Files are plain ASCII with two (or more) whitespace separated columns:

    # Optional header/comment lines start with '#'.
    # f [Hz]    value
      f(1)      v(1)
      ...       ...
      f(N)      v(N)

The frequency column must be strictly ascending and must span the model
frequency grid: f(1) <= min(model) and f(N) >= max(model). Values are
linearly interpolated onto the model grid.
"""

from __future__ import annotations

import logging
from pathlib import Path

import numpy as np
from numpy.typing import ArrayLike, NDArray

from ..errors import DataError

logger = logging.getLogger(__name__)


def read_table(path: str | Path) -> NDArray[np.floating]:
    """Read a numeric table with '#' comment lines.

    Args:
        path: File to read

    Returns:
        2-D array with at least two columns

    Raises:
        DataError: If the file cannot be read or is not a numeric table
    """
    path = Path(path)
    if not path.is_file():
        raise DataError(f"Cannot open data file {path}")

    try:
        data = np.loadtxt(path, comments="#", ndmin=2)
    except ValueError as e:
        raise DataError(f"Malformed data file {path}: {e}") from e

    if data.shape[0] == 0:
        raise DataError(f"Data file {path} contains no rows")
    if data.shape[1] < 2:
        raise DataError(f"Data file {path} must have at least two columns, found {data.shape[1]}")
    if not np.all(np.isfinite(data)):
        raise DataError(f"Data file {path} contains non-finite values")
    return data


def import_and_interpolate(frequencies: ArrayLike, path: str | Path) -> NDArray[np.floating]:
    """Load tabulated data and interpolate it onto a frequency grid.

    Args:
        frequencies: Model frequency grid in Hz
        path: Two-column (frequency, value) ASCII file; extra columns are
            interpolated too

    Returns:
        Array of shape (len(frequencies), n_columns - 1)

    Raises:
        DataError: If the file is malformed, not ascending in frequency, or
            does not cover the requested frequencies
    """
    frequencies = np.atleast_1d(np.asarray(frequencies, dtype=float))
    data = read_table(path)
    f_data = data[:, 0]

    if np.any(np.diff(f_data) <= 0):
        raise DataError(f"Frequencies in data file {path} must be strictly ascending")
    if f_data[0] > frequencies.min():
        raise DataError(
            f"Lowest frequency in {path} ({f_data[0]:g} Hz) is above the model "
            f"minimum ({frequencies.min():g} Hz)"
        )
    if f_data[-1] < frequencies.max():
        raise DataError(
            f"Highest frequency in {path} ({f_data[-1]:g} Hz) is below the model "
            f"maximum ({frequencies.max():g} Hz)"
        )

    logger.debug("Interpolating %d rows from %s onto %d frequencies", len(f_data), path, len(frequencies))
    columns = [np.interp(frequencies, f_data, data[:, i]) for i in range(1, data.shape[1])]
    return np.column_stack(columns)

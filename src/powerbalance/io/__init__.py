"""I/O for tabulated cross-section data and solved results."""

from powerbalance.io.hdf5 import HDF5ResultReader, HDF5ResultWriter, save_result
from powerbalance.io.tabular import import_and_interpolate, read_table

__all__ = [
    "HDF5ResultWriter",
    "HDF5ResultReader",
    "save_result",
    "import_and_interpolate",
    "read_table",
]

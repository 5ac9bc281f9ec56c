"""HDF5 output format for solved power balance models.

Layout of a results file:

    /metadata            attrs: created_at, package_version, model_name,
                         script_hash, script_content, runtime, ...
    /frequencies         frequency grid [Hz]
    /cavities/<tag>/     one dataset per cavity quantity, attr "units"
    /absorbers/<tag>/    one dataset per absorber quantity
    /apertures/<tag>/    one dataset per aperture quantity
    /sources/<tag>/      one dataset per source quantity
    /edges               edge ledger, rows of (cavity, peer, element, kind)
    /energy_balance      residual per frequency, attr max_relative_residual

Element groups carry their type and topology as attributes.
"""

from __future__ import annotations

import hashlib
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING, Any

import h5py
import numpy as np
from numpy.typing import NDArray

from .._version import __version__
from ..core.graph import EdgeRecord, ElementKind
from ..core.results import QUANTITIES
from ..errors import DataError

if TYPE_CHECKING:
    from ..core.results import PowerBalanceResult

logger = logging.getLogger(__name__)

GROUPS = {
    ElementKind.CAVITY: "cavities",
    ElementKind.ABSORBER: "absorbers",
    ElementKind.APERTURE: "apertures",
    ElementKind.SOURCE: "sources",
}


class HDF5ResultWriter:
    """Writer for solved power balance results.

    Example:
        >>> result = model.solve()
        >>> with HDF5ResultWriter("results.h5", result, script_content) as writer:
        ...     writer.write_result()
    """

    def __init__(
        self,
        filename: str | Path,
        result: PowerBalanceResult,
        script_content: str | None = None,
        compression: str | None = "gzip",
        compression_level: int = 4,
    ):
        """Initialize HDF5 writer.

        Args:
            filename: Output file path
            result: Solved model snapshot
            script_content: Source script for reproducibility
            compression: Compression algorithm ('gzip', 'lzf', None)
            compression_level: Compression level (0-9 for gzip)
        """
        self.filename = Path(filename)
        self.result = result
        self.file = h5py.File(filename, "w")
        self.compression = compression
        self.compression_opts = compression_level if compression == "gzip" else None

        self._write_metadata(script_content)

    def _write_metadata(self, script_content: str | None):
        meta = self.file.create_group("metadata")
        if script_content:
            meta.attrs["script_hash"] = hashlib.sha256(script_content.encode()).hexdigest()
            meta.attrs["script_content"] = script_content
        meta.attrs["created_at"] = datetime.now(timezone.utc).isoformat()
        meta.attrs["package_version"] = __version__
        meta.attrs["model_name"] = self.result.name

        freq = self.file.create_dataset("frequencies", data=np.asarray(self.result.frequencies))
        freq.attrs["units"] = "Hz"

    def _create_dataset(self, group: h5py.Group, name: str, data: NDArray, units: str):
        dataset = group.create_dataset(
            name,
            data=data,
            compression=self.compression,
            compression_opts=self.compression_opts,
        )
        dataset.attrs["units"] = units

    def _write_element(self, kind: ElementKind, tag: str, attrs: dict[str, Any]):
        group = self.file.require_group(GROUPS[kind]).create_group(tag)
        for key, value in attrs.items():
            group.attrs[key] = value
        names = list(QUANTITIES[kind])
        values, units = self.result.get_output(kind, tag, names)
        for i, name in enumerate(names):
            self._create_dataset(group, name, values[:, i], units[i])

    def write_result(self):
        """Write every element group, the edge ledger and the energy balance."""
        graph = self.result.graph

        for cavity in graph.cavities:
            self._write_element(
                ElementKind.CAVITY,
                cavity.tag,
                {"type": cavity.variant.type_name, "area": cavity.area, "volume": cavity.volume},
            )
        for absorber in graph.absorbers.values():
            self._write_element(
                ElementKind.ABSORBER,
                absorber.tag,
                {
                    "type": absorber.variant.type_name,
                    "cavity": absorber.cavity_tag,
                    "multiplicity": absorber.multiplicity,
                    "area": absorber.area,
                },
            )
        for aperture in graph.apertures.values():
            self._write_element(
                ElementKind.APERTURE,
                aperture.tag,
                {
                    "type": aperture.variant.type_name,
                    "cavity_a": aperture.cavity_tag_a,
                    "cavity_b": aperture.cavity_tag_b,
                    "area": aperture.area,
                },
            )
        for source in graph.sources.values():
            self._write_element(
                ElementKind.SOURCE,
                source.tag,
                {"type": source.variant.type_name, "cavity": source.cavity_tag},
            )

        rows = [
            (e.cavity_tag, e.peer_tag, e.element_tag, e.kind.value) for e in self.result.edges
        ]
        self.file.create_dataset(
            "edges",
            data=np.array(rows, dtype=object).reshape(-1, 4),
            dtype=h5py.string_dtype(),
        )

        report = self.result.energy_balance_report()
        balance = self.file.create_dataset("energy_balance", data=report["residual"])
        balance.attrs["units"] = "W"
        balance.attrs["max_relative_residual"] = report["max_relative_residual"]
        logger.debug("Wrote result of model %s to %s", self.result.name, self.filename)

    def finalize(self, runtime: float | None = None, **extra_metadata):
        """Write final metadata and close file.

        Args:
            runtime: Total solve time in seconds
            **extra_metadata: Additional metadata to store
        """
        if not self.file:
            return
        if runtime is not None:
            self.file["metadata"].attrs["total_runtime_seconds"] = runtime
        for key, value in extra_metadata.items():
            self.file["metadata"].attrs[key] = value

        self.file.flush()
        self.file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.finalize()


def save_result(
    result: PowerBalanceResult,
    filename: str | Path,
    script_content: str | None = None,
    **extra_metadata,
) -> Path:
    """Write a solved result to ``filename`` in one call."""
    writer = HDF5ResultWriter(filename, result, script_content)
    try:
        writer.write_result()
    finally:
        writer.finalize(**extra_metadata)
    return writer.filename


class HDF5ResultReader:
    """Reader for power balance results from HDF5 files.

    Example:
        >>> with HDF5ResultReader("results.h5") as reader:
        ...     f = reader.load_frequencies()
        ...     values, units = reader.load_quantity("Cavity", "C1", "powerDensity")
    """

    def __init__(self, filename: str | Path):
        """Initialize reader.

        Args:
            filename: Path to HDF5 results file
        """
        self.filename = Path(filename)
        self.file = h5py.File(filename, "r")

    def get_metadata(self) -> dict[str, Any]:
        """Extract file metadata and element attributes.

        Returns:
            Dict with "metadata" and one entry per element group mapping
            tag to attributes
        """
        metadata = {}
        if "metadata" in self.file:
            metadata["metadata"] = dict(self.file["metadata"].attrs)
        for group_name in GROUPS.values():
            if group_name in self.file:
                metadata[group_name] = {
                    tag: dict(self.file[f"{group_name}/{tag}"].attrs)
                    for tag in self.file[group_name]
                }
        return metadata

    def load_frequencies(self) -> NDArray[np.floating]:
        """Load the frequency grid in Hz."""
        return self.file["frequencies"][:]

    def get_element_tags(self, kind: str | ElementKind) -> list[str]:
        """Tags of the stored elements of one kind."""
        group_name = GROUPS[ElementKind(kind)]
        if group_name not in self.file:
            return []
        return list(self.file[group_name].keys())

    def load_quantity(
        self, kind: str | ElementKind, tag: str, quantity: str
    ) -> tuple[NDArray[np.floating], str]:
        """Load one stored quantity.

        Returns:
            Tuple (values, units)

        Raises:
            KeyError: If the element or quantity is not in the file
        """
        path = f"{GROUPS[ElementKind(kind)]}/{tag}/{quantity}"
        if path not in self.file:
            raise KeyError(f"Quantity '{quantity}' of '{tag}' not found in {self.filename}")
        dataset = self.file[path]
        return dataset[:], str(dataset.attrs["units"])

    def load_edges(self) -> list[EdgeRecord]:
        """Load the edge ledger."""
        if "edges" not in self.file:
            raise DataError(f"No edge ledger in {self.filename}")
        rows = self.file["edges"].asstr()[:]
        return [
            EdgeRecord(cavity_tag=c, peer_tag=p, element_tag=e, kind=ElementKind(k))
            for c, p, e, k in rows
        ]

    def load_energy_balance(self) -> tuple[NDArray[np.floating], float]:
        """Load the energy balance residual and its worst relative value."""
        dataset = self.file["energy_balance"]
        return dataset[:], float(dataset.attrs["max_relative_residual"])

    def close(self):
        """Close the HDF5 file."""
        if self.file:
            self.file.close()

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()

"""
tokdd.geometry.grid
===================

Rectilinear (R,Z) mesh behind a profiles_2d flux map.

The equilibrium stores its 2D quantities on ``profiles_2d[:].grid.dim1`` (R)
and ``grid.dim2`` (Z), with 2D arrays indexed [ir, iz]. RZGrid mirrors that
layout and adds the derived mesh plus the upsampled copy used for tracing.

Grid sections in a settings file look like

grid:
  dim1: {min: 0.8, max: 2.6, n: 65}
  dim2: {min: -1.6, max: 1.6, n: 65}
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Mapping, Tuple

import numpy as np


# -----------------------------------------------------------------------------
# Grid container
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class RZGrid:
    """
    Frozen (R,Z) mesh, ij ordering.

    R, Z are the axis vectors (dim1, dim2); RR, ZZ the (nR, nZ) meshes.
    dR, dZ hold the first spacing of each axis.
    """
    R: np.ndarray
    Z: np.ndarray
    RR: np.ndarray
    ZZ: np.ndarray
    dR: float
    dZ: float

    @property
    def nR(self) -> int:
        return int(self.R.size)

    @property
    def nZ(self) -> int:
        return int(self.Z.size)

    @property
    def shape(self) -> Tuple[int, int]:
        return self.nR, self.nZ

    @property
    def center(self) -> Tuple[float, float]:
        """Mesh point at the middle of the box, the magnetic-axis seed."""
        iR = int(round(self.nR / 2)) - 1
        iZ = int(round(self.nZ / 2)) - 1
        return float(self.R[iR]), float(self.Z[iZ])

    def contains(self, r: float, z: float) -> bool:
        return bool(self.R[0] <= r <= self.R[-1] and self.Z[0] <= z <= self.Z[-1])

    def upsampled(self, factor: int) -> "RZGrid":
        """Same box, `factor` times as many points along each axis."""
        factor = int(factor)
        if factor < 1:
            raise ValueError(f"upsample factor must be >= 1 (got {factor})")
        if factor == 1:
            return self
        return rect_grid(
            float(self.R[0]), float(self.R[-1]), self.nR * factor,
            float(self.Z[0]), float(self.Z[-1]), self.nZ * factor,
        )


# -----------------------------------------------------------------------------
# Constructors
# -----------------------------------------------------------------------------

def grid_from_axes(R: Any, Z: Any) -> RZGrid:
    """Mesh two strictly increasing axis vectors."""
    axes = []
    for name, x in (("dim1", R), ("dim2", Z)):
        x = np.asarray(x, dtype=float)
        if x.ndim != 1 or x.size < 4:
            raise ValueError(f"{name} must be 1D with at least 4 points (got shape {x.shape})")
        if np.any(np.diff(x) <= 0.0):
            raise ValueError(f"{name} must be strictly increasing")
        axes.append(x)
    R, Z = axes
    RR, ZZ = np.meshgrid(R, Z, indexing="ij")
    return RZGrid(R=R, Z=Z, RR=RR, ZZ=ZZ, dR=float(R[1] - R[0]), dZ=float(Z[1] - Z[0]))


def grid_from_node(grid_node: Any) -> RZGrid:
    """RZGrid of a ``profiles_2d[:].grid`` node (reads dim1 and dim2)."""
    return grid_from_axes(grid_node.dim1, grid_node.dim2)


def rect_grid(Rmin: float, Rmax: float, nR: int, Zmin: float, Zmax: float, nZ: int) -> RZGrid:
    """Uniform grid with linspace axes."""
    for name, lo, hi in (("R", Rmin, Rmax), ("Z", Zmin, Zmax)):
        if not (np.isfinite(lo) and np.isfinite(hi) and hi > lo):
            raise ValueError(f"Invalid {name} range: min={lo}, max={hi}")
    return grid_from_axes(np.linspace(Rmin, Rmax, int(nR)), np.linspace(Zmin, Zmax, int(nZ)))


def build_grid(cfg: Mapping[str, Any]) -> RZGrid:
    """RZGrid from the ``grid`` section of a settings mapping."""
    if not isinstance(cfg, Mapping):
        raise TypeError(f"cfg must be a mapping, got {type(cfg).__name__}")
    section = cfg.get("grid")
    if not isinstance(section, Mapping):
        raise ValueError("cfg has no 'grid' section")
    unknown = set(section) - {"dim1", "dim2"}
    if unknown:
        raise ValueError(f"Unknown grid keys: {sorted(unknown)}")
    Rmin, Rmax, nR = _read_axis(section, "dim1")
    Zmin, Zmax, nZ = _read_axis(section, "dim2")
    return rect_grid(Rmin, Rmax, nR, Zmin, Zmax, nZ)


def _read_axis(section: Mapping[str, Any], name: str) -> Tuple[float, float, int]:
    axis: Dict[str, Any] = section.get(name) or {}
    if not isinstance(axis, Mapping):
        raise ValueError(f"grid.{name} must be a mapping with min, max and n")
    return (
        _as_float(axis.get("min"), f"grid.{name}.min"),
        _as_float(axis.get("max"), f"grid.{name}.max"),
        _as_int(axis.get("n"), f"grid.{name}.n"),
    )


def _as_float(x: Any, name: str) -> float:
    if x is None:
        raise ValueError(f"Missing grid value: {name}")
    try:
        return float(x)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{name} is not a number: {x!r}") from e


def _as_int(x: Any, name: str) -> int:
    if x is None:
        raise ValueError(f"Missing grid value: {name}")
    try:
        n = int(x)
    except (TypeError, ValueError) as e:
        raise ValueError(f"{name} is not an integer: {x!r}") from e
    if n < 4:
        raise ValueError(f"{name} must be >= 4 (got {n})")
    return n

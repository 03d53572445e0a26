"""
tokdd.dd.schema
===============

Data-dictionary tables and lookups.

Purpose
-------
The data tree is self-describing: every field knows its data type, its
coordinates and its documentation. That information lives in YAML tables
bundled under tokdd/dd/data/ (one file per IDS) and is read once.

Conventions
-----------
• Keys are universal locations, e.g. "equilibrium.time_slice[:].profiles_1d.q"
• The root location is "" and its children are the IDS names
• A STRUCT_ARRAY at "x.y" has element location "x.y[:]"
• Coordinate names containing "..." are implicit indices (no data needed)

Public API
----------
load_schema()            -> Dict[str, FieldInfo]
field_info(location)     -> FieldInfo
children(location)       -> Dict[str, FieldInfo]
dependents(location)     -> Tuple[str, ...]
info(path)               -> dict
ids_names()              -> Tuple[str, ...]
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, List, Tuple

from tokdd.dd.paths import normalize_info_path
from tokdd.errors import UnknownPathError
from tokdd.io.config import discover_yaml_files, load_yaml


DATA_DIR = Path(__file__).resolve().parent / "data"

DATA_TYPES = {
    "IDS": 0,
    "STRUCTURE": 0,
    "STRUCT_ARRAY": 0,
    "STR_0D": 0,
    "INT_0D": 0,
    "FLT_0D": 0,
    "STR_1D": 1,
    "INT_1D": 1,
    "FLT_1D": 1,
    "FLT_2D": 2,
    "FLT_3D": 3,
}


# ============================================================
# FIELD DESCRIPTOR
# ============================================================

@dataclass(frozen=True)
class FieldInfo:
    """
    Schema entry for one location.

    Attributes
    ----------
    location : str
        Canonical universal path (full_path).
    name : str
        Last segment (field name as seen from the parent node).
    data_type : str
        One of DATA_TYPES.
    coordinates : tuple of str
        Coordinate names, one per array dimension (or for the struct array).
    documentation : str
    units : str
    """
    location: str
    name: str
    data_type: str
    coordinates: Tuple[str, ...] = ()
    documentation: str = ""
    units: str = ""

    @property
    def is_structure(self) -> bool:
        return self.data_type in ("IDS", "STRUCTURE")

    @property
    def is_struct_array(self) -> bool:
        return self.data_type == "STRUCT_ARRAY"

    @property
    def ndim(self) -> int:
        return DATA_TYPES[self.data_type]

    @property
    def is_array(self) -> bool:
        return self.ndim > 0

    @property
    def element_location(self) -> str:
        if not self.is_struct_array:
            raise TypeError(f"{self.location} is not an array of structures")
        return self.location + "[:]"

    def as_dict(self) -> Dict[str, Any]:
        return {
            "full_path": self.location,
            "data_type": self.data_type,
            "coordinates": list(self.coordinates),
            "documentation": self.documentation,
            "units": self.units,
        }


# ============================================================
# LOADING
# ============================================================

def _parent_location(location: str) -> str:
    return location.rsplit(".", 1)[0] if "." in location else ""


def _parse_entry(location: str, raw: Any, source: Path) -> FieldInfo:
    if not isinstance(raw, dict):
        raise TypeError(f"Schema entry {location!r} in {source} must be a mapping")
    dtype = str(raw.get("data_type", "")).strip().upper()
    if dtype not in DATA_TYPES:
        raise ValueError(f"Schema entry {location!r} in {source} has unknown data_type {dtype!r}")
    coords = raw.get("coordinates", []) or []
    if not isinstance(coords, list):
        raise TypeError(f"Schema entry {location!r} in {source}: coordinates must be a list")
    ndim = DATA_TYPES[dtype]
    if ndim and len(coords) != ndim:
        raise ValueError(f"Schema entry {location!r} in {source}: {dtype} needs {ndim} coordinate(s), got {len(coords)}")
    return FieldInfo(
        location=location,
        name=location.rsplit(".", 1)[-1],
        data_type=dtype,
        coordinates=tuple(str(c) for c in coords),
        documentation=str(raw.get("documentation", "") or ""),
        units=str(raw.get("units", "") or ""),
    )


@lru_cache(maxsize=None)
def load_schema() -> Dict[str, FieldInfo]:
    """
    Read every bundled IDS table and return location -> FieldInfo.

    Entries keep file order, so coordinates declared first come first.
    """
    table: Dict[str, FieldInfo] = {}
    for path in discover_yaml_files(DATA_DIR):
        for location, raw in load_yaml(path).items():
            location = str(location)
            if location in table:
                raise ValueError(f"Duplicate schema location {location!r} in {path}")
            table[location] = _parse_entry(location, raw, path)

    for location, finfo in table.items():
        parent = _parent_location(location)
        if parent and parent not in table:
            base = parent[:-3] if parent.endswith("[:]") else parent
            if base not in table or not table[base].is_struct_array:
                raise ValueError(f"Schema location {location!r} has no parent entry {parent!r}")
        if not parent and finfo.data_type != "IDS":
            raise ValueError(f"Top-level schema location {location!r} must be an IDS")
    return table


@lru_cache(maxsize=None)
def _children_index() -> Dict[str, Dict[str, FieldInfo]]:
    index: Dict[str, Dict[str, FieldInfo]] = {}
    for location, finfo in load_schema().items():
        index.setdefault(_parent_location(location), {})[finfo.name] = finfo
    return index


@lru_cache(maxsize=None)
def _dependents_index() -> Dict[str, Tuple[str, ...]]:
    index: Dict[str, List[str]] = {}
    for location, finfo in load_schema().items():
        if not finfo.is_array:
            continue
        for c in finfo.coordinates:
            if "..." not in c:
                index.setdefault(c, []).append(location)
    return {k: tuple(v) for k, v in index.items()}


# ============================================================
# LOOKUPS
# ============================================================

def field_info(location: str) -> FieldInfo:
    """Schema entry for an exact universal location."""
    try:
        return load_schema()[location]
    except KeyError:
        raise UnknownPathError(f"{location!r} is not a valid data dictionary location") from None


def children(location: str) -> Dict[str, FieldInfo]:
    """Fields of the node at `location` ("" for the root), in schema order."""
    return _children_index().get(location, {})


def dependents(location: str) -> Tuple[str, ...]:
    """Array fields that use `location` as one of their coordinates."""
    return _dependents_index().get(location, ())


def ids_names() -> Tuple[str, ...]:
    return tuple(children(""))


def info(path: str) -> Dict[str, Any]:
    """
    Documentation, coordinates, data type and canonical path of a field.

    Numeric indices are normalized, so "core_profiles.profiles_1d[1]",
    "core_profiles.profiles_1d[:]" and "core_profiles.profiles_1d" give the
    same answer.

    Raises
    ------
    UnknownPathError
        If the normalized path is not in the schema.
    """
    location = normalize_info_path(path)
    try:
        finfo = load_schema()[location]
    except KeyError:
        raise UnknownPathError(f"{path!r} is not a valid data dictionary path") from None
    return finfo.as_dict()

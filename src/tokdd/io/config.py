# src/tokdd/io/config.py
"""
tokdd.io.config
===============

YAML loading helpers and the flux-surface engine settings.

What belongs here
-----------------
- Discover YAML files in a directory (schema tables, user configs)
- Load YAML safely and normalize structures
- Build FluxSurfaceSettings from a YAML file or mapping, with validation

What does NOT belong here
-------------------------
- Interpretation of the data-dictionary tables (that's tokdd.dd.schema)
- Logging setup (that's tokdd.io.logging_utils)

Example config
--------------
flux_surfaces:
  upsample_factor: 2
  boundary_precision: 1.0e-6
  cocos: 11
"""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Union

import yaml


# -----------------------------------------------------------------------------
# YAML discovery + loading
# -----------------------------------------------------------------------------

def discover_yaml_files(config_dir: Path, recursive: bool = False) -> List[Path]:
    """
    Return a sorted list of .yaml/.yml files in config_dir.
    """
    config_dir = Path(config_dir).expanduser().resolve()
    if not config_dir.exists():
        raise FileNotFoundError(f"Config directory does not exist: {config_dir}")
    if not config_dir.is_dir():
        raise NotADirectoryError(f"Config path is not a directory: {config_dir}")

    if recursive:
        paths = list(config_dir.rglob("*.yaml")) + list(config_dir.rglob("*.yml"))
    else:
        paths = list(config_dir.glob("*.yaml")) + list(config_dir.glob("*.yml"))

    return sorted([p.resolve() for p in paths], key=lambda p: p.name.lower())


def load_yaml(path: Path) -> Dict[str, Any]:
    """
    Load YAML from path using safe loader.

    Normalization:
      - empty YAML -> {}
      - top-level must be a dict (mapping); otherwise error
    """
    path = Path(path).expanduser().resolve()
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}

    if not isinstance(data, dict):
        raise TypeError(f"Top-level YAML must be a mapping/dict: {path}")

    return data


# -----------------------------------------------------------------------------
# Flux-surface engine settings
# -----------------------------------------------------------------------------

@dataclass(frozen=True)
class FluxSurfaceSettings:
    """
    Numerical knobs of the flux-surface engine.

    upsample_factor          : points-per-axis multiplier for contour tracing
    boundary_precision       : relative tolerance of the LCFS bisection
    boundary_max_iterations  : bisection iteration cap
    optimizer_gtol           : gradient tolerance of the local optimizers
    extrema_weight           : weight pushing extrema refinement away from the axis
    axis_seed_points         : points of the synthetic on-axis ellipse
    cocos                    : COCOS convention of the stored psi
    xpoint_distance_fraction : legs farther than this fraction of sqrt(height*width)
                               from the LCFS are not treated as X-point legs
    """
    upsample_factor: int = 1
    boundary_precision: float = 1e-6
    boundary_max_iterations: int = 100
    optimizer_gtol: float = 1e-8
    extrema_weight: float = 1e-4
    axis_seed_points: int = 17
    cocos: int = 11
    xpoint_distance_fraction: float = 1.0 / 20.0

    def with_overrides(self, **overrides: Any) -> "FluxSurfaceSettings":
        """Copy with validated keyword overrides (None values are ignored)."""
        clean = {k: v for k, v in overrides.items() if v is not None}
        if not clean:
            return self
        return replace(self, **_coerce(clean))


_INT_KEYS = ("upsample_factor", "boundary_max_iterations", "axis_seed_points", "cocos")


def _coerce(raw: Mapping[str, Any]) -> Dict[str, Any]:
    known = {f.name for f in fields(FluxSurfaceSettings)}
    unknown = sorted(set(raw) - known)
    if unknown:
        raise ValueError(f"Unknown flux-surface setting(s): {unknown}. Known: {sorted(known)}")

    out: Dict[str, Any] = {}
    for key, value in raw.items():
        name = f"flux_surfaces.{key}"
        out[key] = _as_int(value, name) if key in _INT_KEYS else _as_float(value, name)

    if out.get("upsample_factor", 1) < 1:
        raise ValueError(f"flux_surfaces.upsample_factor must be >= 1 (got {out['upsample_factor']})")
    if out.get("boundary_max_iterations", 1) < 1:
        raise ValueError("flux_surfaces.boundary_max_iterations must be >= 1")
    if out.get("axis_seed_points", 5) < 5:
        raise ValueError("flux_surfaces.axis_seed_points must be >= 5")
    for key in ("boundary_precision", "optimizer_gtol", "extrema_weight", "xpoint_distance_fraction"):
        if key in out and not out[key] > 0.0:
            raise ValueError(f"flux_surfaces.{key} must be > 0 (got {out[key]})")
    return out


def load_settings(source: Optional[Union[str, Path, Mapping[str, Any]]] = None) -> FluxSurfaceSettings:
    """
    Build FluxSurfaceSettings from a YAML path or an already-loaded mapping.

    The settings may sit at the top level or under a "flux_surfaces" key.
    Missing keys keep their defaults; unknown keys raise ValueError.
    """
    if source is None:
        return FluxSurfaceSettings()

    if isinstance(source, Mapping):
        cfg: Mapping[str, Any] = source
    else:
        cfg = load_yaml(Path(source))

    section = cfg.get("flux_surfaces", cfg)
    if not isinstance(section, Mapping):
        raise TypeError("cfg['flux_surfaces'] must be a mapping.")
    return FluxSurfaceSettings(**_coerce(section))


def _as_float(x: Any, name: str) -> float:
    if x is None:
        raise ValueError(f"Missing required config value: {name}")
    try:
        return float(x)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid float for {name}: {x!r}") from e


def _as_int(x: Any, name: str) -> int:
    if x is None:
        raise ValueError(f"Missing required config value: {name}")
    if isinstance(x, float) and not x.is_integer():
        raise ValueError(f"Invalid int for {name}: {x!r}")
    try:
        return int(x)
    except (TypeError, ValueError) as e:
        raise ValueError(f"Invalid int for {name}: {x!r}") from e

"""
tokdd.dd.expressions
====================

Derived quantities for fields that hold no data.

When an unset leaf is read, the data tree looks up its universal location
here. A registered expression is called with the node that owns the field
and its result is returned (it is not stored). Expressions read other fields
through normal attribute access, so they chain; a missing input surfaces as
MissingDataError from the innermost read.

To add an expression:

    @register_expression("core_profiles.profiles_1d[:].electrons.pressure")
    def _electrons_pressure(electrons):
        return electrons.temperature * electrons.density * E_CHARGE

Expressions are switched off tree-wide with DD(use_expressions=False).
"""

from __future__ import annotations

from typing import Any, Callable, Dict, List, Optional

import numpy as np

from tokdd.constants import E_CHARGE
from tokdd.dd import schema
from tokdd.numerics.calculus import integrate


ExpressionFn = Callable[[Any], Any]


# -----------------------------------------------------------------------------
# Registry storage
# -----------------------------------------------------------------------------

_REGISTRY: Dict[str, ExpressionFn] = {}


def register_expression(location: str) -> Callable[[ExpressionFn], ExpressionFn]:
    """
    Decorator registering fn(owner_node) as the expression of `location`.

    The location must be a leaf of the data dictionary.
    """
    finfo = schema.field_info(location)
    if finfo.is_structure or finfo.is_struct_array:
        raise ValueError(f"Expressions are only supported on leaves, {location!r} is {finfo.data_type}")

    def _decorator(fn: ExpressionFn) -> ExpressionFn:
        if location in _REGISTRY:
            raise KeyError(f"Expression for '{location}' already registered.")
        _REGISTRY[location] = fn
        return fn

    return _decorator


def expression_for(location: str) -> Optional[ExpressionFn]:
    """Registered expression of a universal location (None if there is none)."""
    return _REGISTRY.get(location)


def registered_expressions() -> List[str]:
    return sorted(_REGISTRY.keys())


# -----------------------------------------------------------------------------
# Built-in expressions
# -----------------------------------------------------------------------------

_EQT = "equilibrium.time_slice[:]"


@register_expression("core_profiles.profiles_1d[:].electrons.pressure")
def _electrons_pressure(electrons):
    return np.asarray(electrons.temperature) * np.asarray(electrons.density) * E_CHARGE


@register_expression(f"{_EQT}.profiles_1d.psi_norm")
def _psi_norm(p1d):
    psi = np.asarray(p1d.psi, dtype=float)
    return (psi - psi[0]) / (psi[-1] - psi[0])


@register_expression(f"{_EQT}.global_quantities.energy_mhd")
def _energy_mhd(gq):
    p1d = gq._get_parent().profiles_1d
    return 1.5 * integrate(p1d.volume, p1d.pressure)


# boundary shape from the last closed flux surface of profiles_1d

def _lcfs(boundary, name: str) -> float:
    return float(getattr(boundary._get_parent().profiles_1d, name)[-1])


@register_expression(f"{_EQT}.boundary.elongation")
def _boundary_elongation(boundary):
    return _lcfs(boundary, "elongation")


@register_expression(f"{_EQT}.boundary.triangularity_upper")
def _boundary_triangularity_upper(boundary):
    return _lcfs(boundary, "triangularity_upper")


@register_expression(f"{_EQT}.boundary.triangularity_lower")
def _boundary_triangularity_lower(boundary):
    return _lcfs(boundary, "triangularity_lower")


@register_expression(f"{_EQT}.boundary.triangularity")
def _boundary_triangularity(boundary):
    return 0.5 * (boundary.triangularity_upper + boundary.triangularity_lower)


@register_expression(f"{_EQT}.boundary.minor_radius")
def _boundary_minor_radius(boundary):
    return 0.5 * (_lcfs(boundary, "r_outboard") - _lcfs(boundary, "r_inboard"))


@register_expression(f"{_EQT}.boundary.geometric_axis.r")
def _geometric_axis_r(axis):
    boundary = axis._get_parent()
    return 0.5 * (_lcfs(boundary, "r_outboard") + _lcfs(boundary, "r_inboard"))


@register_expression(f"{_EQT}.boundary.geometric_axis.z")
def _geometric_axis_z(axis):
    z = np.asarray(axis._get_parent().outline.z, dtype=float)
    return 0.5 * (float(z.max()) + float(z.min()))


for _corner in ("upper_inner", "upper_outer", "lower_inner", "lower_outer"):

    def _make(name: str) -> ExpressionFn:
        def _squareness(boundary):
            return _lcfs(boundary, name)
        return _squareness

    register_expression(f"{_EQT}.boundary.squareness_{_corner}")(_make(f"squareness_{_corner}"))

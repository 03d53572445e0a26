"""
tokdd.dd
========

Schema-driven, coordinate-aware data tree.

    from tokdd.dd import DD

    dd = DD()
    dd.core_profiles.profiles_1d.resize(1)
    p1 = dd.core_profiles.profiles_1d[0]
    p1.grid.rho_tor_norm = np.linspace(0, 1, 11)
    p1.electrons.temperature = lambda x: 1e3 * (1 - x**2)
"""

from tokdd.dd import expressions
from tokdd.dd.arrays import AnalyticArray, FieldArray, MaterializedArray
from tokdd.dd.convert import from_dict, to_dict
from tokdd.dd.node import (
    DD,
    Coordinates,
    Missing,
    Node,
    NodeArray,
    coordinates,
    get_field,
    global_time,
    keys,
    lookup,
    new_node,
    node_type,
    parent_of,
    path_of,
    path_str,
    set_field,
    top,
)
from tokdd.dd.paths import i2p, p2i, u_location
from tokdd.dd.schema import info
from tokdd.dd.time import get_time_array, get_time_slice, set_time_array, time_parent

__all__ = [
    "DD",
    "Node",
    "NodeArray",
    "FieldArray",
    "MaterializedArray",
    "AnalyticArray",
    "Missing",
    "Coordinates",
    "coordinates",
    "get_field",
    "set_field",
    "keys",
    "lookup",
    "new_node",
    "node_type",
    "parent_of",
    "path_of",
    "path_str",
    "top",
    "global_time",
    "i2p",
    "p2i",
    "u_location",
    "info",
    "to_dict",
    "from_dict",
    "time_parent",
    "set_time_array",
    "get_time_array",
    "get_time_slice",
    "expressions",
]

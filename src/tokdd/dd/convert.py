"""
tokdd.dd.convert
================

Nested-mapping import/export of the data tree.

to_dict(node)
    Plain dicts/lists with numpy arrays for array fields. Analytic arrays
    are evaluated. Empty structures are left out.

from_dict(data, into=None)
    Build (or fill) a tree from such a mapping. Fields are assigned through
    the normal set path in schema order, so coordinates are in place before
    the fields that depend on them.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional, Union

import numpy as np

from tokdd.dd.arrays import FieldArray
from tokdd.dd.node import DD, Node, NodeArray, get_field, keys, path_str, set_field
from tokdd.errors import UnknownPathError


def to_dict(item: Union[Node, NodeArray]) -> Union[Dict[str, Any], List[Dict[str, Any]]]:
    """Export a node (or array of nodes) to nested builtin containers."""
    if isinstance(item, NodeArray):
        return [to_dict(el) for el in item]

    out: Dict[str, Any] = {}
    for name in keys(item):
        value = item._data[name]
        if isinstance(value, Node):
            out[name] = to_dict(value)
        elif isinstance(value, NodeArray):
            out[name] = [to_dict(el) for el in value]
        elif isinstance(value, FieldArray):
            out[name] = np.array(value.values)
        else:
            out[name] = value
    return out


def from_dict(data: Mapping[str, Any], into: Optional[Node] = None) -> Node:
    """
    Fill `into` (a new DD by default) from nested mappings.

    Raises
    ------
    UnknownPathError
        If a key is not a field of the node it is assigned to.
    """
    node = DD() if into is None else into
    _fill(node, data)
    return node


def _fill(node: Node, data: Mapping[str, Any]) -> None:
    if not isinstance(data, Mapping):
        raise TypeError(f"expected a mapping for `{path_str(node) or 'dd'}`, got {type(data).__name__}")
    unknown = [k for k in data if k not in node._fields]
    if unknown:
        raise UnknownPathError(f"{unknown} are not fields of `{node._location or 'dd'}`")

    for name, finfo in node._fields.items():
        if name not in data or data[name] is None:
            continue
        value = data[name]
        if finfo.is_structure:
            _fill(get_field(node, name), value)
        elif finfo.is_struct_array:
            arr = get_field(node, name)
            arr.resize(len(value))
            for el, sub in zip(arr, value):
                _fill(el, sub)
        else:
            set_field(node, name, value)

"""
tokdd.dd.time
=============

Time-dependent access to the data tree.

Two layouts carry time:

time vectors
    A FLT_1D field whose coordinate is a sibling/ancestor `time` array
    (e.g. equilibrium.vacuum_toroidal_field.b0 on equilibrium.time).
time slices
    An array of structures whose elements carry their own `time`
    (e.g. equilibrium.time_slice[:].time).

The "current time" is the DD root's global_time unless an explicit
`time=` is given.

Public API
----------
time_parent(node)
set_time_array(node, field, value, time=None)
get_time_array(node, field, time=None)
get_time_slice(array, time=None)
"""

from __future__ import annotations

import logging
from typing import Any, Optional

import numpy as np

from tokdd.dd.arrays import MaterializedArray
from tokdd.dd.node import (
    Node,
    NodeArray,
    _field_of,
    global_time,
    get_field,
    path_str,
    populated_dependents,
    set_field,
)
from tokdd.errors import MissingDataError, TimeOrderingError, TopLevelReachedError


log = logging.getLogger(__name__)


def _time_owner(node: Node) -> Node:
    cur: Any = node
    while cur is not None:
        if isinstance(cur, Node):
            finfo = cur._fields.get("time")
            if finfo is not None and finfo.data_type == "FLT_1D":
                return cur
        cur = cur._get_parent()
    raise TopLevelReachedError(f"no ancestor of `{path_str(node)}` holds a time array")


def time_parent(node: Node) -> Node:
    """
    Nearest node (itself included) that owns a FLT_1D `time` array.

    An unset time array is initialized empty.
    """
    tp = _time_owner(node)
    if "time" not in tp._data:
        set_field(tp, "time", np.zeros(0))
    return tp


def _current_time(node: Any, time: Optional[float]) -> float:
    return global_time(node) if time is None else float(time)


def _pad_along(values: np.ndarray, axis: int, n: int) -> np.ndarray:
    """Extend `values` to length n along `axis` by repeating its last slice (NaN if empty)."""
    missing = n - values.shape[axis]
    if missing <= 0:
        return values
    if values.shape[axis] == 0:
        shape = list(values.shape)
        shape[axis] = missing
        fill = np.full(shape, np.nan)
    else:
        last = np.take(values, [-1], axis=axis)
        fill = np.repeat(last, missing, axis=axis)
    return np.concatenate([values.astype(float), fill], axis=axis)


def _append_time(tp: Node, node: Node, field: str, tv: np.ndarray, t0: float) -> None:
    """Append t0 to tp.time and extend every other populated field that uses it."""
    n = tv.size + 1
    tp._data["time"]._replace(np.append(tv, t0))
    for owner, dep, axis in populated_dependents(tp, "time"):
        if owner is node and dep == field:
            continue
        arr = owner._data[dep]
        if isinstance(arr, MaterializedArray):
            arr._replace(_pad_along(np.asarray(arr.values), axis, n))


def set_time_array(node: Node, field: str, value: Any, time: Optional[float] = None) -> np.ndarray:
    """
    Write `value` at the current time into a time-vector field.

    - empty time array: time becomes [t], the field becomes [value]
    - t already in the time array: that entry is overwritten; entries the
      field does not have yet are NaN
    - t later than every time: t is appended; every other populated field on
      the same time array is extended by repeating its last value; the
      field gets `value` at the end
    - t earlier than the last time (and not present): TimeOrderingError

    Nothing in the tree changes when the call raises.
    """
    if field == "time":
        raise ValueError("set_time_array writes fields that depend on time, not the time array itself")
    finfo = _field_of(node, field)
    t0 = _current_time(node, time)
    tp = _time_owner(node)
    time_location = tp._fields["time"].location
    if finfo.ndim != 1 or finfo.coordinates[:1] != (time_location,):
        raise ValueError(
            f"`{path_str(node)}.{field}` is not a time vector on `{time_location}` "
            f"(coordinates {list(finfo.coordinates)})"
        )
    try:
        value = float(value)
    except (TypeError, ValueError) as e:
        raise TypeError(f"set_time_array expects a number for `{path_str(node)}.{field}`, got {value!r}") from e
    time_parent(node)
    times: MaterializedArray = tp._data["time"]
    tv = np.asarray(times.values, dtype=float)

    current = node._data.get(field)
    cur = None if current is None else np.asarray(current, dtype=float)

    if tv.size == 0:
        new = np.array([value])
        _append_time(tp, node, field, tv, t0)
        return set_field(node, field, new)

    hits = np.flatnonzero(tv == t0)
    if hits.size:
        i = int(hits[0])
        if cur is None:
            new = np.full(tv.size, np.nan)
        else:
            new = _pad_along(cur.copy(), 0, tv.size)
        new[i] = value
        log.debug("overwrite %s.%s at t=%g (index %d)", path_str(node), field, t0, i)
        return set_field(node, field, new)

    if t0 > tv[-1]:
        n = tv.size + 1
        if cur is None:
            new = np.full(n, np.nan)
        else:
            new = np.append(_pad_along(cur, 0, n - 1), np.nan)
        new[-1] = value
        _append_time(tp, node, field, tv, t0)
        log.debug("append t=%g to %s.time", t0, path_str(tp))
        return set_field(node, field, new)

    raise TimeOrderingError(
        f"Cannot set `{path_str(node)}.{field}` at time {t0}: "
        f"time array `{path_str(tp)}.time` already runs to {tv[-1]}"
    )


def get_time_array(node: Node, field: str, time: Optional[float] = None) -> Any:
    """Value of a time-vector field at the time nearest to the current time."""
    t0 = _current_time(node, time)
    tp = time_parent(node)
    tv = np.asarray(tp._data["time"].values, dtype=float)
    if tv.size == 0:
        raise MissingDataError(f"`{path_str(tp)}.time` is empty")
    values = get_field(node, field)
    i = int(np.argmin(np.abs(tv - t0)))
    return values[i]


def get_time_slice(array: NodeArray, time: Optional[float] = None) -> Node:
    """Element of a time-sliced array whose `.time` is nearest to the current time."""
    if not len(array):
        raise MissingDataError(f"`{path_str(array)}` has no elements")
    t0 = _current_time(array, time)
    tv = np.array([el.time for el in array], dtype=float)
    return array[int(np.argmin(np.abs(tv - t0)))]

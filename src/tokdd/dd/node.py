"""
tokdd.dd.node
=============

Schema-driven tree of nodes.

Purpose
-------
A Node is a typed record whose fields come from the data dictionary
(tokdd.dd.schema). A NodeArray is a resizable array of structures. Field
arrays (tokdd.dd.arrays) hold numeric data and know their coordinates.

Conventions
-----------
• Ownership is top-down: a parent holds its children in `_data`.
• The upward link is a weakref (`_parent_ref`); it never keeps a subtree alive.
• Node types are generated once per schema location (node_type()), so
  attribute access is checked against that location's field table.
• Structures and arrays of structures are created on first access and kept,
  so `dd.equilibrium is dd.equilibrium`.
• Reading an unset leaf evaluates a registered expression when there is one,
  otherwise raises MissingDataError.
• Indices are 0-based.

Public API
----------
DD, Node, NodeArray, Missing, Coordinates
node_type(location), new_node(location)
get_field(node, name), set_field(node, name, value)
coordinates(node, name)
path_of(item), path_str(item), lookup(root, path)
parent_of(item), top(item, stop_at_dd=True)
global_time(item), keys(node)
"""

from __future__ import annotations

import copy
import weakref
from collections.abc import Mapping, MutableSequence
from functools import lru_cache
from typing import Any, Dict, Iterator, List, NamedTuple, Optional, Sequence, Tuple, Union

import numpy as np

from tokdd.dd import expressions, schema
from tokdd.dd.arrays import AnalyticArray, FieldArray, MaterializedArray
from tokdd.dd.paths import PathPart, common_prefix, i2p, p2i, segments, typename, u_location
from tokdd.errors import (
    AmbiguousMatchError,
    CoordinateMismatchError,
    CoordinateNotSetError,
    MissingDataError,
    TimeOrderingError,
    TopLevelReachedError,
    UnknownPathError,
)


# =============================================================================
# Sentinels and small records
# =============================================================================

class _MissingType:
    """Coordinate declared by the schema but not set on this instance."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __repr__(self) -> str:
        return "Missing"

    def __bool__(self) -> bool:
        return False

    def __copy__(self):
        return self

    def __deepcopy__(self, memo):
        return self

    def __reduce__(self):
        return (_MissingType, ())


Missing = _MissingType()


class Coordinates(NamedTuple):
    """
    Result of coordinates(node, field).

    values[k] is None (implicit index, nothing needed), Missing (declared but
    unset) or the coordinate's FieldArray itself (shared, not copied).
    """
    names: List[str]
    values: List[Any]


# =============================================================================
# Tree items
# =============================================================================

class _TreeItem:
    """Weak upward link shared by Node and NodeArray."""

    _location: str = ""

    def _set_parent(self, parent: Optional["_TreeItem"]) -> None:
        object.__setattr__(self, "_parent_ref", weakref.ref(parent) if parent is not None else None)

    def _get_parent(self) -> Optional["_TreeItem"]:
        ref = self.__dict__.get("_parent_ref")
        return ref() if ref is not None else None


class Node(_TreeItem):
    """
    Typed record of the data tree.

    Fields are read and written as attributes; unknown names raise
    UnknownPathError. Use node_type()/new_node() to build standalone nodes.
    """

    _location = ""
    _fields: Dict[str, schema.FieldInfo] = {}

    def __init__(self):
        object.__setattr__(self, "_parent_ref", None)
        object.__setattr__(self, "_data", {})

    # ------------------------------------------------------------------
    # attribute protocol
    # ------------------------------------------------------------------

    def __getattr__(self, name: str):
        if name.startswith("_"):
            raise AttributeError(name)
        return get_field(self, name)

    def __setattr__(self, name: str, value: Any) -> None:
        if name.startswith("_") or isinstance(getattr(type(self), name, None), property):
            object.__setattr__(self, name, value)
        else:
            set_field(self, name, value)

    def __delattr__(self, name: str) -> None:
        _field_of(self, name)
        self._data.pop(name, None)

    def __dir__(self):
        return sorted(set(super().__dir__()) | set(self._fields))

    # ------------------------------------------------------------------
    # conveniences
    # ------------------------------------------------------------------

    def get(self, name: str, default: Any = None) -> Any:
        """Field value, or `default` when the field holds no data."""
        try:
            return get_field(self, name)
        except MissingDataError:
            return default

    def keys(self) -> List[str]:
        """Fields that hold data, in schema order."""
        return keys(self)

    def tree(self, _indent: int = 0) -> str:
        """Indented text view of the populated subtree."""
        pad = "  " * _indent
        lines: List[str] = []
        for name in self.keys():
            value = self._data[name]
            if isinstance(value, Node):
                lines.append(f"{pad}{name}")
                lines.append(value.tree(_indent + 1))
            elif isinstance(value, NodeArray):
                lines.append(f"{pad}{name}[{len(value)}]")
                for i, el in enumerate(value):
                    lines.append(f"{pad}  [{i}]")
                    lines.append(el.tree(_indent + 2))
            elif isinstance(value, FieldArray):
                kind = "analytic" if isinstance(value, AnalyticArray) else "array"
                lines.append(f"{pad}{name} = <{kind} {value.shape}>")
            else:
                lines.append(f"{pad}{name} = {value!r}")
        return "\n".join(line for line in lines if line)

    def __repr__(self) -> str:
        return f"<{type(self).__name__} {path_str(self) or 'dd'}>"

    def __deepcopy__(self, memo):
        new = type(self).__new__(type(self))
        memo[id(self)] = new
        for k, v in self.__dict__.items():
            if k not in ("_parent_ref", "_data"):
                object.__setattr__(new, k, v)
        object.__setattr__(new, "_parent_ref", None)
        object.__setattr__(new, "_data", {})
        for name, value in self._data.items():
            v = copy.deepcopy(value, memo)
            if isinstance(v, (Node, NodeArray)):
                v._set_parent(new)
            elif isinstance(v, FieldArray):
                v._bind(new, name)
            new._data[name] = v
        return new

    # ------------------------------------------------------------------
    # hooks used by FieldArray
    # ------------------------------------------------------------------

    def _coordinate_arrays(self, name: str, shape: Tuple[int, ...]) -> List[np.ndarray]:
        coords = coordinates(self, name)
        out = []
        for k, n in enumerate(shape):
            c = coords.values[k] if k < len(coords.values) else None
            if c is None:
                out.append(np.arange(1, n + 1, dtype=float))
            elif c is Missing:
                raise CoordinateNotSetError(f"coordinate `{coords.names[k]}` of `{name}` is not set")
            else:
                out.append(np.asarray(c, dtype=float))
        return out

    def _analytic_coordinate(self, name: str) -> np.ndarray:
        coords = coordinates(self, name)
        c = coords.values[0] if coords.values else None
        if c is None or c is Missing:
            cname = coords.names[0] if coords.names else "?"
            raise CoordinateNotSetError(f"Assign data to `{cname}` before evaluating analytic `{name}`")
        return np.asarray(c, dtype=float)


class DD(Node):
    """
    Root of the data tree; its fields are the IDSs.

    Holds the tree-wide current time (`global_time`) used by time-dependent
    access when no explicit time is given, and the switch that enables
    derived expressions on unset fields.
    """

    def __init__(self, global_time: float = 0.0, use_expressions: bool = True):
        super().__init__()
        object.__setattr__(self, "_fields", schema.children(""))
        object.__setattr__(self, "_global_time", float(global_time))
        object.__setattr__(self, "_use_expressions", bool(use_expressions))

    @property
    def global_time(self) -> float:
        return self._global_time

    @global_time.setter
    def global_time(self, value: float) -> None:
        object.__setattr__(self, "_global_time", float(value))

    @property
    def use_expressions(self) -> bool:
        return self._use_expressions

    @use_expressions.setter
    def use_expressions(self, value: bool) -> None:
        object.__setattr__(self, "_use_expressions", bool(value))

    def __repr__(self) -> str:
        return f"<DD ids={self.keys()} global_time={self._global_time}>"


class NodeArray(_TreeItem, MutableSequence):
    """
    Resizable array of structures of one element type.

    Elements assigned or appended are re-parented to this array.
    """

    def __init__(self, location: str, items: Sequence[Node] = ()):
        finfo = schema.field_info(location)
        if not finfo.is_struct_array:
            raise TypeError(f"{location!r} is not an array of structures")
        object.__setattr__(self, "_location", location)
        object.__setattr__(self, "_parent_ref", None)
        object.__setattr__(self, "_items", [])
        for item in items:
            self.append(item)

    @property
    def element_type(self) -> type:
        return node_type(self._location + "[:]")

    def _check(self, value: Any) -> Node:
        if not isinstance(value, Node) or value._location != self._location + "[:]":
            raise TypeError(f"elements of `{self._location}` must be {typename(self._location + '[:]')} nodes, got {value!r}")
        return value

    # ------------------------------------------------------------------
    # MutableSequence protocol
    # ------------------------------------------------------------------

    def __len__(self) -> int:
        return len(self._items)

    def __getitem__(self, index):
        return self._items[index]

    def __setitem__(self, index, value) -> None:
        if isinstance(index, slice):
            raise TypeError("slice assignment is not supported on NodeArray")
        old = self._items[index]
        self._items[index] = self._check(value)
        value._set_parent(self)
        if old is not value:
            old._set_parent(None)

    def __delitem__(self, index) -> None:
        removed = self._items[index]
        del self._items[index]
        for el in removed if isinstance(removed, list) else [removed]:
            el._set_parent(None)

    def insert(self, index: int, value: Node) -> None:
        self._items.insert(index, self._check(value))
        value._set_parent(self)

    def index_of(self, node: Node) -> int:
        """Position of `node` (by identity)."""
        for i, el in enumerate(self._items):
            if el is node:
                return i
        raise ValueError(f"{node!r} is not an element of `{path_str(self)}`")

    # ------------------------------------------------------------------
    # resize
    # ------------------------------------------------------------------

    def resize(self, *args: Any, time: Optional[float] = None):
        """
        Grow, shrink or upsert.

        resize(n)
            Grow with fresh elements or drop trailing ones; returns the array.
        resize({"sub.path": value, ...}) / resize(("sub.path", value), ...)
            Return the unique element whose sub-paths all equal the given
            values, or append a new element with those values pre-set.
            AmbiguousMatchError if several elements match.
        resize()
            Element at the current time (global_time, or `time`): appended
            when later than the last element's time.
        """
        if not args:
            return self._resize_at_time(time)
        if len(args) == 1 and isinstance(args[0], (int, np.integer)) and not isinstance(args[0], bool):
            return self._resize_to(int(args[0]))
        return self._upsert(_normalize_conditions(self, args))

    def _resize_to(self, n: int) -> "NodeArray":
        if n < 0:
            raise ValueError(f"NodeArray size must be >= 0 (got {n})")
        while len(self._items) < n:
            self.append(self.element_type())
        if len(self._items) > n:
            del self[n:]
        return self

    def _upsert(self, conditions: List[Tuple[str, Any]]) -> Node:
        matches = [el for el in self._items if all(_matches(el, p, v) for p, v in conditions)]
        if len(matches) > 1:
            raise AmbiguousMatchError(
                f"{len(matches)} elements of `{path_str(self)}` match {dict(conditions)}; the match must be unique"
            )
        if matches:
            return matches[0]
        el = self.element_type()
        for p, v in conditions:
            assign(el, p, v)
        self.append(el)
        return el

    def _resize_at_time(self, time: Optional[float]) -> Node:
        if "time" not in self.element_type._fields:
            raise TypeError(f"`{self._location}` elements have no time field; give a size or conditions")
        t0 = global_time(self) if time is None else float(time)
        if self._items:
            last = self._items[-1].get("time")
            if last is None:
                raise TimeOrderingError(
                    f"`{path_str(self._items[-1])}` has no time; cannot place a new element at time {t0}"
                )
        if not self._items or last < t0:
            el = self.element_type()
            el.time = t0
            self.append(el)
            return el
        for el in reversed(self._items):
            if el.get("time") == t0:
                return el
        raise TimeOrderingError(
            f"Cannot add a `{self._location}` element at time {t0}: last element is at {last}"
        )

    # ------------------------------------------------------------------

    def __repr__(self) -> str:
        return f"<NodeArray {path_str(self)} len={len(self)}>"

    def __deepcopy__(self, memo):
        new = NodeArray(self._location)
        memo[id(self)] = new
        for el in self._items:
            new.append(copy.deepcopy(el, memo))
        return new


# =============================================================================
# Node types
# =============================================================================

@lru_cache(maxsize=None)
def node_type(location: str) -> type:
    """Generated Node subclass for a structure or array-element location."""
    if location.endswith("[:]"):
        if not schema.field_info(location[:-3]).is_struct_array:
            raise UnknownPathError(f"{location!r} is not an array-of-structures element")
    elif not schema.field_info(location).is_structure:
        raise TypeError(f"{location!r} is not a structure")
    attrs = {"_location": location, "_fields": schema.children(location), "__module__": __name__}
    return type(typename(location), (Node,), attrs)


def new_node(location: str) -> Node:
    """Standalone (parentless) node for a structure location ("" gives a DD)."""
    if not location:
        return DD()
    return node_type(u_location(location))()


# =============================================================================
# Field access
# =============================================================================

def _field_of(node: Node, name: str) -> schema.FieldInfo:
    finfo = node._fields.get(name)
    if finfo is None:
        raise UnknownPathError(f"`{name}` is not a field of `{node._location or 'dd'}`")
    return finfo


def _display_path(node: Node, name: str) -> str:
    return p2i(path_of(node) + [name])


def get_field(node: Node, name: str) -> Any:
    """
    Value of a field.

    Structures and arrays of structures are created empty on first access.
    Unset leaves fall back to a registered expression or raise
    MissingDataError.
    """
    finfo = _field_of(node, name)
    data = node._data
    if name in data:
        return data[name]

    if finfo.is_structure:
        child = node_type(finfo.location)()
        child._set_parent(node)
        data[name] = child
        return child

    if finfo.is_struct_array:
        arr = NodeArray(finfo.location)
        arr._set_parent(node)
        data[name] = arr
        return arr

    if _expressions_enabled(node):
        fn = expressions.expression_for(finfo.location)
        if fn is not None:
            return fn(node)

    raise MissingDataError(f"`{_display_path(node, name)}` has no data")


def set_field(node: Node, name: str, value: Any) -> Any:
    """
    Assign a field (None unsets it).

    Nodes, NodeArrays and FieldArrays are re-parented to `node`. Arrays are
    checked against their coordinates: implicit coordinates need nothing,
    unset real coordinates raise CoordinateNotSetError, and length
    mismatches raise CoordinateMismatchError.
    """
    finfo = _field_of(node, name)
    data = node._data

    if value is None:
        data.pop(name, None)
        return None

    if finfo.is_structure:
        if not isinstance(value, Node) or value._location != finfo.location:
            raise TypeError(f"`{name}` expects a {typename(finfo.location)} node, got {value!r}")
        value._set_parent(node)
        data[name] = value
        return value

    if finfo.is_struct_array:
        if isinstance(value, NodeArray):
            if value._location != finfo.location:
                raise TypeError(f"`{name}` expects an array of {typename(finfo.location + '[:]')}, got {value!r}")
            arr = value
        else:
            arr = NodeArray(finfo.location, list(value))
        arr._set_parent(node)
        data[name] = arr
        return arr

    if not finfo.is_array:
        data[name] = _as_scalar(finfo, value)
        return data[name]

    farray = _as_field_array(finfo, value)
    _validate_coordinates(node, name, farray)
    farray._bind(node, name)
    data[name] = farray
    return farray


def _as_scalar(finfo: schema.FieldInfo, value: Any) -> Any:
    if isinstance(value, (Node, NodeArray, FieldArray)) or callable(value):
        raise TypeError(f"`{finfo.location}` is a {finfo.data_type} scalar, got {type(value).__name__}")
    if finfo.data_type == "FLT_0D":
        return float(value)
    if finfo.data_type == "INT_0D":
        if isinstance(value, float) and not value.is_integer():
            raise ValueError(f"`{finfo.location}` expects an integer, got {value!r}")
        return int(value)
    return str(value)


def _as_field_array(finfo: schema.FieldInfo, value: Any) -> FieldArray:
    if isinstance(value, FieldArray):
        farray = value
    elif callable(value):
        if finfo.ndim != 1:
            raise TypeError(f"analytic values are only supported for 1D fields, `{finfo.location}` is {finfo.data_type}")
        return AnalyticArray(value)
    else:
        if finfo.data_type.startswith("STR"):
            dtype = object
        elif finfo.data_type.startswith("INT"):
            dtype = int
        else:
            dtype = float
        farray = MaterializedArray(value, dtype=dtype)
    if farray.ndim != finfo.ndim:
        raise CoordinateMismatchError(f"`{finfo.location}` is {finfo.data_type} but got an array with ndim={farray.ndim}")
    return farray


def _validate_coordinates(node: Node, name: str, farray: FieldArray) -> None:
    coords = coordinates(node, name)

    if isinstance(farray, AnalyticArray):
        c = coords.values[0]
        if c is None:
            raise CoordinateNotSetError(
                f"analytic `{_display_path(node, name)}` needs a real coordinate, `{coords.names[0]}` is only an index"
            )
        if c is Missing:
            raise CoordinateNotSetError(f"Assign data to `{coords.names[0]}` before assigning `{_display_path(node, name)}`")
        return

    shape = farray.shape
    for k, (cname, c) in enumerate(zip(coords.names, coords.values)):
        if c is None:
            continue
        if c is Missing:
            raise CoordinateNotSetError(f"Assign data to `{cname}` before assigning `{_display_path(node, name)}`")
        if len(c) != shape[k]:
            raise CoordinateMismatchError(
                f"`{_display_path(node, name)}` has {shape[k]} points along dimension {k} "
                f"but its coordinate `{cname}` has {len(c)}"
            )

    for owner, dep, k in populated_dependents(node, name):
        if (owner is node and dep == name) or isinstance(owner._data[dep], AnalyticArray):
            continue
        n = owner._data[dep].shape[k]
        if shape and n != shape[0]:
            raise CoordinateMismatchError(
                f"`{_display_path(node, name)}` is the coordinate of `{_display_path(owner, dep)}` "
                f"({n} points); cannot give it {shape[0]} points"
            )


def keys(node: Node) -> List[str]:
    """Fields of `node` that hold data, in schema order."""
    return [k for k in node._fields if k in node._data and _has_data(node._data[k])]


def _has_data(value: Any) -> bool:
    if isinstance(value, Node):
        return bool(keys(value))
    if isinstance(value, NodeArray):
        return len(value) > 0
    return value is not None


# =============================================================================
# Coordinates
# =============================================================================

def _ancestor_at(item: Optional[_TreeItem], location: str) -> Optional[_TreeItem]:
    while item is not None:
        if item._location == location:
            return item
        item = item._get_parent()
    return None


def _resolve_coordinate(node: Node, cname: str) -> Any:
    if "..." in cname:
        return None
    prefix = common_prefix(node._location, cname)
    cur = _ancestor_at(node, prefix)
    if cur is None:
        return Missing
    for seg in segments(cname)[len(segments(prefix)):]:
        is_array = seg.endswith("[:]")
        name = seg[:-3] if is_array else seg
        if not isinstance(cur, Node):
            return Missing
        child = cur._data.get(name)
        if child is None:
            return Missing
        if is_array:
            if len(child) == 0:
                return Missing
            child = child[0]
        cur = child
    return cur


def coordinates(node: Node, name: str) -> Coordinates:
    """
    Coordinate names and values of a field.

    Each value is None (no coordinate needed), Missing (declared but unset),
    or the coordinate's own FieldArray (shared with the tree).
    """
    finfo = _field_of(node, name)
    if not (finfo.is_array or finfo.is_struct_array):
        return Coordinates([], [])
    names = list(finfo.coordinates)
    values = []
    for cname in names:
        if finfo.is_struct_array and cname.startswith(finfo.location + "[:]"):
            # per-element coordinate (e.g. time_slice[:].time)
            values.append(None)
        else:
            values.append(_resolve_coordinate(node, cname))
    return Coordinates(names, values)


def populated_dependents(node: Node, name: str) -> Iterator[Tuple[Node, str, int]]:
    """
    Populated array fields that use node.<name> as a coordinate.

    Yields (owner_node, field_name, dimension_index).
    """
    loc = f"{node._location}.{name}" if node._location else name
    for dep in schema.dependents(loc):
        k = schema.field_info(dep).coordinates.index(loc)
        prefix = common_prefix(loc, dep)
        anchor = _ancestor_at(node, prefix)
        if anchor is None:
            continue
        for owner, fname in _walk_existing(anchor, segments(dep)[len(segments(prefix)):]):
            if isinstance(owner._data.get(fname), FieldArray):
                yield owner, fname, k


def _walk_existing(item: Any, rest: List[str]) -> Iterator[Tuple[Node, str]]:
    if not isinstance(item, Node) or not rest:
        return
    if len(rest) == 1:
        if rest[0] in item._data:
            yield item, rest[0]
        return
    seg = rest[0]
    is_array = seg.endswith("[:]")
    child = item._data.get(seg[:-3] if is_array else seg)
    if child is None:
        return
    if is_array:
        for el in child:
            yield from _walk_existing(el, rest[1:])
    else:
        yield from _walk_existing(child, rest[1:])


# =============================================================================
# Paths and traversal
# =============================================================================

def parent_of(item: _TreeItem) -> Optional[_TreeItem]:
    """Owning Node/NodeArray (None at the top of a tree)."""
    return item._get_parent()


def path_of(item: _TreeItem) -> List[PathPart]:
    """
    Canonical path of a node or array as a list of names and indices.

    Each array hop contributes the element's index in its owning NodeArray.
    Elements that are not inside a NodeArray (standalone structures) get
    index 0.
    """
    indices: Dict[int, int] = {}
    cur: Optional[_TreeItem] = item
    while cur is not None:
        parent = cur._get_parent()
        if isinstance(cur, Node) and cur._location.endswith("[:]"):
            depth = cur._location.count("[:]")
            indices[depth] = parent.index_of(cur) if isinstance(parent, NodeArray) else 0
        cur = parent

    out: List[PathPart] = []
    depth = 0
    for p in i2p(item._location):
        if p == ":":
            depth += 1
            out.append(indices.get(depth, 0))
        else:
            out.append(p)
    return out


def path_str(item: _TreeItem) -> str:
    """String form of path_of()."""
    return p2i(path_of(item))


def lookup(root: _TreeItem, path: Union[str, Sequence[PathPart]]) -> Any:
    """
    Resolve a concrete path against a live tree.

    The path may be given relative to `root` or include root's own path as a
    prefix.
    """
    parts = i2p(path) if isinstance(path, str) else list(path)
    base = path_of(root)
    if base and parts[: len(base)] == base:
        parts = parts[len(base):]
    cur: Any = root
    for p in parts:
        if p == ":":
            raise ValueError(f"lookup needs concrete indices, got a wildcard in {path!r}")
        if isinstance(p, int):
            if not isinstance(cur, NodeArray):
                raise UnknownPathError(f"index [{p}] applied to a non-array in {path!r}")
            cur = cur[p]
        else:
            if not isinstance(cur, Node):
                raise UnknownPathError(f"`{p}` applied to a non-structure in {path!r}")
            cur = get_field(cur, p)
    return cur


def top(item: _TreeItem, stop_at_dd: bool = True) -> _TreeItem:
    """
    Walk parent links upward.

    With stop_at_dd=True return the enclosing IDS (the child of the DD root),
    otherwise the absolute root. A standalone subtree returns its own top.
    Starting at the DD root raises TopLevelReachedError unless stop_at_dd is
    False, in which case the DD itself is returned.
    """
    if stop_at_dd and isinstance(item, DD):
        raise TopLevelReachedError("already at the top of the data tree")
    cur = item
    while True:
        parent = cur._get_parent()
        if parent is None:
            return cur
        if stop_at_dd and isinstance(parent, DD):
            return cur
        cur = parent


def global_time(item: _TreeItem) -> float:
    """Current time of the DD that holds `item`."""
    root = item
    while root._get_parent() is not None:
        root = root._get_parent()
    if not isinstance(root, DD):
        raise ValueError(f"`{path_str(item)}` is not inside a DD; pass an explicit time")
    return root.global_time


def _expressions_enabled(item: _TreeItem) -> bool:
    root = item
    while root._get_parent() is not None:
        root = root._get_parent()
    return root.use_expressions if isinstance(root, DD) else True


# =============================================================================
# Sub-path helpers for conditional resize
# =============================================================================

def _normalize_conditions(array: NodeArray, args: Sequence[Any]) -> List[Tuple[str, Any]]:
    pairs: List[Tuple[str, Any]] = []
    for arg in args:
        if isinstance(arg, Mapping):
            pairs.extend((str(k), v) for k, v in arg.items())
        elif isinstance(arg, tuple) and len(arg) == 2 and isinstance(arg[0], str):
            pairs.append((arg[0], arg[1]))
        else:
            raise TypeError(f"resize conditions must be mappings or (sub_path, value) pairs, got {arg!r}")
    if not pairs:
        raise ValueError("resize needs a size or at least one condition")
    for sub_path, _ in pairs:
        schema.field_info(u_location(f"{array._location}[:].{sub_path}"))
    return pairs


def peek(item: Any, path: Union[str, Sequence[PathPart]]) -> Any:
    """Value at a sub-path without creating anything (Missing when absent)."""
    parts = i2p(path) if isinstance(path, str) else list(path)
    cur = item
    for p in parts:
        if isinstance(p, int):
            if not isinstance(cur, NodeArray) or p >= len(cur):
                return Missing
            cur = cur[p]
        else:
            if not isinstance(cur, Node):
                return Missing
            _field_of(cur, p)
            if p not in cur._data:
                return Missing
            cur = cur._data[p]
    return cur


def assign(item: Node, path: Union[str, Sequence[PathPart]], value: Any) -> Any:
    """Set a value at a sub-path, creating structures and growing arrays."""
    parts = i2p(path) if isinstance(path, str) else list(path)
    if not parts or isinstance(parts[-1], int):
        raise ValueError(f"assign needs a path ending in a field name, got {path!r}")
    cur: Any = item
    for p in parts[:-1]:
        if isinstance(p, int):
            if len(cur) <= p:
                cur.resize(p + 1)
            cur = cur[p]
        else:
            cur = get_field(cur, p)
    return set_field(cur, parts[-1], value)


def _matches(el: Node, sub_path: str, value: Any) -> bool:
    current = peek(el, sub_path)
    if current is Missing:
        return False
    if isinstance(current, FieldArray) or isinstance(value, (np.ndarray, list, tuple)):
        return bool(np.array_equal(np.asarray(current), np.asarray(value)))
    return bool(current == value)

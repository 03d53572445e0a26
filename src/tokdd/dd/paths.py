"""
tokdd.dd.paths
==============

Path conversions for the data tree.

Conventions
-----------
• String form : "wall.description_2d[0].mobile.unit[1].name"
• List form   : ["wall", "description_2d", 0, "mobile", "unit", 1, "name"]
• Wildcards   : "[:]" in strings, ":" in lists
• Indices are 0-based.

A universal location ("u-location") is a path whose indices are all
wildcards; it is the key used to look things up in the schema.
"""

from __future__ import annotations

import re
from typing import List, Sequence, Union

PathPart = Union[str, int]

_INDEX_RE = re.compile(r"\[(\d+|:)\]")
_TRAILING_INDEX_RE = re.compile(r"\[(\d+|:)\]$")


def i2p(path: str) -> List[PathPart]:
    """
    Split a path string into names and indices.

    >>> i2p("core_profiles.profiles_1d[0].ion[:].label")
    ['core_profiles', 'profiles_1d', 0, 'ion', ':', 'label']
    """
    path = path.strip()
    if not path:
        return []
    parts: List[PathPart] = []
    for token in path.split("."):
        if not token:
            raise ValueError(f"Malformed path (empty segment): {path!r}")
        name, _, rest = token.partition("[")
        if not name:
            raise ValueError(f"Malformed path (index without name): {path!r}")
        parts.append(name)
        if rest:
            for idx in _INDEX_RE.findall("[" + rest):
                parts.append(":" if idx == ":" else int(idx))
    return parts


def p2i(parts: Sequence[PathPart]) -> str:
    """
    Join names and indices back into a path string (inverse of i2p).

    >>> p2i(["core_profiles", "profiles_1d", 0, "ion", ":", "label"])
    'core_profiles.profiles_1d[0].ion[:].label'
    """
    out = []
    for p in parts:
        if isinstance(p, int) or p == ":":
            if not out:
                raise ValueError("Path cannot start with an index.")
            out[-1] += f"[{p}]"
        else:
            out.append(str(p))
    return ".".join(out)


def u_location(path: Union[str, Sequence[PathPart]]) -> str:
    """Replace every numeric index with the [:] wildcard."""
    if not isinstance(path, str):
        path = p2i(path)
    return _INDEX_RE.sub("[:]", path)


def normalize_info_path(path: str) -> str:
    """
    Schema key for an info() lookup.

    Indices become wildcards and a trailing array index is dropped, so
    "x.y[3]", "x.y[:]" and "x.y" all map to "x.y".
    """
    return _TRAILING_INDEX_RE.sub("", u_location(path.strip()))


def segments(location: str) -> List[str]:
    """Dot-separated segments of a location, keeping "[:]" on its name."""
    return location.split(".") if location else []


def common_prefix(a: str, b: str) -> str:
    """Longest common segment prefix of two locations."""
    out = []
    for x, y in zip(segments(a), segments(b)):
        if x != y:
            break
        out.append(x)
    return ".".join(out)


def typename(location: str) -> str:
    """
    Class name for a location: dots become "__" and "[:]." becomes "___".

    >>> typename("equilibrium.time_slice[:].profiles_1d")
    'equilibrium__time_slice___profiles_1d'
    """
    if not location:
        return "dd"
    name = location.replace("[:].", "___").replace(".", "__")
    if name.endswith("[:]"):
        name = name[:-3] + "___"
    return name

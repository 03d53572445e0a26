"""
tokdd
=====

Coordinate-aware tokamak data tree plus flux-surface post-processing.

Layout
------
• tokdd.dd         : schema-driven data tree (nodes, arrays, paths, time)
• tokdd.numerics   : gradient / integration / interpolation helpers
• tokdd.geometry   : polyline utilities and (R,Z) grids
• tokdd.physics    : COCOS, contours, flux surfaces, equilibrium assembly
• tokdd.io         : YAML config + logging setup
"""

from tokdd.dd import DD, Node, NodeArray, info

__all__ = ["DD", "Node", "NodeArray", "info"]

__version__ = "0.1.0"

"""
tokdd.errors
============

Exception types raised by the data tree, the numerics helpers and the
flux-surface engine.

Conventions
-----------
• Every error derives from TokddError.
• Each one also derives from the closest builtin (KeyError, ValueError, ...)
  so callers that only know the builtin still catch it.
• Errors are raised immediately and never recovered inside the library.
"""

from __future__ import annotations

from typing import Optional


class TokddError(Exception):
    """Base class for all tokdd errors."""


# -----------------------------------------------------------------------------
# Data tree (schema contract violations)
# -----------------------------------------------------------------------------

class UnknownPathError(TokddError, KeyError):
    """Path or field name is not part of the data dictionary."""

    def __str__(self) -> str:
        # KeyError quotes its argument; keep the plain message
        return str(self.args[0]) if self.args else ""


class MissingDataError(TokddError, AttributeError):
    """Field exists in the schema but holds no data."""


class CoordinateNotSetError(TokddError, ValueError):
    """A real coordinate must be assigned before the dependent field."""


class CoordinateMismatchError(TokddError, ValueError):
    """Array shape does not match the length of its coordinate(s)."""


class AmbiguousMatchError(TokddError, LookupError):
    """Conditional resize matched more than one existing element."""


class ImmutableFieldError(TokddError, TypeError):
    """Element-wise mutation of an analytic (function-valued) array."""


class TimeOrderingError(TokddError, ValueError):
    """Requested time is neither an existing sample nor after the last one."""


class TopLevelReachedError(TokddError, LookupError):
    """Upward traversal started at (or walked past) the tree root."""


# -----------------------------------------------------------------------------
# Numerics
# -----------------------------------------------------------------------------

class UnsupportedSchemeError(TokddError, ValueError):
    """Unknown interpolation scheme."""


class NonUniformSpacingError(TokddError, ValueError):
    """Vector cannot be represented as a uniform range."""


# -----------------------------------------------------------------------------
# Flux-surface engine
# -----------------------------------------------------------------------------

class FluxSurfaceError(TokddError, RuntimeError):
    """
    Tracing failure at a given psi level.

    Attributes
    ----------
    index : int or None
        Index of the failing surface in profiles_1d.psi (None when the
        failure is not tied to a profile sample).
    psi_level : float or None
        The psi value that could not be traced.
    """

    def __init__(self, message: str, *, index: Optional[int] = None, psi_level: Optional[float] = None):
        super().__init__(message)
        self.index = index
        self.psi_level = psi_level


class BoundaryBracketError(FluxSurfaceError):
    """Last-closed-flux-surface bisection could not bracket or converge."""

from __future__ import annotations


class PlotAnnotateError(ValueError):
    """Base error for invalid annotation/scale input."""


class InvalidRange(PlotAnnotateError):
    pass


class InvalidBreakRequest(PlotAnnotateError):
    pass


class InvalidPlacementRequest(PlotAnnotateError):
    pass


class ScaleFrozenError(PlotAnnotateError):
    """Raised when a published scale group is modified."""

from plot_annotate.adapters import points_from_frame, points_from_xy
from plot_annotate.breaks import (
    breaks_for_scale,
    categorical_breaks,
    explicit_breaks,
    log_breaks,
    numeric_breaks,
    temporal_breaks,
)
from plot_annotate.errors import (
    InvalidBreakRequest,
    InvalidPlacementRequest,
    InvalidRange,
    PlotAnnotateError,
    ScaleFrozenError,
)
from plot_annotate.model import Anchor, AxisRange, Break, LabelBox, Point
from plot_annotate.placement import PlacementResult, drop_overlapping, label_boxes, resolve_labels
from plot_annotate.scales import (
    CategoricalScale,
    GradientScale,
    NumericScale,
    PaletteScale,
    ScaleGroup,
    TemporalScale,
)
from plot_annotate.settings import DEFAULT_SETTINGS, AnnotateSettings, load_settings, validate_settings
from plot_annotate.sync import synchronize_scales

__all__ = [
    "Anchor",
    "AnnotateSettings",
    "AxisRange",
    "Break",
    "CategoricalScale",
    "DEFAULT_SETTINGS",
    "GradientScale",
    "InvalidBreakRequest",
    "InvalidPlacementRequest",
    "InvalidRange",
    "LabelBox",
    "NumericScale",
    "PaletteScale",
    "PlacementResult",
    "PlotAnnotateError",
    "Point",
    "ScaleFrozenError",
    "ScaleGroup",
    "TemporalScale",
    "breaks_for_scale",
    "categorical_breaks",
    "drop_overlapping",
    "explicit_breaks",
    "label_boxes",
    "load_settings",
    "log_breaks",
    "numeric_breaks",
    "points_from_frame",
    "points_from_xy",
    "resolve_labels",
    "synchronize_scales",
    "temporal_breaks",
    "validate_settings",
]

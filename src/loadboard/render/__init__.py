"""Scale building, curve generation and two-mode chart painting."""

from .animation import ChartAnimator, ease_out_cubic
from .chart import ChartView
from .curves import Path
from .interaction import PointLocator, Tooltip, TooltipRow
from .renderer import DARK_THEME, LIGHT_THEME, ChartRenderer, ChartTheme, PaintMode
from .scales import ChartScales, LinearScale, Margin, PointScale, TimeScale, build_scales, stack_values
from .surface import Fill, Stroke, Surface

__all__ = [
    "ChartAnimator",
    "ChartRenderer",
    "ChartScales",
    "ChartTheme",
    "ChartView",
    "DARK_THEME",
    "Fill",
    "LIGHT_THEME",
    "LinearScale",
    "Margin",
    "PaintMode",
    "Path",
    "PointLocator",
    "PointScale",
    "Stroke",
    "Surface",
    "TimeScale",
    "Tooltip",
    "TooltipRow",
    "build_scales",
    "ease_out_cubic",
    "stack_values",
]

"""轴转置引擎。"""

from .engine import AxisTransposeEngine, padded_width

__all__ = ["AxisTransposeEngine", "padded_width"]

"""时间戳重建引擎。"""

from .timestamps import (
    TimestampSequence,
    as_rational,
    compute_pts_increment,
    require_frame_rate,
    rescale_ts,
)

__all__ = [
    "TimestampSequence",
    "as_rational",
    "compute_pts_increment",
    "require_frame_rate",
    "rescale_ts",
]

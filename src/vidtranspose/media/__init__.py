"""PyAV 适配层：解码、像素格式转换、编码与封装。"""

from .decoder import VideoSource
from .writer import H264Writer, ensure_encoder

__all__ = ["VideoSource", "H264Writer", "ensure_encoder"]

"""帧存储：第一遍解码结果的全量物化。"""

from .frame_store import FrameStore

__all__ = ["FrameStore"]

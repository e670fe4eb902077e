"""VidTranspose：把视频的水平轴与时间轴互换。"""

from .pipeline import decode_into_store, encode_transposed, transpose_video

__all__ = ["transpose_video", "decode_into_store", "encode_transposed"]

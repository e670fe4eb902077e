"""统一异常定义：所有致命错误都从 VidTransposeError 派生，CLI 按基类捕获。"""

from __future__ import annotations


class VidTransposeError(RuntimeError):
    """流水线致命错误的基类，没有部分成功模式。"""


class NoVideoStreamError(VidTransposeError):
    """输入容器中找不到可解码的视频流。"""


class EmptyStoreError(VidTransposeError):
    """解码结束后一帧都没有，无法进行转置。"""


class DimensionMismatchError(VidTransposeError):
    """某一帧的宽高与第一帧不同。"""

    def __init__(self, index: int, expected: tuple[int, int], actual: tuple[int, int]) -> None:
        self.index = index
        self.expected = expected
        self.actual = actual
        super().__init__(
            f"第 {index} 帧尺寸 {actual[0]}x{actual[1]} 与首帧 {expected[0]}x{expected[1]} 不一致"
        )


class EncoderUnavailableError(VidTransposeError):
    """请求的输出编码器不可用。"""


class ZeroFrameRateError(VidTransposeError):
    """输入帧率为 0 或未知，无法计算时间戳增量。"""


class ExternalIOError(VidTransposeError):
    """解码/缩放/编码/封装调用因 I/O 或格式原因失败。"""

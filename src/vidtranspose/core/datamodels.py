"""基础数据结构：帧缓冲、视频元信息、转置输出与运行结果。"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from fractions import Fraction
from pathlib import Path
from typing import Any, Dict

import numpy as np
from numpy.typing import NDArray

BYTES_PER_PIXEL = 3


def format_rational(value: Fraction) -> str:
    """以 `num/den` 形式输出有理数，避免浮点表示带来的歧义。"""

    return f"{value.numerator}/{value.denominator}"


@dataclass(frozen=True, slots=True)
class Frame:
    """单帧解码结果：packed RGB24 字节缓冲，行跨度可能大于 width * 3。"""

    data: bytes
    width: int
    height: int
    row_stride: int

    def __post_init__(self) -> None:
        if self.width <= 0 or self.height <= 0:
            raise ValueError(f"invalid frame size {self.width}x{self.height}")
        if self.row_stride < self.width * BYTES_PER_PIXEL:
            raise ValueError(f"row_stride {self.row_stride} < width * 3 ({self.width * BYTES_PER_PIXEL})")
        required = self.row_stride * (self.height - 1) + self.width * BYTES_PER_PIXEL
        if len(self.data) < required:
            raise ValueError(f"frame buffer too small: {len(self.data)} < {required}")

    @property
    def size(self) -> tuple[int, int]:
        return self.width, self.height

    def as_array(self) -> NDArray[np.uint8]:
        """返回 (height, width, 3) 的只读视图，按 row_stride 跳过行尾填充，不复制数据。"""

        return np.ndarray(
            shape=(self.height, self.width, BYTES_PER_PIXEL),
            dtype=np.uint8,
            buffer=self.data,
            strides=(self.row_stride, BYTES_PER_PIXEL, 1),
        )

    @classmethod
    def from_array(cls, pixels: NDArray[np.uint8]) -> "Frame":
        """从 (height, width, 3) uint8 数组构建紧凑帧。"""

        if pixels.ndim != 3 or pixels.shape[2] != BYTES_PER_PIXEL:
            raise ValueError(f"expected (height, width, 3) array, got shape {pixels.shape}")
        height, width, _ = pixels.shape
        data = np.ascontiguousarray(pixels, dtype=np.uint8).tobytes()
        return cls(data=data, width=width, height=height, row_stride=width * BYTES_PER_PIXEL)

    @classmethod
    def from_video_frame(cls, frame: Any) -> "Frame":
        """从已转换为 rgb24 的 PyAV VideoFrame 拷贝第一个平面，line_size 即行跨度。"""

        plane = frame.planes[0]
        return cls(data=bytes(plane), width=frame.width, height=frame.height, row_stride=plane.line_size)


@dataclass(slots=True)
class VideoInfo:
    """输入视频流的声明参数。frame_count 为容器声明值，未知时为 0。"""

    path: Path
    width: int
    height: int
    fps: Fraction
    codec: str
    frame_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["path"] = str(self.path)
        payload["fps"] = format_rational(self.fps)
        return payload


@dataclass(slots=True)
class TransposedFrame:
    """转置输出帧：第 index 列在所有输入帧上的聚合，pixels 为 (height, width, 3) 连续数组。"""

    index: int
    pixels: NDArray[np.uint8]
    padded: bool

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])


@dataclass(slots=True)
class TransposeResult:
    """一次完整运行的统计，便于日志与 JSON 报告。"""

    input_path: Path
    output_path: Path
    input_width: int
    input_height: int
    input_frames: int
    output_width: int
    output_height: int
    output_frames: int
    padded: bool
    fps: Fraction
    encoder_time_base: Fraction
    stream_time_base: Fraction
    pts_increment: int
    packets_written: int

    def to_dict(self) -> Dict[str, Any]:
        payload = asdict(self)
        payload["input_path"] = str(self.input_path)
        payload["output_path"] = str(self.output_path)
        for key in ("fps", "encoder_time_base", "stream_time_base"):
            payload[key] = format_rational(getattr(self, key))
        return payload

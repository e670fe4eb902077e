from __future__ import annotations

# 本模块负责 X 轴与时间轴的互换：
# 1) 输出帧 x 由所有输入帧的第 x 列拼成，第 t 列来自输入帧 t；
# 2) 输出宽度 T 为奇数时补到偶数（H.264 要求偶数尺寸），补列策略可配置；
# 3) 补列只取决于 T，所有输出帧尺寸一致。
# 有补列时变换不可逆：对输出再做一次转置会多出一列，这是预期行为。

from typing import Iterator, List, Tuple

import numpy as np
from numpy.typing import NDArray

from vidtranspose.core import TransposeConfig, TransposedFrame, get_logger
from vidtranspose.core.datamodels import BYTES_PER_PIXEL
from vidtranspose.store import FrameStore

logger = get_logger(__name__)


def padded_width(width: int) -> int:
    """向上取整到偶数。"""

    return width if width % 2 == 0 else width + 1


class AxisTransposeEngine:
    """在已 finalize 的 FrameStore 上按需生成转置帧。

    参数：
    - store: 只读帧存储，T = store.count，X/Y 为帧宽高。
    - config: 补列策略；默认 duplicate 复制第 T-1 列，letterbox 使用固定颜色。
    """

    def __init__(self, store: FrameStore, config: TransposeConfig | None = None) -> None:
        if not store.finalized:
            raise RuntimeError("AxisTransposeEngine 需要已 finalize 的 FrameStore")
        self.store = store
        self.config = config or TransposeConfig()
        self.source_frames = store.count
        self.source_width, self.source_height = store.size
        self.output_width = padded_width(self.source_frames)
        self.padded = self.output_width != self.source_frames
        # 只保存视图，不复制像素
        self._views: List[NDArray[np.uint8]] = [frame.as_array() for frame in store]
        self._fill = np.array(self.config.letterbox_color, dtype=np.uint8)

    @property
    def output_height(self) -> int:
        return self.source_height

    @property
    def output_frames(self) -> int:
        return self.source_width

    @property
    def output_size(self) -> Tuple[int, int]:
        return self.output_width, self.output_height

    def transpose(self, x: int) -> TransposedFrame:
        """生成第 x 个输出帧，x 需在 [0, X) 内。"""

        if not 0 <= x < self.source_width:
            raise IndexError(f"output index {x} out of range [0, {self.source_width})")

        pixels = np.empty((self.output_height, self.output_width, BYTES_PER_PIXEL), dtype=np.uint8)
        # 按 t 搬运整列：输入帧 t 的第 x 列 -> 输出第 t 列，所有行一次完成
        for t, view in enumerate(self._views):
            pixels[:, t, :] = view[:, x, :]

        if self.padded:
            last = self.source_frames
            if self.config.padding == "letterbox":
                pixels[:, last, :] = self._fill
            else:
                pixels[:, last, :] = pixels[:, last - 1, :]

        return TransposedFrame(index=x, pixels=pixels, padded=self.padded)

    def iter_frames(self) -> Iterator[TransposedFrame]:
        """按 x 严格递增依次产出全部输出帧。"""

        for x in range(self.source_width):
            yield self.transpose(x)

"""Frame Store：第一遍解码的全量内存物化，finalize 后只读。"""

from __future__ import annotations

from typing import Iterator, List, Optional, Sequence

from vidtranspose.core import DimensionMismatchError, EmptyStoreError, Frame, get_logger

logger = get_logger(__name__)


class FrameStore:
    """按时间顺序追加的帧集合。

    - append 阶段校验所有帧与首帧同尺寸；
    - finalize 之后禁止追加，count 即 T；
    - release 在第二遍结束后释放缓冲。
    """

    def __init__(self) -> None:
        self._frames: List[Frame] = []
        self._size: Optional[tuple[int, int]] = None
        self._finalized = False
        self._released = False

    def append(self, frame: Frame) -> None:
        if self._finalized:
            raise RuntimeError("FrameStore 已 finalize，不能再追加帧")
        if self._size is None:
            self._size = frame.size
        elif frame.size != self._size:
            raise DimensionMismatchError(len(self._frames), self._size, frame.size)
        self._frames.append(frame)

    def extend(self, frames: Sequence[Frame]) -> None:
        for frame in frames:
            self.append(frame)

    def finalize(self) -> int:
        """切换为只读并返回帧数 T；T 为 0 时抛出 EmptyStoreError。"""

        if self._finalized:
            return len(self._frames)
        if not self._frames:
            raise EmptyStoreError("没有解码出任何帧，无法转置")
        self._finalized = True
        width, height = self.size
        logger.debug("FrameStore finalized: %d frames of %dx%d, %d bytes", len(self._frames), width, height, self.nbytes)
        return len(self._frames)

    def release(self) -> None:
        """丢弃全部帧缓冲，之后不可再读取。"""

        self._frames = []
        self._released = True

    @property
    def finalized(self) -> bool:
        return self._finalized

    @property
    def released(self) -> bool:
        return self._released

    @property
    def count(self) -> int:
        return len(self._frames)

    @property
    def size(self) -> tuple[int, int]:
        if self._size is None:
            raise EmptyStoreError("FrameStore 为空，尺寸未知")
        return self._size

    @property
    def width(self) -> int:
        return self.size[0]

    @property
    def height(self) -> int:
        return self.size[1]

    @property
    def nbytes(self) -> int:
        return sum(len(frame.data) for frame in self._frames)

    def __len__(self) -> int:
        return len(self._frames)

    def __getitem__(self, index: int) -> Frame:
        self._check_readable()
        return self._frames[index]

    def __iter__(self) -> Iterator[Frame]:
        self._check_readable()
        return iter(self._frames)

    def _check_readable(self) -> None:
        if self._released:
            raise RuntimeError("FrameStore 已释放")

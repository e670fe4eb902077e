"""输入视频解码：打开容器、选取视频流，并把每帧转换为 RGB24 Frame。"""

from __future__ import annotations

from fractions import Fraction
from pathlib import Path
from typing import Iterator, Optional

import av
from av.error import FFmpegError

from vidtranspose.core import DecodeConfig, ExternalIOError, Frame, NoVideoStreamError, VideoInfo, get_logger

logger = get_logger(__name__)


class VideoSource:
    """PyAV 输入封装，作为上下文管理器使用，退出时关闭容器。

    帧按解码器输出的原始尺寸转换，不强制缩放到首帧尺寸，
    以便尺寸变化在 FrameStore 中以 DimensionMismatchError 暴露。
    """

    def __init__(self, path: str | Path, config: DecodeConfig | None = None) -> None:
        self.path = Path(path)
        self.config = config or DecodeConfig()
        self._container: Optional[av.container.InputContainer] = None
        self._stream: Optional[av.video.stream.VideoStream] = None

    def __enter__(self) -> "VideoSource":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def open(self) -> None:
        try:
            container = av.open(str(self.path), mode="r")
        except (FFmpegError, OSError) as exc:
            raise ExternalIOError(f"无法打开输入视频 {self.path}: {exc}") from exc

        if not container.streams.video:
            container.close()
            raise NoVideoStreamError(f"输入 {self.path} 中没有视频流")

        stream = container.streams.video[0]
        stream.thread_type = self.config.thread_type
        self._container = container
        self._stream = stream

    def close(self) -> None:
        if self._container is not None:
            self._container.close()
            self._container = None
            self._stream = None

    @property
    def info(self) -> VideoInfo:
        stream = self._require_stream()
        ctx = stream.codec_context
        return VideoInfo(
            path=self.path,
            width=ctx.width,
            height=ctx.height,
            fps=stream.average_rate or Fraction(0, 1),
            codec=ctx.name,
            frame_count=stream.frames or 0,
        )

    def frames(self) -> Iterator[Frame]:
        """逐帧解码（含解码器 flush），每帧转换为 rgb24 后拷贝为不可变 Frame。"""

        stream = self._require_stream()
        container = self._require_container()
        try:
            for decoded in container.decode(stream):
                rgb = decoded.reformat(format="rgb24", interpolation=self.config.interpolation)
                yield Frame.from_video_frame(rgb)
        except FFmpegError as exc:
            raise ExternalIOError(f"解码 {self.path} 失败: {exc}") from exc

    def _require_container(self) -> av.container.InputContainer:
        if self._container is None:
            raise RuntimeError("VideoSource 尚未打开")
        return self._container

    def _require_stream(self) -> av.video.stream.VideoStream:
        if self._stream is None:
            raise RuntimeError("VideoSource 尚未打开")
        return self._stream

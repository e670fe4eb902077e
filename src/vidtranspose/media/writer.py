from __future__ import annotations

# 本模块负责输出侧的三个外部步骤：
# 1) RGB24 -> 编码器像素格式（默认 yuv420p）的转换；
# 2) H.264 编码，B 帧固定为 0，编码器时间基为 1/fps；
# 3) 容器封装：写头后暴露 muxer 实际采用的流时间基，close 时写尾。
# 时间戳的覆盖由调用方（TimestampSequence）完成，本模块只负责搬运 packet。

from fractions import Fraction
from pathlib import Path
from typing import List, Optional

import av
from av.error import FFmpegError

from vidtranspose.core import (
    EncodeConfig,
    EncoderUnavailableError,
    ExternalIOError,
    TransposedFrame,
    format_rational,
    get_logger,
)

logger = get_logger(__name__)


def ensure_encoder(codec_name: str) -> av.codec.Codec:
    """确认编码器存在且为视频编码器，否则抛出 EncoderUnavailableError。"""

    try:
        codec = av.codec.Codec(codec_name, "w")
    except (ValueError, FFmpegError) as exc:
        raise EncoderUnavailableError(f"编码器 {codec_name} 不可用: {exc}") from exc
    if codec.type != "video":
        raise EncoderUnavailableError(f"编码器 {codec_name} 不是视频编码器 (type={codec.type})")
    return codec


class H264Writer:
    """PyAV 输出封装。

    生命周期：open（检查编码器、配置流、写容器头）-> encode/mux 循环 -> flush -> close（写尾）。
    作为上下文管理器使用时，任何退出路径都会关闭容器。
    """

    def __init__(
        self,
        output_path: str | Path,
        *,
        width: int,
        height: int,
        fps: Fraction,
        config: EncodeConfig | None = None,
    ) -> None:
        self.output_path = Path(output_path)
        self.width = width
        self.height = height
        self.fps = fps
        self.config = config or EncodeConfig()
        self.requested_time_base = Fraction(fps.denominator, fps.numerator)
        self.encoder_time_base: Optional[Fraction] = None
        self.stream_time_base: Optional[Fraction] = None
        self._container: Optional[av.container.OutputContainer] = None
        self._stream: Optional[av.video.stream.VideoStream] = None

    def __enter__(self) -> "H264Writer":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        if exc_type is None:
            self.close()
            return
        try:
            self.close()
        except ExternalIOError as close_exc:
            # 保留原始异常，关闭失败只记录
            logger.warning("关闭输出容器失败（原始错误 %s）: %s", exc_type.__name__, close_exc)

    def open(self) -> None:
        ensure_encoder(self.config.codec)
        try:
            self.output_path.parent.mkdir(parents=True, exist_ok=True)
            self._container = av.open(str(self.output_path), mode="w")
            stream = self._container.add_stream(self.config.codec, rate=self.fps, options=dict(self.config.options))
            ctx = stream.codec_context
            ctx.width = self.width
            ctx.height = self.height
            ctx.pix_fmt = self.config.pix_fmt
            ctx.time_base = self.requested_time_base
            ctx.max_b_frames = 0
            stream.time_base = self.requested_time_base
            self._stream = stream
            logger.info("Stream time base before header: %s", format_rational(self.requested_time_base))

            # 写容器头，muxer 可能在这里改写流时间基
            self._container.start_encoding()
        except (FFmpegError, OSError) as exc:
            self._abort()
            raise ExternalIOError(f"无法初始化输出 {self.output_path}: {exc}") from exc

        self.encoder_time_base = Fraction(stream.codec_context.time_base)
        self.stream_time_base = Fraction(stream.time_base)
        logger.info("Encoder time base: %s", format_rational(self.encoder_time_base))
        logger.info("Stream time base AFTER header: %s", format_rational(self.stream_time_base))

    def encode(self, frame: TransposedFrame) -> List[av.Packet]:
        """RGB24 -> 编码器像素格式，编码器时间基下 pts 即输出帧序号。"""

        stream = self._require_stream()
        try:
            rgb = av.VideoFrame.from_ndarray(frame.pixels, format="rgb24")
            converted = rgb.reformat(format=self.config.pix_fmt, interpolation=self.config.interpolation)
            converted.pts = frame.index
            converted.time_base = self.encoder_time_base
            return list(stream.encode(converted))
        except FFmpegError as exc:
            raise ExternalIOError(f"编码第 {frame.index} 帧失败: {exc}") from exc

    def flush(self) -> List[av.Packet]:
        """发送 EOF，取回编码器缓存的剩余 packet。"""

        stream = self._require_stream()
        try:
            return list(stream.encode(None))
        except FFmpegError as exc:
            raise ExternalIOError(f"编码器 flush 失败: {exc}") from exc

    def mux(self, packet: av.Packet) -> None:
        if self._container is None:
            raise RuntimeError("H264Writer 尚未打开")
        try:
            self._container.mux(packet)
        except FFmpegError as exc:
            raise ExternalIOError(f"写入 packet 失败 (pts={packet.pts}): {exc}") from exc

    def close(self) -> None:
        """关闭容器；已写头时 PyAV 会在这里写尾。"""

        if self._container is None:
            return
        container = self._container
        self._container = None
        self._stream = None
        try:
            container.close()
        except (FFmpegError, OSError) as exc:
            raise ExternalIOError(f"写入容器尾失败 {self.output_path}: {exc}") from exc

    def _abort(self) -> None:
        if self._container is not None:
            try:
                self._container.close()
            except (FFmpegError, OSError) as exc:
                logger.warning("关闭未完成的输出容器失败: %s", exc)
        self._container = None
        self._stream = None

    def _require_stream(self) -> av.video.stream.VideoStream:
        if self._stream is None:
            raise RuntimeError("H264Writer 尚未打开")
        return self._stream

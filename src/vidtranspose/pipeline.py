"""流水线驱动：第一遍解码入 FrameStore，第二遍转置、编码、打时间戳并封装。"""

from __future__ import annotations

from fractions import Fraction
from pathlib import Path
from typing import Any, Callable, ContextManager, Iterator, List, Optional, Protocol

from vidtranspose.core import (
    Frame,
    PipelineConfig,
    TransposedFrame,
    TransposeResult,
    VideoInfo,
    format_rational,
    get_logger,
)
from vidtranspose.media import H264Writer, VideoSource
from vidtranspose.store import FrameStore
from vidtranspose.timing import TimestampSequence, require_frame_rate
from vidtranspose.transpose import AxisTransposeEngine

logger = get_logger(__name__)

ProgressCallback = Callable[[str, int, Optional[int]], None]


class FrameSource(Protocol):
    """解码端接口：声明的流参数与有限帧序列。"""

    @property
    def info(self) -> VideoInfo: ...

    def frames(self) -> Iterator[Frame]: ...


class PacketWriter(Protocol):
    """编码 + 封装端接口，stream_time_base 为写头之后的实际值。"""

    encoder_time_base: Optional[Fraction]
    stream_time_base: Optional[Fraction]

    def encode(self, frame: TransposedFrame) -> List[Any]: ...

    def flush(self) -> List[Any]: ...

    def mux(self, packet: Any) -> None: ...


SourceFactory = Callable[[Path], ContextManager[FrameSource]]
WriterFactory = Callable[[Path, int, int, Fraction], ContextManager[PacketWriter]]


def decode_into_store(
    source: FrameSource,
    *,
    progress_callback: ProgressCallback | None = None,
) -> FrameStore:
    """第一遍：把全部帧追加到 FrameStore 并 finalize，零帧时抛出 EmptyStoreError。"""

    total = source.info.frame_count or None
    store = FrameStore()
    for frame in source.frames():
        store.append(frame)
        if progress_callback is not None:
            progress_callback("decode", store.count, total)
    store.finalize()
    return store


def encode_transposed(
    engine: AxisTransposeEngine,
    writer: PacketWriter,
    fps: Fraction,
    *,
    progress_callback: ProgressCallback | None = None,
) -> TimestampSequence:
    """第二遍：按 x 递增转置并编码，所有 packet（含 flush）都经过同一个时间戳序列。"""

    if writer.stream_time_base is None or writer.encoder_time_base is None:
        raise RuntimeError("writer 尚未写入容器头，时间基未知")
    timestamps = TimestampSequence(fps, writer.stream_time_base, writer.encoder_time_base)
    logger.info("PTS increment per frame: %d", timestamps.pts_increment)

    total = engine.output_frames
    for frame in engine.iter_frames():
        for packet in writer.encode(frame):
            writer.mux(timestamps.stamp(packet))
        if progress_callback is not None:
            progress_callback("encode", frame.index + 1, total)

    for packet in writer.flush():
        writer.mux(timestamps.stamp(packet))
    return timestamps


def _default_source_factory(config: PipelineConfig) -> SourceFactory:
    return lambda path: VideoSource(path, config.decode)


def _default_writer_factory(config: PipelineConfig) -> WriterFactory:
    return lambda path, width, height, fps: H264Writer(path, width=width, height=height, fps=fps, config=config.encode)


def transpose_video(
    input_path: str | Path,
    output_path: str | Path,
    config: PipelineConfig | None = None,
    *,
    source_factory: SourceFactory | None = None,
    writer_factory: WriterFactory | None = None,
    progress_callback: ProgressCallback | None = None,
) -> TransposeResult:
    """主入口：X×Y×T 的输入 -> (T 补偶)×Y×X 的输出。任何致命错误都会中止整次运行。"""

    cfg = config or PipelineConfig()
    input_path = Path(input_path)
    output_path = Path(output_path)
    source_factory = source_factory or _default_source_factory(cfg)
    writer_factory = writer_factory or _default_writer_factory(cfg)

    with source_factory(input_path) as source:
        info = source.info
        logger.info("Loading video: %s", input_path)
        logger.info("Input resolution %dx%d, frame rate %s fps", info.width, info.height, format_rational(info.fps))
        fps = require_frame_rate(info.fps)
        logger.info("[1/2] Decoding all frames...")
        store = decode_into_store(source, progress_callback=progress_callback)

    try:
        engine = AxisTransposeEngine(store, cfg.transpose)
        logger.info(
            "%d frames decoded; output will be %dx%d pixels, %d frames",
            engine.source_frames,
            engine.output_width,
            engine.output_height,
            engine.output_frames,
        )
        if engine.padded:
            logger.info(
                "Padding width from %d to %d (%s, H.264 requires even dimensions)",
                engine.source_frames,
                engine.output_width,
                cfg.transpose.padding,
            )

        logger.info("[2/2] Transposing axes and encoding...")
        with writer_factory(output_path, engine.output_width, engine.output_height, fps) as writer:
            timestamps = encode_transposed(engine, writer, fps, progress_callback=progress_callback)
    finally:
        store.release()

    result = TransposeResult(
        input_path=input_path,
        output_path=output_path,
        input_width=engine.source_width,
        input_height=engine.source_height,
        input_frames=engine.source_frames,
        output_width=engine.output_width,
        output_height=engine.output_height,
        output_frames=engine.output_frames,
        padded=engine.padded,
        fps=fps,
        encoder_time_base=timestamps.encoder_time_base,
        stream_time_base=timestamps.stream_time_base,
        pts_increment=timestamps.pts_increment,
        packets_written=timestamps.emitted,
    )
    logger.info("Video transposition complete: %s (%d packets)", output_path, result.packets_written)
    return result

"""PyAV 适配层测试：真实编码一段小视频再走完整流水线。"""

from fractions import Fraction
from pathlib import Path
from types import SimpleNamespace

import numpy as np
import pytest

av = pytest.importorskip("av")

from vidtranspose.core import (  # noqa: E402
    EncodeConfig,
    EncoderUnavailableError,
    ExternalIOError,
    NoVideoStreamError,
    PipelineConfig,
)
from vidtranspose.media import H264Writer, VideoSource, ensure_encoder  # noqa: E402
from vidtranspose.pipeline import transpose_video  # noqa: E402


def has_encoder(name: str) -> bool:
    try:
        ensure_encoder(name)
    except EncoderUnavailableError:
        return False
    return True


def write_clip(path: Path, frames: np.ndarray, fps: int = 25, codec: str = "mpeg4") -> Path:
    height, width = frames.shape[1:3]
    with av.open(str(path), mode="w") as container:
        stream = container.add_stream(codec, rate=fps)
        ctx = stream.codec_context
        ctx.width = width
        ctx.height = height
        ctx.pix_fmt = "yuv420p"
        for pixels in frames:
            frame = av.VideoFrame.from_ndarray(np.ascontiguousarray(pixels), format="rgb24")
            for packet in stream.encode(frame):
                container.mux(packet)
        for packet in stream.encode(None):
            container.mux(packet)
    return path


def moving_box_frames(t: int = 5, height: int = 8, width: int = 16) -> np.ndarray:
    frames = np.zeros((t, height, width, 3), dtype=np.uint8)
    for index in range(t):
        frames[index, 2:6, index * 2 : index * 2 + 4] = 255
    return frames


@pytest.fixture()
def clip(tmp_path: Path) -> Path:
    if not has_encoder("mpeg4"):
        pytest.skip("mpeg4 encoder not available")
    return write_clip(tmp_path / "input.mp4", moving_box_frames())


def test_video_source_decodes_all_frames(clip: Path) -> None:
    with VideoSource(clip) as source:
        info = source.info
        frames = list(source.frames())

    assert (info.width, info.height) == (16, 8)
    assert info.fps == Fraction(25)
    assert len(frames) == 5
    assert all(frame.size == (16, 8) for frame in frames)
    assert all(frame.row_stride >= 16 * 3 for frame in frames)


def test_video_source_rejects_garbage(tmp_path: Path) -> None:
    bogus = tmp_path / "bogus.mp4"
    bogus.write_bytes(b"definitely not a video")

    with pytest.raises(ExternalIOError):
        VideoSource(bogus).open()


def test_video_source_without_video_stream(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    closed = []
    container = SimpleNamespace(streams=SimpleNamespace(video=[]), close=lambda: closed.append(True))
    monkeypatch.setattr("vidtranspose.media.decoder.av.open", lambda *_args, **_kwargs: container)

    with pytest.raises(NoVideoStreamError):
        VideoSource(tmp_path / "audio_only.m4a").open()
    assert closed == [True]


@pytest.mark.parametrize("name", ["definitely-not-a-codec", "pcm_s16le"])
def test_ensure_encoder_rejects(name: str) -> None:
    with pytest.raises(EncoderUnavailableError):
        ensure_encoder(name)


def _read_back(path: Path):
    with av.open(str(path)) as container:
        stream = container.streams.video[0]
        pts = [packet.pts for packet in container.demux(stream) if packet.pts is not None]
    with av.open(str(path)) as container:
        frames = list(container.decode(video=0))
    return pts, frames


@pytest.mark.parametrize("codec", ["mpeg4", "h264"])
def test_transpose_round_trip(clip: Path, tmp_path: Path, codec: str) -> None:
    if not has_encoder(codec):
        pytest.skip(f"{codec} encoder not available")
    output = tmp_path / f"transposed_{codec}.mp4"
    config = PipelineConfig(encode=EncodeConfig(codec=codec))

    result = transpose_video(clip, output, config)

    assert (result.output_width, result.output_height, result.output_frames) == (6, 8, 16)
    assert result.padded
    assert result.packets_written == 16

    pts, frames = _read_back(output)
    assert len(frames) == 16
    assert all((frame.width, frame.height) == (6, 8) for frame in frames)
    assert pts[0] == 0
    assert {b - a for a, b in zip(pts, pts[1:])} == {result.pts_increment}


def test_unknown_codec_leaves_no_output(clip: Path, tmp_path: Path) -> None:
    output = tmp_path / "never.mp4"
    config = PipelineConfig(encode=EncodeConfig(codec="definitely-not-a-codec"))

    with pytest.raises(EncoderUnavailableError):
        transpose_video(clip, output, config)

    assert not output.exists()


def test_video_source_frames_requires_open(tmp_path: Path) -> None:
    source = VideoSource(tmp_path / "never_opened.mp4")

    with pytest.raises(RuntimeError):
        next(source.frames())


def test_writer_wraps_uncreatable_output_dir(tmp_path: Path) -> None:
    if not has_encoder("mpeg4"):
        pytest.skip("mpeg4 encoder not available")
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")
    writer = H264Writer(blocker / "out.mp4", width=4, height=2, fps=Fraction(25), config=EncodeConfig(codec="mpeg4"))

    with pytest.raises(ExternalIOError):
        writer.open()


def test_cli_reports_uncreatable_output_dir(monkeypatch: pytest.MonkeyPatch, clip: Path, tmp_path: Path, capsys) -> None:
    from vidtranspose.cli import FAILURE_EXIT_CODE, main

    monkeypatch.setenv("VIDTRANSPOSE_CODEC", "mpeg4")
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")

    exit_code = main([str(clip), str(blocker / "out.mp4"), "--no-progress"])

    assert exit_code == FAILURE_EXIT_CODE
    err = capsys.readouterr().err
    assert "Traceback" not in err
    assert str(blocker) in err

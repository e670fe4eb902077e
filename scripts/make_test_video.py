"""生成演示视频：黑底上一个白色方块从左向右匀速移动。

转置后方块会变成一条斜线，便于肉眼确认 X/T 互换效果。
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import ffmpeg
import typer

from vidtranspose import transpose_video
from vidtranspose.core import load_config, setup_logging

app = typer.Typer(add_completion=False)


def build_test_video(
    output: Path,
    *,
    width: int = 640,
    height: int = 480,
    box_size: int = 100,
    duration: float = 5.0,
    fps: int = 30,
    speed: int = 20,
) -> Path:
    """用 lavfi color 源 + overlay 合成测试视频，方块 x = 50 + t * speed。"""

    output.parent.mkdir(parents=True, exist_ok=True)
    background = ffmpeg.input(f"color=c=black:s={width}x{height}:d={duration}", f="lavfi").filter("format", "yuv420p")
    box = (
        ffmpeg.input(f"color=c=white:s={box_size}x{box_size}:d={duration}", f="lavfi")
        .filter("format", "yuva420p")
        .setpts("PTS-STARTPTS")
    )
    video = ffmpeg.overlay(background, box, x=f"50+t*{speed}", y=(height - box_size) // 2, shortest=1)
    stream = ffmpeg.output(video, str(output), r=fps, vcodec="libx264", pix_fmt="yuv420p")
    try:
        ffmpeg.overwrite_output(stream).run(quiet=True, capture_stdout=True, capture_stderr=True)
    except ffmpeg.Error as exc:
        stderr = exc.stderr.decode("utf-8", errors="replace") if exc.stderr else ""
        raise RuntimeError(f"生成测试视频失败: {exc}\n{stderr}") from exc
    return output


@app.command()
def main(
    output: Path = typer.Argument(Path("res/test_input.mp4"), help="测试视频输出路径"),
    duration: float = typer.Option(5.0, "--duration", help="时长（秒）"),
    fps: int = typer.Option(30, "--fps", help="帧率"),
    transpose_to: Optional[Path] = typer.Option(None, "--transpose-to", help="生成后立即转置并写到该路径"),
) -> None:
    setup_logging("INFO")
    build_test_video(output, duration=duration, fps=fps)
    typer.echo(f"Test video created: {output}")
    if transpose_to is not None:
        result = transpose_video(output, transpose_to, load_config())
        typer.echo(
            f"Transposed: {result.input_width}x{result.input_height}, {result.input_frames} frames -> "
            f"{result.output_width}x{result.output_height}, {result.output_frames} frames"
        )


if __name__ == "__main__":
    app()

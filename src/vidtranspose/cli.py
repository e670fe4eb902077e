"""VidTranspose Typer CLI：`vidtranspose <input_video> <output_video>`。"""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Dict, Optional, Sequence

import typer
from tqdm import tqdm

from vidtranspose.core import PipelineConfig, TransposeResult, VidTransposeError, load_config, setup_logging
from vidtranspose.pipeline import transpose_video

USAGE_EXIT_CODE = 1
FAILURE_EXIT_CODE = 3
# Typer/Click 在 standalone 模式下对参数错误使用的退出码
CLICK_USAGE_EXIT_CODE = 2

app = typer.Typer(help="互换视频的水平轴 (X) 与时间轴 (T)", add_completion=False)


class TqdmProgress:
    """流水线进度回调：每个阶段一根 tqdm 进度条，decode 阶段总数未知时只计数。"""

    DESCRIPTIONS = {"decode": "Decoding frames", "encode": "Transposing + encoding"}

    def __init__(self, *, disable: bool = False) -> None:
        self.disable = disable
        self._bars: Dict[str, tqdm] = {}

    def __enter__(self) -> "TqdmProgress":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __call__(self, stage: str, done: int, total: Optional[int]) -> None:
        bar = self._bars.get(stage)
        if bar is None:
            self.close()
            bar = tqdm(total=total, desc=self.DESCRIPTIONS.get(stage, stage), unit="frame", disable=self.disable)
            self._bars[stage] = bar
        bar.update(done - bar.n)

    def close(self) -> None:
        for bar in self._bars.values():
            bar.close()
        self._bars.clear()


def _resolve_config(config_path: Optional[Path]) -> PipelineConfig:
    return load_config(config_path) if config_path else load_config()


def _write_report(result: TransposeResult, path: Path) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(result.to_dict(), ensure_ascii=False, indent=2), encoding="utf-8")


@app.command()
def transpose_cmd(
    input_video: Path = typer.Argument(..., help="输入视频路径"),
    output_video: Path = typer.Argument(..., help="输出视频路径"),
    config_path: Optional[Path] = typer.Option(None, "--config", help="自定义配置文件"),
    report: Optional[Path] = typer.Option(None, "--report", help="运行统计 JSON 输出路径"),
    progress: bool = typer.Option(True, "--progress/--no-progress", help="是否在 stderr 显示进度条"),
    log_level: str = typer.Option("INFO", "--log-level", help="日志级别"),
) -> None:
    """读取整段视频，输出 X 与 T 互换后的 H.264 视频。"""

    setup_logging(log_level)
    try:
        cfg = _resolve_config(config_path)
        with TqdmProgress(disable=not progress) as progress_callback:
            result = transpose_video(input_video, output_video, cfg, progress_callback=progress_callback)
        if report is not None:
            _write_report(result, report)
    except (VidTransposeError, ValueError, OSError) as exc:
        typer.echo(f"错误：{exc}", err=True)
        raise typer.Exit(code=FAILURE_EXIT_CODE) from exc

    typer.echo(
        f"完成：{result.input_width}x{result.input_height}x{result.input_frames} -> "
        f"{result.output_width}x{result.output_height}x{result.output_frames}，输出到 {output_video}"
    )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """运行 CLI 并返回退出码：0 成功，1 参数错误（usage 输出到 stderr），3 其他失败。"""

    try:
        app(args=list(argv) if argv is not None else None, prog_name="vidtranspose")
    except SystemExit as exc:
        code = exc.code
        if code is None:
            return 0
        if not isinstance(code, int):
            typer.echo(str(code), err=True)
            return FAILURE_EXIT_CODE
        return USAGE_EXIT_CODE if code == CLICK_USAGE_EXIT_CODE else code
    return 0


def run() -> None:  # pragma: no cover - console script 入口
    sys.exit(main())


if __name__ == "__main__":  # pragma: no cover
    run()

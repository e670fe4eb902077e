"""CLI 行为测试：参数个数、错误退出码与报告输出。"""

import json
from fractions import Fraction
from pathlib import Path

from typer.testing import CliRunner

from vidtranspose import cli
from vidtranspose.cli import FAILURE_EXIT_CODE, USAGE_EXIT_CODE, TqdmProgress, app, main
from vidtranspose.core import NoVideoStreamError, PipelineConfig, TransposeResult

runner = CliRunner()


def fake_result(input_path: Path, output_path: Path) -> TransposeResult:
    return TransposeResult(
        input_path=input_path,
        output_path=output_path,
        input_width=640,
        input_height=480,
        input_frames=150,
        output_width=150,
        output_height=480,
        output_frames=640,
        padded=False,
        fps=Fraction(30),
        encoder_time_base=Fraction(1, 30),
        stream_time_base=Fraction(1, 15360),
        pts_increment=512,
        packets_written=640,
    )


def test_transpose_cli_writes_report(monkeypatch, tmp_path):
    calls = {}

    def fake_transpose(input_path, output_path, config, *, progress_callback=None):
        calls["args"] = (input_path, output_path, config, progress_callback)
        return fake_result(input_path, output_path)

    monkeypatch.setattr("vidtranspose.cli.load_config", lambda *_, **__: PipelineConfig())
    monkeypatch.setattr("vidtranspose.cli.transpose_video", fake_transpose)
    report = tmp_path / "out" / "report.json"

    result = runner.invoke(
        app,
        [str(tmp_path / "in.mp4"), str(tmp_path / "out.mp4"), "--report", str(report), "--no-progress"],
    )

    assert result.exit_code == 0, result.output
    assert isinstance(calls["args"][3], TqdmProgress)
    assert calls["args"][3].disable
    data = json.loads(report.read_text())
    assert data["output_frames"] == 640
    assert data["stream_time_base"] == "1/15360"


def test_transpose_cli_reports_pipeline_errors(monkeypatch, tmp_path):
    def failing(*_args, **_kwargs):
        raise NoVideoStreamError("no video stream in in.mp4")

    monkeypatch.setattr("vidtranspose.cli.transpose_video", failing)

    exit_code = main([str(tmp_path / "in.mp4"), str(tmp_path / "out.mp4"), "--no-progress"])

    assert exit_code == FAILURE_EXIT_CODE


def test_main_success_returns_zero(monkeypatch, tmp_path):
    monkeypatch.setattr(
        "vidtranspose.cli.transpose_video",
        lambda input_path, output_path, config, **kwargs: fake_result(input_path, output_path),
    )

    assert main([str(tmp_path / "in.mp4"), str(tmp_path / "out.mp4")]) == 0


def test_missing_argument_is_usage_error(capsys):
    exit_code = main(["only-one.mp4"])

    assert exit_code == USAGE_EXIT_CODE
    err = capsys.readouterr().err
    assert "Usage" in err
    assert "Traceback" not in err


def test_extra_argument_is_usage_error(capsys):
    exit_code = main(["a.mp4", "b.mp4", "c.mp4"])

    assert exit_code == USAGE_EXIT_CODE
    assert "Usage" in capsys.readouterr().err


def test_no_arguments_is_usage_error(capsys):
    assert main([]) == USAGE_EXIT_CODE
    assert capsys.readouterr().out == ""


def test_tqdm_progress_opens_one_bar_per_stage():
    progress = TqdmProgress()

    progress("decode", 1, None)
    progress("decode", 2, None)
    decode_bar = progress._bars["decode"]
    assert decode_bar.total is None
    assert decode_bar.n == 2

    for done in range(1, 5):
        progress("encode", done, 4)
    assert "decode" not in progress._bars
    encode_bar = progress._bars["encode"]
    assert encode_bar.total == 4
    assert encode_bar.n == 4

    progress.close()
    assert progress._bars == {}


def test_unwritable_report_path_is_failure(monkeypatch, tmp_path):
    monkeypatch.setattr(
        "vidtranspose.cli.transpose_video",
        lambda input_path, output_path, config, **kwargs: fake_result(input_path, output_path),
    )
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory")

    exit_code = main([str(tmp_path / "in.mp4"), str(tmp_path / "out.mp4"), "--report", str(blocker / "r.json")])

    assert exit_code == FAILURE_EXIT_CODE


def test_os_error_during_run_is_failure(monkeypatch, tmp_path, capsys):
    def failing(*_args, **_kwargs):
        raise FileNotFoundError(2, "No such file or directory", "/nope")

    monkeypatch.setattr("vidtranspose.cli.transpose_video", failing)

    exit_code = main([str(tmp_path / "in.mp4"), str(tmp_path / "out.mp4"), "--no-progress"])

    assert exit_code == FAILURE_EXIT_CODE
    assert "No such file or directory" in capsys.readouterr().err


def test_module_exposes_console_entry():
    assert callable(cli.run)

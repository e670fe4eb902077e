"""时间戳重建：按固定帧率为每个输出包生成严格等距的 PTS/DTS。

muxer 在写入容器头时可能改写流的时间基，因此增量必须基于写头之后的实际时间基计算。
编码器给出的时间戳只做单位换算，随后被覆盖；流水线不允许帧重排（B 帧关闭），
所以 DTS 恒等于 PTS。全部计算使用 Fraction 精确整数运算，避免累计漂移。
"""

from __future__ import annotations

from fractions import Fraction
from typing import Any, Optional, Tuple, Union

from vidtranspose.core import ExternalIOError, ZeroFrameRateError, format_rational, get_logger

logger = get_logger(__name__)

RationalLike = Union[Fraction, int, str, Tuple[int, int]]


def as_rational(value: RationalLike) -> Fraction:
    """接受 Fraction / 整数 / "num/den" 字符串 / (num, den) 二元组。"""

    if isinstance(value, tuple):
        num, den = value
        if den == 0:
            raise ValueError(f"rational {num}/{den} has zero denominator")
        return Fraction(num, den)
    return Fraction(value)


def require_frame_rate(fps: Optional[RationalLike]) -> Fraction:
    """校验帧率：未知或分子为 0 时无法计算增量，视为致命错误。"""

    if fps is None:
        raise ZeroFrameRateError("输入视频未声明帧率")
    try:
        rate = as_rational(fps)
    except (ValueError, ZeroDivisionError) as exc:
        raise ZeroFrameRateError(f"输入帧率无效: {fps}") from exc
    if rate.numerator == 0:
        raise ZeroFrameRateError(f"输入帧率为 0 ({fps})")
    if rate < 0:
        raise ZeroFrameRateError(f"输入帧率为负 ({fps})")
    return rate


def compute_pts_increment(fps: RationalLike, stream_time_base: RationalLike) -> int:
    """每帧对应的时间基 tick 数：(tb_den * fps_den) // (fps_num * tb_num)。

    对 1/N 形式的时间基即 (tb_den * fps_den) // fps_num，例如 30000/1001 fps 配 1/30000 得 1001。
    """

    rate = require_frame_rate(fps)
    time_base = as_rational(stream_time_base)
    if time_base <= 0:
        raise ExternalIOError(f"流时间基无效: {stream_time_base}")
    increment = (time_base.denominator * rate.denominator) // (rate.numerator * time_base.numerator)
    if increment <= 0:
        raise ExternalIOError(
            f"流时间基 {format_rational(time_base)} 过粗，无法表示 {format_rational(rate)} fps 的帧间隔"
        )
    return increment


def rescale_ts(value: int, source: RationalLike, target: RationalLike) -> int:
    """时间戳单位换算，四舍五入且 .5 远离 0（与 av_rescale_q 一致）。"""

    scaled = Fraction(value) * as_rational(source) / as_rational(target)
    floor = scaled.numerator // scaled.denominator
    remainder = scaled - floor
    half = Fraction(1, 2)
    if remainder > half or (remainder == half and scaled > 0):
        return floor + 1
    return floor


class TimestampSequence:
    """单次编码会话内的 PTS 计数器。

    - fps: 期望输出帧率；
    - stream_time_base: muxer 写头后的实际流时间基；
    - encoder_time_base: 编码器内部时间基，用于换算编码器给出的时间戳。
    """

    def __init__(
        self,
        fps: RationalLike,
        stream_time_base: RationalLike,
        encoder_time_base: RationalLike,
    ) -> None:
        self.fps = require_frame_rate(fps)
        self.stream_time_base = as_rational(stream_time_base)
        self.encoder_time_base = as_rational(encoder_time_base)
        self.pts_increment = compute_pts_increment(self.fps, self.stream_time_base)
        self.current_pts = 0
        self.emitted = 0

    def stamp(self, packet: Any) -> Any:
        """换算包时间戳到流时间基，再用 current_pts 覆盖 PTS/DTS 并前进一个增量。"""

        # 换算后的编码器时间戳仅用于诊断日志，最终值总是 current_pts
        encoder_pts = self._to_stream(packet.pts)
        encoder_dts = self._to_stream(packet.dts)
        if encoder_pts is not None and (encoder_pts, encoder_dts) != (self.current_pts, self.current_pts):
            logger.debug("encoder pts/dts %s/%s overridden with %d", encoder_pts, encoder_dts, self.current_pts)
        packet.time_base = self.stream_time_base
        packet.pts = self.current_pts
        packet.dts = self.current_pts
        self.current_pts += self.pts_increment
        self.emitted += 1
        return packet

    def _to_stream(self, value: Optional[int]) -> Optional[int]:
        if value is None:
            return None
        return rescale_ts(value, self.encoder_time_base, self.stream_time_base)

    def reset(self) -> None:
        self.current_pts = 0
        self.emitted = 0

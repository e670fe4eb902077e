"""核心模块入口，聚合数据模型、异常与配置加载工具。"""

from .config import DecodeConfig, EncodeConfig, PipelineConfig, TransposeConfig, load_config
from .datamodels import Frame, TransposedFrame, TransposeResult, VideoInfo, format_rational
from .errors import (
    DimensionMismatchError,
    EmptyStoreError,
    EncoderUnavailableError,
    ExternalIOError,
    NoVideoStreamError,
    VidTransposeError,
    ZeroFrameRateError,
)
from .logging_utils import get_logger, setup_logging

__all__ = [
    "DecodeConfig",
    "EncodeConfig",
    "PipelineConfig",
    "TransposeConfig",
    "load_config",
    "Frame",
    "TransposedFrame",
    "TransposeResult",
    "VideoInfo",
    "format_rational",
    "VidTransposeError",
    "NoVideoStreamError",
    "EmptyStoreError",
    "DimensionMismatchError",
    "EncoderUnavailableError",
    "ZeroFrameRateError",
    "ExternalIOError",
    "get_logger",
    "setup_logging",
]

"""配置加载工具，集中管理解码、编码与转置参数。"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Callable, Dict, Literal, Mapping, MutableMapping, Sequence, Tuple

import yaml
from pydantic import BaseModel, Field, field_validator

CONFIG_ENV_KEY = "VIDTRANSPOSE_CONFIG_PATH"


class DecodeConfig(BaseModel):
    """解码阶段参数：转 RGB24 时使用的插值方式与解码线程模式。"""

    interpolation: str = "BILINEAR"
    thread_type: str = "AUTO"


class EncodeConfig(BaseModel):
    """编码阶段参数。B 帧固定关闭，不在此处暴露。"""

    codec: str = "h264"
    pix_fmt: str = "yuv420p"
    interpolation: str = "BILINEAR"
    options: Dict[str, str] = Field(default_factory=dict, description="透传给编码器的选项，如 crf/preset。")

    @field_validator("options", mode="before")
    @classmethod
    def _stringify_options(cls, value: Any) -> Any:
        # 编码器选项只接受字符串，YAML 里的数字需要转换
        if isinstance(value, Mapping):
            return {str(key): str(item) for key, item in value.items()}
        return value


class TransposeConfig(BaseModel):
    """转置阶段参数：奇数宽度时的补列策略。"""

    padding: Literal["duplicate", "letterbox"] = "duplicate"
    letterbox_color: Tuple[int, int, int] = (0, 0, 0)

    @field_validator("letterbox_color")
    @classmethod
    def _check_color(cls, value: Tuple[int, int, int]) -> Tuple[int, int, int]:
        if any(channel < 0 or channel > 255 for channel in value):
            raise ValueError("letterbox_color 每个通道需在 0-255 之间")
        return value


class PipelineConfig(BaseModel):
    """聚合各阶段配置。"""

    decode: DecodeConfig = Field(default_factory=DecodeConfig)
    encode: EncodeConfig = Field(default_factory=EncodeConfig)
    transpose: TransposeConfig = Field(default_factory=TransposeConfig)
    raw: Dict[str, Any] = Field(default_factory=dict, description="原始配置字典，便于调试。")

    def model_post_init(self, __context: Any) -> None:  # type: ignore[override]
        if not self.raw:
            self.raw = self.to_raw_dict()

    def to_raw_dict(self) -> Dict[str, Any]:
        """导出基础 dict，供日志输出使用。"""

        return {
            "decode": self.decode.model_dump(),
            "encode": self.encode.model_dump(),
            "transpose": self.transpose.model_dump(),
        }


def _default_config_path() -> Path:
    return Path(__file__).resolve().parents[3] / "configs" / "baseline.yaml"


def _load_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    with path.open("r", encoding="utf-8") as handle:
        data = yaml.safe_load(handle) or {}
        if not isinstance(data, dict):
            raise ValueError(f"配置文件 {path} 内容需为字典")
        return data


ENV_OVERRIDE_MAP: Dict[str, Tuple[Sequence[str], Callable[[str], Any]]] = {
    "VIDTRANSPOSE_CODEC": (("encode", "codec"), str),
    "VIDTRANSPOSE_PADDING": (("transpose", "padding"), str),
    "VIDTRANSPOSE_CRF": (("encode", "options", "crf"), str),
}


def _apply_env_overrides(data: MutableMapping[str, Any], env: Mapping[str, str]) -> None:
    for env_key, (path, caster) in ENV_OVERRIDE_MAP.items():
        if env_key in env:
            _set_nested_value(data, path, caster(env[env_key]))


def _set_nested_value(target: MutableMapping[str, Any], path: Sequence[str], value: Any) -> None:
    cursor: MutableMapping[str, Any] = target
    *parents, last = path
    for key in parents:
        if key not in cursor or not isinstance(cursor[key], MutableMapping):
            cursor[key] = {}
        cursor = cursor[key]  # type: ignore[assignment]
    cursor[last] = value


def load_config(path: str | Path | None = None, *, env: Mapping[str, str] | None = None) -> PipelineConfig:
    """加载配置：优先显式路径，其次环境变量，最后回退默认 baseline。"""

    env_map = env if env is not None else os.environ
    config_path = path or env_map.get(CONFIG_ENV_KEY)
    target_path = Path(config_path).expanduser() if config_path else _default_config_path()
    data = _load_yaml(target_path)
    _apply_env_overrides(data, env_map)
    return PipelineConfig.model_validate({**data, "raw": data})

"""合流予測エンジンの調整パラメータ群と、その読み込み処理。"""

from __future__ import annotations

import json
import math
import os
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Tuple

from .errors import EC_CONFIG_INVALID, EC_CONFIG_IO, EC_CONFIG_UNKNOWN_KEY, EngineError
from .geo import PROJECTIONS

CONFIG_ENV = "RENDEZVOUS_CONFIG"

# 時間帯 × 会場種別 の集客倍率
DEFAULT_TIME_OF_DAY_PATTERNS: Dict[str, Dict[str, float]] = {
    "morning": {"coffee": 1.8, "cafe": 1.6, "transit": 1.4, "breakfast": 1.7, "gym": 1.3},
    "lunch": {"restaurant": 2.1, "food": 1.9, "park": 1.4, "cafe": 1.5, "coworking": 1.3},
    "evening": {"bar": 1.6, "restaurant": 1.7, "entertainment": 1.8, "park": 1.3, "shopping": 1.2},
    "night": {"bar": 2.2, "club": 2.0, "entertainment": 1.7, "late_night": 1.8, "casino": 1.5},
}

# (上限時刻, 時間帯) 上限未満ならその時間帯。どれにも該当しなければ night
DEFAULT_TIME_BUCKETS: Tuple[Tuple[int, str], ...] = ((11, "morning"), (15, "lunch"), (19, "evening"))


@dataclass(frozen=True)
class EngineConfig:
    """合流予測の閾値・減衰定数・参照テーブルをまとめた設定値。"""

    # 有効エージェント判定
    min_speed_mps: float = 0.3
    max_speed_mps: float = 15.0
    stationary_time_ms: float = 45_000.0
    min_agent_confidence: float = 0.4

    # 軌道交差
    max_prediction_time_s: float = 180.0
    min_relative_speed_sq: float = 0.01
    max_convergence_distance_m: float = 80.0
    distance_decay_m: float = 30.0
    time_decay_s: float = 120.0

    # 会場の引力
    venue_magnetism_factor: float = 1.4
    venue_search_radius_m: float = 75.0
    venue_attach_radius_m: float = 50.0
    venue_distance_decay_m: float = 30.0
    venue_blend_factor: float = 0.5
    min_venue_weight: float = 0.1
    max_venue_weight: float = 0.6
    popularity_high: float = 80.0
    popularity_medium: float = 50.0
    popularity_weight_high: float = 1.5
    popularity_weight_medium: float = 1.2
    popularity_weight_low: float = 1.0
    time_of_day_patterns: Dict[str, Dict[str, float]] = field(default_factory=dict)
    time_buckets: Tuple[Tuple[int, str], ...] = DEFAULT_TIME_BUCKETS
    timezone: str = "Asia/Tokyo"

    # 信頼度合成
    age_decay_ms: float = 60_000.0
    min_confidence: float = 0.65

    # グループ拡張
    group_cohesion_decay_m: float = 50.0
    group_penalty: float = 0.8

    # ランキング
    probability_tie: float = 0.1
    time_tie_s: float = 30.0
    max_results: int = 3

    projection: str = "flat"

    def __post_init__(self) -> None:
        """既定の時間帯テーブルを上書き分とマージし、値域を検証する。

        Raises:
            EngineError: 値が不正な場合。
        """
        patterns = {
            bucket: dict(table | self.time_of_day_patterns.get(bucket, {}))
            for bucket, table in DEFAULT_TIME_OF_DAY_PATTERNS.items()
        }
        for bucket, table in self.time_of_day_patterns.items():
            patterns.setdefault(bucket, dict(table))
        object.__setattr__(self, "time_of_day_patterns", patterns)
        object.__setattr__(
            self, "time_buckets", tuple((int(h), str(b)) for h, b in self.time_buckets)
        )
        self._validate()

    def _validate(self) -> None:
        for f in fields(self):
            value = getattr(self, f.name)
            if isinstance(value, float) and not math.isfinite(value):
                raise EngineError(EC_CONFIG_INVALID, f"{f.name} must be finite")
        if not 0 <= self.min_speed_mps <= self.max_speed_mps:
            raise EngineError(EC_CONFIG_INVALID, "speed thresholds must satisfy 0 <= min <= max")
        if self.max_prediction_time_s <= 0:
            raise EngineError(EC_CONFIG_INVALID, "max_prediction_time_s must be positive")
        for name in ("distance_decay_m", "time_decay_s", "venue_distance_decay_m",
                     "age_decay_ms", "group_cohesion_decay_m"):
            if getattr(self, name) <= 0:
                raise EngineError(EC_CONFIG_INVALID, f"{name} must be positive")
        if not 0 <= self.min_confidence <= 1:
            raise EngineError(EC_CONFIG_INVALID, "min_confidence must be within [0, 1]")
        if not 0 <= self.min_venue_weight <= self.max_venue_weight <= 1:
            raise EngineError(EC_CONFIG_INVALID, "venue weights must satisfy 0 <= min <= max <= 1")
        if self.probability_tie < 0 or self.time_tie_s < 0:
            raise EngineError(EC_CONFIG_INVALID, "tie bands must be non-negative")
        if self.max_results < 1:
            raise EngineError(EC_CONFIG_INVALID, "max_results must be >= 1")
        if self.projection not in PROJECTIONS:
            raise EngineError(EC_CONFIG_INVALID, f"unknown projection: {self.projection}")
        hours = [h for h, _ in self.time_buckets]
        if hours != sorted(hours) or any(not 0 <= h <= 24 for h in hours):
            raise EngineError(EC_CONFIG_INVALID, "time_buckets must be ascending hours within 0-24")

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "EngineConfig":
        """辞書から設定を生成する。

        Args:
            data: フィールド名→値の辞書。省略したキーは既定値。

        Returns:
            生成した `EngineConfig`。

        Raises:
            EngineError: 未知のキー、または値が不正な場合。
        """
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise EngineError(EC_CONFIG_UNKNOWN_KEY, f"unknown config keys: {sorted(unknown)}")
        kwargs = dict(data)
        if "time_buckets" in kwargs:
            kwargs["time_buckets"] = tuple(tuple(b) for b in kwargs["time_buckets"])
        try:
            return cls(**kwargs)
        except TypeError as exc:
            raise EngineError(EC_CONFIG_INVALID, str(exc))

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def with_overrides(self, **overrides: Any) -> "EngineConfig":
        return replace(self, **overrides)


def load_config(path: str | os.PathLike) -> EngineConfig:
    """JSONファイルから設定を読み込む。

    Raises:
        EngineError: 読み込み・デコードに失敗した場合、または値が不正な場合。
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        raise EngineError(EC_CONFIG_IO, f"failed to load config {path}: {exc}")
    if not isinstance(data, dict):
        raise EngineError(EC_CONFIG_IO, f"config root must be an object: {path}")
    return EngineConfig.from_dict(data)


def config_from_env(default: Optional[EngineConfig] = None) -> EngineConfig:
    """環境変数 RENDEZVOUS_CONFIG が指すJSONから設定を読む。未設定なら既定値。"""
    path = os.getenv(CONFIG_ENV)
    if path:
        return load_config(path)
    return default or EngineConfig()


__all__ = [
    "EngineConfig",
    "DEFAULT_TIME_OF_DAY_PATTERNS",
    "DEFAULT_TIME_BUCKETS",
    "CONFIG_ENV",
    "load_config",
    "config_from_env",
]

"""エージェント・会場・合流予測結果のスナップショット型。"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Tuple

Coordinate = Tuple[float, float]  # (lng, lat) [deg]
Vector = Tuple[float, float]  # (east, north) [m/s]


@dataclass(frozen=True)
class Agent:
    """移動中の参加者1人分の観測スナップショット。

    Attributes:
        id: 参加者の識別子。
        position: 現在位置 (経度, 緯度)。
        velocity: 速度ベクトル (東向き, 北向き) [m/s]。
        confidence: 観測の信頼度 (0〜1)。
        last_seen: 観測時刻（エポックミリ秒）。
    """

    id: str
    position: Coordinate
    velocity: Vector
    confidence: float
    last_seen: float


@dataclass(frozen=True)
class Venue:
    """固定の会場（POI）。"""

    id: str
    position: Coordinate
    type: str
    popularity: float
    name: str


@dataclass(frozen=True)
class ConvergenceResult:
    """2人以上の参加者が合流すると予測された地点・時刻・確率。"""

    agent_ids: Tuple[str, ...]
    convergence_point: Coordinate
    time_to_meet: float
    probability: float
    nearest_venue: Optional[Venue] = None

    @property
    def group_size(self) -> int:
        return len(self.agent_ids)

    @property
    def kind(self) -> str:
        return "pair" if self.group_size == 2 else "group"


__all__ = ["Agent", "Venue", "ConvergenceResult", "Coordinate", "Vector"]

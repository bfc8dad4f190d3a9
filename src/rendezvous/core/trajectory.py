"""2エージェントの等速直線軌道から最接近時刻・地点を求めるソルバ。"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Optional

import numpy as np

from .config import EngineConfig
from .geo import FlatEarthProjection, haversine_m, midpoint
from .models import Agent, Coordinate


@dataclass(frozen=True)
class Intersection:
    """最接近の結果。`distance_m` は最接近時の2者間距離。"""

    point: Coordinate
    time: float
    distance_m: float
    probability: float


def closest_approach(
    a: Agent,
    b: Agent,
    max_time: float,
    config: EngineConfig,
    projection: FlatEarthProjection,
) -> Optional[Intersection]:
    """2エージェントの最接近を予測する。

    相対位置は投影で [m] に換算し、相対速度 [m/s] と単位を揃えて最接近時刻
    `t* = -(relPos·relVel) / |relVel|²` を求める。

    Args:
        a: エージェントA。
        b: エージェントB。
        max_time: 予測ホライズン [s]。
        config: 閾値・減衰定数。
        projection: 座標投影。

    Returns:
        交差が見込めない場合（相対速度がほぼ0、最接近が過去・ホライズン外、
        最接近距離が閾値超）は None。
    """
    rel_vel = np.subtract(b.velocity, a.velocity)
    rel_pos = projection.to_meters(a.position, b.position)

    vel_mag_sq = float(np.dot(rel_vel, rel_vel))
    if vel_mag_sq < config.min_relative_speed_sq:
        return None

    # +0.0 で -0.0 を正規化
    t_star = -float(np.dot(rel_pos, rel_vel)) / vel_mag_sq + 0.0
    if t_star < 0 or t_star > max_time:
        return None

    pa = projection.displace(a.position, a.velocity, t_star)
    pb = projection.displace(b.position, b.velocity, t_star)
    distance = haversine_m(pa, pb)
    if distance > config.max_convergence_distance_m:
        return None

    probability = (
        math.exp(-distance / config.distance_decay_m)
        * math.exp(-t_star / config.time_decay_s)
    )
    return Intersection(point=midpoint(pa, pb), time=t_star, distance_m=distance, probability=probability)

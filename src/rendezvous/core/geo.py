"""座標投影と距離計算のユーティリティ。

速度 [m/s] と経緯度 [deg] の変換はすべて投影オブジェクト経由で行う。
既定の `FlatEarthProjection` は緯度に依らず 1度 = 111,320 m とみなす。
"""

from __future__ import annotations

import math
from typing import Sequence

import numpy as np

from .models import Coordinate, Vector

METERS_PER_DEGREE = 111_320.0
EARTH_RADIUS_M = 6_371_000.0


class FlatEarthProjection:
    """経度・緯度の両軸を同じ係数でメートルに換算する平面近似。"""

    name = "flat"

    def __init__(self, meters_per_degree: float = METERS_PER_DEGREE):
        self.meters_per_degree = float(meters_per_degree)

    def _lng_scale(self, lat: float) -> float:
        return 1.0

    def to_meters(self, origin: Coordinate, point: Coordinate) -> np.ndarray:
        """`origin` から `point` への変位を (東, 北) [m] で返す。"""
        mean_lat = (origin[1] + point[1]) / 2.0
        return np.array([
            (point[0] - origin[0]) * self.meters_per_degree * self._lng_scale(mean_lat),
            (point[1] - origin[1]) * self.meters_per_degree,
        ])

    def displace(self, position: Coordinate, velocity: Vector, seconds: float) -> Coordinate:
        """等速直線運動で `seconds` 秒後の位置を予測する。"""
        lng_scale = self._lng_scale(position[1])
        return (
            position[0] + velocity[0] * seconds / (self.meters_per_degree * lng_scale),
            position[1] + velocity[1] * seconds / self.meters_per_degree,
        )


class LatitudeCorrectedProjection(FlatEarthProjection):
    """経度方向を cos(緯度) で補正する投影。高緯度での東西移動量の過小評価を避ける。"""

    name = "latitude_corrected"

    def _lng_scale(self, lat: float) -> float:
        # 極付近でのゼロ除算を避ける
        return max(math.cos(math.radians(lat)), 1e-6)


PROJECTIONS = {
    FlatEarthProjection.name: FlatEarthProjection,
    LatitudeCorrectedProjection.name: LatitudeCorrectedProjection,
}


def get_projection(name: str) -> FlatEarthProjection:
    return PROJECTIONS[name]()


def haversine_m(p1: Coordinate, p2: Coordinate) -> float:
    """2点間の大円距離 [m]。"""
    lat1 = math.radians(p1[1])
    lat2 = math.radians(p2[1])
    d_lat = math.radians(p2[1] - p1[1])
    d_lng = math.radians(p2[0] - p1[0])
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    )
    # 対蹠点付近の丸め誤差で 1 を超えることがある
    a = min(1.0, max(0.0, a))
    return EARTH_RADIUS_M * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def haversine_many(point: Coordinate, positions: np.ndarray) -> np.ndarray:
    """1点から複数点 (N, 2) への大円距離 [m] をまとめて計算する。"""
    positions = np.asarray(positions, dtype=float).reshape(-1, 2)
    lat1 = np.radians(point[1])
    lat2 = np.radians(positions[:, 1])
    d_lat = np.radians(positions[:, 1] - point[1])
    d_lng = np.radians(positions[:, 0] - point[0])
    a = np.sin(d_lat / 2) ** 2 + np.cos(lat1) * np.cos(lat2) * np.sin(d_lng / 2) ** 2
    a = np.clip(a, 0.0, 1.0)
    return EARTH_RADIUS_M * 2 * np.arctan2(np.sqrt(a), np.sqrt(1 - a))


def weighted_average(p1: Coordinate, p2: Coordinate, w1: float, w2: float) -> Coordinate:
    return (p1[0] * w1 + p2[0] * w2, p1[1] * w1 + p2[1] * w2)


def midpoint(p1: Coordinate, p2: Coordinate) -> Coordinate:
    return ((p1[0] + p2[0]) / 2, (p1[1] + p2[1]) / 2)


def centroid(points: Sequence[Coordinate]) -> Coordinate:
    arr = np.asarray(points, dtype=float)
    return (float(arr[:, 0].mean()), float(arr[:, 1].mean()))


def is_finite_coordinate(values: Sequence[float]) -> bool:
    try:
        return len(values) == 2 and bool(np.isfinite(np.asarray(values, dtype=float)).all())
    except (TypeError, ValueError):
        return False

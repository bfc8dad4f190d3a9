"""会場の引力（人気度・時間帯・距離）で合流予測を補正するモジュール。"""

from __future__ import annotations

import math
from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Sequence, Tuple

import numpy as np

from .config import EngineConfig
from .geo import haversine_m, haversine_many, weighted_average
from .models import Coordinate, Venue


@dataclass(frozen=True)
class VenueAdjustment:
    """会場補正の結果。`probability` は上限クリップ前の値。"""

    probability: float
    convergence_point: Coordinate
    nearest_venue: Optional[Venue]
    magnetism: float = 1.0


def time_of_day(now: datetime, config: EngineConfig) -> str:
    """`now` の壁時計の時刻から時間帯 (morning/lunch/evening/night) を返す。

    aware な `now` は変換せず、そのタイムゾーンでの時刻をそのまま使う。
    naive な `now` は設定タイムゾーンの時刻とみなす（`resolve_now` 参照）。
    """
    hour = now.hour
    for upper, bucket in config.time_buckets:
        if hour < upper:
            return bucket
    return "night"


def popularity_weight(popularity: float, config: EngineConfig) -> float:
    if popularity >= config.popularity_high:
        return config.popularity_weight_high
    if popularity >= config.popularity_medium:
        return config.popularity_weight_medium
    return config.popularity_weight_low


def venue_type_multiplier(venue_type: str, bucket: str, config: EngineConfig) -> float:
    return config.time_of_day_patterns.get(bucket, {}).get(venue_type, 1.0)


def find_nearest_venue(
    point: Coordinate, venues: Sequence[Venue]
) -> Optional[Tuple[Venue, float]]:
    """最も近い会場とその距離 [m]。同距離なら先に現れた会場。"""
    if not venues:
        return None
    distances = haversine_many(point, [v.position for v in venues])
    idx = int(np.argmin(distances))
    return venues[idx], float(distances[idx])


def venue_magnetism(venue: Venue, distance_m: float, bucket: str, config: EngineConfig) -> float:
    return (
        config.venue_magnetism_factor
        * popularity_weight(venue.popularity, config)
        * venue_type_multiplier(venue.type, bucket, config)
        * math.exp(-distance_m / config.venue_distance_decay_m)
    )


def apply_venue_magnetism(
    point: Coordinate,
    probability: float,
    venues: Sequence[Venue],
    bucket: str,
    config: EngineConfig,
) -> VenueAdjustment:
    """近傍の会場に向けて確率と合流地点を補正する。

    Args:
        point: 補正前の合流地点。
        probability: 補正前の確率。
        venues: 候補会場。
        bucket: 時間帯。
        config: 設定。

    Returns:
        補正後の確率・地点と、地点から `venue_attach_radius_m` 未満の会場。
    """
    found = find_nearest_venue(point, venues)
    if found is None:
        return VenueAdjustment(probability, point, None)

    venue, distance = found
    if distance >= config.venue_search_radius_m:
        return VenueAdjustment(probability, point, None)

    magnetism = venue_magnetism(venue, distance, bucket, config)
    probability *= magnetism

    weight = min(config.max_venue_weight, max(0.0, (magnetism - 1) * config.venue_blend_factor))
    if weight > config.min_venue_weight:
        point = weighted_average(point, venue.position, 1 - weight, weight)

    attached = venue if haversine_m(point, venue.position) < config.venue_attach_radius_m else None
    return VenueAdjustment(probability, point, attached, magnetism)

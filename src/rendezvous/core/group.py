"""ペアの合流予測に第三者を加えたグループ予測を生成する。"""

from __future__ import annotations

import math
from typing import Iterable, List

from .config import EngineConfig
from .confidence import clamp_probability, meets_min_confidence
from .geo import FlatEarthProjection, centroid, haversine_m
from .models import Agent, ConvergenceResult


def extend_to_groups(
    pair: ConvergenceResult,
    others: Iterable[Agent],
    config: EngineConfig,
    projection: FlatEarthProjection,
) -> List[ConvergenceResult]:
    """ペア予測の時刻に合流地点付近へ来る他エージェントを加える。

    新しい合流地点はペアの合流地点と第三者の予測位置の2点平均とする
    （元の3軌道からの重心ではない）。

    Args:
        pair: 元になるペア予測。
        others: ペアに含まれない有効エージェント。
        config: 設定。
        projection: 座標投影。

    Returns:
        確率が `min_confidence` を超えたグループ予測のリスト。
    """
    groups: List[ConvergenceResult] = []
    for agent in others:
        if agent.id in pair.agent_ids:
            continue
        predicted = projection.displace(agent.position, agent.velocity, pair.time_to_meet)
        distance = haversine_m(pair.convergence_point, predicted)
        if distance >= config.max_convergence_distance_m:
            continue

        cohesion = math.exp(-distance / config.group_cohesion_decay_m)
        probability = clamp_probability(
            pair.probability * cohesion * agent.confidence * config.group_penalty
        )
        if not meets_min_confidence(probability, config):
            continue
        groups.append(ConvergenceResult(
            agent_ids=pair.agent_ids + (agent.id,),
            convergence_point=centroid([pair.convergence_point, predicted]),
            time_to_meet=pair.time_to_meet,
            probability=probability,
            nearest_venue=pair.nearest_venue,
        ))
    return groups

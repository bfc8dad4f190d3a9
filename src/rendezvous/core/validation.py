from __future__ import annotations

import math
from typing import Iterable, List, Tuple

import numpy as np

from .config import EngineConfig
from .geo import is_finite_coordinate
from .models import Agent, Venue


def _is_finite_number(value) -> bool:
    try:
        return math.isfinite(float(value))
    except (TypeError, ValueError):
        return False


def agent_speed(agent: Agent) -> float:
    """速度ベクトルの大きさ [m/s]。"""
    return float(np.hypot(agent.velocity[0], agent.velocity[1]))


def is_finite_agent(agent: Agent) -> bool:
    return (
        is_finite_coordinate(agent.position)
        and is_finite_coordinate(agent.velocity)
        and _is_finite_number(agent.confidence)
        and _is_finite_number(agent.last_seen)
    )


def is_valid_moving_agent(agent: Agent, now_ms: float, config: EngineConfig) -> bool:
    """移動中で、観測が新しく、信頼度が十分なエージェントかを判定する。

    Args:
        agent: 判定対象。
        now_ms: 現在時刻（エポックミリ秒）。
        config: 閾値を含む設定。

    Returns:
        合流計算の対象にできる場合 True。非有限値を含むエージェントは常に False。
    """
    if not is_finite_agent(agent):
        return False
    speed = agent_speed(agent)
    age = now_ms - agent.last_seen
    return (
        config.min_speed_mps <= speed <= config.max_speed_mps
        and age < config.stationary_time_ms
        and agent.confidence > config.min_agent_confidence
    )


def filter_valid_agents(
    agents: Iterable[Agent], now_ms: float, config: EngineConfig
) -> Tuple[List[Agent], int]:
    """有効なエージェントだけを入力順のまま残す。

    Returns:
        (有効エージェントのリスト, 除外した件数)
    """
    valid: List[Agent] = []
    removed = 0
    for agent in agents:
        if is_valid_moving_agent(agent, now_ms, config):
            valid.append(agent)
        else:
            removed += 1
    return valid, removed


def filter_valid_venues(venues: Iterable[Venue]) -> Tuple[List[Venue], int]:
    """座標・人気度が有限値でない会場を除外する。"""
    valid: List[Venue] = []
    removed = 0
    for venue in venues:
        if is_finite_coordinate(venue.position) and _is_finite_number(venue.popularity):
            valid.append(venue)
        else:
            removed += 1
    return valid, removed

from __future__ import annotations

import math

from .config import EngineConfig
from .models import Agent


def clamp_probability(probability: float) -> float:
    return min(max(probability, 0.0), 1.0)


def age_penalty(a: Agent, b: Agent, now_ms: float, config: EngineConfig) -> float:
    """観測の古さによる減衰。未来時刻の観測は負の経過としてそのまま扱う。"""
    age_a = now_ms - a.last_seen
    age_b = now_ms - b.last_seen
    return math.exp(-(age_a + age_b) / config.age_decay_ms)


def compose_confidence(
    probability: float, a: Agent, b: Agent, now_ms: float, config: EngineConfig
) -> float:
    """両エージェントの信頼度と鮮度を掛け合わせ、[0, 1] に収める。"""
    probability *= a.confidence * b.confidence
    probability *= age_penalty(a, b, now_ms, config)
    return clamp_probability(probability)


def meets_min_confidence(probability: float, config: EngineConfig) -> bool:
    return probability > config.min_confidence

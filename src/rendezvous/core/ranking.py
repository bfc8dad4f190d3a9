from __future__ import annotations

from functools import cmp_to_key
from typing import Iterable, List

from .config import EngineConfig
from .confidence import meets_min_confidence
from .models import ConvergenceResult


def compare_results(a: ConvergenceResult, b: ConvergenceResult, config: EngineConfig) -> float:
    """確率（降順）→ 合流時刻（昇順）→ 人数（降順）の順で比較する。

    確率差が `probability_tie` 以下、時刻差が `time_tie_s` 以下なら同順位として次の基準へ。
    """
    prob_diff = b.probability - a.probability
    if abs(prob_diff) > config.probability_tie:
        return prob_diff
    time_diff = a.time_to_meet - b.time_to_meet
    if abs(time_diff) > config.time_tie_s:
        return time_diff
    return b.group_size - a.group_size


def rank_results(results: Iterable[ConvergenceResult], config: EngineConfig) -> List[ConvergenceResult]:
    """閾値以下を除外し、順位付けして上位 `max_results` 件を返す。"""
    filtered = [r for r in results if meets_min_confidence(r.probability, config)]
    filtered.sort(key=cmp_to_key(lambda a, b: compare_results(a, b, config)))
    return filtered[: config.max_results]

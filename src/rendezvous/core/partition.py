"""エージェントを格子状の領域に分割し、領域ごとに独立して合流予測を行う。

隣接セル同士が必ずどこかの領域で一緒になるよう、2×2セルの領域を1セルずつ
ずらして重ねる。2セル以上離れたエージェントの組は評価しない（近似）。
"""

from __future__ import annotations

import math
from collections import defaultdict
from concurrent.futures import ProcessPoolExecutor
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from .config import EngineConfig
from .engine import detect_convergences, resolve_now
from .errors import EC_PARTITION, EngineError
from .geo import FlatEarthProjection, get_projection
from .models import Agent, ConvergenceResult, Venue
from .ranking import rank_results

Cell = Tuple[int, int]


def _cell_of(agent: Agent, cell_size_m: float, projection: FlatEarthProjection) -> Cell:
    east, north = projection.to_meters((0.0, 0.0), agent.position)
    return (math.floor(east / cell_size_m), math.floor(north / cell_size_m))


def partition_agents(
    agents: Sequence[Agent],
    cell_size_m: float,
    projection: Optional[FlatEarthProjection] = None,
) -> List[List[Agent]]:
    """エージェントを重なりのある2×2セル領域に振り分ける。

    Args:
        agents: 対象エージェント。非有限座標のものは除外される。
        cell_size_m: セルの一辺 [m]。
        projection: 座標投影。None なら平面近似。

    Returns:
        2人以上を含む領域ごとのエージェントリスト（各領域内は入力順）。

    Raises:
        EngineError: `cell_size_m` が正の有限値でない場合。
    """
    if not (math.isfinite(cell_size_m) and cell_size_m > 0):
        raise EngineError(EC_PARTITION, f"cell_size_m must be positive: {cell_size_m}")
    projection = projection or FlatEarthProjection()

    cells: Dict[Cell, List[int]] = defaultdict(list)
    for idx, agent in enumerate(agents):
        if not all(math.isfinite(v) for v in agent.position):
            continue
        cells[_cell_of(agent, cell_size_m, projection)].append(idx)

    anchors = sorted({(cx - dx, cy - dy) for cx, cy in cells for dx in (0, 1) for dy in (0, 1)})
    regions: List[List[Agent]] = []
    seen = set()
    for ax, ay in anchors:
        members: List[int] = []
        for cell in ((ax, ay), (ax + 1, ay), (ax, ay + 1), (ax + 1, ay + 1)):
            members.extend(cells.get(cell, ()))
        key = tuple(sorted(members))
        # 同じ顔ぶれの領域は1回だけ
        if len(key) >= 2 and key not in seen:
            seen.add(key)
            regions.append([agents[i] for i in key])
    return regions


def _detect_region(args) -> List[ConvergenceResult]:
    region, venues, max_prediction_time, now, config = args
    return detect_convergences(region, venues, max_prediction_time, now=now, config=config)


def detect_partitioned(
    agents: Sequence[Agent],
    venues: Sequence[Venue] = (),
    max_prediction_time: Optional[float] = None,
    *,
    now: Optional[datetime] = None,
    config: Optional[EngineConfig] = None,
    cell_size_m: float = 1000.0,
    max_workers: int = 1,
) -> List[ConvergenceResult]:
    """領域ごとに合流予測を行い、結果を統合して順位付けし直す。

    同じ参加者の組み合わせが複数領域で得られた場合は最初の領域の結果を採用する。

    Args:
        agents: 参加者のスナップショット。
        venues: 会場リスト（全領域で共有）。
        max_prediction_time: 予測ホライズン [s]。
        now: 基準時刻。全領域で同じ時刻を使う。
        config: 設定。
        cell_size_m: セルの一辺 [m]。
        max_workers: 2以上ならプロセス並列で領域を処理する。

    Returns:
        順位付けされた最大 `max_results` 件の結果。

    Raises:
        EngineError: 分割パラメータが不正な場合。
    """
    if max_workers < 1:
        raise EngineError(EC_PARTITION, f"max_workers must be >= 1: {max_workers}")
    config = config or EngineConfig()
    now = resolve_now(now, config)
    regions = partition_agents(agents, cell_size_m, get_projection(config.projection))
    tasks = [(region, list(venues), max_prediction_time, now, config) for region in regions]

    if max_workers > 1 and len(tasks) > 1:
        with ProcessPoolExecutor(max_workers=min(max_workers, len(tasks))) as executor:
            per_region = list(executor.map(_detect_region, tasks))
    else:
        per_region = [_detect_region(task) for task in tasks]

    merged: Dict[Tuple[str, ...], ConvergenceResult] = {}
    for results in per_region:
        for result in results:
            merged.setdefault(result.agent_ids, result)
    return rank_results(merged.values(), config)

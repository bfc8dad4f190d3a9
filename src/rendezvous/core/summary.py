"""合流予測結果の集計とテーブル化を扱うモジュール。"""

from typing import Dict, Sequence

import pandas as pd

from .models import ConvergenceResult

RESULT_COLUMNS = (
    "agent_ids",
    "kind",
    "lng",
    "lat",
    "time_to_meet",
    "probability",
    "venue_id",
    "venue_name",
)


def results_to_frame(results: Sequence[ConvergenceResult]) -> pd.DataFrame:
    """結果リストを1行1予測のDataFrameに変換する。

    Args:
        results: 順位付け済みの合流予測。

    Returns:
        `RESULT_COLUMNS` を列に持つDataFrame（順位順）。
    """
    rows = []
    for r in results:
        rows.append({
            "agent_ids": ",".join(r.agent_ids),
            "kind": r.kind,
            "lng": r.convergence_point[0],
            "lat": r.convergence_point[1],
            "time_to_meet": r.time_to_meet,
            "probability": r.probability,
            "venue_id": r.nearest_venue.id if r.nearest_venue else None,
            "venue_name": r.nearest_venue.name if r.nearest_venue else None,
        })
    return pd.DataFrame(rows, columns=list(RESULT_COLUMNS))


def summarize_results(results: Sequence[ConvergenceResult]) -> Dict[str, float]:
    """件数・ペア/グループ数・最大確率・最短合流時刻を返す。空なら最大/最短は None。"""
    pairs = sum(1 for r in results if r.kind == "pair")
    return {
        "count": len(results),
        "pairs": pairs,
        "groups": len(results) - pairs,
        "max_probability": max((r.probability for r in results), default=None),
        "min_time_to_meet": min((r.time_to_meet for r in results), default=None),
    }

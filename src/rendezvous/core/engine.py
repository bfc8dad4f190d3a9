"""有効判定・ペア交差・会場補正・信頼度合成・グループ拡張・順位付けを束ねる予測エンジン。"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple
from zoneinfo import ZoneInfo

import pandas as pd

from .config import EngineConfig, config_from_env
from .confidence import compose_confidence, meets_min_confidence
from .errors import EC_CONFIG_INVALID, EngineError
from .geo import FlatEarthProjection, get_projection
from .group import extend_to_groups
from .loader import agents_from_frame, venues_from_frame
from .logging_util import get_logger, log_summary
from .models import Agent, ConvergenceResult, Venue
from .ranking import rank_results
from .summary import results_to_frame, summarize_results
from .trajectory import closest_approach
from .validation import filter_valid_agents, filter_valid_venues
from .venue import apply_venue_magnetism, time_of_day


def resolve_now(now: Optional[datetime], config: EngineConfig) -> datetime:
    """基準時刻を決める。未指定なら現在時刻、naive なら設定タイムゾーンとみなす。"""
    tz = ZoneInfo(config.timezone)
    if now is None:
        return datetime.now(tz)
    if now.tzinfo is None:
        return now.replace(tzinfo=tz)
    return now


def _resolve_horizon(max_prediction_time: Optional[float], config: EngineConfig) -> float:
    if max_prediction_time is None:
        return config.max_prediction_time_s
    horizon = float(max_prediction_time)
    if not math.isfinite(horizon) or horizon < 0:
        raise EngineError(EC_CONFIG_INVALID, f"invalid max_prediction_time: {max_prediction_time}")
    return horizon


def pair_convergence(
    a: Agent,
    b: Agent,
    venues: Sequence[Venue],
    bucket: str,
    max_time: float,
    now_ms: float,
    config: EngineConfig,
    projection: FlatEarthProjection,
) -> Optional[ConvergenceResult]:
    """1ペアの合流予測（閾値判定前）。軌道が交差しなければ None。"""
    intersection = closest_approach(a, b, max_time, config, projection)
    if intersection is None:
        return None

    adjusted = apply_venue_magnetism(
        intersection.point, intersection.probability, venues, bucket, config
    )
    probability = compose_confidence(adjusted.probability, a, b, now_ms, config)
    return ConvergenceResult(
        agent_ids=(a.id, b.id),
        convergence_point=adjusted.convergence_point,
        time_to_meet=intersection.time,
        probability=probability,
        nearest_venue=adjusted.nearest_venue,
    )


def _detect(
    agents: Sequence[Agent],
    venues: Sequence[Venue],
    max_prediction_time: Optional[float],
    now: Optional[datetime],
    config: EngineConfig,
) -> Tuple[List[ConvergenceResult], Dict[str, object]]:
    now = resolve_now(now, config)
    max_time = _resolve_horizon(max_prediction_time, config)
    now_ms = now.timestamp() * 1000.0

    valid, rejected_agents = filter_valid_agents(agents, now_ms, config)
    valid_venues, rejected_venues = filter_valid_venues(venues)
    stats: Dict[str, object] = {
        "agents": len(agents),
        "valid_agents": len(valid),
        "rejected_agents": rejected_agents,
        "rejected_venues": rejected_venues,
        "candidates": 0,
    }
    if len(valid) < 2:
        return [], stats

    bucket = time_of_day(now, config)
    projection = get_projection(config.projection)
    stats["time_of_day"] = bucket

    candidates: List[ConvergenceResult] = []
    for i in range(len(valid)):
        for j in range(i + 1, len(valid)):
            if valid[i].id == valid[j].id:
                continue
            pair = pair_convergence(
                valid[i], valid[j], valid_venues, bucket, max_time, now_ms, config, projection
            )
            if pair is None:
                continue
            if meets_min_confidence(pair.probability, config):
                candidates.append(pair)
            if len(valid) > 2:
                others = [agent for k, agent in enumerate(valid) if k != i and k != j]
                candidates.extend(extend_to_groups(pair, others, config, projection))

    stats["candidates"] = len(candidates)
    return rank_results(candidates, config), stats


def detect_convergences(
    agents: Sequence[Agent],
    venues: Sequence[Venue] = (),
    max_prediction_time: Optional[float] = None,
    *,
    now: Optional[datetime] = None,
    config: Optional[EngineConfig] = None,
) -> List[ConvergenceResult]:
    """スナップショットから合流予測の上位を返す純粋関数。

    Args:
        agents: 参加者のスナップショット。
        venues: 会場リスト。
        max_prediction_time: 予測ホライズン [s]。None なら設定値（180秒）。
        now: 基準時刻。鮮度判定と時間帯の決定に使う。
        config: 設定。None なら既定値。

    Returns:
        順位付けされた最大 `max_results` 件の `ConvergenceResult`。
        有効エージェントが2未満なら空リスト。

    Raises:
        EngineError: `max_prediction_time` が負または非有限の場合。
    """
    results, _ = _detect(agents, venues, max_prediction_time, now, config or EngineConfig())
    return results


class ConvergenceEngine:
    """合流予測をログ付きで実行するエントリーポイント。"""

    def __init__(
        self,
        config: Optional[EngineConfig] = None,
        run_id: Optional[str] = None,
        log_path: Optional[str] = None,
    ):
        """設定とロガーを初期化する。

        Args:
            config: 設定。None なら環境変数 RENDEZVOUS_CONFIG → 既定値の順。
            run_id: ロガー名に使う実行ID。None なら現在時刻から生成。
            log_path: ログファイルの出力先。
        """
        self.config = config or config_from_env()
        self.run_id = run_id or datetime.now(ZoneInfo(self.config.timezone)).strftime("%Y%m%d_%H%M%S")
        self.logger = get_logger(self.run_id, log_path)

    def run(
        self,
        agents: Sequence[Agent],
        venues: Sequence[Venue] = (),
        max_prediction_time: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> List[ConvergenceResult]:
        try:
            results, stats = _detect(agents, venues, max_prediction_time, now, self.config)
        except EngineError as exc:
            self.logger.error("%s detection failed: %s", exc.code, exc.message)
            raise
        if stats["rejected_agents"]:
            self.logger.info("skipped %d invalid agents", stats["rejected_agents"])
        if stats["rejected_venues"]:
            self.logger.warning("skipped %d venues with non-finite values", stats["rejected_venues"])
        log_summary(self.logger, stats | summarize_results(results))
        return results

    def run_frames(
        self,
        df_pos: pd.DataFrame,
        df_venues: Optional[pd.DataFrame] = None,
        max_prediction_time: Optional[float] = None,
        now: Optional[datetime] = None,
    ) -> pd.DataFrame:
        """位置履歴・会場テーブルから予測し、結果をDataFrameで返す。

        Raises:
            EngineError: 入力テーブルが不正な場合。
        """
        try:
            agents = agents_from_frame(df_pos, config=self.config)
            venues = venues_from_frame(df_venues) if df_venues is not None else []
        except EngineError as exc:
            self.logger.error("%s input validation failed: %s", exc.code, exc.message)
            raise
        return results_to_frame(self.run(agents, venues, max_prediction_time, now))

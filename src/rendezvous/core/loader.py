"""位置履歴・会場テーブル(DataFrame)からスナップショットを組み立てるアダプタ。"""

from __future__ import annotations

from typing import Iterable, List, Optional

import pandas as pd

from .config import EngineConfig
from .errors import EC_INPUT_COLUMNS, EC_INPUT_EMPTY, EngineError
from .geo import get_projection
from .models import Agent, Venue

REQUIRED_POS_COLUMNS = ("user_id", "second", "lng", "lat")
REQUIRED_VENUE_COLUMNS = ("id", "lng", "lat", "type", "popularity")


def _check_columns(df: pd.DataFrame, required: Iterable[str], *, code: int) -> None:
    """要求列が揃っているかを確認する。

    Raises:
        EngineError: DataFrameでない、または列不足の場合。
    """
    if df is None or not isinstance(df, pd.DataFrame):
        raise EngineError(code, "input is not a DataFrame")
    missing = set(required) - set(df.columns)
    if missing:
        raise EngineError(code, f"missing required columns: {sorted(missing)}")


def _coerce_positions(df_pos: pd.DataFrame) -> pd.DataFrame:
    working = df_pos.copy()
    working["second"] = pd.to_datetime(working["second"], errors="coerce", utc=True)
    for column in ("lng", "lat"):
        working[column] = pd.to_numeric(working[column], errors="coerce")
    if "confidence" in working.columns:
        working["confidence"] = pd.to_numeric(working["confidence"], errors="coerce")
    working["user_id"] = working["user_id"].astype(str)
    working = working.dropna(subset=["second", "lng", "lat"])
    working.sort_values(["user_id", "second"], inplace=True, kind="mergesort")
    return working


def agents_from_frame(
    df_pos: pd.DataFrame,
    *,
    config: Optional[EngineConfig] = None,
    default_confidence: float = 0.9,
) -> List[Agent]:
    """位置履歴テーブルから各ユーザーの最新スナップショットを作る。

    速度は直近2サンプルの投影変位 [m] / 経過秒。サンプルが1つだけ、
    または経過秒が0以下のユーザーは速度0とする。

    Args:
        df_pos: 列 `user_id`, `second`, `lng`, `lat`（任意で `confidence`）を持つDataFrame。
        config: 投影方式の指定に使う設定。
        default_confidence: `confidence` 列が無い・欠損時の信頼度。

    Returns:
        ユーザーID順の `Agent` リスト。

    Raises:
        EngineError: 列不足、または有効な行が無い場合。
    """
    _check_columns(df_pos, REQUIRED_POS_COLUMNS, code=EC_INPUT_COLUMNS)
    working = _coerce_positions(df_pos)
    if working.empty:
        raise EngineError(EC_INPUT_EMPTY, "no usable position rows")

    projection = get_projection((config or EngineConfig()).projection)
    agents: List[Agent] = []
    for user_id, group in working.groupby("user_id", sort=True):
        last = group.iloc[-1]
        position = (float(last["lng"]), float(last["lat"]))
        velocity = (0.0, 0.0)
        if len(group) >= 2:
            prev = group.iloc[-2]
            dt = (last["second"] - prev["second"]).total_seconds()
            if dt > 0:
                dx, dy = projection.to_meters((float(prev["lng"]), float(prev["lat"])), position) / dt
                velocity = (float(dx), float(dy))
        confidence = default_confidence
        if "confidence" in group.columns and pd.notna(last["confidence"]):
            confidence = float(last["confidence"])
        agents.append(Agent(
            id=str(user_id),
            position=position,
            velocity=velocity,
            confidence=confidence,
            last_seen=last["second"].timestamp() * 1000.0,
        ))
    return agents


def venues_from_frame(df_venues: pd.DataFrame) -> List[Venue]:
    """会場テーブルから `Venue` リストを作る。座標・人気度が数値化できない行は除外する。"""
    _check_columns(df_venues, REQUIRED_VENUE_COLUMNS, code=EC_INPUT_COLUMNS)
    working = df_venues.copy()
    for column in ("lng", "lat", "popularity"):
        working[column] = pd.to_numeric(working[column], errors="coerce")
    working = working.dropna(subset=["lng", "lat", "popularity"])
    venues: List[Venue] = []
    for row in working.itertuples(index=False):
        name = getattr(row, "name", None)
        venues.append(Venue(
            id=str(row.id),
            position=(float(row.lng), float(row.lat)),
            type=str(row.type).lower(),
            popularity=float(row.popularity),
            name=str(name) if name is not None and pd.notna(name) else str(row.id),
        ))
    return venues

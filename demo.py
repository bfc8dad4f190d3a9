# -*- coding: utf-8 -*-
"""
demo.py
- 位置履歴 CSV（user_id, second, lng, lat[, confidence]）と会場 CSV を読み込み → 合流予測を表示
- CSV 未指定ならダミーの4人シーンを生成（JST）
- 依存: numpy, pandas, tzdata
"""
from __future__ import annotations
import sys
import argparse
from pathlib import Path
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

import numpy as np
import pandas as pd

# ---- パス調整（src を import 可能に） ----
ROOT = Path(__file__).resolve().parent
SRC = ROOT / "src"
if str(SRC) not in sys.path:
    sys.path.insert(0, str(SRC))

from rendezvous.core import ConvergenceEngine, EngineError, load_config
from rendezvous.core.geo import METERS_PER_DEGREE

TZ_JST = ZoneInfo("Asia/Tokyo")


# ===============================================================
# ダミーデータ
# ===============================================================
def make_dummy_frames(now: datetime, seed: int = 42) -> tuple[pd.DataFrame, pd.DataFrame]:
    """
    a/b が正面から接近し、c が a と並走、d は遠方を歩く 4人シーン。
    直前 2 秒分の位置を出力する（速度は loader 側で差分から推定）。
    """
    rng = np.random.default_rng(seed)
    base_lng, base_lat = 139.7000, 35.6900
    scene = {
        "a": ((0.0, 0.0), (1.0, 0.0)),
        "b": ((0.0002, 0.0), (-1.0, 0.0)),
        "c": ((0.0, 4 / METERS_PER_DEGREE), (1.0, 0.0)),
        "d": ((0.01, 0.01), (0.0, 1.0)),
    }
    rows = []
    for uid, ((dlng, dlat), (vx, vy)) in scene.items():
        for back in (2, 0):
            t = now - timedelta(seconds=back)
            rows.append({
                "user_id": uid,
                "second": t,
                "lng": base_lng + dlng - vx * back / METERS_PER_DEGREE,
                "lat": base_lat + dlat - vy * back / METERS_PER_DEGREE,
                "confidence": float(np.clip(0.97 + rng.normal(0, 0.01), 0.0, 1.0)),
            })
    venues = pd.DataFrame([
        {"id": "v1", "lng": base_lng + 0.0001, "lat": base_lat + 0.00005,
         "type": "coffee", "popularity": 85, "name": "Corner Coffee"},
        {"id": "v2", "lng": base_lng + 0.02, "lat": base_lat, "type": "bar",
         "popularity": 40, "name": "Far Bar"},
    ])
    return pd.DataFrame(rows), venues


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="合流予測デモ")
    p.add_argument("--positions", help="位置履歴 CSV のパス")
    p.add_argument("--venues", help="会場 CSV のパス")
    p.add_argument("--config", help="設定 JSON のパス")
    p.add_argument("--horizon", type=float, default=None, help="予測ホライズン [s]")
    p.add_argument("--now", help="基準時刻 (ISO 8601, 未指定なら現在 JST)")
    return p.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    now = datetime.fromisoformat(args.now) if args.now else datetime.now(TZ_JST).replace(microsecond=0)

    try:
        config = load_config(args.config) if args.config else None
        engine = ConvergenceEngine(config=config, run_id="demo")
        if args.positions:
            df_pos = pd.read_csv(args.positions)
            df_venues = pd.read_csv(args.venues) if args.venues else None
        else:
            df_pos, df_venues = make_dummy_frames(now)
        table = engine.run_frames(df_pos, df_venues, args.horizon, now)
    except EngineError as exc:
        print(f"[ERROR] {exc.code}: {exc.message}", file=sys.stderr)
        return 1

    if table.empty:
        print("no convergence predicted")
    else:
        print(table.to_string(index=False))
    return 0


if __name__ == "__main__":
    sys.exit(main())

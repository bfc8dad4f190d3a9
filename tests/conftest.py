# tests/conftest.py
import os
import sys
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

# プロジェクトの src/ を import パスへ
ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC = os.path.join(ROOT, "src")
if SRC not in sys.path:
    sys.path.insert(0, SRC)

from rendezvous.core.config import EngineConfig  # noqa: E402
from rendezvous.core.geo import FlatEarthProjection, METERS_PER_DEGREE  # noqa: E402
from rendezvous.core.models import Agent  # noqa: E402

TZ_JST = ZoneInfo("Asia/Tokyo")
K = METERS_PER_DEGREE


@pytest.fixture(autouse=True)
def isolate_env(monkeypatch, tmp_path):
    """
    環境変数由来の設定・ログ出力先をテスト毎に一時ディレクトリへ。
    """
    monkeypatch.delenv("RENDEZVOUS_CONFIG", raising=False)
    monkeypatch.setenv("RENDEZVOUS_LOG_DIR", str(tmp_path / "logs"))


@pytest.fixture
def now() -> datetime:
    # 09:00 JST → morning
    return datetime(2026, 10, 19, 9, 0, 0, tzinfo=TZ_JST)


@pytest.fixture
def now_ms(now) -> float:
    return now.timestamp() * 1000.0


@pytest.fixture
def config() -> EngineConfig:
    return EngineConfig()


@pytest.fixture
def projection() -> FlatEarthProjection:
    return FlatEarthProjection()


@pytest.fixture
def make_agent(now_ms):
    """
    既定で「移動中・新鮮・高信頼」のエージェントを作るファクトリ。
    age_ms は now からの経過ミリ秒。
    """
    def _make(agent_id, position=(0.0, 0.0), velocity=(1.0, 0.0), confidence=0.9, age_ms=0.0):
        return Agent(
            id=agent_id,
            position=position,
            velocity=velocity,
            confidence=confidence,
            last_seen=now_ms - age_ms,
        )
    return _make


@pytest.fixture
def scenario_d(make_agent):
    """
    a と b が正面から接近、c は a の 4m 北を並走、d は約1.5km 離れた場所を北上。
    """
    return [
        make_agent("a", (0.0, 0.0), (1.0, 0.0), confidence=1.0),
        make_agent("b", (0.0002, 0.0), (-1.0, 0.0), confidence=1.0),
        make_agent("c", (0.0, 4 / K), (1.0, 0.0), confidence=1.0),
        make_agent("d", (0.01, 0.01), (0.0, 1.0), confidence=1.0),
    ]

import math

import pytest

from rendezvous.core.geo import METERS_PER_DEGREE as K
from rendezvous.core.group import extend_to_groups
from rendezvous.core.models import ConvergenceResult, Venue


@pytest.fixture
def pair():
    venue = Venue("v1", (0.0001, 0.0), "cafe", 60, "Cafe")
    return ConvergenceResult(("a", "b"), (0.0001, 0.0), 0.0002 * K / 2, 0.9114, venue)


def test_third_agent_arriving_on_time_joins(pair, make_agent, config, projection):
    # 約11秒後に合流地点へ到着する
    c = make_agent("c", (0.0001, -0.0001), (0.0, 1.0), confidence=1.0)
    groups = extend_to_groups(pair, [c], config, projection)
    assert len(groups) == 1
    group = groups[0]
    assert group.agent_ids == ("a", "b", "c")
    assert group.time_to_meet == pair.time_to_meet
    assert group.probability == pytest.approx(0.9114 * 0.8, rel=1e-6)
    assert group.probability < pair.probability
    assert group.nearest_venue == pair.nearest_venue
    assert group.kind == "group"


def test_low_confidence_third_agent_is_dropped(pair, make_agent, config, projection):
    c = make_agent("c", (0.0001, -0.0001), (0.0, 1.0), confidence=0.8)
    assert extend_to_groups(pair, [c], config, projection) == []


def test_far_third_agent_is_dropped(pair, make_agent, config, projection):
    c = make_agent("c", (0.0001, 0.001), (0.0, 1.0), confidence=1.0)
    assert extend_to_groups(pair, [c], config, projection) == []


def test_member_of_pair_is_skipped(pair, make_agent, config, projection):
    a = make_agent("a", (0.0001, -0.0001), (0.0, 1.0), confidence=1.0)
    assert extend_to_groups(pair, [a], config, projection) == []


def test_group_point_is_two_point_average(make_agent, config, projection):
    """新しい合流地点はペア地点と第三者の予測位置の中点。"""
    pair = ConvergenceResult(("a", "b"), (0.0, 0.0), 0.0, 1.0)
    c = make_agent("c", (0.0, 5 / K), (1.0, 0.0), confidence=1.0)
    groups = extend_to_groups(pair, [c], config, projection)
    assert len(groups) == 1
    assert groups[0].convergence_point == pytest.approx((0.0, 2.5 / K))
    distance = 5 / K * math.pi / 180 * 6_371_000
    assert groups[0].probability == pytest.approx(math.exp(-distance / 50) * 0.8, rel=1e-6)

import math

import pytest

from rendezvous.core.geo import (
    EARTH_RADIUS_M,
    LatitudeCorrectedProjection,
    METERS_PER_DEGREE as K,
    haversine_m,
    haversine_many,
)
from rendezvous.core.trajectory import closest_approach

ONE_DEG_M = EARTH_RADIUS_M * math.pi / 180


def test_haversine_one_degree_latitude():
    assert haversine_m((0.0, 0.0), (0.0, 1.0)) == pytest.approx(ONE_DEG_M, rel=1e-9)
    many = haversine_many((0.0, 0.0), [(0.0, 1.0), (1.0, 0.0), (0.0, 0.0)])
    assert many == pytest.approx([ONE_DEG_M, ONE_DEG_M, 0.0], rel=1e-9, abs=1e-9)


def test_flat_projection_ignores_latitude(projection):
    moved = projection.displace((0.0, 60.0), (1.0, 0.0), 111.32)
    assert moved[0] == pytest.approx(0.001)
    assert moved[1] == pytest.approx(60.0)


def test_latitude_corrected_projection_stretches_longitude():
    moved = LatitudeCorrectedProjection().displace((0.0, 60.0), (1.0, 0.0), 111.32)
    assert moved[0] == pytest.approx(0.002, rel=1e-6)


def test_head_on_agents_meet(make_agent, config, projection):
    """正面から 2 m/s で接近する 22 m 離れた2人は約11秒後に合流。"""
    a = make_agent("a", (0.0, 0.0), (1.0, 0.0))
    b = make_agent("b", (0.0002, 0.0), (-1.0, 0.0))
    hit = closest_approach(a, b, 180, config, projection)
    assert hit is not None
    assert hit.time == pytest.approx(0.0002 * K / 2)
    assert hit.distance_m == pytest.approx(0.0, abs=1e-6)
    assert hit.point == pytest.approx((0.0001, 0.0), abs=1e-12)
    assert hit.probability == pytest.approx(math.exp(-hit.time / 120))


def test_equal_velocities_never_meet(make_agent, config, projection):
    a = make_agent("a", (0.0, 0.0), (1.0, 0.0))
    b = make_agent("b", (0.0002, 0.0), (1.0, 0.0))
    assert closest_approach(a, b, 180, config, projection) is None


def test_slow_relative_motion_is_rejected(make_agent, config, projection):
    # |relVel|² = 0.0081 < 0.01
    a = make_agent("a", (0.0, 0.0), (1.0, 0.0))
    b = make_agent("b", (0.0002, 0.0), (0.91, 0.0))
    assert closest_approach(a, b, 180, config, projection) is None


def test_diverging_agents_are_rejected(make_agent, config, projection):
    a = make_agent("a", (0.0, 0.0), (-1.0, 0.0))
    b = make_agent("b", (0.0002, 0.0), (1.0, 0.0))
    assert closest_approach(a, b, 180, config, projection) is None


def test_beyond_horizon_is_rejected(make_agent, config, projection):
    a = make_agent("a", (0.0, 0.0), (1.0, 0.0))
    b = make_agent("b", (0.0002, 0.0), (-1.0, 0.0))
    assert closest_approach(a, b, 5, config, projection) is None


def test_miss_distance_over_limit_is_rejected(make_agent, config, projection):
    # 約111 m 北側ですれ違う
    a = make_agent("a", (0.0, 0.0), (1.0, 0.0))
    b = make_agent("b", (0.0002, 0.001), (-1.0, 0.0))
    assert closest_approach(a, b, 180, config, projection) is None


def test_near_miss_decays_probability(make_agent, config, projection):
    a = make_agent("a", (0.0, 0.0), (1.0, 0.0))
    b = make_agent("b", (0.0002, 20 / K), (-1.0, 0.0))
    hit = closest_approach(a, b, 180, config, projection)
    assert hit is not None
    assert 19 < hit.distance_m < 21
    assert hit.probability == pytest.approx(
        math.exp(-hit.distance_m / 30) * math.exp(-hit.time / 120)
    )


def test_solver_is_symmetric(make_agent, config, projection):
    a = make_agent("a", (0.0, 0.0), (1.2, 0.3))
    b = make_agent("b", (0.0003, 0.0001), (-0.8, -0.1))
    ab = closest_approach(a, b, 180, config, projection)
    ba = closest_approach(b, a, 180, config, projection)
    assert ab is not None and ba is not None
    assert ab.time == pytest.approx(ba.time)
    assert ab.probability == pytest.approx(ba.probability)
    assert ab.point == pytest.approx(ba.point)


def test_haversine_is_finite_for_antipodal_points():
    p1, p2 = (-124.2786, 0.82276), (55.7214, -0.82276)
    half_circumference = math.pi * EARTH_RADIUS_M
    assert haversine_m(p1, p2) == pytest.approx(half_circumference, rel=1e-6)
    many = haversine_many(p1, [p2, (180.0 + p1[0], -p1[1])])
    assert many == pytest.approx([half_circumference] * 2, rel=1e-6)


def test_meeting_now_has_positive_zero_time(make_agent, config, projection):
    a = make_agent("a", (0.0, 0.0), (1.0, 0.0))
    b = make_agent("b", (0.0, 0.0), (-1.0, 0.0))
    hit = closest_approach(a, b, 180, config, projection)
    assert hit is not None
    assert hit.time == 0.0
    assert math.copysign(1.0, hit.time) == 1.0

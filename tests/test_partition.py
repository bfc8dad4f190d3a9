import math

import pytest

from rendezvous.core import EngineError, detect_convergences, detect_partitioned, partition_agents
from rendezvous.core.geo import METERS_PER_DEGREE as K


def test_close_agents_share_one_region(scenario_d):
    regions = partition_agents(scenario_d[:3], 1000.0)
    assert len(regions) == 1
    assert [a.id for a in regions[0]] == ["a", "b", "c"]


def test_distant_groups_are_split(make_agent):
    far = 10_000 / K
    agents = [
        make_agent("a", (0.0, 0.0), (1.0, 0.0)),
        make_agent("b", (0.0002, 0.0), (-1.0, 0.0)),
        make_agent("x", (far, far), (1.0, 0.0)),
        make_agent("y", (far + 0.0002, far), (-1.0, 0.0)),
    ]
    regions = partition_agents(agents, 1000.0)
    assert sorted(tuple(a.id for a in r) for r in regions) == [("a", "b"), ("x", "y")]


def test_neighbouring_cells_overlap(make_agent):
    # セル境界をまたぐ2人は同じ領域に入る
    agents = [
        make_agent("a", (999 / K, 0.0), (1.0, 0.0)),
        make_agent("b", (1001 / K, 0.0), (-1.0, 0.0)),
    ]
    regions = partition_agents(agents, 1000.0)
    assert [tuple(a.id for a in r) for r in regions] == [("a", "b")]


def test_non_finite_positions_are_skipped(make_agent):
    agents = [
        make_agent("a", (0.0, 0.0), (1.0, 0.0)),
        make_agent("nan", (math.nan, 0.0), (1.0, 0.0)),
    ]
    assert partition_agents(agents, 1000.0) == []


@pytest.mark.parametrize("workers", [1, 2])
def test_partitioned_matches_full_detection(scenario_d, now, workers):
    expected = detect_convergences(scenario_d, now=now)
    assert detect_partitioned(scenario_d, now=now, max_workers=workers) == expected


def test_partitioned_finds_pairs_in_every_region(make_agent, now):
    far = 10_000 / K
    agents = [
        make_agent("a", (0.0, 0.0), (1.0, 0.0)),
        make_agent("b", (0.0002, 0.0), (-1.0, 0.0)),
        make_agent("x", (far, far), (1.0, 0.0)),
        make_agent("y", (far + 0.0002, far), (-1.0, 0.0)),
    ]
    results = detect_partitioned(agents, now=now)
    assert sorted(r.agent_ids for r in results) == [("a", "b"), ("x", "y")]


@pytest.mark.parametrize("cell", [0.0, -5.0, math.nan])
def test_invalid_cell_size(scenario_d, cell):
    with pytest.raises(EngineError) as ei:
        partition_agents(scenario_d, cell)
    assert ei.value.code == -3301


def test_invalid_worker_count(scenario_d, now):
    with pytest.raises(EngineError) as ei:
        detect_partitioned(scenario_d, now=now, max_workers=0)
    assert ei.value.code == -3301

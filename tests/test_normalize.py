import pytest

from autopilot_cost.model.entities import ResourceTriple
from autopilot_cost.sim.normalize import (
    CPU_STEP_M, DEFAULT_POLICY, NormalizationPolicy, normalize, normalize_triple, round_up,
)

FOLLOW = NormalizationPolicy(memory_follows_cpu=True)


def test_small_workload_gets_floors():
    r = normalize(10, 10, 0)
    assert (r.cpu_m, r.memory_mib, r.storage_mib) == (50, 52, 10)


def test_cpu_rounded_up_memory_not_raised_by_default():
    r = normalize(230, 10, 0)
    assert (r.cpu_m, r.memory_mib, r.storage_mib) == (250, 52, 10)


def test_memory_follows_cpu_when_enabled():
    r = normalize(230, 10, 0, FOLLOW)
    assert (r.cpu_m, r.memory_mib, r.storage_mib) == (250, 250, 10)


def test_memory_follows_cpu_keeps_larger_memory():
    r = normalize(230, 4096, 0, FOLLOW)
    assert r.memory_mib == 4096


def test_large_values_untouched():
    r = normalize(4000, 16000, 10000)
    assert (r.cpu_m, r.memory_mib, r.storage_mib) == (4000, 16000, 10000)


@pytest.mark.parametrize("value, expected", [(0, 0), (1, 50), (50, 50), (51, 100), (999, 1000)])
def test_round_up(value, expected):
    assert round_up(value, CPU_STEP_M) == expected


@pytest.mark.parametrize("policy", [DEFAULT_POLICY, FOLLOW])
@pytest.mark.parametrize("raw", [(0, 0, 0), (1, 1, 1), (230, 10, 0), (12345, 678, 9), (4000, 16000, 10000)])
def test_normalize_is_idempotent_and_aligned(policy, raw):
    once = normalize(*raw, policy)
    twice = normalize_triple(once, policy)
    assert once == twice
    assert once.cpu_m % CPU_STEP_M == 0
    assert once.cpu_m >= raw[0]
    assert once.memory_mib >= raw[1]
    assert once.storage_mib >= raw[2]


def test_normalize_triple_matches_normalize():
    assert normalize_triple(ResourceTriple(120, 30, 5)) == normalize(120, 30, 5)


def test_aligned_values_unchanged():
    assert normalize(1000, 1000, 1000) == ResourceTriple(1000, 1000, 1000)


def test_step_and_floors_without_memory_follow():
    assert normalize(249, 49, 9) == ResourceTriple(250, 52, 10)


def test_step_and_floors_with_memory_follow():
    assert normalize(249, 49, 9, FOLLOW) == ResourceTriple(250, 250, 10)

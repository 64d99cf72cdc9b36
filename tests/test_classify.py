import logging

import pytest

from autopilot_cost.model.thresholds import ClassificationThresholds, ClassifierSettings
from autopilot_cost.sim.classify import classify, decide_class, memory_cpu_ratio
from autopilot_cost.sim.diagnostics import DiagnosticKind
from autopilot_cost.types import ComputeClass


def _classify(settings, cpu_m, memory_mib, machine_type="e2-standard-4", gpu_count=0, gpu_model=""):
    return classify(
        "demo", machine_type, cpu_m, memory_mib, gpu_count, gpu_model,
        settings.classifier.is_arm(machine_type), settings.thresholds, settings.classifier,
    )


def _kinds(result):
    return [d.kind for d in result.diagnostics]


@pytest.mark.parametrize("cpu_m, memory_mib, expected", [
    (10000, 10000, ComputeClass.GENERAL_PURPOSE),
    (4000, 16000, ComputeClass.GENERAL_PURPOSE),
    (25000, 100000, ComputeClass.GENERAL_PURPOSE),
    (35000, 100000, ComputeClass.BALANCED),
    (40000, 80000, ComputeClass.BALANCED),
    (40000, 160000, ComputeClass.SCALEOUT),
])
def test_ratio_classes(settings, cpu_m, memory_mib, expected):
    result = _classify(settings, cpu_m, memory_mib)
    assert result.compute_class is expected
    assert result.diagnostics == ()


def test_ratio_is_ceiled():
    assert memory_cpu_ratio(35000, 100000) == 3
    assert memory_cpu_ratio(4000, 16000) == 4
    assert memory_cpu_ratio(0, 100) == float("inf")


def test_arm_in_range(settings):
    result = _classify(settings, 43000, 172000, machine_type="t2a-standard-48")
    assert result.compute_class is ComputeClass.SCALEOUT_ARM
    assert result.diagnostics == ()


def test_arm_out_of_range_keeps_class(settings):
    result = _classify(settings, 44000, 176000, machine_type="t2a-standard-48")
    assert result.compute_class is ComputeClass.SCALEOUT_ARM
    assert _kinds(result) == [DiagnosticKind.OUT_OF_RANGE]


def test_compute_optimized_wins_over_gpu(settings):
    result = _classify(settings, 4000, 16000, machine_type="c2-standard-8", gpu_count=1, gpu_model="nvidia-l4")
    assert result.compute_class is ComputeClass.PERFORMANCE


def test_flagship_gpu_is_performance(settings):
    result = _classify(settings, 4000, 16000, machine_type="e2-standard-4", gpu_count=1, gpu_model="nvidia-h100-80gb")
    assert result.compute_class is ComputeClass.PERFORMANCE


def test_accelerator_family(settings):
    result = _classify(settings, 4000, 16000, machine_type="g2-standard-8", gpu_count=1, gpu_model="nvidia-l4")
    assert result.compute_class is ComputeClass.ACCELERATOR
    assert result.diagnostics == ()


def test_gpu_pod_out_of_band_is_advisory(settings):
    result = _classify(settings, 100000, 16000, gpu_count=1, gpu_model="nvidia-tesla-t4")
    assert result.compute_class is ComputeClass.GPU_POD
    assert _kinds(result) == [DiagnosticKind.OUT_OF_RANGE]


def test_gpu_pod_unknown_model_has_no_band(settings):
    result = _classify(settings, 4000, 16000, gpu_count=2, gpu_model="some-new-gpu")
    assert result.compute_class is ComputeClass.GPU_POD
    assert result.diagnostics == ()


def test_nothing_matches_falls_back(settings):
    # ratio 10 не входит ни в одну полосу
    result = _classify(settings, 1000, 10000)
    assert result.compute_class is ComputeClass.GENERAL_PURPOSE
    assert _kinds(result) == [DiagnosticKind.NO_MATCHING_CLASS]


def test_zero_thresholds_always_fall_back():
    result = classify(
        "demo", "e2-standard-4", 500, 1000, 0, "", False,
        ClassificationThresholds(), ClassifierSettings(),
    )
    assert result.compute_class is ComputeClass.GENERAL_PURPOSE
    assert DiagnosticKind.NO_MATCHING_CLASS in _kinds(result)


def test_empty_prefixes_match_nothing():
    cs = ClassifierSettings(compute_optimized_prefixes=("", " "), arm64_prefix="")
    assert not cs.is_compute_optimized("e2-standard-4")
    assert not cs.is_arm("e2-standard-4")


def test_zero_cpu_is_degenerate(settings):
    result = _classify(settings, 0, 100)
    assert result.compute_class is ComputeClass.GENERAL_PURPOSE
    assert DiagnosticKind.DEGENERATE_INPUT in _kinds(result)


@pytest.mark.parametrize("cpu_m", [50, 1000, 30000, 100000, 300000])
@pytest.mark.parametrize("memory_mib", [52, 1000, 50000, 900000])
@pytest.mark.parametrize("machine_type", ["e2-standard-4", "t2a-standard-8", "c2d-highcpu-16", "a2-highgpu-1g", ""])
def test_classifier_is_total(settings, cpu_m, memory_mib, machine_type):
    result = _classify(settings, cpu_m, memory_mib, machine_type=machine_type)
    assert isinstance(result.compute_class, ComputeClass)


def test_decide_class_logs_diagnostics(settings, caplog):
    with caplog.at_level(logging.WARNING):
        cls = decide_class(
            "demo", "e2-standard-4", 1000, 10000, 0, "", False,
            settings.thresholds, settings.classifier,
        )
    assert cls is ComputeClass.GENERAL_PURPOSE
    assert "Couldn't find a matching compute class for demo" in caplog.text


@pytest.mark.parametrize("cpu_m, memory_mib", [(1000, 1000), (1000, 50000), (200000, 1000)])
def test_accelerator_family_beats_gpu_pod_for_any_ratio(settings, cpu_m, memory_mib):
    result = _classify(settings, cpu_m, memory_mib, machine_type="a2-highgpu-1g", gpu_count=1, gpu_model="nvidia-tesla-a100")
    assert result.compute_class is ComputeClass.ACCELERATOR


def test_flagship_gpu_out_of_range_keeps_class(settings):
    result = _classify(settings, 300000, 600000, machine_type="e2-standard-4", gpu_count=1, gpu_model="nvidia-h100-80gb")
    assert result.compute_class is ComputeClass.PERFORMANCE
    assert _kinds(result) == [DiagnosticKind.OUT_OF_RANGE]


def test_accelerator_out_of_band_keeps_class(settings):
    result = _classify(settings, 500, 16000, machine_type="a2-highgpu-1g", gpu_count=1, gpu_model="nvidia-tesla-a100")
    assert result.compute_class is ComputeClass.ACCELERATOR
    assert _kinds(result) == [DiagnosticKind.OUT_OF_RANGE]

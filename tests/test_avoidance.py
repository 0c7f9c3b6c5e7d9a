"""
Admission Simulation Tests (Banker's request check)

Tests the validation order, the safety decision, and that the caller's
snapshot is never left modified.
"""

import sys
from pathlib import Path
from unittest.mock import patch

import numpy as np

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from models.system_state import SystemState
from models.results import RequestVerdict
from algorithms.avoidance import simulate


def make_safe_state():
    return SystemState.from_rows(
        available=[3, 3, 2],
        allocation=[[0, 1, 0], [2, 0, 0], [3, 0, 2], [2, 1, 1], [0, 0, 2]],
        max_need=[[7, 5, 3], [3, 2, 2], [9, 0, 2], [2, 2, 2], [4, 3, 3]]
    )


def run_unchanged(state, *request):
    """Run simulate and assert available/allocation are bit-for-bit identical."""
    available = state.available.copy()
    allocation = state.allocation.copy()
    max_need = state.max_need.copy()

    outcome = simulate(state, *request)

    assert np.array_equal(state.available, available), "available must be restored"
    assert np.array_equal(state.allocation, allocation), "allocation must be restored"
    assert np.array_equal(state.max_need, max_need), "max_need must be untouched"
    return outcome


def test_safe_request_granted():
    """P1 asking for one more R0 keeps the system safe."""
    print("\n" + "="*60)
    print("TEST 1: Safe Request")
    print("="*60)

    outcome = run_unchanged(make_safe_state(), 1, 0, 1)
    print(f"  {outcome.message}")

    assert outcome.granted and outcome.is_safe
    assert outcome.verdict == RequestVerdict.GRANTED
    assert outcome.trial_result.safe_sequence == [1, 3, 4, 0, 2]
    assert outcome.to_dict()['granted'] is True
    print("  ✓ Granted and state restored")


def test_unsafe_request_denied():
    """P4 taking every R1 leaves no process able to finish."""
    print("\n" + "="*60)
    print("TEST 2: Unsafe Request")
    print("="*60)

    outcome = run_unchanged(make_safe_state(), 4, 1, 3)
    print(f"  {outcome.message}")

    assert not outcome.granted and not outcome.is_safe
    assert outcome.verdict == RequestVerdict.UNSAFE
    assert outcome.trial_result.is_deadlocked
    assert outcome.to_dict() == {
        'granted': False,
        'is_safe': False,
        'message': "Granting would lead to unsafe state.",
    }
    print("  ✓ Denied and state restored")


def test_exceeds_available():
    outcome = run_unchanged(make_safe_state(), 0, 0, 4)
    assert outcome.verdict == RequestVerdict.EXCEEDS_AVAILABLE
    assert outcome.trial_result is None, "Safety check must not run"


def test_exceeds_need():
    """P3 already holds its full claim of R0."""
    outcome = run_unchanged(make_safe_state(), 3, 0, 1)
    assert outcome.verdict == RequestVerdict.EXCEEDS_NEED
    assert outcome.trial_result is None


def test_availability_checked_before_need():
    """A request failing both checks reports the availability failure."""
    # P3 need for R0 is 0 and only 3 units are free
    outcome = run_unchanged(make_safe_state(), 3, 0, 5)
    assert outcome.verdict == RequestVerdict.EXCEEDS_AVAILABLE


def test_malformed_requests():
    state = make_safe_state()
    for request in [(0, 0, 0), (0, 0, -2), (5, 0, 1), (-1, 0, 1), (0, 3, 1), (0, -1, 1)]:
        outcome = run_unchanged(state, *request)
        assert outcome.verdict == RequestVerdict.INVALID_REQUEST, f"{request} should be malformed"
        assert not outcome.granted


def test_rollback_on_engine_failure():
    """Trial state is reverted even when the safety check raises."""
    state = make_safe_state()
    available = state.available.copy()
    allocation = state.allocation.copy()
    seen = {}

    def failing_evaluate(trial_state):
        seen['available'] = int(trial_state.available[0])
        seen['allocation'] = int(trial_state.allocation[1][0])
        raise RuntimeError("engine failure")

    with patch('algorithms.avoidance.evaluate', side_effect=failing_evaluate):
        try:
            simulate(state, 1, 0, 1)
            assert False, "Should have propagated the engine failure"
        except RuntimeError:
            pass

    assert seen == {'available': 2, 'allocation': 3}, "Engine saw the tentative grant"
    assert np.array_equal(state.available, available)
    assert np.array_equal(state.allocation, allocation)


def main():
    """Run all avoidance tests."""
    print("\n" + "="*70)
    print(" "*20 + "ADMISSION SIMULATION TESTS")
    print("="*70)

    try:
        test_safe_request_granted()
        test_unsafe_request_denied()
        test_exceeds_available()
        test_exceeds_need()
        test_availability_checked_before_need()
        test_malformed_requests()
        test_rollback_on_engine_failure()

        print("\n🎉 ALL ADMISSION SIMULATION TESTS PASSED")
        return 0

    except AssertionError as e:
        print(f"\n❌ TEST FAILED: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())

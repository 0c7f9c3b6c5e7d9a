"""
Safety / Deadlock Detection Tests

Tests the Work/Finish fixed point on the two reference scenarios, the
partition invariant, determinism (also over seeded random snapshots) and
the step-by-step walkthrough.
"""

import sys
from pathlib import Path

import numpy as np

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from models.system_state import SystemState, InvariantViolation
from algorithms.detection import can_satisfy, evaluate, step, StepState


def make_safe_state():
    """Scenario A: 5 processes, 3 resources, safe."""
    return SystemState.from_rows(
        available=[3, 3, 2],
        allocation=[[0, 1, 0], [2, 0, 0], [3, 0, 2], [2, 1, 1], [0, 0, 2]],
        max_need=[[7, 5, 3], [3, 2, 2], [9, 0, 2], [2, 2, 2], [4, 3, 3]]
    )


def make_deadlock_state():
    """Scenario B: 4 processes, 3 resources, nothing available."""
    return SystemState.from_rows(
        available=[0, 0, 0],
        allocation=[[1, 0, 1], [1, 1, 0], [0, 1, 1], [1, 0, 0]],
        max_need=[[2, 1, 2], [2, 2, 1], [1, 2, 2], [2, 1, 1]]
    )


def assert_partition(result, num_processes):
    combined = sorted(result.safe_sequence + result.deadlocked_processes)
    assert combined == list(range(num_processes)), (
        f"safe_sequence {result.safe_sequence} and deadlocked "
        f"{result.deadlocked_processes} must partition 0..{num_processes - 1}"
    )


def test_safe_scenario():
    """Scenario A is safe with sequence P1 -> P3 -> P4 -> P0 -> P2."""
    print("\n" + "="*60)
    print("TEST 1: Safe Scenario")
    print("="*60)

    result = evaluate(make_safe_state())
    print(f"  {result.describe()}")

    assert not result.is_deadlocked, "Scenario A must be safe"
    assert result.deadlocked_processes == []
    assert result.safe_sequence == [1, 3, 4, 0, 2], "Expected sequence 1,3,4,0,2"
    assert result.safe_sequence_length == 5
    assert_partition(result, 5)
    print("  ✓ Safe sequence matches")


def test_deadlock_scenario():
    """Scenario B deadlocks every process."""
    print("\n" + "="*60)
    print("TEST 2: Deadlock Scenario")
    print("="*60)

    result = evaluate(make_deadlock_state())
    print(f"  {result.describe()}")

    assert result.is_deadlocked, "Scenario B must be deadlocked"
    assert result.deadlocked_processes == [0, 1, 2, 3]
    assert result.safe_sequence == []
    assert_partition(result, 4)
    print("  ✓ All four processes deadlocked")


def test_partial_deadlock_partition():
    """Some processes finish, the rest stay deadlocked; both lists partition."""
    state = SystemState.from_rows(
        available=[1, 0],
        allocation=[[0, 1], [1, 0], [0, 0]],
        max_need=[[2, 1], [1, 2], [1, 0]]
    )
    # P2 needs [1,0] and holds nothing -> finishes, Work stays [1,0]
    # P0 needs [2,0] and P1 needs [0,2]: neither fits
    result = evaluate(state)

    assert result.is_deadlocked
    assert result.safe_sequence == [2]
    assert result.deadlocked_processes == [0, 1]
    assert_partition(result, 3)


def test_evaluate_is_pure_and_deterministic():
    """Repeated evaluation gives identical results and never mutates state."""
    state = make_safe_state()
    before = state.to_dict()

    first = evaluate(state)
    second = evaluate(state)

    assert first == second, "evaluate must be deterministic"
    assert state.to_dict() == before, "evaluate must not modify the state"


def random_state(rng):
    """Random valid snapshot: small dimensions, allocation <= max_need."""
    num_processes = int(rng.integers(1, 8))
    num_resources = int(rng.integers(1, 5))
    allocation = rng.integers(0, 4, size=(num_processes, num_resources))
    max_need = allocation + rng.integers(0, 4, size=(num_processes, num_resources))
    available = rng.integers(0, 4, size=num_resources)
    return SystemState(available=available, allocation=allocation, max_need=max_need)


def test_random_snapshots_properties():
    """Partition, determinism and a replayable safe sequence on seeded random snapshots."""
    print("\n" + "="*60)
    print("TEST 3: Random Snapshot Properties")
    print("="*60)

    rng = np.random.default_rng(20240611)
    deadlocked_count = 0

    for trial in range(300):
        state = random_state(rng)
        before = state.to_dict()

        result = evaluate(state)
        assert_partition(result, state.num_processes)
        assert result.is_deadlocked == bool(result.deadlocked_processes)
        assert evaluate(state) == result, f"Trial {trial}: evaluate must be deterministic"
        assert state.to_dict() == before, f"Trial {trial}: evaluate must not modify the state"

        # Replaying the sequence never needs more than Work holds
        work = state.available.copy()
        for pid in result.safe_sequence:
            assert np.all(state.need[pid] <= work), f"Trial {trial}: P{pid} discharged too early"
            work += state.allocation[pid]

        # Fixed point: nothing left over fits the final Work
        for pid in result.deadlocked_processes:
            assert not np.all(state.need[pid] <= work), f"Trial {trial}: P{pid} could still finish"

        if result.is_deadlocked:
            deadlocked_count += 1

    assert 0 < deadlocked_count < 300, "Seed should produce both safe and deadlocked snapshots"
    print(f"  ✓ 300 random snapshots checked ({deadlocked_count} deadlocked)")


def test_zeroed_process_always_finishes():
    """A process with zero need is discharged regardless of Work."""
    state = SystemState.from_rows(
        available=[0],
        allocation=[[0], [0]],
        max_need=[[0], [3]]
    )
    result = evaluate(state)
    assert result.safe_sequence == [0]
    assert result.deadlocked_processes == [1]


def test_negative_need_raises():
    """Invalid snapshots are reported instead of analysed."""
    state = SystemState.from_rows(available=[0], allocation=[[2]], max_need=[[1]])
    try:
        evaluate(state)
        assert False, "Should have raised InvariantViolation"
    except InvariantViolation:
        pass


def test_can_satisfy():
    assert can_satisfy(np.array([1, 2]), np.array([1, 2]))
    assert not can_satisfy(np.array([1, 3]), np.array([1, 2]))


def test_step_walkthrough_safe():
    """Step mode discharges the first fitting process from index 0 each call."""
    print("\n" + "="*60)
    print("TEST 4: Step-by-Step Walkthrough")
    print("="*60)

    state = make_safe_state()
    outcome = step(state)
    selected = []
    while outcome.status == 'found':
        print(f"  {outcome.explanation}")
        selected.append(outcome.selected_process)
        outcome = step(state, outcome.step_state)

    print(f"  {outcome.explanation}")
    assert outcome.status == 'done'
    assert selected == [1, 3, 0, 2, 4], "Each step restarts the scan at P0"
    assert outcome.step_state.safe_sequence == selected
    assert outcome.step_state.work == [10, 5, 7], "All units returned to Work"
    assert all(outcome.step_state.finish)


def test_step_walkthrough_deadlock():
    outcome = step(make_deadlock_state())
    assert outcome.status == 'deadlock'
    assert outcome.selected_process is None
    assert outcome.deadlocked_processes == [0, 1, 2, 3]
    assert outcome.to_dict()['deadlocked_processes'] == [0, 1, 2, 3]


def test_step_does_not_modify_input_progress():
    state = make_safe_state()
    progress = StepState.initial(state)
    outcome = step(state, progress)

    assert progress.work == [3, 3, 2], "Input step_state must be left alone"
    assert progress.safe_sequence == []
    assert outcome.step_state.work == [5, 3, 2]
    assert outcome.selected_process == 1


def main():
    """Run all detection tests."""
    print("\n" + "="*70)
    print(" "*20 + "DETECTION TESTS")
    print("="*70)

    try:
        test_safe_scenario()
        test_deadlock_scenario()
        test_partial_deadlock_partition()
        test_evaluate_is_pure_and_deterministic()
        test_random_snapshots_properties()
        test_zeroed_process_always_finishes()
        test_negative_need_raises()
        test_can_satisfy()
        test_step_walkthrough_safe()
        test_step_walkthrough_deadlock()
        test_step_does_not_modify_input_progress()

        print("\n🎉 ALL DETECTION TESTS PASSED")
        return 0

    except AssertionError as e:
        print(f"\n❌ TEST FAILED: {e}")
        return 1


if __name__ == '__main__':
    sys.exit(main())

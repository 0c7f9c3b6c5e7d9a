"""
Deadlock Recovery for the Deadlock Analyzer.

Resolves a deadlock by terminating one victim process per call.
"""

from typing import List, Optional

from models.results import DetectionResult, ResolutionOutcome, ResolutionStatus
from models.system_state import SystemState
from algorithms.detection import evaluate


def select_victim(deadlocked_pids: List[int], system_state: SystemState) -> int:
    """
    Select victim process for termination.

    Picks the deadlocked process holding the fewest resource units in total;
    ties go to the smallest index.

    Args:
        deadlocked_pids: Indices in deadlock
        system_state: Current snapshot

    Returns:
        Index of selected victim, or -1 if the list is empty
    """
    if not deadlocked_pids:
        return -1

    def held_units(pid):
        return int(system_state.allocation[pid].sum())

    # min() keeps the first of equal keys, so sort for the index tie-break
    return min(sorted(deadlocked_pids), key=held_units)


def terminate_process(pid: int, system_state: SystemState) -> List[int]:
    """
    Terminate a process in place: return its allocation to Available and
    zero both its allocation and max_need rows.

    Args:
        pid: Index of the process to terminate
        system_state: Snapshot to modify

    Returns:
        List of released amounts by resource type
    """
    released = system_state.allocation[pid].tolist()
    totals = system_state.total_units()

    system_state.available += system_state.allocation[pid]
    system_state.allocation[pid] = 0
    system_state.max_need[pid] = 0

    # SANITY CHECK: Verify resource conservation after termination
    system_state.assert_resource_conservation(totals, f"after terminating P{pid}")
    return released


def resolve(
    system_state: SystemState,
    result: Optional[DetectionResult] = None,
    victim: Optional[int] = None
) -> ResolutionOutcome:
    """
    Resolve deadlock by terminating exactly one process.

    The caller's snapshot is never modified: termination is applied to a copy
    which is returned in the outcome together with a fresh detection result.

    Args:
        system_state: Current snapshot
        result: Detection result for the snapshot (computed if omitted)
        victim: Process to terminate; chosen automatically if None

    Returns:
        ResolutionOutcome. NOT_APPLICABLE if the snapshot is not deadlocked,
        INVALID_VICTIM if victim is not one of the deadlocked processes.
    """
    if result is None:
        result = evaluate(system_state)

    if not result.is_deadlocked or not result.deadlocked_processes:
        return ResolutionOutcome(
            status=ResolutionStatus.NOT_APPLICABLE,
            state=system_state,
            result=result,
            message="State is not deadlocked; resolution not applicable."
        )

    if victim is None:
        victim = select_victim(result.deadlocked_processes, system_state)
    elif victim not in result.deadlocked_processes:
        choices = ", ".join(str(pid) for pid in result.deadlocked_processes)
        return ResolutionOutcome(
            status=ResolutionStatus.INVALID_VICTIM,
            state=system_state,
            result=result,
            message=f"victim_process_index must be a deadlocked process index (one of [{choices}])."
        )

    new_state = system_state.copy()
    released = terminate_process(victim, new_state)
    new_result = evaluate(new_state)

    resources_str = ", ".join(
        f"R{j}[{amount}]" for j, amount in enumerate(released) if amount > 0
    ) or "nothing"
    message = f"Terminated P{victim} (holding {resources_str})"
    if new_result.is_deadlocked:
        message += " - deadlock still exists, more processes need termination"
    else:
        message += " - deadlock resolved"

    return ResolutionOutcome(
        status=ResolutionStatus.RESOLVED,
        state=new_state,
        result=new_result,
        victim=victim,
        message=message
    )


def resolve_until_safe(system_state: SystemState) -> List[ResolutionOutcome]:
    """
    Terminate victims one at a time until no deadlock remains.

    Each termination zeroes one deadlocked process, so at most num_processes
    rounds are needed.

    Args:
        system_state: Starting snapshot (not modified)

    Returns:
        One RESOLVED outcome per terminated victim, in order (empty if the
        snapshot was already safe)
    """
    outcomes = []
    current = system_state
    result = evaluate(current)

    while result.is_deadlocked:
        outcome = resolve(current, result)
        outcomes.append(outcome)
        current, result = outcome.state, outcome.result

    return outcomes

"""
Deadlock Avoidance (admission control) for the Deadlock Analyzer.

Answers "would granting this request keep the system safe?" by tentatively
applying the request and re-running the safety algorithm.
"""

from models.results import RequestVerdict, SimulationOutcome
from models.system_state import SystemState
from algorithms.detection import evaluate


def simulate(
    system_state: SystemState,
    process: int,
    resource: int,
    amount: int
) -> SimulationOutcome:
    """
    Simulate a single-resource request using Banker's Algorithm.

    Steps (each rejection short-circuits, nothing is modified):
    1. Validate: amount > 0 and indices in range
    2. Check: amount <= Available[resource]
    3. Check: amount <= Need[process][resource]
    4. Tentatively allocate, run the safety algorithm, then roll back
       unconditionally. Grant iff the tentative state is not deadlocked.

    Args:
        system_state: Snapshot to test against (left unchanged on return)
        process: Index of requesting process
        resource: Index of resource type
        amount: Number of instances requested

    Returns:
        SimulationOutcome describing the decision
    """
    # Step 1: Validate request shape
    if (amount <= 0
            or not 0 <= process < system_state.num_processes
            or not 0 <= resource < system_state.num_resources):
        return SimulationOutcome(
            RequestVerdict.INVALID_REQUEST,
            "Invalid process_index, resource_index, or amount."
        )

    # Step 2: Check if resources are available
    available = int(system_state.available[resource])
    if amount > available:
        return SimulationOutcome(
            RequestVerdict.EXCEEDS_AVAILABLE,
            f"Request exceeds available resources (requested: {amount}, available: {available})."
        )

    # Step 3: Validate request doesn't exceed need
    need = int(system_state.check_need()[process][resource])
    if amount > need:
        return SimulationOutcome(
            RequestVerdict.EXCEEDS_NEED,
            f"Request exceeds remaining need (requested: {amount}, need: {need})."
        )

    # Step 4: Tentatively allocate, always roll back
    original_available = system_state.available[resource]
    original_allocation = system_state.allocation[process][resource]

    system_state.available[resource] -= amount
    system_state.allocation[process][resource] += amount
    try:
        trial = evaluate(system_state)
    finally:
        system_state.available[resource] = original_available
        system_state.allocation[process][resource] = original_allocation

    if trial.is_deadlocked:
        return SimulationOutcome(
            RequestVerdict.UNSAFE,
            "Granting would lead to unsafe state.",
            trial
        )

    seq_str = " -> ".join(f"P{pid}" for pid in trial.safe_sequence)
    return SimulationOutcome(
        RequestVerdict.GRANTED,
        f"Granting would keep the system safe (sequence: {seq_str}).",
        trial
    )

"""
Deadlock Detection for the Deadlock Analyzer.

Implements the Banker's safety algorithm (Work/Finish fixed point) and uses
its verdict as the deadlock test.

NOTE: the verdict assumes no process will ever request beyond its declared
max_need. A state is reported deadlocked when no completion order exists under
that assumption, which is the Banker's notion of an unsafe state rather than
detection over current outstanding requests only.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import List, Optional

from models.results import DetectionResult
from models.system_state import SystemState


def can_satisfy(need: np.ndarray, work: np.ndarray) -> bool:
    """Check Need[i] <= Work for every resource type."""
    return bool(np.all(need <= work))


def evaluate(system_state: SystemState) -> DetectionResult:
    """
    Evaluate safety (and therefore deadlock) of a snapshot.

    Algorithm:
    1. Need = Max - Allocation (negative cells raise InvariantViolation)
    2. Initialize Work = Available.copy(), Finish = [False] * num_processes
    3. Scan unfinished processes in index order; whenever Need[i] <= Work,
       Finish[i] = True, Work += Allocation[i] and append i to the sequence,
       then keep scanning the same pass with the enlarged Work
    4. Repeat passes until one discharges nothing
    5. Every process with Finish[i] == False is deadlocked

    Time Complexity: O(P²×R)

    Args:
        system_state: Snapshot to evaluate (not modified)

    Returns:
        DetectionResult with the safe sequence and the deadlocked set
    """
    need = system_state.check_need()

    # Step 2: Initialize Work and Finish vectors
    work = system_state.available.copy()
    finish = np.zeros(system_state.num_processes, dtype=bool)
    safe_sequence = []

    # Step 3-4: at most num_processes productive passes
    found = True
    while found:
        found = False
        for i in range(system_state.num_processes):
            if finish[i]:
                continue
            if can_satisfy(need[i], work):
                work += system_state.allocation[i]
                finish[i] = True
                safe_sequence.append(i)
                found = True

    # Step 5: Identify deadlocked processes
    deadlocked = [i for i in range(system_state.num_processes) if not finish[i]]

    return DetectionResult(
        is_deadlocked=len(deadlocked) > 0,
        deadlocked_processes=deadlocked,
        safe_sequence=safe_sequence
    )


@dataclass
class StepState:
    """Work/Finish progress carried between step() calls."""
    work: List[int]
    finish: List[bool]
    safe_sequence: List[int] = field(default_factory=list)

    @classmethod
    def initial(cls, system_state: SystemState) -> 'StepState':
        return cls(
            work=system_state.available.tolist(),
            finish=[False] * system_state.num_processes,
            safe_sequence=[]
        )

    def to_dict(self) -> dict:
        return {
            'work': list(self.work),
            'finish': list(self.finish),
            'safe_sequence': list(self.safe_sequence),
        }


@dataclass
class StepOutcome:
    """
    Result of one iteration of the safety loop.

    status is "found" (a process was discharged), "done" (all finished)
    or "deadlock" (no unfinished process fits Work).
    """
    status: str
    selected_process: Optional[int]
    explanation: str
    step_state: StepState
    deadlocked_processes: List[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        data = {
            'status': self.status,
            'selected_process': self.selected_process,
            'explanation': self.explanation,
            'step_state': self.step_state.to_dict(),
        }
        if self.status == 'deadlock':
            data['deadlocked_processes'] = list(self.deadlocked_processes)
        return data


def step(system_state: SystemState, step_state: Optional[StepState] = None) -> StepOutcome:
    """
    Execute ONE iteration of the safety loop, for step-by-step walkthroughs.

    Scans from process 0 for the first unfinished process whose Need fits
    Work and discharges it. The input step_state is not modified.

    Args:
        system_state: Snapshot being walked through
        step_state: Progress from the previous call, or None to start over

    Returns:
        StepOutcome carrying the updated progress
    """
    need = system_state.check_need()
    if step_state is None:
        step_state = StepState.initial(system_state)

    work = np.array(step_state.work, dtype=int)
    finish = list(step_state.finish)
    safe_sequence = list(step_state.safe_sequence)

    for i in range(system_state.num_processes):
        if finish[i] or not can_satisfy(need[i], work):
            continue

        work_before = work.tolist()
        work += system_state.allocation[i]
        finish[i] = True
        safe_sequence.append(i)

        return StepOutcome(
            status='found',
            selected_process=i,
            explanation=(
                f"Selected P{i}: Need(P{i}) {need[i].tolist()} <= Work {work_before}; "
                f"release its allocation -> Work = {work.tolist()}. "
                f"Add P{i} to safe sequence."
            ),
            step_state=StepState(work.tolist(), finish, safe_sequence)
        )

    unfinished = [i for i in range(system_state.num_processes) if not finish[i]]
    new_state = StepState(work.tolist(), finish, safe_sequence)

    if not unfinished:
        seq_str = ", ".join(f"P{pid}" for pid in safe_sequence)
        return StepOutcome(
            status='done',
            selected_process=None,
            explanation=f"All processes finished. Safe sequence: [{seq_str}].",
            step_state=new_state
        )

    pids_str = ", ".join(f"P{pid}" for pid in unfinished)
    return StepOutcome(
        status='deadlock',
        selected_process=None,
        explanation=(
            f"No process can be satisfied. Deadlocked processes: [{pids_str}]. "
            f"Work = {work.tolist()}."
        ),
        step_state=new_state,
        deadlocked_processes=unfinished
    )

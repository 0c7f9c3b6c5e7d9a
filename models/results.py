"""
Result models for the Deadlock Analyzer.

Outcome types returned by detection, admission simulation and resolution.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional

from models.system_state import SystemState


@dataclass
class DetectionResult:
    """
    Outcome of the safety algorithm on one snapshot.

    Attributes:
        is_deadlocked: True if at least one process can never be discharged
        deadlocked_processes: Indices that could not finish (ascending)
        safe_sequence: Discharge order actually achieved (partial if deadlocked)

    Invariant:
        deadlocked_processes and safe_sequence partition 0..P-1
    """
    is_deadlocked: bool
    deadlocked_processes: List[int] = field(default_factory=list)
    safe_sequence: List[int] = field(default_factory=list)

    @property
    def safe_sequence_length(self) -> int:
        return len(self.safe_sequence)

    def to_dict(self) -> Dict:
        return {
            'is_deadlocked': self.is_deadlocked,
            'deadlocked_processes': list(self.deadlocked_processes),
            'safe_sequence': list(self.safe_sequence),
            'safe_sequence_length': self.safe_sequence_length,
        }

    def describe(self) -> str:
        """Human-readable summary of the verdict."""
        seq_str = " -> ".join(f"P{pid}" for pid in self.safe_sequence)
        if not self.is_deadlocked:
            return f"NO DEADLOCK - system is in a SAFE state (sequence: {seq_str})"

        pids_str = ", ".join(f"P{pid}" for pid in self.deadlocked_processes)
        message = f"DEADLOCK DETECTED - Processes in deadlock: [{pids_str}]"
        if self.safe_sequence:
            message += f" (partial sequence before deadlock: {seq_str})"
        return message


class RequestVerdict(Enum):
    """Why a simulated request was granted or refused."""
    GRANTED = "granted"
    UNSAFE = "unsafe"
    INVALID_REQUEST = "invalid_request"
    EXCEEDS_AVAILABLE = "exceeds_available"
    EXCEEDS_NEED = "exceeds_need"


@dataclass
class SimulationOutcome:
    """
    Result of an admission-control simulation.

    Attributes:
        verdict: Reason code for the decision
        message: Human-readable explanation
        trial_result: Safety result on the tentative state (None if rejected
            before the safety check ran)
    """
    verdict: RequestVerdict
    message: str
    trial_result: Optional[DetectionResult] = None

    @property
    def granted(self) -> bool:
        return self.verdict == RequestVerdict.GRANTED

    @property
    def is_safe(self) -> bool:
        """Mirrors granted."""
        return self.granted

    def to_dict(self) -> Dict:
        return {
            'granted': self.granted,
            'is_safe': self.is_safe,
            'message': self.message,
        }


class ResolutionStatus(Enum):
    """Outcome of a single resolution step."""
    RESOLVED = "resolved"
    NOT_APPLICABLE = "not_applicable"
    INVALID_VICTIM = "invalid_victim"


@dataclass
class ResolutionOutcome:
    """
    Result of terminating (at most) one victim.

    For NOT_APPLICABLE and INVALID_VICTIM, state and result describe the
    untouched input and victim is None.
    """
    status: ResolutionStatus
    state: SystemState
    result: DetectionResult
    victim: Optional[int] = None
    message: str = ""

    @property
    def applied(self) -> bool:
        return self.status == ResolutionStatus.RESOLVED

    def to_dict(self) -> Dict:
        if not self.applied:
            return {'error': self.message}
        return {
            'state': self.state.to_dict(),
            'result': self.result.to_dict(),
            'victim_process': self.victim,
        }

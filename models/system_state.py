"""
System State model for the Deadlock Analyzer.

Holds the single resource-allocation snapshot that every analysis runs on:
the Available vector, the Allocation and Max Need matrices, and the derived
Need matrix.
"""

import numpy as np
from typing import Dict, List, Sequence, Tuple
from dataclasses import dataclass


# System constraints
MAX_PROCESSES = 10
MAX_RESOURCES = 10
# Largest unit count per cell; column sums stay well inside int64
MAX_UNITS = 2**31 - 1


class InvariantViolation(ValueError):
    """Raised when the derived Need matrix has a negative cell (max_need < allocation)."""

    def __init__(self, cells: List[Tuple[int, int]]):
        self.cells = cells
        cells_str = ", ".join(f"P{p}/R{r}" for p, r in cells)
        super().__init__(f"max_need is below allocation for: {cells_str}")


@dataclass(eq=False)
class SystemState:
    """
    Resource-allocation snapshot under analysis.

    Attributes:
        available: [R] Units of each resource type not held by any process
        allocation: [P][R] Units currently held by each process
        max_need: [P][R] Maximum units each process may ever claim

    Need is derived as max_need - allocation and is never stored.
    """
    available: np.ndarray
    allocation: np.ndarray
    max_need: np.ndarray

    def __post_init__(self):
        """Coerce inputs to integer arrays and check their shapes agree."""
        self.available = np.array(self.available, dtype=int).reshape(-1)
        self.allocation = np.array(self.allocation, dtype=int)
        self.max_need = np.array(self.max_need, dtype=int)

        if self.allocation.ndim != 2:
            self.allocation = self.allocation.reshape(-1, self.available.size)
        if self.max_need.ndim != 2:
            self.max_need = self.max_need.reshape(-1, self.available.size)

        if self.allocation.shape != self.max_need.shape:
            raise ValueError(
                f"allocation shape {self.allocation.shape} does not match "
                f"max_need shape {self.max_need.shape}"
            )
        if self.allocation.shape[1] != self.available.size:
            raise ValueError(
                f"allocation has {self.allocation.shape[1]} resource columns, "
                f"available has {self.available.size}"
            )

    @property
    def num_processes(self) -> int:
        """Number of processes in the snapshot."""
        return self.allocation.shape[0]

    @property
    def num_resources(self) -> int:
        """Number of resource types in the snapshot."""
        return self.available.size

    @property
    def need(self) -> np.ndarray:
        """
        Get need matrix [P][R].
        Computed as: Need = Max - Allocation
        """
        return self.max_need - self.allocation

    def check_need(self) -> np.ndarray:
        """
        Return the Need matrix, refusing to continue if any cell is negative.

        Raises:
            InvariantViolation: If max_need < allocation anywhere
        """
        need = self.need
        negative = np.argwhere(need < 0)
        if negative.size:
            raise InvariantViolation([(int(p), int(r)) for p, r in negative])
        return need

    def total_units(self) -> np.ndarray:
        """Total units per resource type (available + everything allocated)."""
        return self.available + self.allocation.sum(axis=0)

    def copy(self) -> 'SystemState':
        """Independent deep copy of this snapshot."""
        return SystemState(
            available=self.available.copy(),
            allocation=self.allocation.copy(),
            max_need=self.max_need.copy()
        )

    def to_dict(self) -> Dict:
        """Plain-list representation suitable for JSON output."""
        return {
            'num_processes': self.num_processes,
            'num_resources': self.num_resources,
            'available': self.available.tolist(),
            'allocation': self.allocation.tolist(),
            'max_need': self.max_need.tolist(),
        }

    @classmethod
    def from_dict(cls, data: Dict) -> 'SystemState':
        """Build a snapshot from the to_dict() shape (no bound validation)."""
        return cls(
            available=data['available'],
            allocation=data['allocation'],
            max_need=data['max_need']
        )

    @classmethod
    def from_rows(
        cls,
        available: Sequence[int],
        allocation: Sequence[Sequence[int]],
        max_need: Sequence[Sequence[int]]
    ) -> 'SystemState':
        """Convenience constructor from plain Python lists."""
        return cls(available=available, allocation=allocation, max_need=max_need)

    def assert_resource_conservation(self, expected_totals: np.ndarray, context: str = "") -> None:
        """Verify available + allocated still equals the expected totals per resource.

        Args:
            expected_totals: [R] Totals recorded before the operation
            context: Description of when this check is being run (for error messages)

        Raises:
            AssertionError: If resource conservation is violated
        """
        totals = self.total_units()
        for r_idx in range(self.num_resources):
            assert totals[r_idx] == expected_totals[r_idx], (
                f"Resource conservation violated for R{r_idx} {context}\n"
                f"  Available + Allocated = {totals[r_idx]} != {expected_totals[r_idx]}"
            )
            assert self.available[r_idx] >= 0, (
                f"Negative available resources for R{r_idx} {context}\n"
                f"  Available: {self.available[r_idx]}"
            )

    def display(self) -> str:
        """
        Generate readable string representation of system state.

        Returns:
            Formatted string showing all matrices and vectors
        """
        header = "     " + " ".join([f"R{j:<2}" for j in range(self.num_resources)])

        def matrix_rows(matrix: np.ndarray) -> List[str]:
            return [
                f"  P{i}: " + " ".join([f"{matrix[i][j]:3}" for j in range(self.num_resources)])
                for i in range(self.num_processes)
            ]

        output = []
        output.append("\n" + "="*60)
        output.append("SYSTEM STATE")
        output.append("="*60)
        output.append(f"\nProcesses: {self.num_processes} | Resources: {self.num_resources}")

        output.append("\nAvailable Resources:")
        output.append("  [" + ", ".join(
            f"R{j}:{self.available[j]:2}" for j in range(self.num_resources)
        ) + "]")

        output.append("\nAllocation Matrix:")
        output.append(header)
        output.extend(matrix_rows(self.allocation))

        output.append("\nMax Need Matrix:")
        output.append(header)
        output.extend(matrix_rows(self.max_need))

        output.append("\nNeed Matrix (Max - Allocation):")
        output.append(header)
        output.extend(matrix_rows(self.need))

        output.append("\n" + "="*60)
        return "\n".join(output)

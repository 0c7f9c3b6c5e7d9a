"""
Scenario Loader for the Deadlock Analyzer.

Loads and validates JSON snapshot files. All bound and shape checks on input
happen here, before a SystemState reaches the algorithms.
"""

import json
from typing import Any, Dict, List, Optional
from pathlib import Path

from models.system_state import SystemState, MAX_PROCESSES, MAX_RESOURCES, MAX_UNITS
from algorithms.detection import StepState


SCENARIOS_DIR = Path(__file__).resolve().parent.parent / "scenarios"


class ScenarioLoadError(Exception):
    """Exception raised when scenario file cannot be loaded or is invalid."""
    pass


def resolve_scenario_path(name_or_path: str) -> Path:
    """
    Map a bundled scenario name (e.g. "safe_banker") to its file, or return
    the argument unchanged as a path.
    """
    path = Path(name_or_path)
    if path.exists():
        return path
    bundled = SCENARIOS_DIR / f"{name_or_path}.json"
    if bundled.exists():
        return bundled
    return path


def load_scenario(file_path: str) -> SystemState:
    """
    Load a snapshot from JSON file.

    Args:
        file_path: Path to scenario JSON file, or a bundled scenario name

    Returns:
        Validated SystemState

    Raises:
        ScenarioLoadError: If file cannot be loaded or is invalid
    """
    path = resolve_scenario_path(file_path)
    try:
        with open(path, 'r', encoding='utf-8') as f:
            data = json.load(f)
    except FileNotFoundError:
        raise ScenarioLoadError(f"Scenario file not found: {file_path}")
    except json.JSONDecodeError as e:
        raise ScenarioLoadError(f"Invalid JSON in scenario file: {e}")

    return parse_snapshot(data)


def parse_snapshot(data: Any) -> SystemState:
    """
    Validate a snapshot dictionary and build a SystemState.

    Rules: dimensions within [1, MAX], vector/matrix shapes match them,
    every value an integer in [0, MAX_UNITS], allocation[i][j] <= max_need[i][j].

    Args:
        data: Dictionary with num_processes, num_resources, available,
            allocation, max_need

    Returns:
        Validated SystemState

    Raises:
        ScenarioLoadError: If any rule is violated
    """
    if not isinstance(data, dict):
        raise ScenarioLoadError("Snapshot must be a JSON object")

    for key in ['num_processes', 'num_resources', 'available', 'allocation', 'max_need']:
        if key not in data:
            raise ScenarioLoadError(f"Snapshot missing '{key}' field")

    num_processes = _validate_dimension(data['num_processes'], 'num_processes', MAX_PROCESSES)
    num_resources = _validate_dimension(data['num_resources'], 'num_resources', MAX_RESOURCES)

    available = _validate_vector(data['available'], 'available', num_resources)
    allocation = _validate_matrix(data['allocation'], 'allocation', num_processes, num_resources)
    max_need = _validate_matrix(data['max_need'], 'max_need', num_processes, num_resources)

    # CRITICAL CHECK: allocation <= max_need keeps Need non-negative
    for i in range(num_processes):
        for j in range(num_resources):
            if allocation[i][j] > max_need[i][j]:
                raise ScenarioLoadError(
                    f"allocation[{i}][{j}] ({allocation[i][j]}) cannot exceed "
                    f"max_need[{i}][{j}] ({max_need[i][j]})"
                )

    return SystemState.from_rows(available, allocation, max_need)


def _is_count(value: Any) -> bool:
    """True for ints (bool excluded)."""
    return isinstance(value, int) and not isinstance(value, bool)


def _validate_dimension(value: Any, name: str, upper: int) -> int:
    if not _is_count(value) or value < 1 or value > upper:
        raise ScenarioLoadError(f"{name} must be an integer between 1 and {upper}")
    return value


def _validate_vector(values: Any, name: str, length: int) -> List[int]:
    if not isinstance(values, list) or len(values) != length:
        raise ScenarioLoadError(f"{name} must be an array of {length} numbers")
    for j, value in enumerate(values):
        if not _is_count(value) or value < 0 or value > MAX_UNITS:
            raise ScenarioLoadError(
                f"{name}[{j}] must be a non-negative integer no greater than {MAX_UNITS}"
            )
    return list(values)


def _validate_matrix(rows: Any, name: str, num_rows: int, num_cols: int) -> List[List[int]]:
    if not isinstance(rows, list) or len(rows) != num_rows:
        raise ScenarioLoadError(f"{name} must be a {num_rows}x{num_cols} matrix")
    return [
        _validate_vector(row, f"{name}[{i}]", num_cols)
        for i, row in enumerate(rows)
    ]


def parse_step_state(data: Any, system_state: SystemState) -> StepState:
    """
    Validate a step_state dictionary (work, finish, safe_sequence) against
    the snapshot it belongs to.

    Raises:
        ScenarioLoadError: If shapes or values are invalid
    """
    if not isinstance(data, dict):
        raise ScenarioLoadError("step_state must be an object or null")

    np_, nr = system_state.num_processes, system_state.num_resources
    work = _validate_vector(data.get('work'), 'step_state.work', nr)

    finish = data.get('finish')
    if not isinstance(finish, list) or len(finish) != np_:
        raise ScenarioLoadError(f"step_state.finish must be an array of {np_} booleans")
    for i, flag in enumerate(finish):
        if not isinstance(flag, bool):
            raise ScenarioLoadError(f"step_state.finish[{i}] must be a boolean")

    sequence = data.get('safe_sequence', [])
    if not isinstance(sequence, list):
        raise ScenarioLoadError("step_state.safe_sequence must be an array of numbers")
    for k, pid in enumerate(sequence):
        if not _is_count(pid) or pid < 0 or pid >= np_:
            raise ScenarioLoadError(
                f"step_state.safe_sequence[{k}] must be a process index (0..{np_ - 1})"
            )

    return StepState(work=work, finish=list(finish), safe_sequence=list(sequence))


def load_step_state(text: str, system_state: SystemState) -> Optional[StepState]:
    """
    Decode a JSON step_state and validate it against its snapshot.

    A JSON null means "start from scratch" and returns None.

    Raises:
        ScenarioLoadError: If the text is not JSON or the step_state is invalid
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ScenarioLoadError(f"Invalid JSON in step_state: {e}")
    if data is None:
        return None
    return parse_step_state(data, system_state)


def get_scenario_description(file_path: str) -> str:
    """
    Get description from scenario file without full loading.

    Args:
        file_path: Path to scenario JSON file, or a bundled scenario name

    Returns:
        Description string, or empty string if not present
    """
    try:
        with open(resolve_scenario_path(file_path), 'r', encoding='utf-8') as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError):
        return ''
    return data.get('description', '') if isinstance(data, dict) else ''


def list_bundled_scenarios() -> Dict[str, str]:
    """Map of bundled scenario names to their descriptions."""
    return {
        path.stem: get_scenario_description(str(path))
        for path in sorted(SCENARIOS_DIR.glob("*.json"))
    }

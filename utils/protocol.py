"""
Line-oriented worker protocol for the Deadlock Analyzer.

Reads one whitespace-delimited request and answers with one JSON line.

Protocol:
    Line 1: DETECT | RAG | RESOLVE | SIMULATE | STEP
    Line 2: num_processes num_resources
    Line 3: available[0] ... available[nr-1]
    Next num_processes lines: allocation[i][0] ... allocation[i][nr-1]
    Next num_processes lines: max_need[i][0] ... max_need[i][nr-1]
    RESOLVE: next line = victim_process_index (-1 for auto)
    SIMULATE: next line = process_index resource_index amount
    STEP: optional last line = step_state JSON (work, finish, safe_sequence);
          with it one iteration runs, without it the whole walkthrough
"""

import json
from typing import Dict, List, Optional, Tuple

from models.system_state import SystemState, MAX_PROCESSES, MAX_RESOURCES
from algorithms.detection import StepState, evaluate, step
from algorithms.rag import build, detect_cycle
from algorithms.avoidance import simulate
from algorithms.recovery import resolve
from utils.scenario_loader import ScenarioLoadError, load_step_state, parse_snapshot


COMMANDS = ('DETECT', 'RAG', 'RESOLVE', 'SIMULATE', 'STEP')


class ProtocolError(ScenarioLoadError):
    """Raised when a worker request cannot be parsed."""
    pass


def _next_int(tokens: List[str], what: str) -> int:
    if not tokens:
        raise ProtocolError(f"Unexpected end of input while reading {what}")
    token = tokens.pop(0)
    try:
        return int(token)
    except ValueError:
        raise ProtocolError(f"Expected integer for {what}, got '{token}'")


def parse_request(text: str) -> Tuple[str, SystemState, List[str]]:
    """
    Parse a worker request.

    Args:
        text: Full request text

    Returns:
        Tuple of (command, validated SystemState, remaining tokens)

    Raises:
        ProtocolError: If the command is unknown or a number is missing
        ScenarioLoadError: If the snapshot fails validation
    """
    tokens = text.split()
    if not tokens:
        raise ProtocolError("missing command")

    command = tokens.pop(0).upper()
    if command not in COMMANDS:
        raise ProtocolError(f"unknown command: {command}")

    num_processes = _next_int(tokens, "num_processes")
    num_resources = _next_int(tokens, "num_resources")
    if not (1 <= num_processes <= MAX_PROCESSES and 1 <= num_resources <= MAX_RESOURCES):
        raise ProtocolError(
            f"invalid dimensions: {num_processes} processes, {num_resources} resources "
            f"(limits {MAX_PROCESSES} and {MAX_RESOURCES})"
        )

    available = [_next_int(tokens, f"available[{j}]") for j in range(num_resources)]
    allocation = [
        [_next_int(tokens, f"allocation[{i}][{j}]") for j in range(num_resources)]
        for i in range(num_processes)
    ]
    max_need = [
        [_next_int(tokens, f"max_need[{i}][{j}]") for j in range(num_resources)]
        for i in range(num_processes)
    ]

    state = parse_snapshot({
        'num_processes': num_processes,
        'num_resources': num_resources,
        'available': available,
        'allocation': allocation,
        'max_need': max_need,
    })
    return command, state, tokens


def execute(
    command: str,
    state: SystemState,
    victim: Optional[int] = None,
    request: Optional[Tuple[int, int, int]] = None,
    single_step: bool = False,
    step_state: Optional[StepState] = None
) -> Dict:
    """
    Run one command against a snapshot and build its response object.

    Args:
        command: One of COMMANDS
        state: Validated snapshot (owned by this call)
        victim: RESOLVE victim index, None for automatic selection
        request: SIMULATE (process, resource, amount), None if missing
        single_step: STEP runs one iteration instead of the whole walkthrough
        step_state: STEP progress to continue from (None = start over)

    Returns:
        Response dictionary ready for JSON encoding
    """
    command = command.upper()

    if command == 'DETECT':
        return evaluate(state).to_dict()

    if command == 'RAG':
        graph = build(state)
        response = graph.to_dict()
        response['has_cycle'] = detect_cycle(graph)
        return response

    if command == 'RESOLVE':
        return resolve(state, victim=victim).to_dict()

    if command == 'SIMULATE':
        if request is None:
            return {
                'granted': False,
                'is_safe': False,
                'message': "Missing process_index resource_index amount.",
            }
        return simulate(state, *request).to_dict()

    if command == 'STEP':
        if single_step:
            return step(state, step_state).to_dict()
        steps = []
        outcome = step(state)
        steps.append(outcome.to_dict())
        while outcome.status == 'found':
            outcome = step(state, outcome.step_state)
            steps.append(outcome.to_dict())
        return {'steps': steps, 'status': outcome.status}

    raise ProtocolError(f"unknown command: {command}")


def handle_request(text: str) -> str:
    """
    Parse a request, execute it and return the single JSON response line.

    Raises:
        ScenarioLoadError: If the request or snapshot is malformed
    """
    command, state, tokens = parse_request(text)

    victim = None
    request = None
    single_step = False
    step_state = None
    if command == 'RESOLVE' and tokens:
        # An unreadable victim line falls back to automatic selection
        try:
            value = _next_int(tokens, "victim_process_index")
        except ProtocolError:
            value = -1
        victim = None if value < 0 else value
    elif command == 'SIMULATE':
        try:
            request = tuple(_next_int(tokens, name) for name in ("process_index", "resource_index", "amount"))
        except ProtocolError:
            request = None
    elif command == 'STEP' and tokens:
        single_step = True
        step_state = load_step_state(" ".join(tokens), state)

    return encode_response(execute(command, state, victim, request, single_step, step_state))


def encode_response(response: Dict) -> str:
    """Compact single-line JSON encoding."""
    return json.dumps(response, separators=(',', ':'))

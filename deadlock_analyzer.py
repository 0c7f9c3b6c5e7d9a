#!/usr/bin/env python3
"""
Deadlock Analyzer
Main entry point for the analysis engine.

Evaluates one resource-allocation snapshot: deadlock/safety check, resource
allocation graph, admission simulation and deadlock resolution.
"""

import argparse
import sys
from typing import Optional

from models.system_state import SystemState
from models.results import ResolutionStatus
from algorithms.detection import StepState, evaluate, step
from algorithms.rag import build, detect_cycle
from algorithms.avoidance import simulate
from algorithms.recovery import resolve, resolve_until_safe
from utils.logger import AnalyzerLogger
from utils.protocol import encode_response, execute, handle_request
from utils.scenario_loader import (
    ScenarioLoadError,
    get_scenario_description,
    list_bundled_scenarios,
    load_scenario,
    load_step_state,
)


def run_analysis(
    command: str,
    system_state: SystemState,
    logger: AnalyzerLogger,
    process: Optional[int] = None,
    resource: Optional[int] = None,
    amount: Optional[int] = None,
    victim: Optional[int] = None,
    until_safe: bool = False,
    step_state: Optional[StepState] = None,
    single_step: bool = False
) -> int:
    """
    Run one command and report it in human-readable form.

    Args:
        command: detect, rag, resolve, simulate or step
        system_state: Validated snapshot
        logger: Logger instance
        process, resource, amount: SIMULATE request
        victim: RESOLVE victim (None = automatic)
        until_safe: Keep resolving until no deadlock remains
        step_state: STEP progress to continue from (None = start over)
        single_step: Run one STEP iteration instead of the whole walkthrough

    Returns:
        Exit code
    """
    logger.log_system_state(system_state.display())

    if command == 'detect':
        logger.log_detection(evaluate(system_state).describe())

    elif command == 'rag':
        graph = build(system_state)
        logger.log(graph.display())
        logger.log_cycle(detect_cycle(graph), len(graph.edges))
        # Both verdicts are shown; with multi-instance resources they can differ
        logger.log_detection(evaluate(system_state).describe())

    elif command == 'simulate':
        if None in (process, resource, amount):
            logger.log("simulate requires --process, --resource and --amount", "error")
            return 1
        outcome = simulate(system_state, process, resource, amount)
        logger.log_simulation(process, resource, amount, outcome.granted, outcome.message)

    elif command == 'resolve':
        if until_safe:
            outcomes = resolve_until_safe(system_state)
            if not outcomes:
                logger.log_resolution("State is not deadlocked; resolution not applicable.")
                return 0
            victims = []
            for outcome in outcomes:
                victims.append(outcome.victim)
                logger.log_resolution(outcome.message, victims)
            final = outcomes[-1]
            logger.log(final.state.display())
            logger.log_detection(final.result.describe())
        else:
            outcome = resolve(system_state, victim=victim)
            logger.log_resolution(outcome.message)
            if not outcome.applied:
                return 1 if outcome.status == ResolutionStatus.INVALID_VICTIM else 0
            logger.log(outcome.state.display())
            logger.log_detection(outcome.result.describe())

    elif command == 'step':
        outcome = step(system_state, step_state)
        logger.log_command("step", outcome.explanation)
        if single_step:
            logger.log(f"Step state: {outcome.step_state.to_dict()}")
            return 0
        while outcome.status == 'found':
            outcome = step(system_state, outcome.step_state)
            logger.log_command("step", outcome.explanation)

    return 0


def run_worker(logger: AnalyzerLogger) -> int:
    """Answer one protocol request from stdin with one JSON line on stdout."""
    try:
        print(handle_request(sys.stdin.read()))
    except ScenarioLoadError as e:
        logger.log(str(e), "error")
        return 1
    return 0


def main(argv=None):
    """Main entry point for the analyzer."""
    parser = argparse.ArgumentParser(
        description='Deadlock Analyzer - Banker\'s safety check, RAG, admission and recovery'
    )
    parser.add_argument(
        '--command',
        choices=['detect', 'rag', 'resolve', 'simulate', 'step'],
        default='detect',
        help='Analysis to run (default: detect)'
    )
    parser.add_argument(
        '--scenario',
        type=str,
        help='Path to snapshot JSON file, or a bundled scenario name'
    )
    parser.add_argument(
        '--worker',
        action='store_true',
        help='Read a protocol request from stdin and print one JSON line'
    )
    parser.add_argument(
        '--list-scenarios',
        action='store_true',
        help='List bundled scenarios and exit'
    )
    parser.add_argument('--process', type=int, help='Requesting process index (simulate)')
    parser.add_argument('--resource', type=int, help='Requested resource index (simulate)')
    parser.add_argument('--amount', type=int, help='Requested amount (simulate)')
    parser.add_argument(
        '--victim',
        type=int,
        help='Process to terminate (resolve; default: fewest held units, negative = automatic)'
    )
    parser.add_argument(
        '--until-safe',
        action='store_true',
        help='Keep resolving until no deadlock remains (resolve)'
    )
    parser.add_argument(
        '--step-state',
        type=str,
        help='Run one step from this JSON progress object (step; null = start over)'
    )
    parser.add_argument(
        '--json',
        action='store_true',
        help='Print the JSON response instead of a report'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose logging'
    )
    parser.add_argument(
        '--log-file',
        type=str,
        help='Also write the log to this file'
    )

    args = parser.parse_args(argv)

    # Validate arguments
    if args.until_safe and args.victim is not None:
        parser.error('--until-safe cannot be combined with --victim')
    if args.step_state is not None and args.command != 'step':
        parser.error('--step-state only applies to --command step')

    # Negative victim means automatic selection, as in the worker protocol
    victim = args.victim if args.victim is not None and args.victim >= 0 else None

    if args.list_scenarios:
        for name, description in list_bundled_scenarios().items():
            print(f"{name:20} {description}")
        return 0

    if args.worker:
        logger = AnalyzerLogger(verbose=args.verbose, log_file=args.log_file, stream=sys.stderr)
        try:
            return run_worker(logger)
        finally:
            logger.close()

    if not args.scenario:
        parser.error('--scenario is required unless --worker or --list-scenarios is given')

    logger = AnalyzerLogger(
        verbose=args.verbose,
        log_file=args.log_file,
        stream=sys.stderr if args.json else None
    )
    try:
        try:
            system_state = load_scenario(args.scenario)
        except ScenarioLoadError as e:
            logger.log(f"Failed to load scenario: {e}", "error")
            return 1

        single_step = args.step_state is not None
        step_state = None
        if single_step:
            try:
                step_state = load_step_state(args.step_state, system_state)
            except ScenarioLoadError as e:
                logger.log(f"Invalid --step-state: {e}", "error")
                return 1

        description = get_scenario_description(args.scenario)
        if description:
            logger.log(f"Scenario: {description}", "debug")

        if args.json:
            exit_code = 0
            if args.command == 'resolve' and args.until_safe:
                outcomes = resolve_until_safe(system_state)
                response = {
                    'victims': [outcome.victim for outcome in outcomes],
                    'state': (outcomes[-1].state if outcomes else system_state).to_dict(),
                    'result': (outcomes[-1].result if outcomes else evaluate(system_state)).to_dict(),
                }
            elif args.command == 'resolve':
                outcome = resolve(system_state, victim=victim)
                response = outcome.to_dict()
                if outcome.status == ResolutionStatus.INVALID_VICTIM:
                    exit_code = 1
            else:
                request = None
                if None not in (args.process, args.resource, args.amount):
                    request = (args.process, args.resource, args.amount)
                response = execute(
                    args.command, system_state, request=request,
                    single_step=single_step, step_state=step_state
                )
            print(encode_response(response))
            return exit_code

        return run_analysis(
            args.command,
            system_state,
            logger,
            process=args.process,
            resource=args.resource,
            amount=args.amount,
            victim=victim,
            until_safe=args.until_safe,
            step_state=step_state,
            single_step=single_step
        )
    finally:
        logger.close()


if __name__ == '__main__':
    sys.exit(main())

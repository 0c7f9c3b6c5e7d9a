"""
Logger utility for the Deadlock Analyzer.

Provides analysis logging with verbosity levels.
"""

import sys
from typing import List, Optional, TextIO
from datetime import datetime


class AnalyzerLogger:
    """
    Logger for analysis results and decisions.

    Format: "DETECT: DEADLOCK DETECTED - Processes in deadlock: [P0, P1]"
    """

    def __init__(
        self,
        verbose: bool = False,
        log_file: Optional[str] = None,
        stream: Optional[TextIO] = None
    ):
        """
        Initialize logger.

        Args:
            verbose: Enable verbose output
            log_file: Optional file path for logging
            stream: Console stream (defaults to stdout; worker mode passes stderr)
        """
        self.verbose = verbose
        self.log_file = log_file
        self.stream = stream if stream is not None else sys.stdout
        self.file_handle = None

        if self.log_file:
            self.file_handle = open(self.log_file, 'w', encoding='utf-8')
            self._write_header()

    def _write_header(self) -> None:
        """Write log file header."""
        if self.file_handle:
            timestamp = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
            self.file_handle.write(f"Analysis Log - {timestamp}\n")
            self.file_handle.write("="*60 + "\n\n")

    def log(self, message: str, level: str = "info") -> None:
        """
        Log a message.

        Args:
            message: Message to log
            level: Log level (info, debug, warning, error)
        """
        if level == "debug" and not self.verbose:
            return

        formatted = self._format_message(message, level)

        print(formatted, file=self.stream)

        if self.file_handle:
            self.file_handle.write(formatted + "\n")
            self.file_handle.flush()

    def _format_message(self, message: str, level: str) -> str:
        """Format message with level prefix."""
        if level == "error":
            return f"[ERROR] {message}"
        elif level == "warning":
            return f"[WARNING] {message}"
        elif level == "debug":
            return f"[DEBUG] {message}"
        else:
            return message

    def log_command(self, command: str, message: str) -> None:
        """Log a message tagged with the command that produced it."""
        self.log(f"{command.upper()}: {message}")

    def log_detection(self, description: str) -> None:
        """Log a detection verdict (DetectionResult.describe())."""
        self.log_command("detect", description)

    def log_cycle(self, has_cycle: bool, edge_count: int) -> None:
        """
        Log RAG cycle check.

        Args:
            has_cycle: Whether DFS found a cycle
            edge_count: Number of edges in the graph
        """
        verdict = "CYCLE DETECTED - indicates potential deadlock" if has_cycle else "NO CYCLE - graph is acyclic"
        self.log_command("rag", f"{verdict} ({edge_count} edges)")

    def log_simulation(
        self,
        pid: int,
        resource_type: int,
        amount: int,
        granted: bool,
        reason: str
    ) -> None:
        """
        Log a simulated resource request.

        Args:
            pid: Process index
            resource_type: Resource type index
            amount: Amount requested
            granted: Whether request would be granted
            reason: Reason for decision
        """
        status = "GRANTED" if granted else "DENIED"
        self.log_command("simulate", f"P{pid} requests R{resource_type}[{amount}] - {status} ({reason})")

    def log_resolution(self, message: str, victims: Optional[List[int]] = None) -> None:
        """
        Log recovery action.

        Args:
            message: Outcome message from the resolution
            victims: Victims terminated so far, if more than one round ran
        """
        if victims:
            victims_str = ", ".join(f"P{pid}" for pid in victims)
            message = f"{message} [victims: {victims_str}]"
        self.log_command("resolve", f"RECOVERY - {message}")

    def log_system_state(self, state_str: str) -> None:
        """
        Log system state snapshot (verbose only).

        Args:
            state_str: Formatted system state
        """
        if self.verbose:
            self.log(f"System State:\n{state_str}", "debug")

    def close(self) -> None:
        """Close log file if open."""
        if self.file_handle:
            self.file_handle.close()
            self.file_handle = None

    def __del__(self):
        """Cleanup on destruction."""
        self.close()

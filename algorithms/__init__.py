"""
Algorithms package for the Deadlock Analyzer.
Contains the safety/deadlock check, the resource allocation graph,
admission simulation (Banker's) and recovery by process termination.
"""

from algorithms.detection import evaluate, step
from algorithms.rag import build, detect_cycle
from algorithms.avoidance import simulate
from algorithms.recovery import resolve, resolve_until_safe

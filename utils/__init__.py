"""
Utilities package for the Deadlock Analyzer.
Contains scenario loading/validation, the worker protocol and logging.
"""

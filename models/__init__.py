"""
Models package for the Deadlock Analyzer.
Contains the system snapshot and the result types produced by the algorithms.
"""

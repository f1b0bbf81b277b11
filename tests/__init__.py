"""
Registry test suite.

Includes:
- helpers.py: principals, sample timing data and a ready-made registry
- test_*.py: one module per registry component
"""

"""
Cadence - merchant normalization and recurring spend detection.
"""

__version__ = "1.0.0"

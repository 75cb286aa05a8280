"""
Driver ranking job.

Rebuilds past ranking windows, joins them with reviews and profile-view
telemetry, asks an LLM for the next ranking, and appends it as a new snapshot.
"""

__version__ = '0.1.0'

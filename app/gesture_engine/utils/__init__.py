"""
Utilities for the Motion Analyzer gesture engine.
"""

from .logger import LogCategory, LogEntry, LogLevel, SessionLogger

__all__ = [
    'LogCategory', 'LogEntry', 'LogLevel', 'SessionLogger',
]

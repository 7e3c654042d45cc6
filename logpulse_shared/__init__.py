"""
LogPulse AI - Shared Library
============================

Common utilities, schemas, and constants used by the diagnosis service.
"""

__version__ = "0.1.0"
__author__ = "LogPulse AI Team"

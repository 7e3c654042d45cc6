"""
LogPulse AI - Diagnosis Service
===============================

Accepts production error logs, enforces a per-caller quota, asks a
language-model backend for a diagnosis and keeps a history of analyses.
"""

__version__ = "0.1.0"

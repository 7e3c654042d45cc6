"""
LogPulse AI - Shared Utilities Package
======================================

Logging helpers shared by every module of the service.
"""

from logpulse_shared.utils.logging import (
    get_logger,
    setup_logging,
    set_correlation_id,
)

__all__ = [
    "get_logger",
    "setup_logging",
    "set_correlation_id",
]

"""
LogPulse AI - HTTP API
"""

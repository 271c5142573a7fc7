"""
Recovery Ladder - error recovery and graceful degradation for assistant sessions.

Supervises fallible external operations (hooks, agents) and decides what
happens next when they fail: retry, substitute, degrade, or escalate.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]

"""
lexicore - adaptive review scheduling and mastery tracking for vocabulary
and grammar items.
"""

__version__ = "1.0.0"

"""
MoveFlow - yield aggregator vault on Movement Network
"""

__version__ = "1.0.0"

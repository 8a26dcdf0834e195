"""
CogCore — in-memory AtomSpace with economic attention allocation and
autonomous goal generation.
"""

__version__ = "0.1.0"

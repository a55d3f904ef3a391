"""
One-way periodic folder mirroring.
"""

__version__ = "1.0.0"

"""
flightgrid - Aircraft reservation grid for aeroclubs.
"""

__version__ = "0.1.0"

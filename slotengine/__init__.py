"""
slotengine - availability and slot computation for bookable event types.
"""

__version__ = "0.1.0"

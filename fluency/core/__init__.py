"""
Core Module - Shared display models.

Components:
- mastery: retention and speed bands (MasteryLevel, SpeedLevel)
"""

from fluency.core.mastery import MasteryLevel, SpeedLevel, merged_automaticity

__all__ = [
    "MasteryLevel",
    "SpeedLevel",
    "merged_automaticity",
]

"""
Fluency Drill: adaptive learner model for timed recall practice.

Subpackages:
- adaptive: recall/speed models, item selection, deadlines, recommendations, calibration
- delivery: persistence, session state machine, timers, terminal wrapper
- core: shared display vocabulary
"""

__version__ = "1.0.0"

"""
Adaptive Learner Model.

Components:
- recall_model: half-life forgetting curve and stability updates
- speed_model: speed score, automaticity, selection weights
- AdaptiveSelector: records outcomes and picks the next item
- DeadlineTracker: per-item adaptive time limit
- compute_recommendations: consolidate-before-expanding group suggestions
- CalibrationRunner / MotorBaseline: personal reaction-speed baseline
"""

from fluency.adaptive.calibration import (
    CalibrationRunner,
    MotorBaseline,
    get_calibration_thresholds,
)
from fluency.adaptive.config import (
    DEFAULT_CONFIG,
    DEFAULT_DEADLINE_CONFIG,
    AdaptiveConfig,
    DeadlineConfig,
    derive_scaled_config,
    scale_for_response_count,
)
from fluency.adaptive.deadline import (
    DeadlineTracker,
    adjust_deadline,
    compute_initial_deadline,
)
from fluency.adaptive.models import (
    CalibrationThreshold,
    GroupRecommendation,
    ItemStats,
    RecommendationResult,
)
from fluency.adaptive.recall_model import (
    compute_ewma,
    compute_recall,
    compute_stability_after_wrong,
    update_stability,
)
from fluency.adaptive.recommendations import compute_recommendations
from fluency.adaptive.selector import AdaptiveSelector
from fluency.adaptive.speed_model import (
    compute_automaticity,
    compute_median,
    compute_speed_score,
    compute_weight,
    select_weighted,
)

__all__ = [
    # Main components
    "AdaptiveSelector",
    "DeadlineTracker",
    "CalibrationRunner",
    "MotorBaseline",
    "compute_recommendations",
    # Config
    "AdaptiveConfig",
    "DeadlineConfig",
    "DEFAULT_CONFIG",
    "DEFAULT_DEADLINE_CONFIG",
    "derive_scaled_config",
    "scale_for_response_count",
    # Data models
    "ItemStats",
    "GroupRecommendation",
    "RecommendationResult",
    "CalibrationThreshold",
    # Pure functions
    "compute_ewma",
    "compute_recall",
    "update_stability",
    "compute_stability_after_wrong",
    "compute_speed_score",
    "compute_automaticity",
    "compute_weight",
    "select_weighted",
    "compute_median",
    "compute_initial_deadline",
    "adjust_deadline",
    "get_calibration_thresholds",
]

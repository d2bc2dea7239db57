from .budget import RateBudget, RateSnapshot
from .tracker import AdmissionDecision, UsageTracker

__all__ = ["AdmissionDecision", "RateBudget", "RateSnapshot", "UsageTracker"]

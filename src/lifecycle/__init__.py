"""Recommendation lifecycle management."""

from .models import CycleStats
from .recommendation_processor import RecommendationProcessor
from .sizing import PositionSizer, risk_fraction

__all__ = ["CycleStats", "PositionSizer", "RecommendationProcessor", "risk_fraction"]

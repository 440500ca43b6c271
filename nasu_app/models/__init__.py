"""Scoring and matching logic."""

from .job_match import JobMatchScorer, calculate_match_score
from .quick_match import QuickMatchWizard
from .store_match import calculate_match_rates, score_stores
from .targeting import base_customer_count, target_customer_count

__all__ = [
    "JobMatchScorer",
    "calculate_match_score",
    "QuickMatchWizard",
    "calculate_match_rates",
    "score_stores",
    "base_customer_count",
    "target_customer_count",
]

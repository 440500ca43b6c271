"""
Audience size estimate for the partner AI targeting engine.
"""

from ..utils.helpers import round_half_up

MIN_ACCURACY = 60
MAX_ACCURACY = 100
MIN_TARGET_RATIO = 0.3
MAX_TARGET_RATIO = 1.0


def base_customer_count(industry_key: str) -> int:
    """
    Reachable app members for a normalized industry key.

    Args:
        industry_key: e.g. "restaurant_cafe", "lodging", "general"

    Returns:
        Base audience size
    """
    key = industry_key or ""
    if "cafe" in key or "restaurant" in key or "beauty" in key:
        return 800
    if "lodging" in key or "pet_related" in key:
        return 400
    return 200


def clamp_accuracy(accuracy: float) -> float:
    return max(MIN_ACCURACY, min(MAX_ACCURACY, accuracy))


def target_customer_count(base_count: int, accuracy: float) -> int:
    """
    Audience left after applying the accuracy slider.

    A stricter accuracy narrows the audience linearly from 100% of the base
    at 60 down to 30% at 100.

    Args:
        base_count: Base audience size
        accuracy: Slider value; clamped to 60-100

    Returns:
        Target customer count
    """
    if base_count == 0:
        return 0
    progress = (clamp_accuracy(accuracy) - MIN_ACCURACY) / (MAX_ACCURACY - MIN_ACCURACY)
    ratio = MIN_TARGET_RATIO + (MAX_TARGET_RATIO - MIN_TARGET_RATIO) * (1 - progress)
    return round_half_up(base_count * ratio)

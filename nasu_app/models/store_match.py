"""
Store scoring for the quick-match wizard and the AI store finder.
"""

from typing import Any, Dict, List, Optional

from ..data.categories import ANYWHERE_AREA, get_score_for_option
from ..schemas.matching import SearchCriteria, StoreMatch
from ..utils.helpers import round_half_up

PLACEHOLDER_IMAGE_URL = "https://placehold.co/600x400/808080/FFF?text=No+Image"
MAX_MATCH_RATE = 100
MAX_FINDER_RESULTS = 10


def score_stores(
    stores: List[Dict[str, Any]],
    main_category: str,
    sub_category: str,
    area: Optional[str],
    values: List[str],
) -> List[Dict[str, Any]]:
    """
    Filter and score approved stores against the wizard answers.

    Args:
        stores: Store documents (each with `id`, `address`, `matchingValues`)
        main_category: Selected main category
        sub_category: Selected subcategory
        area: Selected area; "どこでも" disables the address filter
        values: Strengths the user picked (may be empty)

    Returns:
        Stores with `matchScore`, `matchedValues` and `scoreBreakdown`,
        highest score first
    """
    has_preferences = len(values) > 0
    scored: List[Dict[str, Any]] = []

    for store in stores:
        if area and area != ANYWHERE_AREA:
            address = store.get("address") or ""
            if area not in address:
                continue

        total_score = 0
        matched_values: List[str] = []
        breakdown: List[Dict[str, Any]] = []

        if has_preferences:
            strengths = store.get("matchingValues") or []
            for preference in values:
                if preference in strengths:
                    score = get_score_for_option(main_category, sub_category, preference)
                    total_score += score
                    matched_values.append(preference)
                    breakdown.append({"value": preference, "score": score})

            if total_score <= 0:
                continue

        scored.append({
            **store,
            "matchScore": total_score,
            "matchedValues": matched_values,
            "scoreBreakdown": breakdown,
        })

    # sorted() is stable, so equal scores keep the Firestore order
    return sorted(scored, key=lambda s: s["matchScore"], reverse=True)


def calculate_match_rate(criteria: SearchCriteria, store: Dict[str, Any]) -> int:
    """
    Match rate (0-100) of one store for the AI store finder.

    Args:
        criteria: Criteria extracted by Gemini
        store: Store profile document

    Returns:
        Match rate; 0 when any must-have is missing
    """
    description = store.get("description") or ""
    targets = store.get("selectedAiTargetsString") or ""
    name = store.get("storeName") or ""

    for must in criteria.must_haves:
        if must not in description and must not in targets:
            return 0

    rate = 30.0

    if criteria.keywords:
        keyword_hits = sum(1 for kw in criteria.keywords if kw in targets or kw in name)
        rate += 40 * (keyword_hits / len(criteria.keywords))

    if criteria.price_range and criteria.price_range != "any":
        rate += 10

    description_hits = sum(1 for kw in criteria.keywords[:3] if kw in description)
    rate += 20 * (description_hits / 3)

    return min(MAX_MATCH_RATE, round_half_up(rate))


def calculate_match_rates(
    criteria: SearchCriteria,
    stores: List[Dict[str, Any]],
    limit: int = MAX_FINDER_RESULTS,
) -> List[StoreMatch]:
    """
    Rate every store and keep the best ones.

    Args:
        criteria: Criteria extracted by Gemini
        stores: Store profile documents
        limit: Number of results to return

    Returns:
        Highest match rates first
    """
    results = [
        StoreMatch(
            id=store.get("id", ""),
            name=store.get("storeName") or "",
            description=store.get("description") or "",
            category=store.get("mainCategory") or "",
            image_url=store.get("mainImageUrl") or PLACEHOLDER_IMAGE_URL,
            match_rate=calculate_match_rate(criteria, store),
        )
        for store in stores
    ]
    results.sort(key=lambda r: r.match_rate, reverse=True)
    return results[:limit]

"""
Job matching score engine.
Scores a job seeker against a posting on salary, role, skills, schedule and shared values.
"""

import re
from typing import List, Optional, Tuple

from ..schemas.matching import CompanyProfile, JobPosting, JobSeekerProfile
from ..utils.helpers import round_half_up

_TOKEN_SPLIT = re.compile(r"[,\s・、。.]+")

VALUE_CATEGORIES = ("atmosphere", "growth", "wlb", "benefits", "organization")
DEFAULT_MIN_MATCH_SCORE = 60
MAX_SCORE = 99
MAX_REASONS = 3


def _tokens(text: str) -> set:
    return {word for word in _TOKEN_SPLIT.split(text.lower()) if len(word) > 1}


def semantic_similarity(user_text: str, required_text: str) -> float:
    """
    Share of required words that also appear in the user's text.

    Args:
        user_text: Free text from the job seeker (skills, hours)
        required_text: Free text from the posting

    Returns:
        Ratio between 0 and 1
    """
    if not user_text or not required_text:
        return 0.0

    user_words = _tokens(user_text)
    required_words = _tokens(required_text)
    if not required_words:
        return 0.0
    return len(required_words & user_words) / len(required_words)


def day_match(user_days: List[str], job_days: List[str]) -> float:
    """
    Share of the job's working days the user can cover.

    Args:
        user_days: Days the user prefers to work
        job_days: Days the posting requires

    Returns:
        Ratio between 0 and 1; 0 when either list is empty
    """
    if not job_days or not user_days:
        return 0.0
    job_day_set = set(job_days)
    matched = sum(1 for day in user_days if day in job_day_set)
    return matched / len(job_days)


class JobMatchScorer:
    """
    Rule-based scorer for job seeker / posting pairs.
    The score is capped at 99; reasons explain the main contributions.
    """

    def calculate(
        self,
        user: JobSeekerProfile,
        job: JobPosting,
        company: Optional[CompanyProfile] = None,
    ) -> Tuple[int, List[str]]:
        """
        Calculate the match score for one pair.

        Args:
            user: Job seeker preferences
            job: Job posting
            company: Company settings (minimum acceptable score)

        Returns:
            Tuple of (score, up to three unique reasons)
        """
        company = company or CompanyProfile()
        score = 0.0
        reasons: List[str] = []

        score += self._salary_score(user, job, reasons)

        if job.job_category in user.desired_job_types:
            score += 20
            reasons.append(f"希望職種({job.job_category})と完全に一致します")

        if user.desired_employment_type == job.employment_type:
            score += 5
            reasons.append("希望雇用形態が一致しています")

        skill_similarity = semantic_similarity(user.skills, job.required_skills)
        if skill_similarity > 0.4:
            score += round_half_up(skill_similarity * 10)
            reasons.append(f"必須スキル要求度が約{round_half_up(skill_similarity * 100)}%適合しています")

        day_ratio = day_match(user.preferred_working_days, job.working_days)
        if day_ratio > 0.5:
            score += round_half_up(day_ratio * 10)
            reasons.append(f"希望勤務曜日が求人の{round_half_up(day_ratio * 100)}%カバーしています")

        if semantic_similarity(user.preferred_working_hours, job.working_hours) > 0.2:
            score += 5
            reasons.append("希望勤務時間が概ね適合しています")

        score += self._values_score(user, job)

        final_score = min(round_half_up(score), MAX_SCORE)

        min_score = company.min_match_score or DEFAULT_MIN_MATCH_SCORE
        if final_score >= min_score:
            reasons.insert(0, f"AIスコア{final_score}点は企業が設定した最低許容スコア({min_score}点)を上回っています！")
        else:
            reasons.insert(0, f"AIスコア{final_score}点は企業の最低許容スコア({min_score}点)を下回っています。")

        unique_reasons = list(dict.fromkeys(reasons))[:MAX_REASONS]
        return final_score, unique_reasons

    def _salary_score(self, user: JobSeekerProfile, job: JobPosting, reasons: List[str]) -> float:
        """Salary contribution, capped at 30."""
        salary_score = 0.0
        desired_mid = (user.desired_salary_min + user.desired_salary_max) / 2
        job_mid = (job.salary_min + job.salary_max) / 2

        if user.desired_salary_max >= job.salary_min and user.desired_salary_min <= job.salary_max:
            salary_score += 30
            reasons.append("希望給与帯が求人の提示範囲と重なっています")
        elif job.salary_max >= user.desired_salary_max:
            salary_score += 15
            reasons.append("求人の提示額があなたの希望を充足しています")

        if desired_mid > 0 and job_mid > 0:
            difference_ratio = abs(desired_mid - job_mid) / desired_mid
            if difference_ratio < 0.1:
                salary_score += 5
                reasons.append("希望給与の中央値と求人の中央値が非常に近いです")
            elif difference_ratio < 0.2:
                salary_score += 3

        return min(salary_score, 30)

    def _values_score(self, user: JobSeekerProfile, job: JobPosting) -> int:
        """Two points per shared value tag, capped at 20."""
        points = 0
        for category in VALUE_CATEGORIES:
            wants = set(getattr(user.matching_values, category))
            offers = set(getattr(job.appeal_points, category))
            points += len(wants & offers) * 2
        return min(points, 20)


def calculate_match_score(
    user: JobSeekerProfile,
    job: JobPosting,
    company: Optional[CompanyProfile] = None,
) -> Tuple[int, List[str]]:
    """Module-level shortcut for JobMatchScorer().calculate."""
    return JobMatchScorer().calculate(user, job, company)

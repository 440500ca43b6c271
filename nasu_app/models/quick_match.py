"""
Quick-match wizard state machine.
Step 1 picks the main category, step 2 the subcategory, step 3 the area and
step 4 up to three preferred strengths.
"""

from typing import Dict, List, Optional

from ..data.categories import AREAS, CATEGORY_DATA, OTHER_SUBCATEGORY, get_value_options
from ..exceptions import ValidationError
from ..schemas.matching import QuickMatchSubmission

MAX_SELECTION = 3
FIRST_STEP = 1
VALUES_STEP = 4
EXIT_DESTINATION = "/search-dashboard"


class QuickMatchWizard:
    """Wizard state; every transition validates against the static catalogue."""

    def __init__(self):
        self.step = FIRST_STEP
        self.main_category: Optional[str] = None
        self.sub_category: Optional[str] = None
        self.area: Optional[str] = None
        self.values: List[str] = []
        self.completed = False

    def select_main(self, category: str) -> None:
        if category not in CATEGORY_DATA:
            raise ValidationError(f"不明なカテゴリです: {category}")
        self.main_category = category
        self.sub_category = None
        self.area = None
        self.values = []
        self.completed = False
        self.step = 2

    def select_sub(self, category: str) -> None:
        if self.main_category is None or category not in CATEGORY_DATA[self.main_category]:
            raise ValidationError(f"不明な詳細カテゴリです: {category}")
        self.sub_category = category
        self.area = None
        self.values = []
        self.completed = False
        self.step = 3

    def select_area(self, area: str) -> None:
        """
        Select the area. "その他" has no strength questions, so the wizard
        completes here without a fourth step.
        """
        if self.sub_category is None:
            raise ValidationError("詳細カテゴリを先に選択してください。")
        if area not in AREAS:
            raise ValidationError(f"不明なエリアです: {area}")
        self.area = area
        self.values = []
        if self.sub_category == OTHER_SUBCATEGORY:
            self.completed = True
        else:
            self.step = VALUES_STEP

    def toggle_value(self, value: str) -> None:
        """Add or remove a strength; additions past the limit are ignored."""
        if value in self.values:
            self.values.remove(value)
        elif len(self.values) < MAX_SELECTION:
            self.values.append(value)

    def back(self) -> Optional[str]:
        """
        Go back one step.

        Returns:
            The page to leave to when already at the first step, else None
        """
        self.completed = False
        if self.step > FIRST_STEP:
            self.step -= 1
            return None
        return EXIT_DESTINATION

    def finish(self) -> None:
        if self.step != VALUES_STEP and not self.completed:
            raise ValidationError("ウィザードが完了していません。")
        self.completed = True

    def results_query(self) -> Dict[str, str]:
        """Query parameters for the results page."""
        if not self.completed:
            raise ValidationError("ウィザードが完了していません。")
        return {
            "mainCategory": self.main_category or "",
            "subCategory": self.sub_category or "",
            "area": self.area or "",
            "values": ",".join(self.values),
        }

    @classmethod
    def from_submission(cls, submission: QuickMatchSubmission) -> "QuickMatchWizard":
        """
        Replay a submitted wizard state, validating every step.

        Args:
            submission: Final selections posted by the page

        Returns:
            Completed wizard
        """
        wizard = cls()
        wizard.select_main(submission.main_category)
        wizard.select_sub(submission.sub_category)
        wizard.select_area(submission.area)
        if not wizard.completed:
            allowed = set(get_value_options(wizard.sub_category))
            if len(submission.values) > MAX_SELECTION:
                raise ValidationError(f"好みは最大{MAX_SELECTION}つまで選択できます。")
            for value in submission.values:
                if value not in allowed:
                    raise ValidationError(f"不明な選択肢です: {value}")
                wizard.toggle_value(value)
            wizard.finish()
        return wizard

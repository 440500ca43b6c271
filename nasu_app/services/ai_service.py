"""
AI service: template pages and the company profile compliance review.
"""

from datetime import datetime, timezone
from typing import Any, Dict, Optional
import pydantic
from fastapi.concurrency import run_in_threadpool
from loguru import logger

from ..config import settings
from ..data.ai_templates import get_template
from ..exceptions import ExternalServiceError, ResourceNotFoundError, ValidationError
from ..schemas.ai import AiResult, ReviewResult, ReviewStatus
from ..utils.api_clients import GeminiClient
from ..utils.firebase_client import FirebaseClient
from ..utils.validators import summarize_errors

REVIEW_ERROR_FEEDBACK = "AI審査中にエラーが発生しました。時間をおいて再度お試しください。"

REVIEW_SYSTEM_PROMPT = """
あなたは、日本の労働法規（職業安定法、男女雇用機会均等法）、景品表示法、および主要な判例に精通した、**ゼロ・トレランス（一切の妥協を許さない）**のAIコンプライアンス・オフィサーです。
あなたの唯一の任務は、求職者に誤解や不利益を与える可能性のある表現を**一切見逃さず**、法的・倫理的リスクを完全に排除することです。

以下の基準に基づき、提出されたプロフィール文章を極めて厳格に審査してください。

1.  **【差別の根絶】特定の層を不当に排除・優遇する表現の完全な排除:**
    * **禁止例:** 「20代が活躍中」「30歳までの方」「女性歓迎」「主婦歓迎」「男性限定」「体力に自信のある方」「営業マン募集」など、性別・年齢・国籍・心身の条件で応募を制限、あるいは特定の層を不当に歓迎していると解釈されうる全ての表現を検出してください。
    * **例外:** ポジティブ・アクションとして法的に認められるケース（例：女性比率が極端に低い職種での女性歓迎）のみを例外として許可します。

2.  **【誇大・誤解表現の排除】客観的根拠のない表現の完全な排除:**
    * **禁止例:** 「誰でも稼げる」「必ず成功」「絶対」「楽な仕事」など、求職者に誤った期待を抱かせる断定的な表現や、客観的データの裏付けがない成功事例を検出してください。

3.  **【労働条件の明確化】曖昧な表現の完全な排除:**
    * 給与範囲が、勤務地の最新の最低賃金を下回っていないか確認してください。
    * 「みなし残業代」「固定残業代」を含む場合、その金額と時間数が明確に記載されているか確認してください。記載がなければ不明確と判断してください。

**【出力形式】**
審査結果を、必ず以下のJSON形式で出力してください。
- statusフィールドには、"approved" または "requires_changes" のいずれかの文字列を指定してください。
- feedbackフィールドには、日本語で具体的かつ根拠に基づいたフィードバックを記述してください。
- **判断基準:** 少しでも懸念があれば "requires_changes" と判断してください。"approved" は、法的にも倫理的にも完全にクリーンであるとあなたが保証できる場合にのみ使用してください。
"""

REVIEW_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "status": {"type": "STRING", "enum": [s.value for s in ReviewStatus]},
        "feedback": {"type": "STRING"},
    },
    "required": ["status", "feedback"],
}


def build_profile_text(profile: Dict[str, Any]) -> str:
    """
    Render the company profile fields the review looks at.

    Args:
        profile: User document of the company

    Returns:
        Multi-line profile text
    """
    appeal = profile.get("appealPoints") or {}

    def joined(key: str) -> str:
        return ", ".join(appeal.get(key) or [])

    return "\n".join([
        f"ミッション: {profile.get('ourMission') or ''}",
        f"事業内容: {profile.get('whatWeDo') or ''}",
        f"カルチャー: {profile.get('ourCulture') or ''}",
        f"メッセージ: {profile.get('messageToCandidates') or ''}",
        f"企業の制度・文化（雰囲気）: {joined('atmosphere')}",
        f"企業の制度・文化（成長機会）: {joined('growth')}",
        f"企業の制度・文化（WLB）: {joined('wlb')}",
        f"企業の制度・文化（福利厚生）: {joined('benefits')}",
    ])


def verification_status(review: ReviewResult) -> str:
    return "verified" if review.status == ReviewStatus.APPROVED.value else "rejected"


class AiService:
    """Gemini-backed utility pages and profile review."""

    def __init__(self, gemini: GeminiClient, firebase: Optional[FirebaseClient] = None):
        self.gemini = gemini
        self.firebase = firebase

    async def run_template(self, name: str, payload: Optional[Dict[str, Any]]) -> AiResult:
        """
        Render a template with the request payload and call Gemini.

        Args:
            name: Template name from the URL
            payload: Raw JSON body

        Returns:
            Parsed JSON for schema templates, markdown text otherwise
        """
        template = get_template(name)
        if template is None:
            raise ResourceNotFoundError(f"Unknown AI template: {name}")

        try:
            request = template.parse(payload)
        except pydantic.ValidationError as e:
            raise ValidationError("入力内容に誤りがあります。", details=summarize_errors(e.errors())) from e

        parts = template.render(request)
        if template.schema is not None:
            result = await self.gemini.generate_json(
                parts.prompt,
                template.schema,
                system_instruction=parts.system_instruction,
            )
        else:
            result = await self.gemini.generate_text(
                parts.prompt,
                system_instruction=parts.system_instruction,
                image=parts.image,
            )
        logger.info(f"AI template '{template.name}' completed")
        return AiResult(result=result)

    async def review_profile(self, uid: str) -> Dict[str, Any]:
        """
        Run the compliance review on a company profile and store the verdict.

        On any failure the profile is reset to `unverified` and the error re-raised.

        Args:
            uid: Company user UID

        Returns:
            `{"status": "success", "review": {...}}`
        """
        if not uid:
            raise ValidationError("UID is required")

        user_ref = self.firebase.db.collection(settings.firestore_collection_users).document(uid)
        snap = await run_in_threadpool(user_ref.get)
        if not snap.exists:
            raise ResourceNotFoundError("User not found")

        try:
            raw = await self.gemini.generate_json(
                f"以下の企業プロフィールを審査してください：\n\n{build_profile_text(snap.to_dict() or {})}",
                REVIEW_SCHEMA,
                system_instruction=REVIEW_SYSTEM_PROMPT,
            )
            try:
                review = ReviewResult.model_validate(raw)
            except pydantic.ValidationError as e:
                raise ExternalServiceError("AIの応答形式が不正です。") from e
            await run_in_threadpool(user_ref.update, {
                "verificationStatus": verification_status(review),
                "aiFeedback": review.feedback,
                "reviewedAt": datetime.now(timezone.utc),
            })
        except Exception as e:
            logger.error(f"AI review failed for {uid}: {e}")
            await run_in_threadpool(user_ref.update, {
                "verificationStatus": "unverified",
                "aiFeedback": REVIEW_ERROR_FEEDBACK,
            })
            raise

        logger.info(f"AI review of {uid}: {review.status}")
        return {"status": "success", "review": review.to_api()}

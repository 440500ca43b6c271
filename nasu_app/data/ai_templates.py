"""
Prompt templates for the AI utility pages.

Each template validates its request, renders the prompt and names the response
schema Gemini must follow (None for free markdown text).
"""

from datetime import date
from typing import Any, Dict, Optional, Type

from ..exceptions import ValidationError
from ..schemas.ai import (
    DailyFortuneRequest,
    Gender,
    LifeHacksRequest,
    MorningComplimentRequest,
    PalmistryRequest,
    PromptParts,
    RecipeRequest,
    RelationshipContext,
    RelationshipHintRequest,
)
from ..schemas.common import ApiModel
from ..utils.helpers import decode_image, format_japanese_date, now_jst

CUSTOM_OPTION = "その他（自由に記入）"
DEFAULT_SERVINGS = 2

FORTUNE_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "overall": {"type": "STRING", "description": "今日の総合運 (150文字以内)"},
        "love": {"type": "STRING", "description": "今日の恋愛運 (70文字以内)"},
        "work": {"type": "STRING", "description": "今日の仕事運 (70文字以内)"},
        "money": {"type": "STRING", "description": "今日の金運 (70文字以内)"},
        "luckyItem": {"type": "STRING", "description": "ラッキーアイテム"},
        "advice": {"type": "STRING", "description": "運気を上げるための具体的な行動アドバイス"},
    },
    "required": ["overall", "love", "work", "money", "luckyItem", "advice"],
}

HACK_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "hacks": {
            "type": "ARRAY",
            "description": "生活の裏技5つ",
            "items": {
                "type": "OBJECT",
                "properties": {
                    "title": {"type": "STRING", "description": "裏技のキャッチーなタイトル"},
                    "category": {"type": "STRING", "description": "カテゴリ（例: 掃除, 料理, 収納）"},
                    "description": {"type": "STRING", "description": "裏技の具体的な手順と効果"},
                },
                "required": ["title", "category", "description"],
            },
        },
    },
    "required": ["hacks"],
}

COMPLIMENT_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "compliment": {"type": "STRING", "description": "ユーザーの自信を高めるポジティブなメッセージ (100文字程度)"},
        "theme": {"type": "STRING", "description": "今日のポジティブな行動テーマ (例: 集中力, 協調性, 休息)"},
        "advice": {"type": "STRING", "description": "そのテーマを達成するための具体的で優しいアドバイス"},
    },
    "required": ["compliment", "theme", "advice"],
}

HINT_SCHEMA = {
    "type": "OBJECT",
    "properties": {
        "type": {"type": "STRING", "description": "診断された苦手な相手のタイプ（例：完璧主義者、感情的タイプ）"},
        "strategy": {"type": "STRING", "description": "そのタイプへの具体的な攻略戦略（接し方の基本）"},
        "phrases": {
            "type": "ARRAY",
            "description": "相手に響く/ストレスを減らすための具体的な会話フレーズ3つ",
            "items": {"type": "STRING"},
        },
        "stressRelief": {"type": "STRING", "description": "相手と接した後のストレス解消法または思考法のヒント"},
    },
    "required": ["type", "strategy", "phrases", "stressRelief"],
}

RELATIONSHIP_TYPES = [
    "完璧主義で細かい指摘が多い人",
    "感情的で気分屋な人",
    "自己中心的で人の話を聞かない人",
    "受動的で何を考えているかわからない人",
    "理屈っぽく、正論でマウントを取る人",
    CUSTOM_OPTION,
]


def resolve_custom_option(selected: str, custom: str) -> str:
    """Use the free-text value when the "その他" option is picked and filled in."""
    if selected == CUSTOM_OPTION and custom.strip():
        return custom.strip()
    return selected.strip()


class AiTemplate:
    """Base class for an AI utility page."""

    name: str = ""
    request_model: Type[ApiModel] = ApiModel
    schema: Optional[Dict[str, Any]] = None

    def parse(self, payload: Dict[str, Any]) -> ApiModel:
        return self.request_model.model_validate(payload or {})

    def render(self, request: Any, today: Optional[date] = None) -> PromptParts:
        raise NotImplementedError


class DailyFortuneTemplate(AiTemplate):
    """Daily fortune from the user's birthday."""

    name = "daily_fortune"
    request_model = DailyFortuneRequest
    schema = FORTUNE_SCHEMA

    def render(self, request: DailyFortuneRequest, today: Optional[date] = None) -> PromptParts:
        if not request.birthday.strip():
            raise ValidationError("生年月日を入力してください。")

        date_string = format_japanese_date(today or now_jst().date(), with_weekday=True)
        system_prompt = (
            "あなたは、日本の那須地域専門の、優しくポジティブな運勢鑑定AIです。"
            f"生年月日({request.birthday})に基づき、今日の運勢を診断してください。\n\n"
            f"【診断日】: {date_string}\n\n"
            "【重要】\n"
            "1. 出力は必ずJSON形式とし、指定されたスキーマに従ってください。\n"
            "2. 全ての運勢は非常にポジティブで、希望を与える内容にしてください。\n"
            "3. 運勢の根拠や生成過程は不要です。診断結果のみを簡潔に出力してください。"
        )
        return PromptParts(system_instruction=system_prompt, prompt="今日の運勢を診断してください。")


class LifeHacksTemplate(AiTemplate):
    """Five household tips for a theme."""

    name = "life_hacks"
    request_model = LifeHacksRequest
    schema = HACK_SCHEMA

    def render(self, request: LifeHacksRequest, today: Optional[date] = None) -> PromptParts:
        theme = resolve_custom_option(request.theme, request.custom_theme)
        if not theme or theme == CUSTOM_OPTION:
            raise ValidationError("テーマを選択または入力してください。")

        system_prompt = (
            "あなたは、日本の主婦・女性層をターゲットとした、生活の知恵を提供するAIです。"
            "ユーザーが選んだテーマに関する、すぐに試せる具体的で役立つ裏技を5つ提案してください。\n\n"
            "【重要】\n"
            "1. 出力は必ずJSON形式とし、指定されたスキーマに従ってください。\n"
            "2. 情報は実用的かつ安全なものに限定してください。\n"
            "3. テーマに沿った裏技のみを生成してください。"
        )
        prompt = f"テーマ「{theme}」について、主婦が「知らなかった！」と思うような裏技を5つ、簡潔に教えてください。"
        return PromptParts(system_instruction=system_prompt, prompt=prompt)


class MorningComplimentTemplate(AiTemplate):
    """Morning pep talk with a theme for the day."""

    name = "morning_compliment"
    request_model = MorningComplimentRequest
    schema = COMPLIMENT_SCHEMA

    def render(self, request: MorningComplimentRequest, today: Optional[date] = None) -> PromptParts:
        system_prompt = (
            "あなたは、日本の主婦・女性層に特化した、自己肯定感を高めるポジティブなコーチングAIです。"
            "ユーザーが今日一日を最高に過ごせるよう、優しさと共感を持って、"
            "励ましのメッセージと具体的な行動テーマを提案してください。"
        )
        prompt = "私の今日のモチベーションを高めるための、ポジティブで心に響くメッセージと、達成すべき行動テーマをJSON形式で提案してください。"
        return PromptParts(system_instruction=system_prompt, prompt=prompt)


class RelationshipHintTemplate(AiTemplate):
    """Strategy for dealing with a difficult person."""

    name = "relationship_hint"
    request_model = RelationshipHintRequest
    schema = HINT_SCHEMA

    def render(self, request: RelationshipHintRequest, today: Optional[date] = None) -> PromptParts:
        person_type = resolve_custom_option(request.type or RELATIONSHIP_TYPES[0], request.custom_type)
        if not person_type or person_type == CUSTOM_OPTION:
            raise ValidationError("相手のタイプを選択または入力してください。")

        if request.context == RelationshipContext.BUSINESS:
            context_text = "ビジネス（職場、取引先）での、礼儀正しさと効率を重視した言葉遣いと戦略"
        else:
            context_text = "プライベート（友人、家族、ママ友）での、感情的なサポートと共感を重視した言葉遣いと戦略"

        def label(g: Gender) -> str:
            return "女性" if g == Gender.FEMALE else "男性"

        gender_context = f"接する側: {label(request.user_gender)}。苦手な相手: {label(request.target_gender)}。"

        system_prompt = (
            "あなたは、人間関係の心理学とコミュニケーション術に詳しい専門家です。"
            "以下の情報に基づいて、ユーザーがストレスを最小限に抑えるための具体的な戦略とヒントを提案してください。\n\n"
            "【重要】\n"
            "1. 出力は必ずJSON形式とし、指定されたスキーマに従ってください。\n"
            "2. トーンは専門的でありながらも、ユーザーに寄り添う優しい言葉遣いにしてください。\n"
            f"3. 回答の文脈は「{context_text}」と「{gender_context}」を想定して、最適な言葉遣いと戦略を提案してください。"
        )
        prompt = (
            f"苦手な相手のタイプ: 「{person_type}」。文脈: {context_text} ({gender_context})。"
            "これらに基づき、最も効果的な接し方、具体的なフレーズ、そしてユーザー自身のストレスを減らす方法を提案してください。"
        )
        return PromptParts(system_instruction=system_prompt, prompt=prompt)


class RecipeTemplate(AiTemplate):
    """One home recipe from the ingredients at hand."""

    name = "recipe"
    request_model = RecipeRequest

    def render(self, request: RecipeRequest, today: Optional[date] = None) -> PromptParts:
        ingredients = [i.strip() for i in request.ingredients if i and i.strip()]
        if not ingredients:
            raise ValidationError("食材リストが空です。")

        servings = request.servings or DEFAULT_SERVINGS
        prompt = (
            "あなたは家庭料理のプロです。以下の食材リストを使って作れる、簡単で美味しいレシピを1つだけ提案してください。\n"
            "主婦が喜ぶような、手軽で節約になるレシピが良いです。\n\n"
            "【条件】\n"
            f"- 分量は **{servings}人分** で計算してください。\n"
            "- 家にありそうな基本調味料（醤油、塩コショウ、マヨネーズ、酒、みりん、砂糖など）は自由に使ってOKです。\n"
            "- 食材リストにあるものすべてを使う必要はありません。\n\n"
            "【在庫食材リスト】\n"
            f"{', '.join(ingredients)}\n\n"
            "【出力フォーマット】\n"
            "## 料理名\n"
            "(キャッチーなタイトル)\n\n"
            f"**材料 ({servings}人分):**\n"
            "- 食材A: 〇〇個\n"
            "- 食材B: 〇〇g\n"
            "- 調味料など\n\n"
            "**作り方:**\n"
            "1. 手順1\n"
            "2. 手順2\n"
            "3. 手順3\n\n"
            "**ポイント:**\n"
            "(美味しく作るコツや、時短テクニックを一言)"
        )
        return PromptParts(prompt=prompt)


class PalmistryTemplate(AiTemplate):
    """Palm reading from a photo of the user's hand."""

    name = "palmistry"
    request_model = PalmistryRequest

    def render(self, request: PalmistryRequest, today: Optional[date] = None) -> PromptParts:
        if not request.image:
            raise ValidationError("画像データがありません")
        try:
            image = decode_image(request.image)
        except ValueError as e:
            raise ValidationError("画像データの形式が正しくありません。") from e

        prompt = (
            "あなたは「那須の母」と呼ばれる伝説の手相占い師です。\n"
            "送られてきた手のひらの画像を詳細に分析し、相談者が「自分の手のどこを見ればいいか」が分かるように解説付きで占ってください。\n"
            "画像が手相でない場合や、不鮮明で見えない場合は正直に「よく見えません」と伝えてください。\n\n"
            "【出力構成】\n"
            "以下の4つの項目について、必ず「線の特徴（事実）」と「その意味（解説）」をセットで話してください。\n\n"
            "1. **生命線（健康・バイタリティ）**\n"
            "2. **知能線（才能・考え方）**\n"
            "3. **感情線（性格・恋愛）**\n"
            "4. **那須の母より（開運アドバイス）**\n"
            "   - 手相全体から見た、今一番伝えるべき温かいメッセージ\n\n"
            "口調は「〜じゃよ」「〜だねぇ」「安心おし」といった、包容力のある温かいおばあちゃん言葉で統一してください。\n"
            "マークダウン形式で見やすく出力してください。"
        )
        return PromptParts(prompt=prompt, image=image)


TEMPLATES: Dict[str, AiTemplate] = {
    template.name: template
    for template in (
        DailyFortuneTemplate(),
        LifeHacksTemplate(),
        MorningComplimentTemplate(),
        RelationshipHintTemplate(),
        RecipeTemplate(),
        PalmistryTemplate(),
    )
}


def get_template(name: str) -> Optional[AiTemplate]:
    """Look up a template by its URL name (hyphens or underscores)."""
    return TEMPLATES.get(name.replace("-", "_"))

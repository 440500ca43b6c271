"""
Static catalogue behind the AI quick-match wizard.

Main categories, their subcategories, the selectable areas, and the
"strength" options partners register for each subcategory, together with the
points each option is worth when a user picks it.
"""

from typing import Dict, List

OTHER_SUBCATEGORY = "その他"
ANYWHERE_AREA = "どこでも"

AREAS: List[str] = ["那須塩原市", "大田原市", "那須町", ANYWHERE_AREA]

CATEGORY_DATA: Dict[str, List[str]] = {
    "飲食": ["カフェ", "パン屋（ベーカリー）", "ラーメン", "和食・寿司", "焼肉", OTHER_SUBCATEGORY],
    "美容・健康": ["美容室", "ネイルサロン", "整体・マッサージ", OTHER_SUBCATEGORY],
    "暮らし": ["リフォーム", "クリーニング", "不動産", OTHER_SUBCATEGORY],
    "ペット": ["トリミング", "動物病院", "ペットホテル", OTHER_SUBCATEGORY],
    "宿泊・観光": ["旅館・ホテル", "ペンション", "体験・アクティビティ", OTHER_SUBCATEGORY],
}

MAIN_CATEGORIES: List[str] = list(CATEGORY_DATA.keys())

# Each option maps to its score (1-5). Subcategories without questions
# (e.g. "その他") skip the last wizard step.
VALUE_QUESTIONS: Dict[str, Dict[str, int]] = {
    "カフェ": {
        "自家焙煎のコーヒー": 5,
        "電源・Wi-Fiあり": 3,
        "子連れ歓迎": 4,
        "テラス席あり": 2,
        "手作りスイーツ": 4,
    },
    "パン屋（ベーカリー）": {
        "自家製天然酵母を使用": 5,
        "地元産小麦を使用": 4,
        "朝7時から営業": 3,
        "イートインあり": 2,
        "予約取り置き可": 2,
    },
    "ラーメン": {
        "無化調スープ": 5,
        "自家製麺": 4,
        "深夜営業": 2,
        "駐車場完備": 2,
    },
    "和食・寿司": {
        "地元食材にこだわり": 5,
        "個室あり": 3,
        "ランチ営業": 2,
        "日本酒の品揃え": 3,
    },
    "焼肉": {
        "那須和牛を提供": 5,
        "食べ放題あり": 3,
        "個室あり": 3,
        "子連れ歓迎": 3,
    },
    "美容室": {
        "カットが上手い": 5,
        "髪質改善メニュー": 4,
        "キッズスペースあり": 3,
        "当日予約OK": 2,
        "個室で施術": 3,
    },
    "ネイルサロン": {
        "持ち込みデザインOK": 4,
        "ケアが丁寧": 5,
        "夜間営業": 2,
    },
    "整体・マッサージ": {
        "国家資格保有": 5,
        "産後ケア対応": 4,
        "土日営業": 2,
        "駐車場完備": 2,
    },
    "リフォーム": {
        "地元密着で実績豊富": 5,
        "見積もり無料": 3,
        "補助金申請サポート": 4,
    },
    "クリーニング": {
        "即日仕上げ": 4,
        "宅配対応": 3,
        "シミ抜きが得意": 5,
    },
    "不動産": {
        "空き家相談に強い": 5,
        "移住サポート": 4,
        "土日相談OK": 2,
    },
    "トリミング": {
        "大型犬対応": 4,
        "送迎あり": 3,
        "猫のトリミング可": 4,
        "ケージフリー": 5,
    },
    "動物病院": {
        "夜間救急対応": 5,
        "エキゾチックアニマル対応": 4,
        "予約制で待ち時間少なめ": 3,
    },
    "ペットホテル": {
        "24時間スタッフ常駐": 5,
        "個室あり": 3,
        "ドッグラン併設": 4,
    },
    "旅館・ホテル": {
        "源泉かけ流し": 5,
        "ペット同伴可": 4,
        "貸切風呂あり": 4,
        "送迎あり": 2,
    },
    "ペンション": {
        "ペット同伴可": 5,
        "手作りディナー": 4,
        "高原の眺望": 3,
    },
    "体験・アクティビティ": {
        "雨の日もOK": 4,
        "子ども向けプログラム": 4,
        "手ぶらで参加可": 3,
        "少人数制": 3,
    },
}

DEFAULT_OPTION_SCORE = 1


def get_score_for_option(main_category: str, sub_category: str, option: str) -> int:
    """
    Points an option is worth when a user picks it.

    Args:
        main_category: Main category of the search
        sub_category: Subcategory whose question set holds the option
        option: The strength text the user picked

    Returns:
        Score between 1 and 5; unknown options score the default
    """
    if sub_category not in CATEGORY_DATA.get(main_category, []):
        return DEFAULT_OPTION_SCORE
    return VALUE_QUESTIONS.get(sub_category, {}).get(option, DEFAULT_OPTION_SCORE)


def get_value_options(sub_category: str) -> List[str]:
    """Strength options offered for a subcategory (empty when it has none)."""
    return list(VALUE_QUESTIONS.get(sub_category, {}).keys())

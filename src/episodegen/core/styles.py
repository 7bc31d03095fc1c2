"""Catalogues de styles de titre et de synopsis (identifiants stables, libellés affichés)."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Iterable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StyleOption:
    id: str
    name: str
    description: str
    icon: str = ""

    @property
    def prompt_label(self) -> str:
        """Forme injectée dans les prompts : « nom(description) »."""
        return f"{self.name}({self.description})"


class StyleCatalog:
    """Ensemble ordonné de styles indexés par id."""

    def __init__(self, styles: Iterable[StyleOption]):
        self._styles: dict[str, StyleOption] = {}
        for style in styles:
            self._styles[style.id] = style

    def __contains__(self, style_id: object) -> bool:
        return style_id in self._styles

    def __iter__(self):
        return iter(self._styles.values())

    def __len__(self) -> int:
        return len(self._styles)

    def get(self, style_id: str | None) -> StyleOption | None:
        if style_id is None:
            return None
        return self._styles.get(style_id)

    def name_of(self, style_id: str | None) -> str:
        """Libellé du style, ou l'id brut s'il est inconnu."""
        style = self.get(style_id)
        if style:
            return style.name
        return style_id or ""

    def filter_known(self, style_ids: Iterable[str]) -> list[str]:
        """Garde les ids connus (ordre et doublons préservés) ; journalise les autres."""
        valid: list[str] = []
        for style_id in style_ids:
            if style_id in self._styles:
                valid.append(style_id)
            else:
                logger.warning("Unknown summary style id skipped: %s", style_id)
        return valid


CRUNCHYROLL = "crunchyroll"
NETFLIX = "netflix"
AI_FREE = "ai_free"

TITLE_STYLES = StyleCatalog(
    [
        StyleOption("location_skill", "地名招式风格", "优先使用字幕中出现的具体地名、招式名、技能名作为标题核心，采用简洁的组合方式，如：树神之谜、封印之战、古村秘密等，避免使用冒号或复杂格式", "⚔️"),
        StyleOption("character_focus", "角色聚焦", "以主要角色名字和行动为标题重点，突出角色的成长与变化", "👤"),
        StyleOption("plot_highlight", "情节亮点", "突出本集最重要的情节转折点，强调故事发展的关键节点", "🎯"),
        StyleOption("emotional_core", "情感核心", "以情感冲突或情感高潮为标题主题，注重内心世界的描绘", "💫"),
        StyleOption("mystery_suspense", "悬疑推理", "营造神秘感和悬念，使用暗示性的表达，如：消失的真相、隐藏的秘密、未解之谜", "🔍"),
        StyleOption("action_adventure", "动作冒险", "强调动作场面和冒险元素，使用动感十足的词汇，如：激战、追击、突破、征服", "⚡"),
        StyleOption("romantic_drama", "浪漫情感", "突出爱情线和情感纠葛，使用温馨或戏剧化的表达，如：心动时刻、告白之夜、离别之痛", "💕"),
        StyleOption("philosophical", "哲理思辨", "体现深层思考和人生哲理，使用富有思辨性的词汇，如：选择、命运、真理、觉醒", "🤔"),
        StyleOption("comedy_humor", "喜剧幽默", "突出轻松幽默的元素，使用俏皮或反差的表达，如：意外惊喜、搞笑日常、乌龙事件", "😄"),
        StyleOption("traditional_classic", "传统经典", "采用经典的命名方式，使用传统文学色彩的词汇，如：风云变幻、英雄本色、江湖恩仇", "📜"),
        StyleOption("modern_trendy", "现代时尚", "使用现代化和时尚的表达方式，贴近年轻观众的语言习惯，如：逆袭、燃爆、高能", "🔥"),
        StyleOption("poetic_artistic", "诗意文艺", "采用优美诗意的表达，注重意境和美感，如：月下花前、春风化雨、岁月如歌", "🌸"),
        StyleOption("simple_direct", "简洁直白", "使用最直接明了的表达，避免修饰，直击要害，如：决战、重逢、背叛、新生", "📝"),
        StyleOption("symbolic_metaphor", "象征隐喻", "运用象征和隐喻手法，富有深层含义，如：破茧成蝶、星火燎原、镜花水月", "🎭"),
        StyleOption("countdown_urgency", "紧迫倒计时", "营造紧迫感和时间压力，如：最后一战、倒计时、生死时速、关键时刻", "⏰"),
    ]
)

SUMMARY_STYLES = StyleCatalog(
    [
        # Styles plateforme (règles de structure dédiées dans le prompt)
        StyleOption(CRUNCHYROLL, "Crunchyroll平台风格", "动漫平台专业风格：结构化简洁表达，客观描述核心冲突，每段≤15字的精准叙述", "🍥"),
        StyleOption(NETFLIX, "Netflix平台风格", "流媒体平台戏剧风格：情感驱动叙述，强调角色困境与选择，富有张力的悬念营造", "🎬"),
        StyleOption(AI_FREE, "AI自由发挥", "让AI根据内容自主选择最合适的表达方式，无固定格式限制，追求自然流畅的叙述", "🤖"),
        StyleOption("professional", "专业", "正式、准确的描述风格", "📝"),
        StyleOption("engaging", "引人入胜", "吸引观众的生动描述", "✨"),
        StyleOption("suspenseful", "悬疑", "营造紧张悬疑氛围", "🔍"),
        StyleOption("emotional", "情感", "注重情感表达和共鸣", "💝"),
        StyleOption("humorous", "幽默", "轻松幽默的表达方式", "😄"),
        StyleOption("dramatic", "戏剧化", "强调戏剧冲突和张力", "🎭"),
        StyleOption("concise", "简洁明了", "简短直接的核心内容描述", "📋"),
        StyleOption("detailed", "详细描述", "丰富详尽的内容介绍", "📖"),
        StyleOption("action", "动作导向", "突出动作场面和节奏感", "⚡"),
        StyleOption("character", "角色聚焦", "以角色发展和关系为中心", "👥"),
        StyleOption("plot", "情节推进", "强调故事情节的发展脉络", "🧩"),
        StyleOption("atmospheric", "氛围营造", "注重场景和氛围的描述", "🌅"),
        StyleOption("technical", "技术分析", "从制作技术角度进行描述", "🎯"),
        StyleOption("artistic", "文艺风格", "优雅文艺的表达方式", "🎨"),
        StyleOption("accessible", "通俗易懂", "大众化的表达方式", "👨‍👩‍👧‍👦"),
        StyleOption("objective", "客观中性", "客观事实性的描述", "⚖️"),
    ]
)

"""Prompt de génération titre + synopsis pour un épisode et un style de synopsis."""

from __future__ import annotations

from episodegen.core.models import Episode, GenerationConfig
from episodegen.core.styles import AI_FREE, CRUNCHYROLL, NETFLIX, SUMMARY_STYLES, TITLE_STYLES, StyleCatalog

MAX_CONTENT_CHARS = 2000
LENGTH_TOLERANCE = 10
DEFAULT_TITLE_REQUIREMENT = "简洁有力，8-15个字符，体现本集核心看点"

GENERATION_SYSTEM_PROMPT = "你是一个专业的影视内容编辑，擅长根据字幕内容生成精彩的分集标题和剧情简介。"

_NETFLIX_RULES = """
5. **Netflix风格特殊要求**：
   - **情感驱动叙述**：
     * 重点描述角色的内心冲突和情感状态
     * 突出人物关系的变化和张力
     * 强调角色面临的道德选择和困境
   - **悬念营造**：
     * 结尾必须留下强烈的期待感
     * 暗示即将到来的重大变化
     * 使用"当...时"、"然而"等转折词增强悬念
   - **结构要求**：
     * 采用：[角色困境] + [情感冲突] + [悬念钩子] 的三段式结构
     * 每部分衔接自然，层层递进
     * 重视角色名字的使用，增强个人化色彩
   - **语言风格**：
     * 生动有力，富有感染力
     * 禁用疑问句，但可使用感叹词增强语气"""

_CRUNCHYROLL_RULES = """
5. **Crunchyroll风格特殊要求**：
   - **句式结构**（严格遵循以下两种格式之一）：
     * 两段式：[情节点1]，[情节点2]。（一个逗号一个句号）
     * 三段式：[情节点1]，[情节点2]，[情节点3]。（两个逗号一个句号）
   - **内容规范**：
     * 每段情节点必须是主谓宾完整短句，长度不超过15字
     * 聚焦核心冲突或人物关系转折，避免细节描述
     * 结尾句必须保留悬念（暗示威胁、新角色登场或未解决事件）
     * 用词简洁客观，严禁使用感叹号、夸张形容词
   - **语言要求**：
     * 使用陈述句，禁用疑问句、反问句
     * 客观中立叙述，不带主观情感色彩"""

_AI_FREE_RULES = """
5. **AI自由发挥风格特殊要求**：
   - 根据这段字幕文本生成一段分集剧情简介
   - 无任何格式限制，完全按照AI的理解和判断来表达
   - 自主选择最合适的叙述方式和语言风格"""

STYLE_RULES: dict[str, str] = {
    NETFLIX: _NETFLIX_RULES,
    CRUNCHYROLL: _CRUNCHYROLL_RULES,
    AI_FREE: _AI_FREE_RULES,
}

_OUTPUT_FORMAT = """## 输出格式
**🚨 严格要求：只输出JSON，禁止任何推理过程 🚨**

✅ 正确示例：
{
  "title": "分集标题",
  "summary": "分集剧情简介",
  "confidence": 0.85
}"""


def truncate_content(content: str, limit: int = MAX_CONTENT_CHARS) -> str:
    if len(content) <= limit:
        return content
    return content[:limit] + "..."


def title_requirement(config: GenerationConfig, catalog: StyleCatalog = TITLE_STYLES) -> str:
    if not config.selected_title_style:
        return DEFAULT_TITLE_REQUIREMENT
    style = catalog.get(config.selected_title_style)
    return style.prompt_label if style else config.selected_title_style


def build_generation_prompt(
    episode: Episode,
    config: GenerationConfig,
    style_id: str,
    *,
    summary_styles: StyleCatalog = SUMMARY_STYLES,
    title_styles: StyleCatalog = TITLE_STYLES,
) -> str:
    """
    Construit le prompt utilisateur pour (épisode, style).

    Le contenu est tronqué à 2000 caractères ; la borne [min, max] est rappelée avec un plafond
    dur de max + 10 ; la consigne additionnelle de l'utilisateur vient en dernier.
    """
    style = summary_styles.get(style_id)
    style_description = style.prompt_label if style else style_id
    min_len, max_len = config.summary_length
    ceiling = max_len + LENGTH_TOLERANCE

    prompt = f"""请根据以下字幕内容，为第{episode.episode_number}集生成标题和剧情简介：

## 字幕内容
{truncate_content(episode.content)}

## 生成要求
1. **标题要求**：{title_requirement(config, title_styles)}
2. **简介要求**：字数控制在[{min_len}, {max_len}]字范围内，最多不超过{ceiling}字，包含主要情节和看点
3. **简介风格要求**：严格采用{style_description}的风格，确保风格特色鲜明
4. **语言要求**：使用中文，语言生动自然{STYLE_RULES.get(style_id, "")}

## ⚠️ 重要要求
- 简介字数必须控制在[{min_len}, {max_len}]字范围内
- 如果内容需要，最多可超出到{ceiling}字
- 超出{ceiling}字的内容不符合要求
- **严禁使用疑问句、反问句或以问号结尾的句子**
- **所有简介必须使用陈述句，确定性地描述剧情内容**

{_OUTPUT_FORMAT}
"""
    if config.custom_prompt and config.custom_prompt.strip():
        prompt += f"\n## 额外要求\n{config.custom_prompt.strip()}\n"
    return prompt

"""
Registre des opérations d'amélioration (polish, shorten, expand, ...).

Chaque opération porte son gabarit de prompt et ses paramètres d'appel (température,
budget de tokens) : ajouter une opération = ajouter une entrée au registre.
"""

from __future__ import annotations

from dataclasses import dataclass

from episodegen.core.models import GenerationResult

ENHANCEMENT_SYSTEM_PROMPT = """你是一位资深的影视内容编辑专家，专门负责优化电视剧、电影等影视作品的分集标题和剧情简介。你具备以下专业能力：

1. **深度理解影视叙事**：熟悉各种影视类型的叙事特点和观众心理
2. **精准语言表达**：能够根据不同平台和受众调整语言风格
3. **内容质量把控**：确保每次优化都能显著提升内容的吸引力和专业度
4. **剧透控制能力**：精确掌握信息透露的分寸，平衡悬念与吸引力

请严格按照用户要求进行内容优化，确保输出格式规范、内容质量上乘。"""

SELECTION_REWRITE_SYSTEM_PROMPT = (
    "你是一位专业的文字编辑专家，擅长改写和优化文字表达。请严格按照用户要求进行改写，保持原意的同时提升表达质量。"
)


class UnknownOperationError(KeyError):
    """Identifiant d'opération absent du registre."""


@dataclass(frozen=True)
class EnhanceOperation:
    id: str
    label: str
    """Libellé affiché (润色, 缩写, ...)."""
    intro: str
    guidance: str
    output_verb: str
    """Préfixe des placeholders du format de sortie (« 润色后的标题 »)."""
    temperature: float
    max_tokens: int

    def render(self, title: str, summary: str) -> str:
        return (
            f"{self.intro}\n\n"
            f"【原始内容】\n标题：{title}\n简介：{summary}\n\n"
            f"{self.guidance.strip()}\n\n"
            "请严格按照以下格式输出：\n"
            f"标题：[{self.output_verb}后的标题]\n"
            f"简介：[{self.output_verb}后的简介]"
        )


_OPERATIONS = [
    EnhanceOperation(
        id="polish",
        label="润色",
        intro="请对以下影视剧集标题和简介进行专业润色，提升内容的吸引力和表达质量：",
        guidance="""
【润色要求】
1. **词汇升级**：将平淡词汇替换为更生动、更有感染力的表达
2. **句式优化**：调整句子结构，增强节奏感和可读性
3. **情感渲染**：适度增强情感色彩，但不夸张造作
4. **保持原意**：核心情节和信息点必须完全保留
5. **长度控制**：标题15字内，简介120-200字为佳
""",
        output_verb="润色",
        temperature=0.6,
        max_tokens=1000,
    ),
    EnhanceOperation(
        id="shorten",
        label="缩写",
        intro="请将以下影视剧集标题和简介进行专业精简，提炼出最核心的信息：",
        guidance="""
【精简策略】
1. **核心提取**：识别并保留最关键的情节转折点和冲突
2. **信息优先级**：主要人物关系 > 核心冲突 > 情节发展 > 背景信息
3. **删除冗余**：去除修饰性词汇、重复表达和次要细节
4. **保持吸引力**：即使精简也要保持悬念和观看欲望
5. **严格控制**：标题10字内，简介60-80字
""",
        output_verb="精简",
        temperature=0.4,
        max_tokens=600,
    ),
    EnhanceOperation(
        id="expand",
        label="扩写",
        intro="请将以下影视剧集标题和简介进行专业扩写，丰富内容层次和细节描述：",
        guidance="""
【扩写方向】
1. **情节深化**：补充关键情节的前因后果，增加转折细节
2. **人物刻画**：丰富主要角色的动机、情感状态和关系变化
3. **环境渲染**：适度增加场景描述，营造氛围感
4. **悬念构建**：通过细节暗示增强观众的期待感

【扩写原则】
- 所有新增内容必须符合剧情逻辑
- 标题可适度调整以匹配扩写内容
- 简介控制在200-300字
""",
        output_verb="扩写",
        temperature=0.8,
        max_tokens=1200,
    ),
    EnhanceOperation(
        id="continue",
        label="续写",
        intro="请在以下影视剧集简介基础上进行专业续写，延续和深化故事发展：",
        guidance="""
【续写策略】
1. **自然衔接**：从现有情节的最后一个关键点开始延续
2. **情节推进**：增加新的冲突、转折或揭示
3. **角色发展**：展现人物在新情况下的反应和成长
4. **悬念升级**：在解决部分疑问的同时制造新的悬念

【续写要求】
- 新增内容必须与原有情节逻辑一致
- 为下一集留下合理的悬念点
- 标题可根据新内容适度调整
""",
        output_verb="续写",
        temperature=0.8,
        max_tokens=1200,
    ),
    EnhanceOperation(
        id="formalize",
        label="正式化",
        intro="请将以下影视剧集标题和简介转换为正式、专业的官方表达风格：",
        guidance="""
【正式化标准】
1. **词汇规范**：使用标准书面语，避免网络用语、俚语和口语化表达
2. **句式严谨**：采用完整的句式结构，避免省略和随意表达
3. **语调客观**：保持中性、客观的叙述语调，避免过于主观的评价
4. **表达精准**：使用准确、专业的词汇描述情节和人物关系
5. **格式规范**：符合官方发布和正式媒体的表达标准
""",
        output_verb="正式化",
        temperature=0.6,
        max_tokens=1000,
    ),
    EnhanceOperation(
        id="colloquialize",
        label="口语化",
        intro="请将以下影视剧集标题和简介转换为通俗易懂、贴近大众的亲民表达风格：",
        guidance="""
【口语化策略】
1. **词汇平民化**：将专业术语、书面语转换为日常用语
2. **表达生活化**：使用贴近生活的比喻和描述方式
3. **语调亲切**：采用轻松、亲和的叙述语调
4. **句式简化**：使用简单直接的句式，避免复杂的从句结构
5. **情感共鸣**：增加能引起普通观众共鸣的表达
""",
        output_verb="口语化",
        temperature=0.7,
        max_tokens=1000,
    ),
    EnhanceOperation(
        id="literarize",
        label="文艺化",
        intro="请将以下影视剧集标题和简介转换为具有文学色彩和艺术气息的高雅表达风格：",
        guidance="""
【文艺化手法】
1. **修辞运用**：适度使用比喻、拟人、排比等修辞手法
2. **词汇升华**：选用富有诗意和文化内涵的词汇
3. **意境营造**：通过文字营造深层的情感氛围和意境
4. **节奏美感**：注重语言的韵律感和节奏美

【文艺化原则】
- 保持故事本质，但提升表达层次
- 避免过度华丽而失去可读性
""",
        output_verb="文艺化",
        temperature=0.6,
        max_tokens=1000,
    ),
    EnhanceOperation(
        id="rewrite",
        label="重写",
        intro="请完全重新构思和表达以下影视剧集标题和简介，提供全新的叙述视角：",
        guidance="""
【重写策略】
1. **视角转换**：尝试从不同角色或观察者的视角重新叙述
2. **结构重组**：完全改变信息的呈现顺序和逻辑结构
3. **表达革新**：使用全新的词汇、句式和表达方式

【重写要求】
- 核心事实和关键情节必须保持一致
- 避免简单的同义词替换，要有实质性的创新
""",
        output_verb="重写",
        temperature=0.7,
        max_tokens=1000,
    ),
    EnhanceOperation(
        id="summarize",
        label="总结",
        intro="请将以下影视剧集标题和简介提炼为高度浓缩的核心摘要：",
        guidance="""
【总结策略】
1. **核心提取**：识别并保留最关键的故事核心和转折点
2. **信息筛选**：只保留对理解剧情绝对必要的信息
3. **逻辑完整**：虽然简短但逻辑链条必须完整

【总结标准】
- 标题6-8字，直击核心主题
- 简介30-50字，包含最关键信息
""",
        output_verb="总结",
        temperature=0.4,
        max_tokens=600,
    ),
    EnhanceOperation(
        id="rephrase",
        label="改写",
        intro="请改写以下影视剧集标题和简介，保持核心意思不变但提供全新的表达方式：",
        guidance="""
【改写原则】
1. **意思保持**：核心信息、情节发展、人物关系完全一致
2. **表达创新**：使用不同的词汇、句式和表达角度
3. **风格一致**：保持原有的语言风格和情感基调
4. **避免重复**：尽量不使用原文中的关键词汇和句式
5. **自然流畅**：新表达应该自然流畅，不显生硬
""",
        output_verb="改写",
        temperature=0.7,
        max_tokens=1000,
    ),
    EnhanceOperation(
        id="removeSpoilers",
        label="去剧透",
        intro="请精心移除以下影视剧集标题和简介中的剧透内容，保持最佳的观看体验：",
        guidance="""
【去剧透策略】
1. **识别剧透点**：准确识别可能影响观看体验的关键信息
2. **保留悬念**：删除结局暗示但保留足够的悬念和吸引力
3. **维持逻辑**：确保去除剧透后内容仍然逻辑完整

【去剧透原则】
- 删除具体的结果和结局
- 保留冲突设置和人物关系
""",
        output_verb="去剧透",
        temperature=0.5,
        max_tokens=800,
    ),
    EnhanceOperation(
        id="addSpoilers",
        label="增加剧透",
        intro="请在以下影视剧集标题和简介中适度增加剧情细节，满足深度了解需求：",
        guidance="""
【增加剧透策略】
1. **关键揭示**：适度透露重要的情节转折和结果
2. **细节补充**：增加具体的剧情发展和人物命运
3. **结果暗示**：可以暗示或直接说明某些关键事件的结果

【注意事项】
- 标题可以更直接地反映核心冲突或结果
- 简介可以包含更多具体的情节发展
""",
        output_verb="增加剧透",
        temperature=0.8,
        max_tokens=1200,
    ),
    EnhanceOperation(
        id="proofread",
        label="纠错",
        intro="请对以下影视剧集标题和简介进行语法纠错和语句优化，使其更加通顺流畅：",
        guidance="""
【纠错优化要求】
1. **语法纠正**：修正语法错误、标点符号使用不当等问题
2. **语句通顺**：优化句式结构，使表达更加流畅自然
3. **用词准确**：选择更准确、恰当的词汇表达

【纠错原则】
- 保持原意不变，只优化表达方式
- 不改变核心内容和信息量
""",
        output_verb="纠错",
        temperature=0.3,
        max_tokens=1000,
    ),
]

ENHANCE_OPERATIONS: dict[str, EnhanceOperation] = {op.id: op for op in _OPERATIONS}

# Réécriture d'un fragment sélectionné du synopsis
SELECTION_REWRITE_TEMPERATURE = 0.7
SELECTION_REWRITE_MAX_TOKENS = 1000


def get_operation(operation_id: str) -> EnhanceOperation:
    try:
        return ENHANCE_OPERATIONS[operation_id]
    except KeyError:
        raise UnknownOperationError(operation_id) from None


def build_enhancement_prompt(result: GenerationResult, operation_id: str) -> str:
    """Prompt de l'opération appliquée au titre et au synopsis courants du résultat."""
    return get_operation(operation_id).render(result.generated_title, result.generated_summary)


def build_selection_rewrite_prompt(text: str) -> str:
    return f"""请对以下文字进行改写，保持原意但使用不同的表达方式：

【需要改写的文字】
{text}

【改写要求】
1. 保持原文的核心意思和信息
2. 使用不同的词汇和句式表达
3. 让表达更加生动自然
4. 保持与上下文的连贯性
5. 字数与原文相近

请直接输出改写后的文字，不要包含其他说明："""

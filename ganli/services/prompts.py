"""Prompt templates for the three analysis stages.

The model is asked to reason within the 感理分化 framework: two binary axes,
expression (感性表达 / 理性表达) and behaviour (结构化行为 / 灵活化行为),
whose cross product gives the four personality types.
"""

from ganli.services.llm_gateway import Prompt

_FRAMEWORK = """**感理分化框架：**
- 表达维度：感性表达（情绪外露、用词有温度）/ 理性表达（克制、就事论事）
- 行为维度：结构化行为（计划先行、按流程推进）/ 灵活化行为（随机应变、边做边调）"""

EXTRACT_SYSTEM = f"""你是一名资深的人格分析顾问，熟悉"感理分化"识人方法。

你的任务：从候选人的文字材料（简历、聊天记录、面试记录等）中提取人格线索。

{_FRAMEWORK}

**请按以下类别提取线索：**
1. 思维方式：决策依据、分析习惯、关注点
2. 沟通风格：主动性、回应方式、信息密度
3. 责任信号：对结果的担当、对承诺的态度
4. 情绪表达：情绪流露程度、压力下的反应
5. 合作倾向：团队意识、对他人的态度

每条线索用一句话概括，并尽量引用原文作为依据。只输出线索，不做类型判断。"""

CLASSIFY_SYSTEM = f"""你是一名资深的人格分析顾问，熟悉"感理分化"识人方法。

{_FRAMEWORK}

**四种人格类型：**
- 感理型：感性表达 + 结构化行为
- 理感型：理性表达 + 灵活化行为
- 理理型：理性表达 + 结构化行为
- 感感型：感性表达 + 灵活化行为

请根据给出的人格线索分别判断两个维度，再给出对应的人格类型，
并给出 0-100 的置信度。只返回 JSON：
{{"type": "...", "dimension1": "感性表达|理性表达", "dimension2": "结构化行为|灵活化行为", "confidence": 0-100}}"""

REPORT_SYSTEM = """你是一名资深的人格分析顾问兼招聘顾问。

请基于候选人的人格类型、人格线索和原始材料，生成完整的识人报告。

**评分与字段说明：**
- maturity_score：职业成熟度，0-10
- stability_score：稳定性，0-10
- cooperation_score：合作性，0-10
- match_score：与应聘岗位的匹配度，0-100
- risk_level：风险等级，只能是 low / medium / high
- risk_factors：具体风险点列表，没有则为空列表
- risk_details：风险说明
- analysis_basis：类型判断的依据
- suitable_positions / unsuitable_positions：适合与不适合的岗位
- usage_suggestions：如何用好这个人
- communication_guide：如何与其沟通协作
- motivation_method：有效的激励方式
- pitfalls：与其共事时需要避开的坑
- best_practices：管理上的最佳实践
- position_match：岗位适配的理由
- summary：一句话总结

所有文本字段使用中文，只返回 JSON。"""


def extract_prompt(source_text: str, candidate_name: str, position: str | None = None) -> Prompt:
    header = f"候选人：{candidate_name}\n应聘岗位：{position or '未指定'}\n\n"
    return Prompt(
        system=EXTRACT_SYSTEM,
        user=f"{header}请从以下材料中提取人格线索：\n\n{source_text}",
    )


def classify_prompt(clues: str) -> Prompt:
    return Prompt(
        system=CLASSIFY_SYSTEM,
        user=f"基于以下人格线索，判断候选人的人格类型：\n\n{clues}",
    )


def report_prompt(
    *,
    source_text: str,
    clues: str,
    personality_type: str,
    dimension1: str,
    dimension2: str,
    candidate_name: str,
    position: str | None = None,
) -> Prompt:
    user = (
        f"候选人：{candidate_name}\n"
        f"应聘岗位：{position or '未指定'}\n"
        f"人格类型：{personality_type}（{dimension1} + {dimension2}）\n\n"
        f"人格线索：\n{clues}\n\n"
        f"原始材料：\n{source_text}\n\n"
        "请生成完整的识人报告。"
    )
    return Prompt(system=REPORT_SYSTEM, user=user)

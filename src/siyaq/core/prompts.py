"""
Prompt templates and labels for Siyaq.
Centralizes all Arabic prompt text used by the context layer and workflows.
"""

from __future__ import annotations

from typing import Any

# ============================================================================
# Prompt assembly labels
# ============================================================================

SUMMARY_LABEL = "السياق السابق"
KEY_POINTS_LABEL = "النقاط المهمة"
RECENT_CONVERSATION_HEADER = "المحادثة الحديثة:"
USER_ROLE_LABEL = "المستخدم"
ASSISTANT_ROLE_LABEL = "المساعد"

# ============================================================================
# Summarization
# ============================================================================

#: Deterministic summary used when the summarizer service is unavailable.
#: Placeholders: count, first date, last date.
FALLBACK_SUMMARY_TEMPLATE = "ملخص المحادثة: تم مناقشة {count} رسائل بين {first} و {last}"

CONVERSATION_SUMMARIZATION_INSTRUCTIONS = """You are a conversation summarizer. Given conversation history, write ONE short paragraph that lets the assistant continue the conversation.

Your summary MUST capture:
1. **Main user requests and goals**
2. **Important answers, decisions and facts established**
3. **Open questions or pending next steps**

Write continuous prose, not a bullet list. Answer in the language identified by the language code provided by the user message."""

KEY_POINTS_EXTRACTION_INSTRUCTIONS = """You extract key points from an assistant's side of a conversation.

Output ONLY the key points, one per line, at most {max_points} lines. Each point is a short standalone fact or decision.
No numbering, no preamble. Answer in the language identified by the language code provided by the user message."""

# ============================================================================
# Workflow prompts
# ============================================================================

#: Returned to the user when no workflow stage produced output.
ORCHESTRATOR_FALLBACK_MESSAGE = "أعتذر، حدث خطأ في معالجة طلبك. يرجى المحاولة مرة أخرى."

BASE_SYSTEM_PROMPT = "أنت مساعد ذكي متقدم يتحدث العربية بطلاقة. تتميز بالدقة والوضوح والمساعدة الفعالة."
DETAILED_STYLE_HINT = " يُفضل المستخدم الردود المفصلة والشاملة."
CODE_COMMENTS_HINT = " عند كتابة الكود، أضف تعليقات باللغة العربية."
ARABIC_LABELS_HINT = " استخدم المصطلحات العربية عند الإمكان."

PLANNING_PROMPT = """المستخدم يطلب: {request}

كمخطط ذكي، المطلوب منك:
1. فهم المتطلبات بدقة
2. تحليل التحديات المحتملة
3. وضع خطة تنفيذية مرحلية
4. تحديد الأدوات والتقنيات المطلوبة
5. تقدير الوقت والجهد

قدم خطة مفصلة ومنظمة باللغة العربية."""

ANALYSIS_PROMPT = """الخطة المقترحة:
{previous}

الطلب الأصلي: {request}

كمحلل منطقي، المطلوب منك:
1. مراجعة الخطة وتحليلها
2. تحديد نقاط القوة والضعف
3. اقتراح تحسينات
4. وضع المواصفات التقنية التفصيلية
5. تحديد المخاطر والحلول

قدم تحليلاً شاملاً ومواصفات دقيقة."""

EXECUTION_PROMPT = """التحليل والمواصفات:
{previous}

الطلب الأصلي: {request}

كمطور خبير، المطلوب منك:
1. تنفيذ الحل الفعلي
2. كتابة كود عالي الجودة
3. إضافة التوثيق والتعليقات
4. اتباع أفضل الممارسات
5. تقديم أمثلة للاستخدام

قدم الحل الكامل والقابل للتنفيذ."""

CREATIVE_PROMPT = """الطلب الإبداعي: {request}

كمساعد إبداعي، المطلوب منك:
1. فهم الرؤية الإبداعية
2. استخدام الخيال والإبداع
3. تقديم محتوى أصيل ومميز
4. مراعاة الثقافة العربية
5. الحفاظ على الجودة العالية

أبدع وقدم محتوى استثنائي."""

GENERAL_PROMPT = """سؤال المستخدم: {request}

كمساعد ذكي، المطلوب منك:
1. فهم السؤال بدقة
2. تقديم إجابة شاملة ومفيدة
3. استخدام أمثلة عملية
4. مراعاة السياق الثقافي
5. التأكد من الدقة والوضوح

قدم إجابة مفيدة وواضحة."""

STAGE_PLANNING = "التخطيط"
STAGE_ANALYSIS = "التحليل"
STAGE_EXECUTION = "التنفيذ"
STAGE_CREATIVE = "الإبداع"
STAGE_GENERAL = "الإجابة"

COMBINED_RESULT_HEADER = "# نتيجة المعالجة المتقدمة"
COMBINED_RESULT_FOOTER = "*تم إنتاج هذه النتيجة من خلال تعاون متقدم بين نماذج الذكاء الاصطناعي المتخصصة.*"
PARTIAL_RESULT_NOTICE = "*تعذر إكمال مرحلة {stage}؛ هذه نتيجة جزئية.*"

# Keyword lists for request classification, checked in this order.
CODE_KEYWORDS = ("كود", "برمجة", "تطبيق", "موقع", "api", "function", "class", "script")
ANALYSIS_KEYWORDS = ("تحليل", "دراسة", "مقارنة", "تقييم", "بحث", "إحصائيات")
CREATIVE_KEYWORDS = ("اكتب", "أنشئ", "صمم", "قصة", "مقال", "شعر", "إبداعي")


def build_system_prompt(preferences: dict[str, Any] | None) -> str:
    """Build the system prompt from user preference flags.

    Recognized keys: ``responseStyle`` ("detailed"), ``codeComments`` and
    ``arabicLabels`` (truthy flags). Unknown keys are ignored.
    """
    prompt = BASE_SYSTEM_PROMPT
    if not preferences:
        return prompt

    if preferences.get("responseStyle") == "detailed":
        prompt += DETAILED_STYLE_HINT
    if preferences.get("codeComments"):
        prompt += CODE_COMMENTS_HINT
    if preferences.get("arabicLabels"):
        prompt += ARABIC_LABELS_HINT
    return prompt

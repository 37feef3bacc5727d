"""
Prompt builder for sermon generation and verse previews.

The model is free text, so the JSON shape can only be requested: the system
contract spells out the formatting rules and the request embeds a literal
skeleton of the expected object. native_response_format() derives a strict
json_schema format for services that accept a schema declaration.
"""

from __future__ import annotations
import copy
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Sequence

from minbar import config
from minbar.metadata import surah_name
from minbar.models import Surah

# keywords strict json_schema mode rejects
_UNSUPPORTED_STRICT_KEYS = ("$schema", "$id", "title", "minLength")

CONTRACT = """أنت خبير في الشريعة الإسلامية وخطيب جمعة، متخصص في توليد محتوى عالي الجودة وموثوق باللغة العربية الفصحى. مهمتك هي توليد خطبة جمعة متكاملة بناء على الطلب.
قواعد صارمة لتنسيق الرد:
1. يجب أن يكون الرد كائن JSON واحدًا فقط، دون أي نص أو شرح أو مقدمة قبله أو بعده.
2. يجب وضع كل اسم حقل بين علامتي تنصيص مزدوجتين.
3. يجب وضع كل قيمة نصية بين علامتي تنصيص مزدوجتين، مع تهريب أي علامة تنصيص داخلية هكذا: \\".
4. لا تضع فاصلة زائدة بعد آخر عنصر في أي قائمة أو كائن.
5. يجب أن يكون الرد قابلًا للتحليل مباشرة باستخدام JSON.parse دون أي تعديل."""

SKELETON: Dict[str, Any] = {
    "title": "عنوان رئيسي للخطبة",
    "verses": "اسم السورة: أرقام الآيات",
    "khutbah1": {
        "title": "عنوان الخطبة الأولى",
        "verses": "نص الآيات كاملًا بالتشكيل",
        "tafsir": "تفسير الآيات",
        "reflections": "تأملات إيمانية وعملية",
        "messages": [
            {"message": "رسالة موجزة", "explanation": "شرح تطبيقها عمليًا"}
        ],
        "repentance": "دعوة للتوبة والاستغفار",
    },
    "khutbah2": {
        "hadith": {"text": "نص الحديث بالتشكيل", "authenticity": "درجة الحديث"},
        "hadithReflection": "تأمل في الحديث",
        "dua": "دعاء ختامي",
    },
}


def load_schema(path: Path = config.SCHEMA_PATH) -> Dict[str, Any]:
    return json.loads(path.read_text(encoding="utf-8"))


@dataclass(frozen=True)
class GenerationPrompt:
    contract: str
    request: str
    schema: Dict[str, Any]


def build_request(name: str, topic: Optional[str]) -> str:
    topic = (topic or "").strip()
    focus = f'التركيز الخاص: "{topic}".' if topic else "التركيز العام: أهم مقاصد السورة."
    skeleton = json.dumps(SKELETON, ensure_ascii=False, indent=2)
    return (
        "مهمتك: قم بتوليد خطبة جمعة متكاملة، عميقة، ومفصلة (حوالي 2500-3000 كلمة) "
        "معتمدة على مصادر إسلامية موثوقة ومتفق عليها.\n"
        f'الموضوع: سورة "{name}".\n'
        f"{focus}\n\n"
        "يجب أن تكون الخطبة ذات جودة عالية جدًا، وتتضمن تفسيرًا عميقًا، تأملات عملية وثرية، "
        "ورسائل إيمانية واضحة (ثلاث رسائل على الأقل)، مع حديث صحيح ودعاء مؤثر في الخطبة الثانية.\n\n"
        "أعد الرد بهذا الشكل تمامًا، مع استبدال القيم النصية بالمحتوى المطلوب:\n"
        f"{skeleton}"
    )


def build_generation_prompt(
    surah_number: int,
    topic: Optional[str],
    surahs: Sequence[Surah],
    schema: Optional[Dict[str, Any]] = None,
) -> GenerationPrompt:
    # an unknown surah still yields a prompt, with an empty name
    name = surah_name(surahs, surah_number)
    return GenerationPrompt(
        contract=CONTRACT,
        request=build_request(name, topic),
        schema=schema if schema is not None else load_schema(),
    )


def build_preview_prompt(name: str, topic: str) -> str:
    return (
        "مهمتك هي استخراج الآيات القرآنية الكاملة فقط بالتشكيل. "
        "لا تقم بإضافة أي نص أو تفسير أو مقدمات أو خاتمة. فقط نص الآيات.\n"
        f"السورة: {name}\n"
        f"المقطع المطلوب: {topic}\n"
        "الرد المطلوب: قائمة بجميع الآيات في هذا المقطع، مع أرقامها بين قوسين، "
        'على سبيل المثال: "(١) بِسْمِ اللَّهِ الرَّحْمَٰنِ الرَّحِيمِ (٢) الْحَمْدُ لِلَّهِ رَبِّ الْعَالَمِينَ".'
    )


def _closed(node: Any) -> Any:
    if isinstance(node, list):
        return [_closed(n) for n in node]
    if not isinstance(node, dict):
        return node
    out: Dict[str, Any] = {}
    for key, value in node.items():
        if key == "properties":
            out[key] = {name: _closed(sub) for name, sub in value.items()}
        elif key not in _UNSUPPORTED_STRICT_KEYS:
            out[key] = _closed(value)
    if out.get("type") == "object":
        out["additionalProperties"] = False
        out["required"] = list(out.get("properties", {}).keys())
    return out


def native_response_format(schema: Dict[str, Any]) -> Dict[str, Any]:
    return {
        "type": "json_schema",
        "json_schema": {
            "name": "sermon",
            "strict": True,
            "schema": _closed(copy.deepcopy(schema)),
        },
    }

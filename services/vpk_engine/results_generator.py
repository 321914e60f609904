# services/vpk_engine/results_generator.py
# Merges a scored VPK snapshot with the static report templates.

import logging
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Union

from pydantic import BaseModel

from .definitions import BODY_TYPE_BY_DOSHA, CANONICAL_DUAL_KEYS
from .loader import TemplateStore, get_template_store
from .models import MergedReport
from .scorer import doshas_in_key

logger = logging.getLogger(__name__)

DEFAULT_PAID_PREVIEW_TEXT = "72-hour reset • 14-day meal plan • 14-day movement plan"

SnapshotLike = Union[BaseModel, Mapping[str, Any], None]

_BODY_TYPE_BY_DOSHA_NAME = {dosha.value: name for dosha, name in BODY_TYPE_BY_DOSHA.items()}


def _as_dict(snapshot: SnapshotLike) -> Dict[str, Any]:
    if isinstance(snapshot, BaseModel):
        return snapshot.model_dump(mode="json", by_alias=True)
    if isinstance(snapshot, Mapping):
        return dict(snapshot)
    return {}


def _pick(data: Mapping[str, Any], camel_key: str, snake_key: str) -> Any:
    """Reads a field from a stored snapshot, accepting camelCase or snake_case keys."""
    value = data.get(camel_key)
    if value is None:
        value = data.get(snake_key)
    return value


def _detail(data: Mapping[str, Any], camel_key: str, snake_key: str) -> Dict[str, Any]:
    detail = _pick(data, camel_key, snake_key)
    return detail if isinstance(detail, Mapping) else {}


def _text(value: Any) -> Optional[str]:
    """Plain string form of a record field; enum members become their value, other types count as absent."""
    if isinstance(value, Enum):
        value = value.value
    return value if isinstance(value, str) and value else None


def canonical_vikriti_key(summary: Optional[str]) -> str:
    """
    Normalises a dual vikriti key to Vata-Pitta, Pitta-Kapha or Vata-Kapha.

    Works on the set of doshas named in the key, so ranking order and any
    "(mild)" suffix do not matter. Other keys are returned unchanged.
    """
    summary = _text(summary)
    if summary is None:
        return ""
    members = doshas_in_key(summary)
    for pair, key in CANONICAL_DUAL_KEYS:
        if pair <= members:
            return key
    return summary


def merge_report_with_templates(snapshot: SnapshotLike, store: Optional[TemplateStore] = None) -> MergedReport:
    """
    Builds the narrative report for a scored snapshot.

    Args:
        snapshot: A ClassificationSnapshot or a stored snapshot mapping
                  (camelCase or snake_case keys, possibly partial).
        store: Template store to read from. Defaults to the cached store
               loaded from the configured asset path.

    Returns:
        A MergedReport. Missing templates produce fallback text; missing
        long-form reports produce None.
    """
    if store is None:
        store = get_template_store()
    data = _as_dict(snapshot)

    body_detail = _detail(data, "bodyTypeDetailed", "body_type_detailed")
    prakriti_detail = _detail(data, "prakritiDetailed", "prakriti_detailed")
    vikriti_detail = _detail(data, "vikritiDetailed", "vikriti_detailed")

    body_primary = _text(body_detail.get("primary"))
    body_type = (
        _text(_pick(data, "bodyType", "body_type"))
        or _BODY_TYPE_BY_DOSHA_NAME.get(body_primary)
        or body_primary
        or "Unknown"
    )
    prakriti = _text(prakriti_detail.get("primary")) or _text(data.get("prakriti")) or "Unknown"
    vikriti_summary = _text(vikriti_detail.get("summary")) or _text(data.get("vikriti")) or ""
    short_line = _text(_pick(data, "shortEmotionalLine", "short_emotional_line"))

    # 1. Body type
    body_template = store.lookup("body", body_type)
    if body_template is not None:
        body_paragraph = body_template.paragraph
        body_common_feeling = body_template.common_feeling
        body_tip = body_template.tip
    else:
        logger.warning(f"Body template not found for key: {body_type}")
        body_paragraph = f"You show {body_type} tendencies. More details are in the paid report."
        body_common_feeling = "Your body type influences how you feel and function."
        body_tip = "Maintain balance through appropriate diet and lifestyle."

    body_modifier = _text(body_detail.get("modifier"))
    body_modifier_line = None
    if body_modifier:
        body_modifier_line = store.lookup_modifier("modifiers", body_type, body_modifier)
        if body_modifier_line is None:
            body_modifier_line = f"{body_type} has a {body_modifier} modifier."

    # 2. Prakriti
    prakriti_template = store.lookup("prakriti", prakriti)
    if prakriti_template is not None:
        prakriti_paragraph = prakriti_template.paragraph
        prakriti_strengths = list(prakriti_template.strengths)
        prakriti_tip = prakriti_template.tip
    else:
        logger.warning(f"Prakriti template not found for key: {prakriti}")
        prakriti_paragraph = f"You show {prakriti} constitution tendencies. More details are in the paid report."
        prakriti_strengths = ["Your natural constitution influences your strengths"]
        prakriti_tip = "Work with your natural constitution for optimal health."

    prakriti_modifier = _text(prakriti_detail.get("modifier"))
    prakriti_modifier_line = None
    if prakriti_modifier:
        prakriti_modifier_line = store.lookup_modifier("prakriti_modifiers", prakriti, prakriti_modifier)
        if prakriti_modifier_line is None:
            prakriti_modifier_line = f"{prakriti} has a {prakriti_modifier} modifier."

    # 3. Vikriti
    vikriti_key = canonical_vikriti_key(vikriti_summary)
    vikriti_template = store.lookup("vikriti", vikriti_key)
    if vikriti_template is not None:
        vikriti_paragraph = vikriti_template.paragraph
        vikriti_quick_tip = vikriti_template.quick_tip
        vikriti_empathy_line = vikriti_template.empathy_line or short_line or "You're well balanced."
    else:
        logger.warning(f"Vikriti template not found for key: {vikriti_key!r}")
        vikriti_paragraph = short_line or "No significant imbalance detected."
        vikriti_quick_tip = "Maintain balanced routines and lifestyle practices."
        vikriti_empathy_line = short_line or "You're well balanced."

    # 4. Paid preview
    paid_preview = store.paid_preview
    paid_preview_text = paid_preview.text if paid_preview else DEFAULT_PAID_PREVIEW_TEXT

    # 5. Long-form code reports, no fallback
    body_code_report = store.lookup("body_code_reports", _text(_pick(data, "bodyCode", "body_code")))
    prakriti_code_report = store.lookup("prakriti_code_reports", _text(_pick(data, "prakritiCode", "prakriti_code")))
    vikriti_code_report = store.lookup("vikriti_code_reports", _text(_pick(data, "vikritiCode", "vikriti_code")))

    return MergedReport(
        body_paragraph=body_paragraph,
        body_modifier_line=body_modifier_line,
        body_common_feeling=body_common_feeling,
        body_tip=body_tip,
        prakriti_paragraph=prakriti_paragraph,
        prakriti_modifier_line=prakriti_modifier_line,
        prakriti_strengths=prakriti_strengths,
        prakriti_tip=prakriti_tip,
        vikriti_paragraph=vikriti_paragraph,
        vikriti_quick_tip=vikriti_quick_tip,
        vikriti_empathy_line=vikriti_empathy_line,
        paid_preview_text=paid_preview_text,
        body_code_report=body_code_report,
        prakriti_code_report=prakriti_code_report,
        vikriti_code_report=vikriti_code_report,
    )


def _format_counts(counts: Any) -> str:
    if not isinstance(counts, Mapping):
        counts = {}
    return f"V={counts.get('vata', 0)}, P={counts.get('pitta', 0)}, K={counts.get('kapha', 0)}"


def generate_human_readable_report(snapshot: SnapshotLike, clinic_name: str = "[Clinic name]") -> str:
    """Renders the three module codes and counts as a plain-text report."""
    data = _as_dict(snapshot)
    lines = []

    for title, detail_keys, code_keys in (
        ("BODY MODULE", ("bodyTypeDetailed", "body_type_detailed"), ("bodyCode", "body_code")),
        ("PRAKRITI MODULE", ("prakritiDetailed", "prakriti_detailed"), ("prakritiCode", "prakriti_code")),
    ):
        detail = _detail(data, *detail_keys)
        lines.append(title)
        lines.append(f"Code: {_text(_pick(data, *code_keys)) or 'N/A'}")
        lines.append(f"Primary Dosha: {_text(detail.get('primary')) or 'N/A'}")
        modifier = _text(detail.get("modifier"))
        if modifier:
            lines.append(f"Modifier: {modifier}")
        lines.append(f"Counts: {_format_counts(detail.get('counts'))}")
        lines.append("")

    vikriti = _detail(data, "vikritiDetailed", "vikriti_detailed")
    lines.append("VIKRITI MODULE")
    lines.append(f"Code: {_text(_pick(data, 'vikritiCode', 'vikriti_code')) or 'N/A'}")
    lines.append(f"Summary: {_text(vikriti.get('summary')) or _text(data.get('vikriti')) or 'N/A'}")
    lines.append(f"Counts: {_format_counts(vikriti.get('counts'))}")
    score = data.get("score")
    if isinstance(score, (int, float)) and not isinstance(score, bool):
        lines.append(f"Balance score: {score:g}")
    lines.append("")

    lines.append(f"- {clinic_name}")
    return "\n".join(lines) + "\n"

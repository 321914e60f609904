# services/vpk_engine/definitions.py
# Static definitions for the 36-question VPK assessment: section layout,
# tie-break orders, thresholds and the fixed lookup tables used by the scorer.

from typing import Dict, List, Optional, Tuple

from .models import Dosha, ImbalanceLevel

# --- Answer vector layout ---

ANSWER_LENGTH = 36
VALID_ANSWER_VALUES = (1, 2, 3)

ANSWER_TO_DOSHA: Dict[int, Dosha] = {
    1: Dosha.VATA,
    2: Dosha.PITTA,
    3: Dosha.KAPHA,
}

# (start, end) offsets, end exclusive
SECTION_BOUNDS: Dict[str, Tuple[int, int]] = {
    "body": (0, 6),       # Section A: body type (Q1-Q6)
    "prakriti": (6, 18),  # Section B: constitution (Q7-Q18)
    "vikriti": (18, 36),  # Section C: current state (Q19-Q36)
}

# --- Tie-break orders ---
# Body type and prakriti rank Vata first; vikriti ranks Pitta first.
# The two orders are independent and must not be merged.

PRAKRITI_TIE_BREAK_ORDER: List[Dosha] = [Dosha.VATA, Dosha.PITTA, Dosha.KAPHA]
VIKRITI_TIE_BREAK_ORDER: List[Dosha] = [Dosha.PITTA, Dosha.VATA, Dosha.KAPHA]

# --- Vikriti level thresholds (minimum count for each level) ---

DOMINANT_THRESHOLD = 8
SECONDARY_THRESHOLD = 6
MILD_THRESHOLD = 4

LEVEL_THRESHOLDS: List[Tuple[int, ImbalanceLevel]] = [
    (DOMINANT_THRESHOLD, ImbalanceLevel.DOMINANT),
    (SECONDARY_THRESHOLD, ImbalanceLevel.SECONDARY),
    (MILD_THRESHOLD, ImbalanceLevel.MILD),
]

BALANCED_SUMMARY = "Balanced"
MILD_SUFFIX = "(mild)"

# --- Balance score caps ---
# Same numbers as the level thresholds but a separate rule; keep them apart.

SCORE_CAPS: List[Tuple[int, int]] = [
    (10, 30),  # max count >= 10 -> score at most 30
    (9, 40),
    (8, 50),
]
SCORE_IMBALANCE_WEIGHT = 2

# --- Canonical report ids (1-9) ---

SINGLE_REPORT_IDS: Dict[Dosha, int] = {
    Dosha.VATA: 1,
    Dosha.PITTA: 2,
    Dosha.KAPHA: 3,
}

# Pair -> report id for whichever member has the higher count.
# Ties go to the member ranked first in VIKRITI_TIE_BREAK_ORDER.
DUAL_REPORT_IDS: List[Tuple[frozenset, Dict[Dosha, int]]] = [
    (frozenset({Dosha.VATA, Dosha.PITTA}), {Dosha.VATA: 4, Dosha.PITTA: 5}),
    (frozenset({Dosha.PITTA, Dosha.KAPHA}), {Dosha.PITTA: 6, Dosha.KAPHA: 7}),
    (frozenset({Dosha.VATA, Dosha.KAPHA}), {Dosha.VATA: 8, Dosha.KAPHA: 9}),
]

# Canonical spelling of each dual vikriti key for template lookup
CANONICAL_DUAL_KEYS: List[Tuple[frozenset, str]] = [
    (frozenset({Dosha.VATA, Dosha.PITTA}), "Vata-Pitta"),
    (frozenset({Dosha.PITTA, Dosha.KAPHA}), "Pitta-Kapha"),
    (frozenset({Dosha.VATA, Dosha.KAPHA}), "Vata-Kapha"),
]

# --- Module codes (B1-B9 / P1-P9 / V0, I1-I9) ---

CONSTITUTION_CODE_INDEX: Dict[Tuple[Dosha, Optional[Dosha]], int] = {
    (Dosha.VATA, None): 1,
    (Dosha.VATA, Dosha.PITTA): 2,
    (Dosha.VATA, Dosha.KAPHA): 3,
    (Dosha.PITTA, None): 4,
    (Dosha.PITTA, Dosha.VATA): 5,
    (Dosha.PITTA, Dosha.KAPHA): 6,
    (Dosha.KAPHA, None): 7,
    (Dosha.KAPHA, Dosha.VATA): 8,
    (Dosha.KAPHA, Dosha.PITTA): 9,
}

BODY_CODE_PREFIX = "B"
PRAKRITI_CODE_PREFIX = "P"
VIKRITI_BALANCED_CODE = "V0"
VIKRITI_CODE_PREFIX = "I"

# --- Body type names (Section A primaries) ---

BODY_TYPE_BY_DOSHA: Dict[Dosha, str] = {
    Dosha.VATA: "Ectomorph",
    Dosha.PITTA: "Mesomorph",
    Dosha.KAPHA: "Endomorph",
}

# --- Short emotional lines ---

EMOTIONAL_LINE_BALANCED = "balanced"
EMOTIONAL_LINE_MILD = "mild"

SINGLE_EMOTIONAL_LINE_KEYS: Dict[Dosha, str] = {
    Dosha.VATA: "vata",
    Dosha.PITTA: "pitta",
    Dosha.KAPHA: "kapha",
}

DUAL_EMOTIONAL_LINE_KEYS: List[Tuple[frozenset, str]] = [
    (frozenset({Dosha.VATA, Dosha.PITTA}), "vata-pitta"),
    (frozenset({Dosha.PITTA, Dosha.KAPHA}), "pitta-kapha"),
    (frozenset({Dosha.VATA, Dosha.KAPHA}), "vata-kapha"),
]

EMOTIONAL_LINES: Dict[str, str] = {
    "vata": "Your system feels restless and needs grounding.",
    "pitta": "Your system is heated. Cool and calm routines will help.",
    "kapha": "Your system feels heavy. Warmth, movement and light foods will help.",
    "vata-pitta": "Restless and heated. Ground and cool.",
    "vata-kapha": "Restless yet heavy. Ground and move.",
    "pitta-kapha": "Heated and heavy. Cool and move.",
    "mild": "You're mostly balanced with gentle shifts needed.",
    "balanced": "You're well balanced. Maintain your current routines.",
}

BALANCED_RECOMMENDATION = "Currently, no major imbalance detected. System is relatively stable."

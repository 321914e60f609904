# services/vpk_engine/scorer.py
# Handles validation, counting and classification for the VPK assessment.

import logging
from typing import Any, List, Optional, Sequence, Tuple

from .definitions import (
    ANSWER_LENGTH,
    ANSWER_TO_DOSHA,
    BALANCED_RECOMMENDATION,
    BALANCED_SUMMARY,
    BODY_CODE_PREFIX,
    BODY_TYPE_BY_DOSHA,
    CONSTITUTION_CODE_INDEX,
    DOMINANT_THRESHOLD,
    DUAL_EMOTIONAL_LINE_KEYS,
    DUAL_REPORT_IDS,
    EMOTIONAL_LINE_BALANCED,
    EMOTIONAL_LINE_MILD,
    EMOTIONAL_LINES,
    LEVEL_THRESHOLDS,
    MILD_SUFFIX,
    MILD_THRESHOLD,
    PRAKRITI_CODE_PREFIX,
    PRAKRITI_TIE_BREAK_ORDER,
    SCORE_CAPS,
    SCORE_IMBALANCE_WEIGHT,
    SECONDARY_THRESHOLD,
    SECTION_BOUNDS,
    SINGLE_EMOTIONAL_LINE_KEYS,
    SINGLE_REPORT_IDS,
    VALID_ANSWER_VALUES,
    VIKRITI_BALANCED_CODE,
    VIKRITI_CODE_PREFIX,
    VIKRITI_TIE_BREAK_ORDER,
)
from .models import (
    ClassificationSnapshot,
    Dosha,
    DoshaCounts,
    ImbalanceLevel,
    InvalidLengthError,
    InvalidValueError,
    PrimaryResult,
    VikritiImbalance,
    VikritiResult,
)

logger = logging.getLogger(__name__)


# --- Validation and counting ---

def validate_answers(answers: Optional[Sequence[Any]]) -> Tuple[int, ...]:
    """
    Checks the shape and domain of a raw answer vector.

    Raises:
        InvalidLengthError: if the vector is missing or not exactly 36 long.
        InvalidValueError: for the first item that is not an int in {1, 2, 3}.
    """
    if answers is None:
        raise InvalidLengthError(None, ANSWER_LENGTH)
    try:
        length = len(answers)
    except TypeError:
        raise InvalidLengthError(None, ANSWER_LENGTH)
    if length != ANSWER_LENGTH:
        raise InvalidLengthError(length, ANSWER_LENGTH)

    for index, value in enumerate(answers):
        # bool is an int subclass; True must not pass as Vata
        if isinstance(value, bool) or not isinstance(value, int) or value not in VALID_ANSWER_VALUES:
            raise InvalidValueError(index, value)
    return tuple(answers)


def partition_sections(answers: Sequence[int]) -> Tuple[Tuple[int, ...], Tuple[int, ...], Tuple[int, ...]]:
    """Splits a validated vector into the body, prakriti and vikriti sections."""
    sections = []
    for name in ("body", "prakriti", "vikriti"):
        start, end = SECTION_BOUNDS[name]
        sections.append(tuple(answers[start:end]))
    return sections[0], sections[1], sections[2]


def compute_counts(section: Sequence[int]) -> DoshaCounts:
    """Counts answers of 1 (Vata), 2 (Pitta) and 3 (Kapha) in a section."""
    tally = {Dosha.VATA: 0, Dosha.PITTA: 0, Dosha.KAPHA: 0}
    for value in section:
        dosha = ANSWER_TO_DOSHA.get(value)
        if dosha is not None:
            tally[dosha] += 1
    return DoshaCounts(vata=tally[Dosha.VATA], pitta=tally[Dosha.PITTA], kapha=tally[Dosha.KAPHA])


def rank_doshas(counts: DoshaCounts, tie_break_order: List[Dosha]) -> List[Tuple[Dosha, int]]:
    """Orders doshas by count, highest first, resolving ties by position in tie_break_order."""
    return sorted(
        ((dosha, counts.get(dosha)) for dosha in tie_break_order),
        key=lambda item: (-item[1], tie_break_order.index(item[0])),
    )


# --- Body type / Prakriti ---

def determine_primary_with_modifier(counts: DoshaCounts) -> PrimaryResult:
    """
    Picks the dominant dosha and its modifier for Section A or Section B.

    The modifier is the second-ranked dosha, set only when it was chosen at
    least once. Ties are broken Vata > Pitta > Kapha.
    """
    ranked = rank_doshas(counts, PRAKRITI_TIE_BREAK_ORDER)
    primary = ranked[0][0]
    modifier = ranked[1][0] if ranked[1][1] >= 1 else None
    return PrimaryResult(primary=primary, modifier=modifier, counts=counts)


def map_constitution_code(prefix: str, primary: Dosha, modifier: Optional[Dosha]) -> str:
    """Maps primary + modifier to a module code such as B1-B9 or P1-P9."""
    if modifier == primary:
        modifier = None
    return f"{prefix}{CONSTITUTION_CODE_INDEX[(primary, modifier)]}"


# --- Vikriti ---

def determine_level(count: int) -> Optional[ImbalanceLevel]:
    for threshold, level in LEVEL_THRESHOLDS:
        if count >= threshold:
            return level
    return None


def _summarize(ranked: List[Tuple[Dosha, int]]) -> str:
    (top, top_count), (second, second_count) = ranked[0], ranked[1]

    # Order matters: first matching rule wins
    if top_count >= DOMINANT_THRESHOLD and second_count >= DOMINANT_THRESHOLD:
        return f"{top.value}-{second.value}"
    if top_count >= DOMINANT_THRESHOLD:
        return top.value
    if top_count >= SECONDARY_THRESHOLD and SECONDARY_THRESHOLD <= second_count < DOMINANT_THRESHOLD:
        return f"{top.value}-{second.value} {MILD_SUFFIX}"
    if top_count >= SECONDARY_THRESHOLD:
        return f"{top.value} {MILD_SUFFIX}"
    if top_count >= MILD_THRESHOLD:
        return f"{top.value} {MILD_SUFFIX}"
    return BALANCED_SUMMARY


def _recommendation(summary: str, imbalances: List[VikritiImbalance]) -> str:
    if summary == BALANCED_SUMMARY or not imbalances:
        return BALANCED_RECOMMENDATION

    parts = [f"{item.dosha.value} ({item.count})" for item in imbalances[:2]]
    if MILD_SUFFIX in summary:
        return f"Mild imbalance: {' and '.join(parts)} within the gentle range"
    if "-" in summary:
        return f"Dual imbalance: {parts[0]} and {parts[1]} both dominant"
    return f"Single imbalance: {parts[0]} dominant"


def determine_vikriti_detailed(counts: DoshaCounts) -> VikritiResult:
    """
    Classifies the current-state section (Section C).

    Ranks doshas with the Pitta > Vata > Kapha tie-break, assigns a severity
    level to every dosha counted at least 4 times and derives the summary key
    from the top two ranked counts.
    """
    ranked = rank_doshas(counts, VIKRITI_TIE_BREAK_ORDER)

    imbalances = []
    for dosha, count in ranked:
        level = determine_level(count)
        if level is not None:
            imbalances.append(VikritiImbalance(dosha=dosha, count=count, level=level))

    summary = _summarize(ranked)
    return VikritiResult(
        summary=summary,
        imbalances=tuple(imbalances),
        counts=counts,
        report_recommendation=_recommendation(summary, imbalances),
    )


def doshas_in_key(summary: str) -> frozenset:
    """Doshas named in a vikriti key, ignoring order and any (mild) suffix."""
    return frozenset(dosha for dosha in Dosha if dosha.value in summary)


def map_vikriti_to_report_id(summary: str, counts: DoshaCounts) -> Optional[int]:
    """
    Maps a vikriti summary to its canonical report id (1-9).

    Returns None for "Balanced", any mild key, or a key naming no known pair.
    Dual keys are matched by membership, so "Vata-Pitta" and "Pitta-Vata" are
    equivalent; the higher count wins and ties follow the vikriti tie-break order.
    """
    if not summary or summary == BALANCED_SUMMARY or MILD_SUFFIX in summary:
        return None

    for dosha, report_id in SINGLE_REPORT_IDS.items():
        if summary == dosha.value:
            return report_id

    members = doshas_in_key(summary)
    for pair, ids in DUAL_REPORT_IDS:
        if pair <= members:
            winner = rank_doshas(counts, [d for d in VIKRITI_TIE_BREAK_ORDER if d in pair])[0][0]
            return ids[winner]

    logger.warning(f"No report id for vikriti summary: {summary}")
    return None


def determine_vikriti_code(report_id: Optional[int]) -> str:
    """V0 when no canonical report applies, otherwise I1-I9."""
    if report_id is None:
        return VIKRITI_BALANCED_CODE
    return f"{VIKRITI_CODE_PREFIX}{report_id}"


def compute_balance_score(counts: DoshaCounts) -> Tuple[float, int]:
    """
    Computes the 0-100 balance score and the raw imbalance it was derived from.

    Strong dominance caps the score (30 / 40 / 50 for a max count of 10 / 9 / 8)
    even when the pairwise gaps are small.
    """
    imbalance = (
        abs(counts.vata - counts.pitta)
        + abs(counts.pitta - counts.kapha)
        + abs(counts.vata - counts.kapha)
    )
    raw = max(0, 100 - imbalance * SCORE_IMBALANCE_WEIGHT)

    max_count = counts.max_count
    for threshold, cap in SCORE_CAPS:
        if max_count >= threshold:
            raw = min(raw, cap)
            break

    score = max(0, min(100, raw))
    return float(score), imbalance


# --- Emotional line ---

def emotional_line_key(summary: str) -> str:
    """Maps a vikriti summary to its emotional line key; dual keys are order-insensitive."""
    if not summary or summary == BALANCED_SUMMARY:
        return EMOTIONAL_LINE_BALANCED
    if MILD_SUFFIX in summary:
        return EMOTIONAL_LINE_MILD

    for dosha, key in SINGLE_EMOTIONAL_LINE_KEYS.items():
        if summary == dosha.value:
            return key

    members = doshas_in_key(summary)
    for pair, key in DUAL_EMOTIONAL_LINE_KEYS:
        if pair <= members:
            return key
    return EMOTIONAL_LINE_BALANCED


def generate_short_emotional_line(summary: str) -> str:
    return EMOTIONAL_LINES[emotional_line_key(summary)]


# --- Main scoring function ---

def score_vpk(answers: Sequence[Any]) -> ClassificationSnapshot:
    """
    Scores a full 36-answer VPK submission.

    Args:
        answers: 36 integers in {1, 2, 3}; Q1-Q6 body type, Q7-Q18 prakriti,
                 Q19-Q36 vikriti.

    Returns:
        An immutable ClassificationSnapshot.

    Raises:
        InvalidLengthError, InvalidValueError: on malformed input.
    """
    validated = validate_answers(answers)
    section_a, section_b, section_c = partition_sections(validated)

    counts_a = compute_counts(section_a)
    counts_b = compute_counts(section_b)
    counts_c = compute_counts(section_c)

    body_result = determine_primary_with_modifier(counts_a)
    prakriti_result = determine_primary_with_modifier(counts_b)
    vikriti_result = determine_vikriti_detailed(counts_c)

    report_id = map_vikriti_to_report_id(vikriti_result.summary, counts_c)
    score, raw_imbalance = compute_balance_score(counts_c)
    line_key = emotional_line_key(vikriti_result.summary)

    logger.debug(
        f"VPK counts A={counts_a.model_dump()} B={counts_b.model_dump()} C={counts_c.model_dump()} "
        f"-> vikriti={vikriti_result.summary} report_id={report_id} score={score}"
    )

    return ClassificationSnapshot(
        body_type=BODY_TYPE_BY_DOSHA[body_result.primary],
        prakriti=prakriti_result.primary,
        vikriti=vikriti_result.summary,
        short_emotional_line=EMOTIONAL_LINES[line_key],
        emotional_line_key=line_key,
        score=score,
        raw_imbalance=raw_imbalance,
        body_type_detailed=body_result,
        prakriti_detailed=prakriti_result,
        vikriti_detailed=vikriti_result,
        report_id=report_id,
        body_code=map_constitution_code(BODY_CODE_PREFIX, body_result.primary, body_result.modifier),
        prakriti_code=map_constitution_code(PRAKRITI_CODE_PREFIX, prakriti_result.primary, prakriti_result.modifier),
        vikriti_code=determine_vikriti_code(report_id),
    )

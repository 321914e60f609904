import random

import pytest
from pydantic import ValidationError

from services.vpk_engine.definitions import (
    BALANCED_RECOMMENDATION,
    EMOTIONAL_LINES,
    PRAKRITI_TIE_BREAK_ORDER,
    VIKRITI_TIE_BREAK_ORDER,
)
from services.vpk_engine.models import (
    Dosha,
    DoshaCounts,
    ImbalanceLevel,
    InvalidLengthError,
    InvalidValueError,
)
from services.vpk_engine.scorer import (
    compute_balance_score,
    compute_counts,
    determine_level,
    determine_primary_with_modifier,
    determine_vikriti_code,
    determine_vikriti_detailed,
    doshas_in_key,
    emotional_line_key,
    generate_short_emotional_line,
    map_constitution_code,
    map_vikriti_to_report_id,
    partition_sections,
    rank_doshas,
    score_vpk,
    validate_answers,
)


def counts(vata, pitta, kapha):
    return DoshaCounts(vata=vata, pitta=pitta, kapha=kapha)


# --- Validation ---

def test_validate_answers_accepts_valid_vector():
    answers = [1, 2, 3] * 12
    assert validate_answers(answers) == tuple(answers)


@pytest.mark.parametrize("length", [0, 35, 37])
def test_validate_answers_rejects_wrong_length(length):
    with pytest.raises(InvalidLengthError) as excinfo:
        validate_answers([1] * length)
    assert excinfo.value.length == length
    assert "36" in str(excinfo.value)


def test_validate_answers_rejects_missing_input():
    with pytest.raises(InvalidLengthError):
        validate_answers(None)


@pytest.mark.parametrize("bad_value", [0, 4, -1, "1", 1.0, True, None])
def test_validate_answers_rejects_bad_values(bad_value):
    answers = [1] * 36
    answers[10] = bad_value
    with pytest.raises(InvalidValueError) as excinfo:
        validate_answers(answers)
    assert excinfo.value.index == 10


def test_validate_answers_reports_first_bad_index():
    answers = [2] * 36
    answers[20] = 9
    answers[5] = 0
    with pytest.raises(InvalidValueError) as excinfo:
        validate_answers(answers)
    assert excinfo.value.index == 5
    assert excinfo.value.value == 0


def test_errors_are_value_errors():
    assert issubclass(InvalidLengthError, ValueError)
    assert issubclass(InvalidValueError, ValueError)


# --- Partitioning and counting ---

def test_partition_sections_uses_fixed_offsets():
    answers = list(range(36))
    a, b, c = partition_sections(answers)
    assert a == tuple(range(0, 6))
    assert b == tuple(range(6, 18))
    assert c == tuple(range(18, 36))


def test_compute_counts_totals_match_section_length():
    answers = [1, 2, 3, 1, 1, 2] + [3] * 12 + [1, 2, 3] * 6
    for section in partition_sections(answers):
        result = compute_counts(section)
        assert result.total == len(section)


def test_compute_counts_is_permutation_invariant():
    section = [1, 1, 2, 3, 3, 3, 2, 1, 1, 2, 3, 1]
    expected = compute_counts(section)
    rng = random.Random(7)
    for _ in range(5):
        shuffled = section[:]
        rng.shuffle(shuffled)
        assert compute_counts(shuffled) == expected


def test_enum_members_format_as_their_names():
    assert str(Dosha.VATA) == "Vata"
    assert f"{Dosha.KAPHA} has a {Dosha.PITTA} modifier." == "Kapha has a Pitta modifier."
    assert f"{ImbalanceLevel.MILD}" == "mild"


def test_rank_doshas_breaks_ties_by_order():
    tied = counts(4, 4, 4)
    assert [d for d, _ in rank_doshas(tied, PRAKRITI_TIE_BREAK_ORDER)] == [Dosha.VATA, Dosha.PITTA, Dosha.KAPHA]
    assert [d for d, _ in rank_doshas(tied, VIKRITI_TIE_BREAK_ORDER)] == [Dosha.PITTA, Dosha.VATA, Dosha.KAPHA]


# --- Primary + modifier ---

@pytest.mark.parametrize("vata, pitta, kapha, primary, modifier", [
    (6, 0, 0, Dosha.VATA, None),
    (2, 2, 2, Dosha.VATA, Dosha.PITTA),
    (0, 3, 3, Dosha.PITTA, Dosha.KAPHA),
    (1, 0, 5, Dosha.KAPHA, Dosha.VATA),
    (0, 0, 6, Dosha.KAPHA, None),
    (5, 6, 1, Dosha.PITTA, Dosha.VATA),
])
def test_determine_primary_with_modifier(vata, pitta, kapha, primary, modifier):
    result = determine_primary_with_modifier(counts(vata, pitta, kapha))
    assert result.primary == primary
    assert result.modifier == modifier
    assert result.modifier != result.primary


@pytest.mark.parametrize("prefix, primary, modifier, expected", [
    ("B", Dosha.VATA, None, "B1"),
    ("B", Dosha.VATA, Dosha.PITTA, "B2"),
    ("P", Dosha.PITTA, Dosha.KAPHA, "P6"),
    ("P", Dosha.KAPHA, Dosha.VATA, "P8"),
    ("B", Dosha.KAPHA, Dosha.PITTA, "B9"),
])
def test_map_constitution_code(prefix, primary, modifier, expected):
    assert map_constitution_code(prefix, primary, modifier) == expected


# --- Vikriti ---

@pytest.mark.parametrize("count, level", [
    (3, None),
    (4, ImbalanceLevel.MILD),
    (5, ImbalanceLevel.MILD),
    (6, ImbalanceLevel.SECONDARY),
    (7, ImbalanceLevel.SECONDARY),
    (8, ImbalanceLevel.DOMINANT),
    (18, ImbalanceLevel.DOMINANT),
])
def test_determine_level_boundaries(count, level):
    assert determine_level(count) == level


@pytest.mark.parametrize("vata, pitta, kapha, summary", [
    (8, 8, 2, "Pitta-Vata"),
    (10, 8, 0, "Vata-Pitta"),
    (9, 6, 3, "Vata"),
    (8, 7, 3, "Vata"),
    (3, 8, 7, "Pitta"),
    (6, 4, 8, "Kapha"),
    (6, 6, 6, "Pitta-Vata (mild)"),
    (7, 6, 5, "Vata-Pitta (mild)"),
    (6, 4, 4, "Vata (mild)"),
    (7, 5, 5, "Vata (mild)"),
    (4, 3, 2, "Vata (mild)"),
    (5, 5, 1, "Pitta (mild)"),
    (3, 3, 3, "Balanced"),
])
def test_determine_vikriti_summary(vata, pitta, kapha, summary):
    assert determine_vikriti_detailed(counts(vata, pitta, kapha)).summary == summary


def test_vikriti_imbalances_are_ranked_with_levels():
    result = determine_vikriti_detailed(counts(9, 6, 3))
    assert [(i.dosha, i.count, i.level) for i in result.imbalances] == [
        (Dosha.VATA, 9, ImbalanceLevel.DOMINANT),
        (Dosha.PITTA, 6, ImbalanceLevel.SECONDARY),
    ]
    assert result.report_recommendation == "Single imbalance: Vata (9) dominant"


def test_vikriti_dual_dominant_recommendation():
    result = determine_vikriti_detailed(counts(8, 8, 2))
    assert [i.level for i in result.imbalances] == [ImbalanceLevel.DOMINANT, ImbalanceLevel.DOMINANT]
    assert result.report_recommendation == "Dual imbalance: Pitta (8) and Vata (8) both dominant"


def test_vikriti_all_secondary():
    result = determine_vikriti_detailed(counts(6, 6, 6))
    assert [i.dosha for i in result.imbalances] == [Dosha.PITTA, Dosha.VATA, Dosha.KAPHA]
    assert all(i.level == ImbalanceLevel.SECONDARY for i in result.imbalances)
    assert result.report_recommendation.startswith("Mild imbalance:")


def test_vikriti_balanced_has_no_imbalances():
    result = determine_vikriti_detailed(counts(3, 3, 3))
    assert result.imbalances == ()
    assert result.report_recommendation == BALANCED_RECOMMENDATION


# --- Report ids and codes ---

@pytest.mark.parametrize("summary, vata, pitta, kapha, expected", [
    ("Vata", 9, 6, 3, 1),
    ("Pitta", 3, 9, 6, 2),
    ("Kapha", 6, 4, 8, 3),
    ("Vata-Pitta", 9, 8, 1, 4),
    ("Pitta-Vata", 8, 9, 1, 5),
    ("Pitta-Vata", 8, 8, 2, 5),
    ("Pitta-Kapha", 1, 9, 8, 6),
    ("Kapha-Pitta", 1, 8, 9, 7),
    ("Pitta-Kapha", 2, 8, 8, 6),
    ("Vata-Kapha", 9, 1, 8, 8),
    ("Kapha-Vata", 8, 1, 9, 9),
    ("Vata-Kapha", 8, 2, 8, 8),
])
def test_map_vikriti_to_report_id(summary, vata, pitta, kapha, expected):
    assert map_vikriti_to_report_id(summary, counts(vata, pitta, kapha)) == expected


@pytest.mark.parametrize("summary, members", [
    ("Vata", {Dosha.VATA}),
    ("Pitta-Vata", {Dosha.VATA, Dosha.PITTA}),
    ("Kapha-Pitta (mild)", {Dosha.PITTA, Dosha.KAPHA}),
    ("Balanced", set()),
])
def test_doshas_in_key(summary, members):
    assert doshas_in_key(summary) == frozenset(members)


def test_dual_report_id_ignores_key_order():
    c = counts(9, 8, 1)
    assert map_vikriti_to_report_id("Vata-Pitta", c) == map_vikriti_to_report_id("Pitta-Vata", c)


@pytest.mark.parametrize("summary", ["Balanced", "Vata (mild)", "Pitta-Vata (mild)", "", "Unknown"])
def test_map_vikriti_to_report_id_returns_none(summary):
    assert map_vikriti_to_report_id(summary, counts(6, 6, 6)) is None


def test_determine_vikriti_code():
    assert determine_vikriti_code(None) == "V0"
    assert determine_vikriti_code(5) == "I5"


# --- Balance score ---

@pytest.mark.parametrize("vata, pitta, kapha, score, imbalance", [
    (6, 6, 6, 100.0, 0),
    (7, 6, 5, 92.0, 4),
    (8, 6, 4, 50.0, 8),
    (8, 8, 2, 50.0, 12),
    (9, 6, 3, 40.0, 12),
    (10, 5, 3, 30.0, 14),
    (10, 6, 2, 30.0, 16),
    (18, 0, 0, 28.0, 36),
])
def test_compute_balance_score(vata, pitta, kapha, score, imbalance):
    assert compute_balance_score(counts(vata, pitta, kapha)) == (score, imbalance)


def test_balance_score_stays_in_range():
    for vata in range(19):
        for pitta in range(19 - vata):
            result, _ = compute_balance_score(counts(vata, pitta, 18 - vata - pitta))
            assert 0 <= result <= 100


def _section_c_counts():
    for vata in range(19):
        for pitta in range(19 - vata):
            yield [vata, pitta, 18 - vata - pitta]


def test_balance_score_never_rises_as_a_gap_widens():
    # Moving one answer from the smaller to the larger member of a pair widens that gap
    for values in _section_c_counts():
        before, _ = compute_balance_score(counts(*values))
        for high in range(3):
            for low in range(3):
                if high == low or values[high] < values[low] or values[low] == 0:
                    continue
                widened = list(values)
                widened[high] += 1
                widened[low] -= 1
                after, _ = compute_balance_score(counts(*widened))
                assert after <= before, (values, widened)


# --- Emotional line ---

@pytest.mark.parametrize("summary, key", [
    ("Vata", "vata"),
    ("Pitta", "pitta"),
    ("Kapha", "kapha"),
    ("Vata-Pitta", "vata-pitta"),
    ("Pitta-Vata", "vata-pitta"),
    ("Kapha-Pitta", "pitta-kapha"),
    ("Kapha-Vata", "vata-kapha"),
    ("Vata (mild)", "mild"),
    ("Pitta-Vata (mild)", "mild"),
    ("Balanced", "balanced"),
    ("", "balanced"),
])
def test_emotional_line_key(summary, key):
    assert emotional_line_key(summary) == key


def test_short_emotional_line_content():
    assert "restless" in generate_short_emotional_line("Vata")
    assert "heated" in generate_short_emotional_line("Pitta")
    assert "heavy" in generate_short_emotional_line("Kapha")
    assert "balanced" in generate_short_emotional_line("Vata (mild)")
    assert "balanced" in generate_short_emotional_line("Balanced")


# --- Full pipeline ---

def test_score_vpk_all_ones():
    snapshot = score_vpk([1] * 36)
    assert snapshot.body_type == "Ectomorph"
    assert snapshot.body_type_detailed.primary == Dosha.VATA
    assert snapshot.body_type_detailed.modifier is None
    assert snapshot.prakriti == Dosha.VATA
    assert snapshot.prakriti_detailed.modifier is None
    assert snapshot.vikriti == "Vata"
    assert [(i.dosha, i.count, i.level) for i in snapshot.vikriti_detailed.imbalances] == [
        (Dosha.VATA, 18, ImbalanceLevel.DOMINANT),
    ]
    assert snapshot.report_id == 1
    assert snapshot.score <= 30
    assert snapshot.body_code == "B1"
    assert snapshot.prakriti_code == "P1"
    assert snapshot.vikriti_code == "I1"
    assert snapshot.short_emotional_line == EMOTIONAL_LINES["vata"]


def test_score_vpk_dual_dominant(make_answers):
    snapshot = score_vpk(make_answers((1, 5, 0), (0, 3, 9), (8, 8, 2)))
    assert snapshot.body_type == "Mesomorph"
    assert snapshot.body_code == "B5"
    assert snapshot.prakriti == Dosha.KAPHA
    assert snapshot.prakriti_detailed.modifier == Dosha.PITTA
    assert snapshot.prakriti_code == "P9"
    assert snapshot.vikriti == "Pitta-Vata"
    assert snapshot.report_id == 5
    assert snapshot.vikriti_code == "I5"
    assert snapshot.score == 50.0
    assert snapshot.emotional_line_key == "vata-pitta"


def test_score_vpk_all_secondary(make_answers):
    snapshot = score_vpk(make_answers((2, 2, 2), (4, 4, 4), (6, 6, 6)))
    assert snapshot.body_type_detailed.primary == Dosha.VATA
    assert snapshot.body_type_detailed.modifier == Dosha.PITTA
    assert snapshot.vikriti == "Pitta-Vata (mild)"
    assert snapshot.report_id is None
    assert snapshot.vikriti_code == "V0"
    assert snapshot.score == 100.0
    assert snapshot.emotional_line_key == "mild"


def test_score_vpk_is_order_independent_within_sections(make_answers):
    answers = make_answers((3, 2, 1), (5, 4, 3), (9, 6, 3))
    expected = score_vpk(answers)

    rng = random.Random(42)
    a, b, c = (list(s) for s in partition_sections(answers))
    for section in (a, b, c):
        rng.shuffle(section)
    assert score_vpk(a + b + c) == expected


def test_score_vpk_is_deterministic():
    answers = [1, 2, 3, 3, 2, 1] * 6
    assert score_vpk(answers) == score_vpk(list(answers))


def test_snapshot_is_frozen():
    snapshot = score_vpk([2] * 36)
    with pytest.raises(ValidationError):
        snapshot.score = 1.0


def test_snapshot_serialises_with_camel_case_keys():
    dumped = score_vpk([3] * 36).model_dump(mode="json", by_alias=True)
    for key in ("bodyType", "bodyTypeDetailed", "prakritiDetailed", "vikritiDetailed",
                "reportId", "shortEmotionalLine", "bodyCode", "prakritiCode", "vikritiCode"):
        assert key in dumped
    assert dumped["prakriti"] == "Kapha"
    assert dumped["vikritiDetailed"]["reportRecommendation"].startswith("Single imbalance: Kapha")


def test_score_vpk_propagates_validation_errors():
    with pytest.raises(InvalidLengthError):
        score_vpk([1] * 35)
    with pytest.raises(InvalidValueError):
        score_vpk([1] * 35 + [4])

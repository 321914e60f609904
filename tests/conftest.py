import copy

import pytest

from services.vpk_engine.loader import TemplateStore, clear_template_cache

# Small in-memory template asset shared by the merger, engine and loader tests
SAMPLE_TEMPLATES = {
    "body": {
        "Ectomorph": {
            "paragraph": "Light and quick frame.",
            "commonFeeling": "You often feel cold and on the move.",
            "tip": "Eat warm, regular meals.",
        },
        "Mesomorph": {
            "paragraph": "Medium, athletic frame.",
            "commonFeeling": "You usually feel strong and driven.",
            "tip": "Balance training with recovery.",
        },
    },
    "modifiers": {
        "Ectomorph": {"Pitta": "Pitta adds drive to a light frame."},
    },
    "prakriti": {
        "Vata": {
            "paragraph": "Creative, quick and adaptable.",
            "strengths": ["Creative thinking", "Fast learning"],
            "tip": "Keep your routines regular.",
        },
    },
    "prakritiModifiers": {
        "Vata": {"Pitta": "Pitta sharpens your ideas into action."},
    },
    "vikriti": {
        "Vata": {
            "paragraph": "Vata is elevated.",
            "quickTip": "Warm meals and early nights.",
            "empathyLine": "You feel pulled in many directions.",
        },
        "Vata-Pitta": {
            "paragraph": "Vata and Pitta are both elevated.",
            "quickTip": "Ground and cool.",
        },
        "Balanced": {
            "paragraph": "No strong imbalance.",
            "quickTip": "Keep doing what works.",
            "empathyLine": "You're well balanced.",
        },
    },
    "paidPreview": {
        "text": "Sample preview text",
        "features": ["Feature one"],
    },
    "bodyCodeReports": {
        "B2": {"title": "Ectomorph", "sections": [{"heading": "Training", "body": "Short sessions."}]},
    },
    "prakritiCodeReports": {},
    "vikritiCodeReports": {
        "I1": {"title": "Vata imbalance", "reset": ["Warm oil", "Early nights"]},
    },
}


def section_from_counts(vata, pitta, kapha):
    return [1] * vata + [2] * pitta + [3] * kapha


@pytest.fixture
def make_answers():
    """Builds a 36-answer vector from (vata, pitta, kapha) counts for sections A, B and C."""
    def _make(body_counts, prakriti_counts, vikriti_counts):
        answers = (
            section_from_counts(*body_counts)
            + section_from_counts(*prakriti_counts)
            + section_from_counts(*vikriti_counts)
        )
        assert len(answers) == 36
        return answers
    return _make


@pytest.fixture
def template_data():
    return copy.deepcopy(SAMPLE_TEMPLATES)


@pytest.fixture
def template_store(template_data):
    return TemplateStore.from_data(template_data, source="memory")


@pytest.fixture
def empty_store():
    return TemplateStore.from_data({}, source="empty")


@pytest.fixture(autouse=True)
def reset_template_cache():
    """Each test starts and ends with an empty process-wide template cache."""
    clear_template_cache()
    yield
    clear_template_cache()

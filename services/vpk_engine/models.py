from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class Dosha(str, Enum):
    VATA = "Vata"
    PITTA = "Pitta"
    KAPHA = "Kapha"

    def __str__(self):
        return self.value


class ImbalanceLevel(str, Enum):
    DOMINANT = "dominant"
    SECONDARY = "secondary"
    MILD = "mild"

    def __str__(self):
        return self.value


class SnapshotModel(BaseModel):
    """Immutable result model serialised with camelCase keys."""
    model_config = ConfigDict(frozen=True, alias_generator=to_camel, populate_by_name=True)


# --- Scoring results ---

class DoshaCounts(SnapshotModel):
    vata: int = Field(0, ge=0)
    pitta: int = Field(0, ge=0)
    kapha: int = Field(0, ge=0)

    def get(self, dosha: Dosha) -> int:
        return {Dosha.VATA: self.vata, Dosha.PITTA: self.pitta, Dosha.KAPHA: self.kapha}[dosha]

    @property
    def total(self) -> int:
        return self.vata + self.pitta + self.kapha

    @property
    def max_count(self) -> int:
        return max(self.vata, self.pitta, self.kapha)


class PrimaryResult(SnapshotModel):
    primary: Dosha
    modifier: Optional[Dosha] = None
    counts: DoshaCounts


class VikritiImbalance(SnapshotModel):
    dosha: Dosha
    count: int
    level: ImbalanceLevel


class VikritiResult(SnapshotModel):
    summary: str
    imbalances: Tuple[VikritiImbalance, ...] = ()
    counts: DoshaCounts
    report_recommendation: str


class ClassificationSnapshot(SnapshotModel):
    body_type: str
    prakriti: Dosha
    vikriti: str
    short_emotional_line: str
    emotional_line_key: str
    score: float = Field(..., ge=0, le=100)
    raw_imbalance: int
    body_type_detailed: PrimaryResult
    prakriti_detailed: PrimaryResult
    vikriti_detailed: VikritiResult
    report_id: Optional[int] = None
    body_code: str
    prakriti_code: str
    vikriti_code: str


# --- Template asset ---

class BodyTemplate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    paragraph: str
    common_feeling: str = Field(..., alias='commonFeeling')
    tip: str


class PrakritiTemplate(BaseModel):
    paragraph: str
    strengths: List[str] = []
    tip: str


class VikritiTemplate(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    paragraph: str
    quick_tip: str = Field(..., alias='quickTip')
    empathy_line: Optional[str] = Field(None, alias='empathyLine')


class PaidPreview(BaseModel):
    text: str
    features: List[str] = []


class TemplateLibrary(BaseModel):
    """Every map is optional; a partially populated asset is valid."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    body: Dict[str, BodyTemplate] = {}
    modifiers: Dict[str, Dict[str, str]] = {}
    prakriti: Dict[str, PrakritiTemplate] = {}
    prakriti_modifiers: Dict[str, Dict[str, str]] = Field({}, alias='prakritiModifiers')
    vikriti: Dict[str, VikritiTemplate] = {}
    paid_preview: Optional[PaidPreview] = Field(None, alias='paidPreview')
    # Long-form reports are opaque nested text/lists keyed by module code
    body_code_reports: Dict[str, Dict[str, Any]] = Field({}, alias='bodyCodeReports')
    prakriti_code_reports: Dict[str, Dict[str, Any]] = Field({}, alias='prakritiCodeReports')
    vikriti_code_reports: Dict[str, Dict[str, Any]] = Field({}, alias='vikritiCodeReports')


# --- Merge output ---

class MergedReport(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    body_paragraph: str
    body_modifier_line: Optional[str] = None
    body_common_feeling: str
    body_tip: str
    prakriti_paragraph: str
    prakriti_modifier_line: Optional[str] = None
    prakriti_strengths: List[str]
    prakriti_tip: str
    vikriti_paragraph: str
    vikriti_quick_tip: str
    vikriti_empathy_line: str
    paid_preview_text: str
    body_code_report: Optional[Dict[str, Any]] = None
    prakriti_code_report: Optional[Dict[str, Any]] = None
    vikriti_code_report: Optional[Dict[str, Any]] = None


# Custom Error Classes
class InvalidLengthError(ValueError):
    """Answer vector does not have the expected number of items."""
    def __init__(self, length: Optional[int], expected: int = 36):
        self.length = length
        self.expected = expected
        super().__init__(f"answers must be length {expected}, got {length}")


class InvalidValueError(ValueError):
    """An answer is outside the allowed domain {1, 2, 3}."""
    def __init__(self, index: int, value: Any):
        self.index = index
        self.value = value
        super().__init__(f"Invalid answer value at index {index}: {value!r} (must be 1, 2, or 3)")


class TemplateLoadError(ValueError):
    """Template asset is missing, unparseable or does not match the expected schema."""
    pass

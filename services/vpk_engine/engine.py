import logging
from typing import Any, Optional, Sequence, Tuple

from .loader import TemplateStore, get_template_store
from .models import ClassificationSnapshot, MergedReport, TemplateLoadError
from .results_generator import SnapshotLike, merge_report_with_templates
from .scorer import score_vpk

logger = logging.getLogger(__name__)


class VPKEngine:
    """
    Scores VPK submissions and merges them with the report templates.

    The template store is resolved lazily, so an engine that only classifies
    never touches the template asset.
    """
    def __init__(self, template_store: Optional[TemplateStore] = None, templates_path: Optional[str] = None):
        """
        Args:
            template_store: A ready TemplateStore. Takes precedence over templates_path.
            templates_path: Path to the template asset. Defaults to the configured path.
        """
        self._template_store = template_store
        self.templates_path = templates_path

    @property
    def template_store(self) -> TemplateStore:
        if self._template_store is None:
            self._template_store = get_template_store(self.templates_path)
        return self._template_store

    def classify(self, answers: Sequence[Any]) -> ClassificationSnapshot:
        """Validates and scores a 36-answer submission."""
        return score_vpk(answers)

    def merge(self, snapshot: SnapshotLike) -> MergedReport:
        """Builds the narrative report for a snapshot. Raises TemplateLoadError if the asset cannot be loaded."""
        return merge_report_with_templates(snapshot, store=self.template_store)

    def evaluate(self, answers: Sequence[Any]) -> Tuple[ClassificationSnapshot, Optional[MergedReport]]:
        """
        Classifies a submission and merges it in one step.

        Invalid answers propagate as InvalidLengthError / InvalidValueError.
        A template load failure is logged and yields no merged report, since the
        classification itself is still valid.
        """
        snapshot = self.classify(answers)
        try:
            merged = self.merge(snapshot)
        except TemplateLoadError as e:
            logger.error(f"Could not merge report templates: {e}")
            merged = None
        return snapshot, merged

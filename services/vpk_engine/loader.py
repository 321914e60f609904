import copy
import logging
import threading
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from services.vpk_engine.config import vpk_settings
from services.vpk_engine.models import PaidPreview, TemplateLibrary, TemplateLoadError

logger = logging.getLogger(__name__)

TEMPLATE_SECTIONS = (
    "body",
    "modifiers",
    "prakriti",
    "prakriti_modifiers",
    "vikriti",
    "body_code_reports",
    "prakriti_code_reports",
    "vikriti_code_reports",
)


class TemplateStore:
    """
    Read-only view over a validated template library.

    Lookups never raise for missing keys; they return None and leave the
    fallback decision to the caller.
    """
    def __init__(self, library: TemplateLibrary, source: Optional[str] = None):
        self._library = library
        self.source = source

    @classmethod
    def from_data(cls, data: Dict[str, Any], source: Optional[str] = None) -> "TemplateStore":
        return cls(load_template_data(data), source=source)

    def _section(self, section: str) -> Dict[str, Any]:
        if section not in TEMPLATE_SECTIONS:
            raise ValueError(f"Unknown template section: {section}")
        return getattr(self._library, section)

    def lookup(self, section: str, key: Optional[str]) -> Optional[Any]:
        """Returns the entry stored under key in section, or None. Non-string keys count as absent."""
        if not isinstance(key, str) or not key:
            return None
        entry = self._section(section).get(key)
        if isinstance(entry, dict):
            # Long-form reports are plain dicts; hand out copies so the store stays untouched
            return copy.deepcopy(entry)
        return entry

    def lookup_modifier(self, section: str, primary: Optional[str], modifier: Optional[str]) -> Optional[str]:
        """Looks up a nested primary -> modifier sentence."""
        if not isinstance(primary, str) or not isinstance(modifier, str) or not primary or not modifier:
            return None
        modifier_map = self._section(section).get(primary) or {}
        return modifier_map.get(modifier)

    @property
    def paid_preview(self) -> Optional[PaidPreview]:
        return self._library.paid_preview


def load_template_data(data: Dict[str, Any]) -> TemplateLibrary:
    """
    Validates raw template data against the TemplateLibrary model.
    """
    if not isinstance(data, dict):
        raise TemplateLoadError(f"Template data must be a mapping, got {type(data).__name__}")
    try:
        return TemplateLibrary.model_validate(data)
    except ValidationError as e:
        raise TemplateLoadError(f"Template data does not match the expected schema: {e}") from e


def load_templates_from_file(file_path: str) -> TemplateLibrary:
    """
    Loads the template asset from a YAML (or JSON) file and validates it.
    """
    try:
        with open(file_path, 'r', encoding='utf-8') as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise TemplateLoadError(f"File not found: {file_path}")
    except yaml.YAMLError as e:
        raise TemplateLoadError(f"Error parsing template file {file_path}: {e}")

    if data is None:
        raise TemplateLoadError(f"Template file is empty or invalid: {file_path}")

    return load_template_data(data)


# --- Process-wide cache ---

_store_cache: Dict[str, TemplateStore] = {}
_store_lock = threading.Lock()


def get_template_store(file_path: Optional[str] = None) -> TemplateStore:
    """
    Returns the cached TemplateStore for file_path, loading it on first use.

    Concurrent first calls load the file once. Failed loads are not cached.
    """
    resolved = str(Path(file_path or vpk_settings.templates_path).resolve())
    store = _store_cache.get(resolved)
    if store is not None:
        return store

    with _store_lock:
        store = _store_cache.get(resolved)
        if store is None:
            store = TemplateStore(load_templates_from_file(resolved), source=resolved)
            _store_cache[resolved] = store
            logger.info(f"Loaded report templates from {resolved}")
    return store


def clear_template_cache() -> None:
    with _store_lock:
        _store_cache.clear()

"""
Configurable Field Mapping Engine
Resolves loosely-named input keys to PeriodInput fields and override metrics using:
  1. Exact match (normalized; camelCase, snake_case and spacing are equivalent)
  2. Alias match (after stripping filler words)
  3. Fuzzy similarity, used only to suggest a correction, never to apply one

Unknown override names are always an error. Unknown plain keys follow the
configured unmapped_fields policy.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from difflib import SequenceMatcher
from typing import Any, Dict, List, Optional, Tuple

import yaml

logger = logging.getLogger(__name__)

SCOPES = ('period_input', 'override')
OVERRIDE_PREFIX = 'override'


# ============================================================================
# Normalization
# ============================================================================

def normalize(name: str) -> str:
    """
    Normalize a field name for comparison.
    - Split camelCase words
    - Lowercase, strip
    - Replace underscores, hyphens, dots, slashes with spaces
    - Remove content in parentheses and other special characters
    """
    s = re.sub(r'(?<=[a-z0-9])(?=[A-Z])', ' ', str(name))
    s = s.lower().strip()
    s = re.sub(r'\([^)]*\)', '', s)
    s = re.sub(r'[_\-./\\]', ' ', s)
    s = re.sub(r'[^a-z0-9& ]', '', s)
    s = re.sub(r'\s+', ' ', s).strip()
    return s


def normalize_aggressive(name: str) -> str:
    """Normalization plus removal of filler words ('total', 'avg', 'of', ...)."""
    fillers = ['total', 'avg', 'average', 'of', 'the', 'and', 'in', 'from', 'for', 'to', 'at', 'on']
    return ' '.join(w for w in normalize(name).split() if w not in fillers)


def split_override_key(name: str) -> Optional[str]:
    """Return the metric part of an 'override_<field>' key, or None."""
    norm = normalize(name)
    if norm.startswith(OVERRIDE_PREFIX + ' '):
        return norm[len(OVERRIDE_PREFIX) + 1:]
    return None


# ============================================================================
# Mapping Config Loader
# ============================================================================

@dataclass
class MappingConfig:
    """Loaded and indexed field alias configuration."""
    settings: Dict[str, Any] = field(default_factory=dict)
    # scope -> internal_field -> list of normalized aliases
    alias_index: Dict[str, Dict[str, List[str]]] = field(default_factory=dict)
    # scope -> normalized_alias -> internal_field
    reverse_index: Dict[str, Dict[str, str]] = field(default_factory=dict)

    @property
    def fuzzy_threshold(self) -> int:
        return self.settings.get('fuzzy_threshold', 80)

    @property
    def unmapped_fields_policy(self) -> str:
        return self.settings.get('unmapped_fields', 'warn')


def load_mapping_config(config_path: Optional[str] = None) -> MappingConfig:
    """
    Load field aliases from YAML.
    Falls back to the packaged input_fields.yaml if no path provided.
    """
    if config_path is None:
        config_path = os.path.join(os.path.dirname(os.path.abspath(__file__)), 'config', 'input_fields.yaml')

    with open(config_path, 'r') as f:
        raw = yaml.safe_load(f) or {}

    config = MappingConfig(settings=raw.get('settings', {}))

    for scope in SCOPES:
        config.alias_index[scope] = {}
        config.reverse_index[scope] = {}
        for internal_field, field_def in (raw.get(scope) or {}).items():
            aliases = (field_def or {}).get('aliases') or []
            normalized_aliases = {normalize(a) for a in aliases}
            normalized_aliases.add(normalize(internal_field))
            config.alias_index[scope][internal_field] = sorted(normalized_aliases)

            for na in normalized_aliases:
                existing = config.reverse_index[scope].get(na)
                if existing is None:
                    config.reverse_index[scope][na] = internal_field
                elif existing != internal_field:
                    logger.warning("Alias '%s' maps to both '%s' and '%s' in %s. Keeping '%s'.",
                                   na, existing, internal_field, scope, existing)

    return config


# ============================================================================
# Field Mapper
# ============================================================================

@dataclass
class MappingResult:
    """Result of a single field mapping attempt."""
    input_name: str
    normalized_name: str
    internal_field: Optional[str]
    match_type: str  # "exact", "alias", "unmapped"
    suggestions: List[Tuple[str, float]] = field(default_factory=list)

    @property
    def hint(self) -> str:
        if not self.suggestions:
            return ""
        return f" (did you mean '{self.suggestions[0][0]}'?)"


class FieldMapper:
    """Maps input keys to internal field names using configurable rules."""

    def __init__(self, config: Optional[MappingConfig] = None):
        self.config = config or load_mapping_config()

    def resolve_field(self, input_name: str, scope: str = 'period_input') -> MappingResult:
        """
        Resolve a single input key.

        Args:
            input_name: Raw key from the input mapping
            scope: 'period_input' or 'override'
        """
        norm = normalize(input_name)
        reverse = self.config.reverse_index.get(scope, {})

        if norm in reverse:
            return MappingResult(input_name, norm, reverse[norm], "exact")

        norm_agg = normalize_aggressive(input_name)
        if norm_agg in reverse:
            return MappingResult(input_name, norm, reverse[norm_agg], "alias")

        return MappingResult(input_name, norm, None, "unmapped",
                             suggestions=self.suggest(norm, scope))

    def suggest(self, norm: str, scope: str, limit: int = 3) -> List[Tuple[str, float]]:
        """Closest internal fields by similarity, best first."""
        threshold = self.config.fuzzy_threshold
        best: Dict[str, float] = {}
        for alias, field_name in self.config.reverse_index.get(scope, {}).items():
            ratio = SequenceMatcher(None, norm, alias).ratio() * 100
            if ratio >= threshold and ratio > best.get(field_name, 0):
                best[field_name] = ratio
        ranked = sorted(best.items(), key=lambda x: x[1], reverse=True)
        return ranked[:limit]

    def get_available_fields(self, scope: str) -> List[str]:
        return list(self.config.alias_index.get(scope, {}).keys())

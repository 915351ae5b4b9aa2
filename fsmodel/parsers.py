"""
Period input parsing.
Turns loosely-keyed mappings (and JSON/YAML files of them) into PeriodInput
objects, resolving field names through the FieldMapper.
"""

import json
import logging
import math
import os
from dataclasses import fields
from typing import Any, Dict, List, Mapping, Optional, Tuple

import yaml

from .exceptions import InputValidationError
from .field_mapper import FieldMapper, split_override_key
from .models import OverrideField, PeriodInput

logger = logging.getLogger(__name__)

PERIOD_INPUT_FIELDS = {f.name for f in fields(PeriodInput)} - {'overrides'}
TEXT_FIELDS = {'label'}
OVERRIDE_CONTAINER_KEYS = {'overrides', 'override'}


def parse_number(raw_val: Any) -> Optional[float]:
    """
    Parse a number from various formats: 1234.5, "$1,234.56", "R$ 1,234", "(123)".
    Returns None for missing, empty or non-numeric values (never 0 by default).
    """
    if raw_val is None or isinstance(raw_val, bool):
        return None
    if isinstance(raw_val, (int, float)):
        f = float(raw_val)
        return None if math.isnan(f) or math.isinf(f) else f
    s = str(raw_val).strip()
    if not s or s in ('-', '—', '–', 'N/A', 'n/a', '#N/A'):
        return None
    negative = False
    if s.startswith('(') and s.endswith(')'):
        s = s[1:-1]
        negative = True
    s = s.replace('R$', '').replace('$', '').replace(',', '').replace('%', '').strip()
    try:
        val = float(s)
    except ValueError:
        return None
    if math.isnan(val) or math.isinf(val):
        return None
    return -val if negative else val


def _resolve_override(name: str, mapper: FieldMapper) -> Tuple[Optional[OverrideField], str]:
    result = mapper.resolve_field(name, 'override')
    if result.internal_field is None:
        return None, f"Unknown override field '{name}'{result.hint}"
    return OverrideField(result.internal_field), ""


def build_period_input(data: Mapping[str, Any], mapper: Optional[FieldMapper] = None) -> PeriodInput:
    """
    Build a PeriodInput from a mapping.

    Accepts internal snake_case names, camelCase names and configured aliases.
    Overrides may be given as `override_<field>` keys or as a nested
    `overrides` mapping. Unknown override names raise InputValidationError;
    unknown plain keys follow the mapper's unmapped_fields policy.
    """
    if isinstance(data, PeriodInput):
        return data
    if not isinstance(data, Mapping):
        raise InputValidationError([f"Period input must be a mapping, got {type(data).__name__}"])

    if mapper is None:
        mapper = FieldMapper()
    values: Dict[str, Any] = {}
    overrides: Dict[OverrideField, float] = {}
    errors: List[str] = []
    unmapped: List[str] = []

    def add_override(name: str, raw: Any):
        target, error = _resolve_override(name, mapper)
        if target is None:
            errors.append(error)
            return
        number = parse_number(raw)
        if number is not None:
            overrides[target] = number

    for key, raw in data.items():
        if key in OVERRIDE_CONTAINER_KEYS and isinstance(raw, Mapping):
            for name, override_raw in raw.items():
                add_override(str(name), override_raw)
            continue

        override_name = split_override_key(str(key))
        if override_name is not None:
            add_override(override_name, raw)
            continue

        result = mapper.resolve_field(str(key), 'period_input')
        if result.internal_field is None:
            unmapped.append(f"'{key}'{result.hint}")
            continue
        if result.internal_field in TEXT_FIELDS:
            values[result.internal_field] = None if raw is None else str(raw)
            continue
        number = parse_number(raw)
        if number is not None:
            values[result.internal_field] = number
        elif raw not in (None, ''):
            logger.debug("Ignoring non-numeric value %r for %s", raw, result.internal_field)

    if unmapped:
        policy = mapper.config.unmapped_fields_policy
        if policy == 'error':
            errors.extend(f"Unknown input field {u}" for u in unmapped)
        elif policy == 'warn':
            logger.warning("Ignoring unknown input fields: %s", ", ".join(unmapped))

    if errors:
        raise InputValidationError(errors)

    return PeriodInput(overrides=overrides, **{k: v for k, v in values.items() if k in PERIOD_INPUT_FIELDS})


# ============================================================================
# File loading
# ============================================================================

def parse_period_document(data: Any) -> Tuple[List[Mapping[str, Any]], Optional[str]]:
    """
    Split a loaded document into (period mappings, period type).
    Accepts a bare list of periods or {"period_type": ..., "periods": [...]}.
    """
    if isinstance(data, list):
        return data, None
    if isinstance(data, Mapping):
        periods = data.get('periods')
        if periods is None:
            periods = data.get('period_inputs', [])
        if not isinstance(periods, list):
            raise InputValidationError(["'periods' must be a list of period mappings"])
        period_type = data.get('period_type') or data.get('periodType')
        return periods, period_type
    raise InputValidationError([f"Unsupported document root: {type(data).__name__}"])


def load_periods(filepath: str) -> Tuple[List[Mapping[str, Any]], Optional[str]]:
    """
    Load period mappings from a JSON or YAML file.

    Raises:
        OSError: if the file cannot be read
        ValueError: for an unsupported extension or a malformed document
    """
    ext = os.path.splitext(filepath)[1].lower()
    if ext not in ('.json', '.yaml', '.yml'):
        raise ValueError(f"Unsupported file format: {ext}")
    with open(filepath, 'r') as f:
        if ext == '.json':
            data = json.load(f)
        else:
            try:
                data = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {filepath}: {e}") from e
    return parse_period_document(data)

"""Canonicalization & repair engine: raw field mapping -> canonical record.

Stages, in order:
  1. General mapping through the category's :data:`MAPPINGS` table.
  2. Intelligent repair through :data:`REPAIR_RULES` (optional).
  3. Strict validation of select / rating / date fields (optional).
  4. Record construction with the category's pydantic model.

Problems are reported as warnings on the result; only an unknown category
raises.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from pydantic import ValidationError

from douban_sync.categories import Category, parse_category
from douban_sync.transform.mapping import (
    DATE,
    FLOAT,
    INT,
    MAPPINGS,
    RATING,
    SELECT,
    FieldSpec,
    join_list,
    resolve_path,
)
from douban_sync.transform.records import RECORD_MODELS, CanonicalRecord
from douban_sync.transform.repairs import REPAIR_RULES, RepairRule
from douban_sync.transform.validation import (
    validate_datetime_field,
    validate_rating_field,
    validate_select_field,
)

logger = logging.getLogger(__name__)


@dataclass
class TransformOptions:
    enable_intelligent_repairs: bool = True
    strict_validation: bool = True
    preserve_raw_data: bool = False


@dataclass
class RepairStatistics:
    total_fields: int = 0
    transformed_fields: int = 0
    repaired_fields: int = 0
    failed_fields: int = 0


@dataclass
class TransformResult:
    data: CanonicalRecord
    warnings: List[str] = field(default_factory=list)
    statistics: RepairStatistics = field(default_factory=RepairStatistics)
    raw_data: Any = None


def _is_empty(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


# ---------------------------------------------------------------------------
# Value conversion
# ---------------------------------------------------------------------------

class _Unconvertible(Exception):
    pass


def _to_text(value: Any) -> str:
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple)):
        return join_list(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    raise _Unconvertible(type(value).__name__)


def _to_number(value: Any, kind: str) -> int | float:
    if isinstance(value, (list, tuple)):
        if not value:
            raise _Unconvertible("empty list")
        value = value[0]
    if isinstance(value, bool):
        raise _Unconvertible("bool")
    if isinstance(value, (int, float)):
        return int(value) if kind == INT else float(value)
    if isinstance(value, str):
        text = value.strip().replace(",", "")
        try:
            return int(float(text)) if kind == INT else float(text)
        except ValueError:
            raise _Unconvertible(repr(value)) from None
    raise _Unconvertible(type(value).__name__)


def convert_value(value: Any, kind: str) -> Any:
    """Coerce a raw value to the representation its field kind expects.

    Raises:
        _Unconvertible: The value cannot be represented.
    """
    if kind in (INT, FLOAT):
        return _to_number(value, kind)
    if kind == RATING and isinstance(value, (int, float, str)):
        return value
    return _to_text(value)


# ---------------------------------------------------------------------------
# Transformer
# ---------------------------------------------------------------------------

class Transformer:
    """Turns a loosely-typed raw mapping into a :data:`CanonicalRecord`.

    Args:
        mappings: Override for the per-category mapping tables.
        repair_rules: Override for the per-category repair dispatch table.
    """

    def __init__(
        self,
        mappings: Optional[dict[Category, tuple[FieldSpec, ...]]] = None,
        repair_rules: Optional[dict[Category, tuple[RepairRule, ...]]] = None,
    ) -> None:
        self.mappings = mappings or MAPPINGS
        self.repair_rules = repair_rules or REPAIR_RULES

    def transform(
        self,
        raw_data: Any,
        category: Category | str,
        options: TransformOptions | None = None,
    ) -> TransformResult:
        """Map, repair, validate and build the record for *raw_data*.

        Raises:
            UnsupportedCategoryError: *category* is not a known category.
        """
        category = parse_category(category)
        options = options or TransformOptions()
        warnings: list[str] = []
        stats = RepairStatistics()

        if isinstance(raw_data, Mapping) and raw_data:
            source: Mapping[str, Any] = raw_data
            stats.total_fields = len(raw_data)
        else:
            source = {}
            warnings.append("Input data is empty or not a mapping")

        specs = self.mappings[category]
        values = self._map_fields(source, specs, warnings, stats)

        if options.enable_intelligent_repairs:
            html = source.get("html")
            self._apply_repairs(values, category, html if isinstance(html, str) else None, stats)

        if options.strict_validation:
            self._validate(values, specs, category, warnings, stats)

        for spec in specs:
            if spec.required and _is_empty(values.get(spec.name)):
                warnings.append(f"Missing required field: {spec.name}")
                stats.failed_fields += 1

        stats.transformed_fields = sum(1 for v in values.values() if not _is_empty(v))
        record = self._build_record(category, values, warnings)

        logger.debug(
            "Transformed %s record: %d/%d fields, %d repaired, %d failed",
            category.value,
            stats.transformed_fields,
            stats.total_fields,
            stats.repaired_fields,
            stats.failed_fields,
        )
        return TransformResult(
            data=record,
            warnings=warnings,
            statistics=stats,
            raw_data=raw_data if options.preserve_raw_data else None,
        )

    # ------------------------------------------------------------------
    # Stages
    # ------------------------------------------------------------------
    @staticmethod
    def _map_fields(
        source: Mapping[str, Any],
        specs: tuple[FieldSpec, ...],
        warnings: list[str],
        stats: RepairStatistics,
    ) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for spec in specs:
            raw = None
            for path in spec.sources:
                raw = resolve_path(source, path)
                if raw is not None:
                    break
            if raw is None:
                continue
            try:
                values[spec.name] = convert_value(raw, spec.kind)
            except _Unconvertible as exc:
                warnings.append(f"Field {spec.name}: cannot convert value ({exc})")
                stats.failed_fields += 1
        return values

    def _apply_repairs(
        self,
        values: dict[str, Any],
        category: Category,
        html: str | None,
        stats: RepairStatistics,
    ) -> None:
        for rule in self.repair_rules.get(category, ()):
            outcome = rule.apply(values.get(rule.field), html)
            if outcome.repaired:
                values[rule.field] = outcome.value
                stats.repaired_fields += 1
                logger.debug("Repaired field %s", rule.field)

    @staticmethod
    def _validate(
        values: dict[str, Any],
        specs: tuple[FieldSpec, ...],
        category: Category,
        warnings: list[str],
        stats: RepairStatistics,
    ) -> None:
        for spec in specs:
            if spec.name not in values:
                continue
            value = values[spec.name]
            before = len(warnings)
            if spec.kind == SELECT:
                values[spec.name] = validate_select_field(value, spec.name, category, warnings)
            elif spec.kind == RATING:
                values[spec.name] = validate_rating_field(value, warnings, field=spec.name)
            elif spec.kind == DATE:
                values[spec.name] = validate_datetime_field(value, warnings, field=spec.name)
            if len(warnings) > before:
                stats.failed_fields += 1

    @staticmethod
    def _build_record(
        category: Category,
        values: dict[str, Any],
        warnings: list[str],
    ) -> CanonicalRecord:
        model = RECORD_MODELS[category]
        payload = {k: v for k, v in values.items() if v is not None}
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            invalid = set()
            for error in exc.errors():
                name = str(error["loc"][0]) if error["loc"] else ""
                invalid.add(name)
                warnings.append(f"Field {name}: {error['msg']}")

        by_alias = {info.alias or name: name for name, info in model.model_fields.items()}
        trusted = {
            by_alias.get(key, key): value
            for key, value in payload.items()
            if key not in invalid
        }
        return model.model_construct(**trusted)


_default_transformer = Transformer()


def transform(
    raw_data: Any,
    category: Category | str,
    options: TransformOptions | None = None,
) -> TransformResult:
    """Transform with the default mapping and repair tables."""
    return _default_transformer.transform(raw_data, category, options)

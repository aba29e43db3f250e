"""Intelligent Master-Data Mapping Engine.

This module fills the master-data section of a policy form (fuel,
destination, department, quality, category, tariff) from values extracted
off a scanned document. For every field the user left empty:
1. Read the field's candidate source keys
2. Clean the extracted text
3. Try the field's domain keyword table
4. Fall back to generic similarity against the catalog

The tariff additionally falls back to the policy modalidad, the chosen
category and finally a default entry, so it is always filled when its
catalog is not empty.

The engine is a pure function of its inputs: no I/O, nothing kept between
calls, fields already chosen are never overwritten.
"""

import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Union

from core.observability.logging import get_logger
from core.observability.metrics import get_metrics
from master_data_mapper.keywords import (
    CALIDAD_KEYS,
    CALIDAD_LABELS,
    CATEGORIA_KEYS,
    CATEGORIA_LABELS,
    COMBUSTIBLE_KEYS,
    COMBUSTIBLE_LABELS,
    DEPARTAMENTO_KEYS,
    DEPARTAMENTO_LABELS,
    DESTINO_KEYS,
    DESTINO_LABELS,
    MODALIDAD_KEYS,
    MODALIDAD_LABELS,
)
from master_data_mapper.matcher import (
    classify_modalidad,
    find_best_match_scored,
    match_categoria,
    match_combustible,
    match_destino,
    match_tarifa_class,
    pick_default_tarifa,
)
from master_data_mapper.models import (
    DEFAULT_MATCHING_CONFIG,
    FieldChange,
    MappingResult,
    MasterDataFormData,
    MasterDataItem,
    MasterDataSets,
    MatchingConfig,
    MatchStrategy,
)
from master_data_mapper.normalize import clean_extracted_value, first_present_value


logger = get_logger(__name__)

KeywordMatcher = Callable[[str, Sequence[MasterDataItem]], Optional[MasterDataItem]]


@dataclass(frozen=True)
class FieldSpec:
    """How one symmetric form field is mapped."""
    form_field: str
    label: str
    catalog: str
    source_keys: Sequence[str]
    labels: Sequence[str]
    threshold: str                              # MatchingConfig attribute
    keyword_matcher: Optional[KeywordMatcher] = None


FIELD_SPECS: Sequence[FieldSpec] = (
    FieldSpec(
        form_field="combustible_id",
        label="Combustible",
        catalog="combustibles",
        source_keys=COMBUSTIBLE_KEYS,
        labels=COMBUSTIBLE_LABELS,
        threshold="combustible_threshold",
        keyword_matcher=match_combustible,
    ),
    FieldSpec(
        form_field="destino_id",
        label="Destino",
        catalog="destinos",
        source_keys=DESTINO_KEYS,
        labels=DESTINO_LABELS,
        threshold="destino_threshold",
        keyword_matcher=match_destino,
    ),
    FieldSpec(
        form_field="departamento_id",
        label="Departamento",
        catalog="departamentos",
        source_keys=DEPARTAMENTO_KEYS,
        labels=DEPARTAMENTO_LABELS,
        threshold="departamento_threshold",
    ),
    FieldSpec(
        form_field="calidad_id",
        label="Calidad",
        catalog="calidades",
        source_keys=CALIDAD_KEYS,
        labels=CALIDAD_LABELS,
        threshold="calidad_threshold",
    ),
    FieldSpec(
        form_field="categoria_id",
        label="Categoría",
        catalog="categorias",
        source_keys=CATEGORIA_KEYS,
        labels=CATEGORIA_LABELS,
        threshold="categoria_threshold",
        keyword_matcher=match_categoria,
    ),
)

TARIFA_FIELD = "tarifa_id"
TARIFA_LABEL = "Tarifa"


class IntelligentMapper:
    """Maps extracted document values onto master-data catalog ids.

    Example:
        mapper = IntelligentMapper()
        result = mapper.map(
            extracted={"vehiculo.combustible": "COMBUSTIBLE\\nNAFTA"},
            current_form=MasterDataFormData(),
            catalogs=master_data_sets,
        )

        if result.has_changes:
            print(result.message)
    """

    def __init__(
        self,
        config: MatchingConfig = DEFAULT_MATCHING_CONFIG,
        record_metrics: bool = True,
    ):
        """Initialize the mapper.

        Args:
            config: Similarity thresholds
            record_metrics: Whether runs are reported to the metrics collector
        """
        self.config = config
        self.record_metrics = record_metrics

    def map(
        self,
        extracted: Mapping[str, Any],
        current_form: Union[MasterDataFormData, Mapping[str, Any], None],
        catalogs: Union[MasterDataSets, Mapping[str, Any], None],
        on_mapped: Optional[Callable[[MappingResult], None]] = None,
    ) -> MappingResult:
        """Run one mapping pass.

        Args:
            extracted: Field-path → raw text, as produced by document scanning
            current_form: Current form values; non-empty fields are kept
            catalogs: Catalog snapshots for the six fields
            on_mapped: Called with the result when at least one field changed

        Returns:
            MappingResult with the new form and the fields that changed
        """
        start_time = time.time()

        if not isinstance(extracted, Mapping):
            extracted = {}
        form = _coerce_form(current_form)
        sets = _coerce_catalogs(catalogs)

        logger.info("Starting master-data auto-mapping", extra_fields=sets.sizes())

        values: Dict[str, str] = form.model_dump()
        changes: List[FieldChange] = []
        unmatched: List[str] = []

        for field_spec in FIELD_SPECS:
            if values[field_spec.form_field]:
                continue
            change = self._map_field(field_spec, extracted, getattr(sets, field_spec.catalog))
            if change:
                values[field_spec.form_field] = change.item_id
                changes.append(change)
            else:
                unmatched.append(field_spec.form_field)

        if not values[TARIFA_FIELD]:
            change = self._map_tarifa(extracted, values, sets)
            if change:
                values[TARIFA_FIELD] = change.item_id
                changes.append(change)
            else:
                unmatched.append(TARIFA_FIELD)

        result = MappingResult(form=MasterDataFormData(**values), changes=changes)
        duration_ms = (time.time() - start_time) * 1000

        if self.record_metrics:
            get_metrics().record_mapping_run(
                changes=[(c.field, c.strategy.value) for c in changes],
                unmatched=unmatched,
                duration_ms=duration_ms,
            )

        if result.has_changes:
            logger.info(
                result.message,
                extra_fields={"mapped_fields": result.mapped_fields, "duration_ms": round(duration_ms, 2)},
            )
            if on_mapped is not None:
                on_mapped(result)
        else:
            logger.info(result.message)

        return result

    def _map_field(
        self,
        field_spec: FieldSpec,
        extracted: Mapping[str, Any],
        catalog: List[MasterDataItem],
    ) -> Optional[FieldChange]:
        """Map one symmetric field: keyword table first, then similarity."""
        if not catalog:
            return None

        raw = first_present_value(extracted, field_spec.source_keys)
        if raw is None:
            return None

        text = clean_extracted_value(raw, field_spec.labels)
        if not text:
            return None

        if field_spec.keyword_matcher is not None:
            item = field_spec.keyword_matcher(text, catalog)
            if item:
                return self._change(field_spec.form_field, field_spec.label, item, text, MatchStrategy.KEYWORD)

        scored = find_best_match_scored(text, catalog, getattr(self.config, field_spec.threshold))
        if scored:
            item, score = scored
            return self._change(field_spec.form_field, field_spec.label, item, text, MatchStrategy.SIMILARITY, score)

        return None

    def _map_tarifa(
        self,
        extracted: Mapping[str, Any],
        values: Mapping[str, str],
        sets: MasterDataSets,
    ) -> Optional[FieldChange]:
        """Map the tariff.

        Order: modalidad coverage class, modalidad similarity, category
        similarity, default entry.
        """
        tarifas = sets.tarifas
        if not tarifas:
            return None

        raw = first_present_value(extracted, MODALIDAD_KEYS)
        modalidad = clean_extracted_value(raw, MODALIDAD_LABELS) if raw else ""

        if modalidad:
            coverage = classify_modalidad(modalidad)
            if coverage:
                item = match_tarifa_class(coverage, tarifas)
                if item:
                    logger.debug(f"Modalidad '{modalidad}' classified as {coverage.value}")
                    return self._change(TARIFA_FIELD, TARIFA_LABEL, item, modalidad, MatchStrategy.MODALIDAD)

            scored = find_best_match_scored(modalidad, tarifas, self.config.tarifa_modalidad_threshold)
            if scored:
                item, score = scored
                return self._change(TARIFA_FIELD, TARIFA_LABEL, item, modalidad, MatchStrategy.SIMILARITY, score)

        categoria = _find_by_key(sets.categorias, values.get("categoria_id", ""))
        if categoria and categoria.nombre:
            scored = find_best_match_scored(categoria.nombre, tarifas, self.config.tarifa_categoria_threshold)
            if scored:
                item, score = scored
                return self._change(TARIFA_FIELD, TARIFA_LABEL, item, categoria.nombre, MatchStrategy.CATEGORY, score)

        item = pick_default_tarifa(tarifas, self.config.default_tarifa_keywords)
        if item:
            return self._change(TARIFA_FIELD, TARIFA_LABEL, item, modalidad or None, MatchStrategy.DEFAULT)
        return None

    @staticmethod
    def _change(
        form_field: str,
        label: str,
        item: MasterDataItem,
        source_value: Optional[str],
        strategy: MatchStrategy,
        score: Optional[float] = None,
    ) -> FieldChange:
        logger.info(
            f"{label} mapped: '{source_value or ''}' → '{item.nombre}'",
            extra_fields={"field": form_field, "strategy": strategy.value, "item_id": item.key},
        )
        return FieldChange(
            field=form_field,
            label=label,
            item_id=item.key,
            item_name=item.nombre,
            source_value=source_value,
            strategy=strategy,
            score=score,
        )

    def explain_result(self, result: MappingResult) -> str:
        """Generate a human-readable explanation of a mapping pass.

        Args:
            result: The result to explain

        Returns:
            Formatted explanation string
        """
        lines = ["=" * 60, "Master-Data Mapping Explanation", "=" * 60]

        if result.changes:
            for change in result.changes:
                lines.append(f"✓ {change.label}: {change.item_name} (id {change.item_id})")
                lines.append(f"  Source: '{change.source_value or ''}'")
                lines.append(f"  Strategy: {change.strategy.value}")
                if change.score is not None:
                    lines.append(f"  Score: {change.score * 100:.1f}%")
        else:
            lines.append("No fields changed")

        lines.append("")
        lines.append("Form:")
        for name, value in result.form.model_dump(by_alias=True).items():
            lines.append(f"  {name}: {value or '-'}")

        lines.append("")
        lines.append(result.message)
        lines.append("=" * 60)

        return "\n".join(lines)


def _coerce_form(current_form: Union[MasterDataFormData, Mapping[str, Any], None]) -> MasterDataFormData:
    if isinstance(current_form, MasterDataFormData):
        return current_form
    return MasterDataFormData.model_validate(dict(current_form or {}))


def _coerce_catalogs(catalogs: Union[MasterDataSets, Mapping[str, Any], None]) -> MasterDataSets:
    if isinstance(catalogs, MasterDataSets):
        return catalogs
    return MasterDataSets.model_validate(dict(catalogs or {}))


def _find_by_key(catalog: Sequence[MasterDataItem], key: str) -> Optional[MasterDataItem]:
    if not key:
        return None
    for item in catalog:
        if item.key == key:
            return item
    return None


# =============================================================================
# Module-level convenience functions
# =============================================================================

def map_fields(
    extracted: Mapping[str, Any],
    current_form: Union[MasterDataFormData, Mapping[str, Any], None],
    catalogs: Union[MasterDataSets, Mapping[str, Any], None],
    config: MatchingConfig = DEFAULT_MATCHING_CONFIG,
    on_mapped: Optional[Callable[[MappingResult], None]] = None,
) -> MappingResult:
    """Run one mapping pass and return the form plus the change report."""
    return IntelligentMapper(config=config).map(extracted, current_form, catalogs, on_mapped=on_mapped)


def intelligent_mapping(
    extracted: Mapping[str, Any],
    current_form: Union[MasterDataFormData, Mapping[str, Any], None],
    catalogs: Union[MasterDataSets, Mapping[str, Any], None],
) -> MasterDataFormData:
    """Run one mapping pass and return only the updated form."""
    return map_fields(extracted, current_form, catalogs).form

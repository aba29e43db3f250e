"""Catalog matching primitives.

Every function here takes a catalog snapshot and returns one of its items
(or None); none of them raise on empty or odd input.
"""

from typing import List, Mapping, Optional, Sequence, Tuple

from core.observability.logging import get_logger
from master_data_mapper.keywords import (
    CATEGORIA_KEYWORDS,
    COMBUSTIBLE_CODES,
    DESTINO_KEYWORDS,
    TARIFA_KEYWORDS,
    CoverageClass,
)
from master_data_mapper.models import MasterDataItem
from master_data_mapper.normalize import (
    calculate_similarity,
    clean_extracted_value,
    fold_accents,
    fold_upper,
)


logger = get_logger(__name__)


def find_best_match_scored(
    extracted_value: str,
    catalog: Sequence[MasterDataItem],
    threshold: float = 0.7,
) -> Optional[Tuple[MasterDataItem, float]]:
    """Score every catalog item and keep the best one above ``threshold``.

    Only a strictly greater score replaces the running best, so among equal
    top scores the earliest item in catalog order wins.

    Args:
        extracted_value: Raw or cleaned extracted text
        catalog: Catalog snapshot
        threshold: Minimum accepted score

    Returns:
        (item, score) or None
    """
    clean_value = clean_extracted_value(extracted_value, drop_label_line=True)
    if not clean_value or not catalog:
        return None

    best_match: Optional[MasterDataItem] = None
    best_score = 0.0

    for item in catalog:
        score = calculate_similarity(clean_value, item.nombre)
        logger.debug(f"  '{clean_value}' vs '{item.nombre}': {score * 100:.1f}%")

        if score > best_score and score >= threshold:
            best_score = score
            best_match = item

    if best_match is None:
        logger.debug(f"No match for '{clean_value}' (threshold {threshold * 100:.0f}%)")
        return None

    logger.debug(f"Best match for '{clean_value}': '{best_match.nombre}' ({best_score * 100:.1f}%)")
    return best_match, best_score


def find_best_match(
    extracted_value: str,
    catalog: Sequence[MasterDataItem],
    threshold: float = 0.7,
) -> Optional[MasterDataItem]:
    """Best-scoring catalog item at or above ``threshold``, or None."""
    scored = find_best_match_scored(extracted_value, catalog, threshold)
    return scored[0] if scored else None


def first_item_containing(
    catalog: Sequence[MasterDataItem],
    candidates: Sequence[str],
) -> Optional[MasterDataItem]:
    """First item whose name contains a candidate, trying candidates in order.

    Comparison is case- and accent-insensitive.
    """
    for candidate in candidates:
        needle = fold_upper(candidate)
        if not needle:
            continue
        for item in catalog:
            if needle in fold_upper(item.nombre):
                return item
    return None


# =============================================================================
# Fuel
# =============================================================================

def lookup_fuel_code(text: str) -> Optional[str]:
    """Canonical fuel code for an extracted fuel value ("NAFTA" → "GAS")."""
    token = fold_upper(text).strip()
    if not token:
        return None

    code = COMBUSTIBLE_CODES.get(token)
    if code:
        return code

    for keyword, code in COMBUSTIBLE_CODES.items():
        if keyword in token:
            return code
    return None


def find_by_code(catalog: Sequence[MasterDataItem], code: str) -> Optional[MasterDataItem]:
    """Resolve a catalog code.

    Precedence: id or codigo equal to the code, then codigo containing it,
    then a display name naming the same fuel ("Gasolina super" for GAS,
    never "GAS-OIL").
    """
    code = code.upper()

    for item in catalog:
        if item.key.upper() == code or (item.codigo or "").upper() == code:
            return item

    for item in catalog:
        if code in (item.codigo or "").upper():
            return item

    for item in catalog:
        name = fold_upper(item.nombre)
        named_code = lookup_fuel_code(name)
        if named_code == code or (named_code is None and code in name.split()):
            return item

    return None


def match_combustible(text: str, catalog: Sequence[MasterDataItem]) -> Optional[MasterDataItem]:
    code = lookup_fuel_code(text)
    if not code:
        return None
    return find_by_code(catalog, code)


# =============================================================================
# Destination / category keyword tables
# =============================================================================

def match_keyword_candidates(
    text: str,
    table: Mapping[str, Sequence[str]],
    catalog: Sequence[MasterDataItem],
) -> Optional[MasterDataItem]:
    """Walk ``table`` in order; for each token found in ``text`` try its candidates.

    The first token whose candidate list resolves to a catalog item wins.
    """
    token = fold_upper(text)
    if not token:
        return None

    for keyword, candidates in table.items():
        if keyword in token:
            item = first_item_containing(catalog, candidates)
            if item:
                return item
    return None


def match_destino(text: str, catalog: Sequence[MasterDataItem]) -> Optional[MasterDataItem]:
    return match_keyword_candidates(text, DESTINO_KEYWORDS, catalog)


def match_categoria(text: str, catalog: Sequence[MasterDataItem]) -> Optional[MasterDataItem]:
    return match_keyword_candidates(text, CATEGORIA_KEYWORDS, catalog)


# =============================================================================
# Tariff
# =============================================================================

def classify_modalidad(text: str) -> Optional[CoverageClass]:
    """Classify a modalidad/coverage text into a canonical coverage class.

    Rules in precedence order:
        TODO RIESGO + TOTAL      → TODO_RIESGO_TOTAL
        TODO RIESGO              → TODO_RIESGO
        TOTAL (without BASICO)   → TOTAL
        TERCEROS or RC           → TERCEROS
        PREMIUM                  → PREMIUM
        BASICA or MINIMA         → BASICA
    """
    value = fold_upper(text)
    if not value.strip():
        return None

    if "TODO RIESGO" in value and "TOTAL" in value:
        return CoverageClass.TODO_RIESGO_TOTAL
    if "TODO RIESGO" in value:
        return CoverageClass.TODO_RIESGO
    if "TOTAL" in value and "BASICO" not in value:
        return CoverageClass.TOTAL
    if "TERCEROS" in value or "RC" in value:
        return CoverageClass.TERCEROS
    if "PREMIUM" in value:
        return CoverageClass.PREMIUM
    if "BASICA" in value or "MINIMA" in value:
        return CoverageClass.BASICA
    return None


def match_tarifa_class(
    coverage: CoverageClass,
    catalog: Sequence[MasterDataItem],
) -> Optional[MasterDataItem]:
    return first_item_containing(catalog, TARIFA_KEYWORDS.get(coverage, ()))


def pick_default_tarifa(
    catalog: Sequence[MasterDataItem],
    keywords: Sequence[str] = ("general", "estandar", "normal"),
) -> Optional[MasterDataItem]:
    """Deterministic last-resort tariff.

    First item whose name mentions one of ``keywords``; otherwise the first
    item of the catalog. None only for an empty catalog.
    """
    if not catalog:
        return None

    folded_keywords: List[str] = [fold_accents(k).lower() for k in keywords]
    for item in catalog:
        name = fold_accents(item.nombre).lower()
        if any(keyword in name for keyword in folded_keywords):
            return item

    return catalog[0]

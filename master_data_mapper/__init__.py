"""Master Data Mapper - Automatic master-data selection for scanned policies.

This package fills the master-data section of a policy form (fuel,
destination, department, quality, category, tariff) from values the
document-scanning service extracted, based on:
- Ordered candidate source keys per field (legacy spellings included)
- Domain keyword tables (NAFTA → GAS, TAXI → Taxi, TODO RIESGO → ...)
- Generic string similarity with per-field thresholds
- Tariff fallbacks: coverage class, category, default entry

Key Features:
- Never overwrites a value the user already chose
- Pure and deterministic: same inputs, same form
- Reports which fields were filled, for the user notification
- Catalog loading from the policy backend with per-company tariffs

Usage:
    from master_data_mapper import map_fields, MasterDataSets

    result = map_fields(
        extracted={"vehiculo.combustible": "NAFTA", "poliza.modalidad": "TODO RIESGO"},
        current_form={"combustibleId": "", "tarifaId": ""},
        catalogs=master_data_sets,
    )

    if result.has_changes:
        print(result.message)
"""

from master_data_mapper.models import (
    FieldChange,
    MappingResult,
    MasterDataFormData,
    MasterDataItem,
    MasterDataSets,
    MatchingConfig,
    MatchStrategy,
    MASTER_DATA_TYPES,
)
from master_data_mapper.normalize import (
    calculate_similarity,
    clean_extracted_value,
    first_present_value,
)
from master_data_mapper.matcher import (
    classify_modalidad,
    find_best_match,
    pick_default_tarifa,
)
from master_data_mapper.keywords import CoverageClass
from master_data_mapper.engine import (
    IntelligentMapper,
    intelligent_mapping,
    map_fields,
)
from master_data_mapper.provider import (
    HttpMasterDataProvider,
    InMemoryMasterDataProvider,
    MasterDataApiError,
    MasterDataAuthError,
    MasterDataNotFoundError,
    MasterDataProvider,
    adapt_master_data_items,
)
from master_data_mapper.config import MasterDataApiConfig, RetryConfig, load_api_config_from_env
from master_data_mapper.automapping import AutoMapper

__all__ = [
    # Models
    "FieldChange",
    "MappingResult",
    "MasterDataFormData",
    "MasterDataItem",
    "MasterDataSets",
    "MatchingConfig",
    "MatchStrategy",
    "MASTER_DATA_TYPES",
    "CoverageClass",
    # Matching
    "calculate_similarity",
    "clean_extracted_value",
    "first_present_value",
    "classify_modalidad",
    "find_best_match",
    "pick_default_tarifa",
    # Engine
    "IntelligentMapper",
    "intelligent_mapping",
    "map_fields",
    # Providers
    "HttpMasterDataProvider",
    "InMemoryMasterDataProvider",
    "MasterDataApiError",
    "MasterDataAuthError",
    "MasterDataNotFoundError",
    "MasterDataProvider",
    "adapt_master_data_items",
    "AutoMapper",
    # Configuration
    "MasterDataApiConfig",
    "RetryConfig",
    "load_api_config_from_env",
]

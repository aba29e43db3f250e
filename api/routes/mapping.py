"""Master-data mapping endpoints.

Runs the auto-mapping engine over a payload sent by the policy wizards and
exposes its configuration and metrics.
"""

from typing import Any, Dict, List, Optional

from fastapi import APIRouter
from pydantic import BaseModel, Field

from core.observability.logging import with_correlation
from core.observability.metrics import get_metrics
from master_data_mapper.engine import FIELD_SPECS, IntelligentMapper
from master_data_mapper.keywords import MODALIDAD_KEYS
from master_data_mapper.models import (
    DEFAULT_MATCHING_CONFIG,
    FieldChange,
    MasterDataFormData,
    MasterDataSets,
)
from master_data_mapper.normalize import calculate_similarity


router = APIRouter()


# Global mapper instance (stateless)
_mapper = IntelligentMapper()


class MasterDataMappingRequest(BaseModel):
    """Request to auto-map master data."""
    extracted: Dict[str, Any] = Field(default_factory=dict, description="Extracted field-path → text")
    current: MasterDataFormData = Field(default_factory=MasterDataFormData, description="Current form values")
    catalogs: MasterDataSets = Field(default_factory=MasterDataSets, description="Catalog snapshots")
    document_id: Optional[str] = Field(None, description="Scanned document, for log correlation")
    flow: Optional[str] = Field(None, description="nueva_poliza | renovacion | cambio")


class MasterDataMappingResponse(BaseModel):
    """Auto-mapping response."""
    form: Dict[str, str]
    changes: List[FieldChange]
    mapped_fields: List[str]
    has_changes: bool
    message: str


class SimilarityRequest(BaseModel):
    """Request to score two strings."""
    text1: str
    text2: str


class SimilarityResponse(BaseModel):
    """Similarity score."""
    text1: str
    text2: str
    score: float


class FieldInfoResponse(BaseModel):
    """How one form field is mapped."""
    field: str
    label: str
    catalog: str
    source_keys: List[str]
    threshold: Optional[float]
    keyword_table: bool


@router.post("/master-data", response_model=MasterDataMappingResponse)
async def map_master_data(request: MasterDataMappingRequest) -> MasterDataMappingResponse:
    """Fill the empty master-data fields from the extracted values."""
    with with_correlation(document_id=request.document_id, flow=request.flow):
        result = _mapper.map(request.extracted, request.current, request.catalogs)

    return MasterDataMappingResponse(
        form=result.form.model_dump(by_alias=True),
        changes=result.changes,
        mapped_fields=result.mapped_fields,
        has_changes=result.has_changes,
        message=result.message,
    )


@router.post("/similarity", response_model=SimilarityResponse)
async def score_similarity(request: SimilarityRequest) -> SimilarityResponse:
    """Score two strings with the matching similarity function."""
    return SimilarityResponse(
        text1=request.text1,
        text2=request.text2,
        score=calculate_similarity(request.text1, request.text2),
    )


@router.get("/fields", response_model=List[FieldInfoResponse])
async def list_fields() -> List[FieldInfoResponse]:
    """List mapped fields with their source keys and thresholds."""
    fields = [
        FieldInfoResponse(
            field=field_spec.form_field,
            label=field_spec.label,
            catalog=field_spec.catalog,
            source_keys=list(field_spec.source_keys),
            threshold=getattr(DEFAULT_MATCHING_CONFIG, field_spec.threshold),
            keyword_table=field_spec.keyword_matcher is not None,
        )
        for field_spec in FIELD_SPECS
    ]
    fields.append(FieldInfoResponse(
        field="tarifa_id",
        label="Tarifa",
        catalog="tarifas",
        source_keys=list(MODALIDAD_KEYS),
        threshold=DEFAULT_MATCHING_CONFIG.tarifa_modalidad_threshold,
        keyword_table=True,
    ))
    return fields


@router.get("/metrics")
async def mapping_metrics() -> Dict[str, Any]:
    """Auto-mapping metrics for this process."""
    return get_metrics().get_summary()

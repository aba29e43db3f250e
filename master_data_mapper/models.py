"""Master Data Mapper Data Models.

This module defines the Pydantic models for master-data auto-mapping:
- MasterDataItem: One row of a master-data catalog (fuel, tariff, ...)
- MasterDataSets: The six catalogs the engine maps against
- MasterDataFormData: The six master-data fields of the policy form
- FieldChange: One field filled in by the engine
- MappingResult: The updated form plus the change report
- MatchingConfig: Per-field similarity thresholds
"""

from enum import Enum
from typing import Any, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator


class MatchStrategy(str, Enum):
    """How a field value was resolved."""
    KEYWORD = "keyword"          # Domain keyword table
    SIMILARITY = "similarity"    # Generic string similarity
    MODALIDAD = "modalidad"      # Tariff coverage class from modalidad text
    CATEGORY = "category"        # Tariff derived from the chosen category
    DEFAULT = "default"          # Tariff last-resort default


class MasterDataItem(BaseModel):
    """One row of an enumerated master-data catalog.

    Attributes:
        id: Catalog identifier (numeric or string, compared as string)
        nombre: Display name
        codigo: Short code (e.g. "GAS" for gasoline)
        valor: Optional value column some catalogs carry
        activo: Whether the row is active
    """
    id: Union[int, str] = Field(..., description="Catalog identifier")
    nombre: str = Field(default="", description="Display name")
    codigo: Optional[str] = Field(default=None, description="Short code")
    valor: Optional[str] = None
    activo: bool = True

    @field_validator("nombre", mode="before")
    @classmethod
    def _nombre_as_text(cls, value: Any) -> str:
        return "" if value is None else str(value)

    @field_validator("codigo", "valor", mode="before")
    @classmethod
    def _optional_as_text(cls, value: Any) -> Optional[str]:
        return None if value is None else str(value)

    @property
    def key(self) -> str:
        """Identifier as assigned into the form."""
        return str(self.id)


class MasterDataSets(BaseModel):
    """The six catalogs supplied per mapping call. Order is significant."""
    combustibles: List[MasterDataItem] = Field(default_factory=list)
    destinos: List[MasterDataItem] = Field(default_factory=list)
    departamentos: List[MasterDataItem] = Field(default_factory=list)
    calidades: List[MasterDataItem] = Field(default_factory=list)
    categorias: List[MasterDataItem] = Field(default_factory=list)
    tarifas: List[MasterDataItem] = Field(default_factory=list)

    def sizes(self) -> dict:
        return {name: len(getattr(self, name)) for name in MASTER_DATA_TYPES}


MASTER_DATA_TYPES: Tuple[str, ...] = (
    "combustibles",
    "destinos",
    "departamentos",
    "calidades",
    "categorias",
    "tarifas",
)


class MasterDataFormData(BaseModel):
    """Master-data section of the policy form.

    An empty string means the user has not chosen a value; any other value,
    padding included, is kept exactly as given. Accepts the front-end
    camelCase names (``combustibleId``) as well as snake_case.
    """
    model_config = ConfigDict(populate_by_name=True)

    combustible_id: str = Field(default="", alias="combustibleId")
    destino_id: str = Field(default="", alias="destinoId")
    departamento_id: str = Field(default="", alias="departamentoId")
    calidad_id: str = Field(default="", alias="calidadId")
    categoria_id: str = Field(default="", alias="categoriaId")
    tarifa_id: str = Field(default="", alias="tarifaId")

    @field_validator("*", mode="before")
    @classmethod
    def _id_as_text(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value)


class FieldChange(BaseModel):
    """A form field the engine filled in."""
    field: str = Field(..., description="Form field name (e.g. 'combustible_id')")
    label: str = Field(..., description="User-facing field label")
    item_id: str
    item_name: str
    source_value: Optional[str] = Field(default=None, description="Extracted text used for matching")
    strategy: MatchStrategy
    score: Optional[float] = None


class MappingResult(BaseModel):
    """Outcome of one mapping pass."""
    form: MasterDataFormData
    changes: List[FieldChange] = Field(default_factory=list)

    @property
    def has_changes(self) -> bool:
        return bool(self.changes)

    @property
    def mapped_fields(self) -> List[str]:
        return [change.label for change in self.changes]

    @property
    def message(self) -> str:
        if not self.changes:
            return "Mapeo inteligente completado sin cambios"
        return f"Datos maestros mapeados automáticamente: {', '.join(self.mapped_fields)}"


# =============================================================================
# Matching Configuration
# =============================================================================

class MatchingConfig(BaseModel):
    """Thresholds for the generic similarity fallback.

    Scores are in [0, 1]; a catalog item must score at least the threshold
    to be accepted.
    """
    combustible_threshold: float = Field(default=0.6, ge=0.0, le=1.0)
    destino_threshold: float = Field(default=0.5, ge=0.0, le=1.0)
    departamento_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    calidad_threshold: float = Field(default=0.8, ge=0.0, le=1.0)
    categoria_threshold: float = Field(default=0.6, ge=0.0, le=1.0)

    tarifa_modalidad_threshold: float = Field(
        default=0.6, ge=0.0, le=1.0,
        description="Min score for modalidad text against tariff names",
    )
    tarifa_categoria_threshold: float = Field(
        default=0.7, ge=0.0, le=1.0,
        description="Min score for the chosen category name against tariff names",
    )
    default_tarifa_keywords: Tuple[str, ...] = ("general", "estandar", "normal")


DEFAULT_MATCHING_CONFIG = MatchingConfig()

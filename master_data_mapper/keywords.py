"""Static lookup tables for master-data mapping.

Source keys are the exact field paths the document-scanning service emits,
legacy spellings included. Keyword tables are keyed by accent-free
uppercase tokens and are checked in declaration order.
"""

from enum import Enum
from types import MappingProxyType
from typing import Mapping, Tuple


# =============================================================================
# Candidate source keys (first present non-blank value wins)
# =============================================================================

COMBUSTIBLE_KEYS: Tuple[str, ...] = (
    "vehiculo.combustible",
    "vehiculo_combustible",
    "vehiculoCombustible",
    "combustible",
)

DESTINO_KEYS: Tuple[str, ...] = (
    "vehiculo.destino_del_vehiculo",
    "vehiculo.destino",
    "vehiculo.tipo_de_uso",
    "vehiculo.uso",
    "destino_del_vehiculo",
    "destino",
    "tipoUso",
)

DEPARTAMENTO_KEYS: Tuple[str, ...] = (
    "asegurado.departamento",
    "asegurado_departamento",
    "aseguradoDepartamento",
    "departamento",
)

CALIDAD_KEYS: Tuple[str, ...] = (
    "vehiculo.calidad_contratante",
    "asegurado.calidad",
    "calidad_contratante",
    "calidad",
)

CATEGORIA_KEYS: Tuple[str, ...] = (
    "vehiculo.tipo_vehiculo",
    "vehiculo.tipo_de_vehiculo",
    "vehiculo.tipo",
    "vehiculoTipo",
    "tipo_vehiculo",
    "categoria",
)

MODALIDAD_KEYS: Tuple[str, ...] = (
    "poliza.modalidad",
    "poliza.cobertura",
    "poliza.tipo_cobertura",
    "modalidad",
    "cobertura",
)


# =============================================================================
# Label echoes printed next to the value on the scanned document
# =============================================================================

COMBUSTIBLE_LABELS: Tuple[str, ...] = ("COMBUSTIBLE",)
DESTINO_LABELS: Tuple[str, ...] = (
    "DESTINO DEL VEHÍCULO", "DESTINO DEL VEHICULO", "DESTINO", "TIPO DE USO", "USO",
)
DEPARTAMENTO_LABELS: Tuple[str, ...] = ("DEPARTAMENTO",)
CALIDAD_LABELS: Tuple[str, ...] = ("CALIDAD DEL CONTRATANTE", "CALIDAD")
CATEGORIA_LABELS: Tuple[str, ...] = ("TIPO DE VEHÍCULO", "TIPO DE VEHICULO", "CATEGORÍA", "CATEGORIA")
MODALIDAD_LABELS: Tuple[str, ...] = ("MODALIDAD", "COBERTURA")


# =============================================================================
# Keyword tables
# =============================================================================

# Fuel token → catalog code
COMBUSTIBLE_CODES: Mapping[str, str] = MappingProxyType({
    "NAFTA": "GAS",
    "GASOLINA": "GAS",
    "DIESEL": "DIS",
    "DISEL": "DIS",
    "GAS-OIL": "DIS",
    "GASOIL": "DIS",
    "GAS OIL": "DIS",
    "ELECTRICO": "ELE",
    "HIBRIDO": "HYB",
    "HYBRID": "HYB",
})

# Usage token → catalog-name substrings, best first
DESTINO_KEYWORDS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "PARTICULAR": ("Particular",),
    "PRIVADO": ("Particular",),
    "COMERCIAL": ("Comercial", "Trabajo"),
    "TRABAJO": ("Trabajo", "Comercial"),
    "TAXI": ("Taxi",),
    "REMISE": ("Remise", "Taxi"),
    "APLICACION": ("Aplicacion", "Remise"),
    "UBER": ("Aplicacion", "Remise"),
    "ALQUILER": ("Alquiler", "Rent"),
    "CARGA": ("Carga", "Comercial"),
    "TRANSPORTE": ("Transporte", "Carga"),
    "OFICIAL": ("Oficial",),
    "ESCOLAR": ("Escolar",),
    "AMBULANCIA": ("Ambulancia",),
    "AGRICOLA": ("Agricola", "Rural"),
    "RURAL": ("Rural", "Agricola"),
})

# Vehicle type token → catalog-name substrings, best first
CATEGORIA_KEYWORDS: Mapping[str, Tuple[str, ...]] = MappingProxyType({
    "AUTOMOVIL": ("Automóvil",),
    "AUTO": ("Automóvil",),
    "CAMIONETA": ("Camioneta Rural", "Pick-Up"),
    "PICKUP": ("Pick-Up Doble Cabina",),
    "PICK-UP": ("Pick-Up Doble Cabina", "Pick-Up"),
    "JEEP": ("Jeeps",),
    "SUV": ("Jeeps",),
    "CAMION": ("Camion", "Furgón"),
    "FURGON": ("Camioneta furgon", "Furgón"),
    "OMNIBUS": ("Omnibus",),
    "MOTO": ("MOTOS",),
})


class CoverageClass(str, Enum):
    """Canonical coverage classes read from the policy modalidad."""
    TODO_RIESGO_TOTAL = "todo_riesgo_total"
    TODO_RIESGO = "todo_riesgo"
    TOTAL = "total"
    TERCEROS = "terceros"
    PREMIUM = "premium"
    BASICA = "basica"


# Coverage class → tariff-name substrings, best first
TARIFA_KEYWORDS: Mapping[CoverageClass, Tuple[str, ...]] = MappingProxyType({
    CoverageClass.TODO_RIESGO_TOTAL: ("Todo Riesgo Total", "Todo Riesgo", "Total"),
    CoverageClass.TODO_RIESGO: ("Todo Riesgo", "Full", "Total"),
    CoverageClass.TOTAL: ("Total", "Todo Riesgo"),
    CoverageClass.TERCEROS: ("Responsabilidad Civil", "Terceros", "R.C."),
    CoverageClass.PREMIUM: ("Premium", "Full", "Plus"),
    CoverageClass.BASICA: ("Basica", "Minima", "Responsabilidad Civil"),
})

"""Auto-mapping runner for the document-to-policy wizards.

Loads the six catalogs (tariffs restricted to the policy's insurance
company), runs the mapping engine once over the extracted document data and
hands the updated form to the caller when something changed.
"""

import asyncio
import time
from typing import Any, Callable, List, Mapping, Optional, Union

from core.observability.logging import get_logger, with_correlation
from core.observability.metrics import record_catalog_load_failed, record_processing_time
from master_data_mapper.engine import IntelligentMapper
from master_data_mapper.models import (
    MASTER_DATA_TYPES,
    MappingResult,
    MasterDataFormData,
    MasterDataItem,
    MasterDataSets,
)
from master_data_mapper.provider import CompaniaId, MasterDataApiError, MasterDataProvider


logger = get_logger(__name__)


class AutoMapper:
    """Runs master-data auto-mapping at most once per document.

    Example:
        auto = AutoMapper(provider, on_mapping_complete=form.update)
        result = await auto.run(extracted, current_form, compania_id=3)
    """

    def __init__(
        self,
        provider: MasterDataProvider,
        on_mapping_complete: Optional[Callable[[MasterDataFormData], None]] = None,
        mapper: Optional[IntelligentMapper] = None,
    ):
        self.provider = provider
        self.on_mapping_complete = on_mapping_complete
        self.mapper = mapper or IntelligentMapper()
        self.has_executed = False
        self.master_data_ready = False

    async def load_master_data(self, compania_id: Optional[CompaniaId] = None) -> MasterDataSets:
        """Load all catalogs concurrently; a failed catalog comes back empty."""
        start_time = time.time()
        results = await asyncio.gather(*(
            self._load_catalog(tipo, compania_id if tipo == "tarifas" else None)
            for tipo in MASTER_DATA_TYPES
        ))
        sets = MasterDataSets(**dict(zip(MASTER_DATA_TYPES, results)))
        self.master_data_ready = True

        duration_ms = (time.time() - start_time) * 1000
        record_processing_time("catalog_load", duration_ms)

        logger.info(
            "Master data loaded for auto-mapping",
            extra_fields={**sets.sizes(), "duration_ms": round(duration_ms, 2)},
        )
        return sets

    async def _load_catalog(
        self,
        tipo: str,
        compania_id: Optional[CompaniaId],
    ) -> List[MasterDataItem]:
        try:
            return list(await self.provider.get_master_data_by_type(tipo, compania_id))
        except MasterDataApiError as e:
            logger.warning(
                f"Could not load master data '{tipo}': {e}",
                extra_fields={"catalog": tipo, "status_code": e.status_code},
            )
            record_catalog_load_failed(tipo)
            return []

    async def run(
        self,
        extracted: Optional[Mapping[str, Any]],
        current_form: Union[MasterDataFormData, Mapping[str, Any], None],
        compania_id: Optional[CompaniaId] = None,
    ) -> Optional[MappingResult]:
        """Map the extracted data onto the form.

        Args:
            extracted: Field-path → raw text from document scanning
            current_form: Current master-data form values
            compania_id: Insurance company used to filter tariffs

        Returns:
            The mapping result, or None when already executed or when there
            is no extracted data
        """
        if self.has_executed:
            logger.debug("Auto-mapping already executed, skipping")
            return None

        if not extracted:
            logger.info("No extracted data, auto-mapping skipped")
            return None

        correlation = {"stage": "automapping"}
        if compania_id:
            correlation["compania_id"] = str(compania_id)

        with with_correlation(**correlation):
            sets = await self.load_master_data(compania_id)
            result = self.mapper.map(extracted, current_form, sets)
            self.has_executed = True

            if result.has_changes and self.on_mapping_complete is not None:
                self.on_mapping_complete(result.form)

        return result

    def reset(self) -> None:
        """Allow the next run() to execute again (e.g. a new document)."""
        self.has_executed = False
        self.master_data_ready = False

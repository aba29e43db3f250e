"""
Run master-data auto-mapping over a scanned document's extracted data.

Catalogs come from a JSON file shaped like MasterDataSets
({"combustibles": [{"id": 1, "nombre": "GASOLINA", "codigo": "GAS"}], ...})
or, with --api, from the policy backend configured via MASTER_DATA_API_URL.

Usage:
    python scripts/map_extracted.py --extracted doc.json --catalogs catalogs.json
    python scripts/map_extracted.py --extracted doc.json --api --compania 3 --json
"""

import argparse
import asyncio
import json
from pathlib import Path

import sys
sys.path.append(str(Path(__file__).resolve().parents[1]))

from master_data_mapper import (
    HttpMasterDataProvider,
    IntelligentMapper,
    MasterDataFormData,
    MasterDataSets,
)


def load_json(path: Path):
    with open(path, encoding="utf-8") as f:
        return json.load(f)


async def fetch_catalogs(compania_id) -> MasterDataSets:
    async with HttpMasterDataProvider() as provider:
        return await provider.get_all(compania_id)


def main() -> int:
    parser = argparse.ArgumentParser(description="Map extracted document data onto master-data catalogs")
    parser.add_argument("--extracted", type=Path, required=True, help="JSON file with extracted field-path → text")
    parser.add_argument("--catalogs", type=Path, help="JSON file with the six catalogs")
    parser.add_argument("--form", type=Path, help="JSON file with current form values")
    parser.add_argument("--api", action="store_true", help="Load catalogs from the master-data API")
    parser.add_argument("--compania", help="Insurance company id used to filter tariffs (with --api)")
    parser.add_argument("--json", action="store_true", help="Print the result as JSON")
    args = parser.parse_args()

    if not args.api and not args.catalogs:
        parser.error("either --catalogs or --api is required")

    extracted = load_json(args.extracted)
    form = MasterDataFormData.model_validate(load_json(args.form)) if args.form else MasterDataFormData()

    if args.api:
        catalogs = asyncio.run(fetch_catalogs(args.compania))
    else:
        catalogs = MasterDataSets.model_validate(load_json(args.catalogs))

    mapper = IntelligentMapper()
    result = mapper.map(extracted, form, catalogs)

    if args.json:
        print(json.dumps({
            "form": result.form.model_dump(by_alias=True),
            "changes": [c.model_dump(mode="json") for c in result.changes],
            "message": result.message,
        }, indent=2, ensure_ascii=False))
    else:
        print(mapper.explain_result(result))

    return 0


if __name__ == "__main__":
    sys.exit(main())

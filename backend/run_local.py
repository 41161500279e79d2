# backend/run_local.py
"""
Run a full calculation from a household JSON file without the web server.

    python -m backend.run_local tests/sample_household.json

The file holds the same fields as the POST /calculate body; "tariff_id"
is looked up in the tariff catalog.
"""
import json
import sys
from pathlib import Path

from backend import config
from backend.lib.eleca_core.calculator import get_full_calculation
from backend.lib.eleca_core.errors import ConfigurationError, ValidationError
from backend.lib.eleca_core.io import (
    appliance_from_dict,
    load_tariff_catalog,
    solar_from_dict,
    subsidy_from_dict,
    tariff_from_dict,
    to_jsonable,
)


def run(household_path: Path) -> dict:
    data = json.loads(Path(household_path).read_text(encoding="utf-8"))
    if data.get("tariff") is not None:
        tariff = tariff_from_dict(data["tariff"])
    else:
        catalog = load_tariff_catalog(config.TARIFF_CATALOG_PATH.read_text(encoding="utf-8"))
        if data.get("tariff_id") not in catalog:
            raise ValidationError(f"unknown tariff_id {data.get('tariff_id')!r}")
        tariff = catalog[data["tariff_id"]]

    result = get_full_calculation(
        [appliance_from_dict(a) for a in data.get("appliances", [])],
        tariff,
        solar_from_dict(data.get("solar")),
        subsidy_from_dict(data.get("subsidy")),
        data.get("season", config.DEFAULT_SEASON),
    )
    return to_jsonable(result)


def main(argv=None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    path = argv[0] if argv else "tests/sample_household.json"
    try:
        print(json.dumps(run(Path(path)), indent=2))
    except (ValidationError, ConfigurationError) as e:
        print(f"error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

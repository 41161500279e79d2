# tests/test_entry_points.py
import json
import pathlib

from backend.lambda_handlers.estimate_bill import lambda_handler
from backend.run_local import main, run

HERE = pathlib.Path(__file__).parent


def invoke(params):
    result = lambda_handler({"queryStringParameters": params}, None)
    return result["statusCode"], json.loads(result["body"])


def test_lambda_estimates_bill():
    status, body = invoke({"units": "250", "tariff_id": "GENERIC"})
    assert status == 200
    assert body["energy_cost"] == 1050.0
    assert body["estimated_cost"] == 1100.0
    assert body["currency"] == "INR"
    assert len(body["slab_breakdown"]) == 2


def test_lambda_rejects_bad_input():
    assert invoke({"units": "250"})[0] == 400
    assert invoke({"units": "250", "tariff_id": "ZZ"})[0] == 404
    assert invoke({"units": "lots", "tariff_id": "GENERIC"})[0] == 400
    assert invoke({"units": "-5", "tariff_id": "GENERIC"})[0] == 400
    status, _ = lambda_handler({"queryStringParameters": None}, None)["statusCode"], None
    assert status == 400


def test_run_local_sample_household():
    result = run(HERE / "sample_household.json")
    assert result["season"] == "summer"
    assert [b["appliance"]["id"] for b in result["top_consumers"]] == ["ac-1", "fridge", "led"]
    assert result["total_cost"] == result["energy_cost"] + result["fixed_charge"]


def test_run_local_main_reports_errors(tmp_path, capsys):
    bad = tmp_path / "bad.json"
    bad.write_text(json.dumps({"tariff_id": "GENERIC", "season": "spring"}))
    assert main([str(bad)]) == 1
    assert "error:" in capsys.readouterr().err
    assert main([str(HERE / "sample_household.json")]) == 0

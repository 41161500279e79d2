# backend/lambda_handlers/estimate_bill.py
"""
Lambda function to estimate a slab-wise electricity bill
Triggered by API Gateway
"""
import json

from backend import config
from backend.lib.eleca_core.errors import ValidationError
from backend.lib.eleca_core.io import load_tariff_catalog, round_currency, to_jsonable
from backend.lib.eleca_core.tariff import calculate_progressive_bill
from backend.lib.logger import get_logger

logger = get_logger(__name__)

# Loaded once per Lambda container, reused across invocations
TARIFFS = load_tariff_catalog(config.TARIFF_CATALOG_PATH.read_text(encoding="utf-8"))


def lambda_handler(event, context):
    """
    Estimate the monthly bill for a number of units.

    Query parameters:
    - units: Required, monthly kWh
    - tariff_id: Required, a tariff id from the catalog (e.g. 'MH')
    """
    logger.info("Received event: %s", json.dumps(event))

    params = event.get('queryStringParameters') or {}
    tariff_id = params.get('tariff_id')
    if not tariff_id:
        return response(400, {'error': 'tariff_id is required'})
    if tariff_id not in TARIFFS:
        return response(404, {'error': f'unknown tariff_id {tariff_id!r}'})

    try:
        units = float(params.get('units', ''))
    except ValueError:
        return response(400, {'error': 'units must be a number'})

    try:
        bill = calculate_progressive_bill(units, TARIFFS[tariff_id])
    except ValidationError as e:
        return response(400, {'error': str(e)})

    return response(200, {
        'tariff_id': tariff_id,
        'units': units,
        'energy_cost': round_currency(bill.energy_cost),
        'fixed_charge': round_currency(bill.fixed_charge),
        'estimated_cost': round_currency(bill.total),
        'slab_breakdown': to_jsonable(bill.slab_breakdown),
        'currency': 'INR'
    })


def response(status_code: int, body: dict) -> dict:
    """Create API Gateway response."""
    return {
        'statusCode': status_code,
        'headers': {
            'Content-Type': 'application/json',
            'Access-Control-Allow-Origin': '*',
            'Access-Control-Allow-Methods': 'GET,POST,OPTIONS',
            'Access-Control-Allow-Headers': 'Content-Type'
        },
        'body': json.dumps(body)
    }

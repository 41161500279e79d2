"""
=============================================================================
ELECA - HOUSEHOLD ELECTRICITY BILL ESTIMATOR (FLASK APPLICATION)
=============================================================================

REST API over the billing engine in backend/lib/eleca_core:
- Slab-wise bills for a number of units under a state tariff
- Full household calculation from an appliance inventory
  (solar offset, subsidy, season, top consumers, efficiency grade)
- Daily usage logs (JSON or CSV upload), month-to-date summary,
  month-end projection and calendar statuses
- Email alerts (SNS) when a household crosses its subsidy limit

AWS services are optional:
- DynamoDB: stores daily logs (USE_DYNAMODB=true), else a local JSONL file
- SNS: subsidy alerts (USE_SNS=true)

How to run:
    python -m backend.app

Then call e.g.: curl http://127.0.0.1:5000/tariffs
=============================================================================
"""

from datetime import date

from botocore.exceptions import BotoCoreError, ClientError
from flask import Flask, jsonify, request

from backend import config
from backend.lib.eleca_core.aggregator import (
    calendar_days,
    detect_spikes,
    estimate_daily_log,
    month_logs,
    summarize_month,
)
from backend.lib.eleca_core.calculator import get_full_calculation
from backend.lib.eleca_core.errors import ConfigurationError, ValidationError
from backend.lib.eleca_core.io import (
    appliance_from_dict,
    daily_usage_from_dict,
    load_tariff_catalog,
    parse_daily_logs_csv,
    parse_date,
    solar_from_dict,
    subsidy_from_dict,
    tariff_from_dict,
    to_jsonable,
    usage_hours_from_dict,
)
from backend.lib.eleca_core.tariff import calculate_progressive_bill
from backend.lib.log_store import LocalLogStore
from backend.lib.logger import get_logger

logger = get_logger(__name__)

# =============================================================================
# STORAGE AND NOTIFICATION SERVICES
# =============================================================================
# Each AWS service is switched on by an environment variable. If it fails to
# start we fall back (local file storage) or run without it (no alerts).

log_store = None
USE_DYNAMODB = config.USE_DYNAMODB

if USE_DYNAMODB:
    try:
        from backend.lib.dynamodb_service import DynamoDBService
        dynamodb_service = DynamoDBService(config.DYNAMODB_TABLE_NAME)
        if dynamodb_service.create_table_if_not_exists():
            log_store = dynamodb_service
            logger.info("DynamoDB storage enabled")
    except (BotoCoreError, ClientError) as e:
        logger.warning("DynamoDB initialization failed: %s. Using local storage.", e)
    if log_store is None:
        USE_DYNAMODB = False

if log_store is None:
    log_store = LocalLogStore(config.LOGS_FILE)

sns_service = None
USE_SNS = config.USE_SNS

if USE_SNS:
    try:
        from backend.lib.sns_service import SNSService
        sns_service = SNSService()
        if not sns_service.topic_arn:
            sns_service.create_topic_if_not_exists()
        logger.info("SNS notifications enabled")
    except (BotoCoreError, ClientError) as e:
        logger.warning("SNS initialization failed: %s. Notifications disabled.", e)
        sns_service = None
        USE_SNS = False

# =============================================================================
# TARIFF CATALOG
# =============================================================================
# Static configuration; a malformed catalog stops the app at start-up.

TARIFFS = load_tariff_catalog(config.TARIFF_CATALOG_PATH.read_text(encoding="utf-8"))
logger.info("Loaded %d tariffs from %s", len(TARIFFS), config.TARIFF_CATALOG_PATH)

app = Flask(__name__)


# (user_id, month) pairs already alerted for crossing the subsidy limit
alerted_months = set()


class TariffNotFound(LookupError):
    """Raised when a request names a tariff id that is not in the catalog."""


# =============================================================================
# HELPER FUNCTIONS
# =============================================================================

def json_body() -> dict:
    """The request's JSON object, or ValidationError when there is none."""
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        raise ValidationError("request body must be a JSON object")
    return data


def tariff_for(data: dict):
    """
    The tariff a request refers to.

    Either an inline "tariff" object (validated like a catalog entry)
    or a "tariff_id" from the catalog.
    """
    if data.get("tariff") is not None:
        return tariff_from_dict(data["tariff"])
    tariff_id = data.get("tariff_id")
    if not tariff_id:
        raise ValidationError("tariff_id or tariff required")
    if tariff_id not in TARIFFS:
        raise TariffNotFound(tariff_id)
    return TARIFFS[tariff_id]


def appliances_for(data: dict):
    raw = data.get("appliances") or []
    if not isinstance(raw, list):
        raise ValidationError("appliances must be a list")
    return [appliance_from_dict(item) for item in raw]


def required_arg(name: str) -> str:
    value = request.args.get(name) or (request.form.get(name) if request.form else None)
    if not value:
        raise ValidationError(f"{name} required")
    return value


# =============================================================================
# ERROR HANDLERS
# =============================================================================
# The engine never guesses around bad input; the API turns its errors
# into client responses.

@app.errorhandler(ValidationError)
def handle_validation_error(e):
    logger.warning("Rejected request: %s", e)
    return jsonify({"error": str(e)}), 400


@app.errorhandler(ConfigurationError)
def handle_configuration_error(e):
    logger.warning("Rejected tariff: %s", e)
    return jsonify({"error": str(e)}), 422


@app.errorhandler(TariffNotFound)
def handle_tariff_not_found(e):
    return jsonify({"error": f"unknown tariff_id {e.args[0]!r}"}), 404


# =============================================================================
# API ROUTES - BASIC ENDPOINTS
# =============================================================================

@app.route("/health", methods=["GET"])
def health():
    """Service status: storage backend, notifications and catalog size."""
    return jsonify({
        "status": "ok",
        "dynamodb_enabled": USE_DYNAMODB,
        "sns_enabled": USE_SNS,
        "tariff_count": len(TARIFFS),
    })


@app.route("/tariffs", methods=["GET"])
def list_tariffs():
    """All tariffs in the catalog, with their slabs."""
    return jsonify({"tariffs": [to_jsonable(t) for t in TARIFFS.values()]})


@app.route("/bill", methods=["POST"])
def bill():
    """
    Slab-wise bill for a number of units.

    Request Body (JSON):
        {"units": 250, "tariff_id": "GENERIC"}

    Example Response:
        {"energy_cost": 1050.0, "fixed_charge": 50.0, "total": 1100.0,
         "slab_breakdown": [...]}
    """
    data = json_body()
    tariff = tariff_for(data)
    breakdown = calculate_progressive_bill(data.get("units"), tariff)
    return jsonify(to_jsonable(breakdown))


@app.route("/calculate", methods=["POST"])
def calculate():
    """
    Full monthly calculation for an appliance inventory.

    Request Body (JSON):
        {
            "tariff_id": "MH",
            "season": "summer",
            "solar": {"is_installed": true, "rating_kw": 2},
            "subsidy": {"type": "government", "limit_units": 100},
            "appliances": [
                {"id": "ac-1", "name": "Bedroom AC", "category": "cooling",
                 "input_mode": "iseer", "capacity_ton": 1.5, "iseer": 4.5,
                 "hours_per_day": 8, "days_per_month": 30, "quantity": 1}
            ]
        }
    """
    data = json_body()
    result = get_full_calculation(
        appliances_for(data),
        tariff_for(data),
        solar_from_dict(data.get("solar")),
        subsidy_from_dict(data.get("subsidy")),
        data.get("season", config.DEFAULT_SEASON),
    )
    return jsonify(to_jsonable(result))


# =============================================================================
# API ROUTES - DAILY LOGS
# =============================================================================

@app.route("/logs", methods=["POST"])
def save_logs():
    """
    Save one daily log, or several under "logs".
    Saving a date again replaces that day.

    Request Body (JSON):
        {"user_id": "u1", "date": "2025-11-01", "total_units": 8.2, "total_cost": 41.0}
    """
    data = json_body()
    raw = data["logs"] if "logs" in data else [data]
    if not isinstance(raw, list):
        raise ValidationError("logs must be a list")
    logs = [daily_usage_from_dict(item) for item in raw]
    saved = log_store.save_logs(logs)
    return jsonify({"saved": saved}), 201


@app.route("/logs", methods=["GET"])
def get_logs():
    """
    Query Parameters:
        user_id (required)
        month (optional): YYYY-MM, limits the result to one month
    """
    user_id = required_arg("user_id")
    logs = log_store.get_logs_for_user(user_id)
    month = request.args.get("month")
    if month:
        logs = month_logs(logs, month)
    return jsonify({"user_id": user_id, "logs": to_jsonable(logs)})


@app.route("/logs/estimate", methods=["POST"])
def estimate_log():
    """
    Estimated log for one day built from the appliance inventory.
    Nothing is stored; the client saves it through POST /logs if wanted.

    Request Body (JSON):
        {"user_id": "u1", "date": "2025-11-03", "tariff_id": "MH",
         "season": "summer", "appliances": [...],
         "usage_hours": {"ac-1": 6}}
    """
    data = json_body()
    user_id = data.get("user_id")
    if not user_id:
        raise ValidationError("user_id required")
    usage_hours = usage_hours_from_dict(data.get("usage_hours"))
    log = estimate_daily_log(
        user_id,
        parse_date(data.get("date")),
        appliances_for(data),
        tariff_for(data),
        data.get("season", config.DEFAULT_SEASON),
        usage_hours,
    )
    return jsonify(to_jsonable(log))


@app.route("/upload", methods=["POST"])
def upload():
    """
    Upload measured daily logs as CSV.

    Form fields:
        file: CSV with header date,total_units,total_cost
        user_id: household the logs belong to

    HTTP Status Codes:
        202: Accepted - logs stored
        400: Bad Request - no file, no user_id or malformed CSV
    """
    if "file" not in request.files:
        return jsonify({"error": "No file uploaded"}), 400
    user_id = required_arg("user_id")

    file = request.files["file"]
    try:
        content = file.read().decode("utf-8")
    except UnicodeDecodeError:
        raise ValidationError("uploaded file is not UTF-8 text") from None
    logs = parse_daily_logs_csv(content, user_id)
    saved = log_store.save_logs(logs)

    return jsonify({
        "upload_id": file.filename,
        "processed_count": len(logs),
        "saved": saved,
    }), 202


@app.route("/summary", methods=["POST"])
def summary():
    """
    Month-to-date summary, month-end projection and calendar for a household.

    Request Body (JSON):
        {
            "user_id": "u1",
            "month": "2025-11",                (default: month of reference_date)
            "reference_date": "2025-11-14",    (default: today)
            "tariff_id": "MH",
            "season": "winter",
            "subsidy": {"type": "government", "limit_units": 200},
            "appliances": [...],               (baseline before any log exists)
            "ignore_limit_without_subsidy": false
        }

    Sends an SNS alert when the subsidy limit has been crossed.
    """
    data = json_body()
    user_id = data.get("user_id")
    if not user_id:
        raise ValidationError("user_id required")

    # The engine takes "today" as input; the API layer is where the clock is read
    reference = parse_date(data["reference_date"]) if data.get("reference_date") else date.today()
    month = data.get("month") or reference.strftime("%Y-%m")
    ignore_flag = bool(data.get("ignore_limit_without_subsidy", False))
    subsidy = subsidy_from_dict(data.get("subsidy"))

    logs = log_store.get_logs_for_user(user_id)
    month_summary = summarize_month(
        logs,
        tariff_for(data),
        appliances_for(data),
        subsidy,
        data.get("season", config.DEFAULT_SEASON),
        month,
        ignore_limit_without_subsidy=ignore_flag,
    )
    days = calendar_days(logs, month, subsidy, reference,
                         ignore_limit_without_subsidy=ignore_flag)

    response = {
        "user_id": user_id,
        "summary": to_jsonable(month_summary),
        "calendar": to_jsonable(days),
    }

    # Households without a subsidy have no limit to cross; one alert per household and month
    alert_key = (user_id, month)
    if (month_summary.slab_crossed and subsidy.type != "none"
            and alert_key not in alerted_months and USE_SNS and sns_service):
        response["alert_sent"] = sns_service.send_subsidy_limit_alert(user_id, month_summary)
        if response["alert_sent"]:
            alerted_months.add(alert_key)

    return jsonify(response)


@app.route("/anomalies", methods=["GET"])
def anomalies():
    """
    Days where usage jumped more than threshold_pct over the previous logged day.

    Query Parameters:
        user_id (required)
        threshold_pct (optional): default 50.0
    """
    user_id = required_arg("user_id")
    try:
        threshold = float(request.args.get("threshold_pct", 50.0))
    except ValueError:
        return jsonify({"error": "threshold_pct must be a number"}), 400

    spikes = detect_spikes(log_store.get_logs_for_user(user_id), threshold_pct=threshold)
    return jsonify({
        "user_id": user_id,
        "threshold_pct": threshold,
        "spikes": to_jsonable(spikes),
    })


# =============================================================================
# API ROUTES - SNS ENDPOINTS
# =============================================================================

@app.route("/sns/status", methods=["GET"])
def sns_status():
    return jsonify({
        "sns_enabled": USE_SNS,
        "topic_arn": sns_service.topic_arn if sns_service else None,
        "subscriber_count": len(sns_service.list_subscriptions()) if sns_service else 0,
    })


@app.route("/sns/subscribe", methods=["POST"])
def sns_subscribe():
    """
    Subscribe an email address to subsidy alerts.

    Request Body (JSON):
        {"email": "user@example.com"}
    """
    if not USE_SNS or not sns_service:
        return jsonify({"error": "SNS not enabled"}), 400

    data = request.get_json(silent=True)
    if not data or not data.get("email"):
        return jsonify({"error": "email required"}), 400

    email = data["email"]
    subscription_arn = sns_service.subscribe_email(email)
    if subscription_arn:
        return jsonify({
            "message": f"Subscription pending. Check {email} for confirmation link.",
            "subscription_arn": subscription_arn
        })
    return jsonify({"error": "Failed to subscribe"}), 500


if __name__ == "__main__":
    app.run(debug=config.DEBUG)

"""
=============================================================================
LOCAL LOG STORE - Daily usage logs in a JSON Lines file
=============================================================================

Fallback storage used when DynamoDB is not enabled. Every save appends one
JSON line; on read, the latest line for a (user_id, date) pair wins, so
saving a day again replaces it.

Example line:
{"id": "log-u1-2025-11-01", "user_id": "u1", "date": "2025-11-01",
 "total_units": 8.2, "total_cost": 41.0, "is_estimated": false, "appliances": []}
=============================================================================
"""

import json
from pathlib import Path
from typing import Dict, Iterable, List, Tuple

from backend.lib.eleca_core.io import daily_usage_from_dict, to_jsonable
from backend.lib.eleca_core.models import UserDailyUsage
from backend.lib.logger import get_logger

logger = get_logger(__name__)


class LocalLogStore:
    """
    Append-only JSONL store for UserDailyUsage records.

    Usage:
        store = LocalLogStore(Path("backend/data/daily_logs.jsonl"))
        store.save_logs([log])
        logs = store.get_logs_for_user("u1")
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        # Create the folder if it doesn't exist (parents=True creates parent folders)
        self.path.parent.mkdir(parents=True, exist_ok=True)

    def save_logs(self, logs: Iterable[UserDailyUsage]) -> int:
        """Append logs to the file. Returns how many were written."""
        count = 0
        with self.path.open("a", encoding="utf-8") as f:
            for log in logs:
                f.write(json.dumps(to_jsonable(log)) + "\n")
                count += 1
        logger.info("Saved %d daily logs to %s", count, self.path)
        return count

    def get_logs_for_user(self, user_id: str) -> List[UserDailyUsage]:
        """All logs of one user, one per date, sorted by date."""
        if not self.path.exists():
            return []  # No data yet

        seen: Dict[Tuple[str, str], UserDailyUsage] = {}
        with self.path.open("r", encoding="utf-8") as f:
            for line in f:
                if not line.strip():
                    continue
                obj = json.loads(line)
                if obj.get("user_id") != user_id:
                    continue
                # Overwrites an earlier save of the same day
                seen[(obj["user_id"], obj["date"])] = daily_usage_from_dict(obj)

        return sorted(seen.values(), key=lambda log: log.date)

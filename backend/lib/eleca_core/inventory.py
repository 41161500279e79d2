# backend/lib/eleca_core/inventory.py
from collections import Counter
from typing import Iterable, Tuple

from .errors import ValidationError
from .models import Appliance


def ensure_unique_ids(appliances: Iterable[Appliance]) -> None:
    counts = Counter(a.id for a in appliances)
    duplicates = sorted(app_id for app_id, n in counts.items() if n > 1)
    if duplicates:
        raise ValidationError(f"duplicate appliance ids: {', '.join(duplicates)}")


def upsert_appliance(inventory: Iterable[Appliance], appliance: Appliance) -> Tuple[Appliance, ...]:
    """Replace the entry with the same id in place, or append a new one."""
    items = tuple(inventory)
    if any(a.id == appliance.id for a in items):
        return tuple(appliance if a.id == appliance.id else a for a in items)
    return items + (appliance,)


def remove_appliance(inventory: Iterable[Appliance], appliance_id: str) -> Tuple[Appliance, ...]:
    return tuple(a for a in inventory if a.id != appliance_id)

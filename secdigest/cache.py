"""Best-effort persistence of the last successful digest."""
from __future__ import annotations

import json
import logging
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from .processor import SecurityItem

logger = logging.getLogger(__name__)


def item_to_dict(item: SecurityItem) -> Dict:
    data = asdict(item)
    data["published_at"] = item.published_at.isoformat()
    return data


def item_from_dict(data: Dict) -> SecurityItem:
    values = dict(data)
    values["published_at"] = datetime.fromisoformat(values["published_at"])
    return SecurityItem(**values)


class ResultCache:
    """JSON file holding the last digest and when it finished."""

    def __init__(self, path: Path) -> None:
        self.path = path

    def _read(self) -> Dict:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text())
        except (OSError, ValueError) as exc:
            logger.warning("Ignoring unreadable cache %s: %s", self.path, exc)
            return {}
        return data if isinstance(data, dict) else {}

    def store(self, items: Sequence[SecurityItem], finished_at: datetime) -> None:
        serialised = {
            "last_fetch": finished_at.isoformat(),
            "items": [item_to_dict(item) for item in items],
        }
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(serialised, indent=2, sort_keys=True))

    def load(self) -> List[SecurityItem]:
        items: List[SecurityItem] = []
        for record in self._read().get("items", []):
            try:
                items.append(item_from_dict(record))
            except (KeyError, TypeError, ValueError):
                logger.debug("Skipping malformed cached item: %r", record)
        return items

    def last_fetch(self) -> Optional[datetime]:
        value = self._read().get("last_fetch")
        if not value:
            return None
        try:
            return datetime.fromisoformat(value)
        except (TypeError, ValueError):
            return None

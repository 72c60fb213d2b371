"""
Persisted board selection for display instances.

Each display instance keeps its own list of board ids in a small JSON
file so the selection survives restarts.
"""

import json
import logging
from pathlib import Path
from typing import Dict, List, Optional, Any

from foyer.core.config import parse_board_ids

logger = logging.getLogger(__name__)


class BoardSelectionStore:
    """JSON-backed key-value store of instance id -> board ids"""

    def __init__(self, file_path: Path):
        self.file_path = Path(file_path)

    def _read(self) -> Dict[str, Any]:
        if not self.file_path.exists():
            return {}
        try:
            with open(self.file_path, 'r') as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning(f"Unreadable selection file {self.file_path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write(self, data: Dict[str, Any]) -> None:
        self.file_path.parent.mkdir(parents=True, exist_ok=True)
        with open(self.file_path, 'w') as f:
            json.dump(data, f, indent=2)

    def load(self, instance_id: str) -> Optional[List[int]]:
        """
        Load selected board ids for an instance.

        Returns:
            List of board ids, or None if nothing valid is stored
        """
        data = self._read()
        stored = data.get(instance_id)
        if stored is None:
            return None

        if isinstance(stored, list) and all(
            isinstance(i, int) and not isinstance(i, bool) for i in stored
        ):
            return list(stored)

        logger.warning(f"Invalid board selection for instance {instance_id}, clearing")
        self.clear(instance_id)
        return None

    def save(self, instance_id: str, board_ids: List[Any]) -> List[int]:
        """
        Save board ids for an instance.

        Ids are coerced to int; invalid and non-positive ones are dropped.

        Returns:
            The ids actually stored
        """
        valid_ids = parse_board_ids(list(board_ids))
        data = self._read()
        data[instance_id] = valid_ids
        self._write(data)
        logger.info(f"Saved board selection for instance {instance_id}: {valid_ids}")
        return valid_ids

    def clear(self, instance_id: str) -> bool:
        """Remove the selection of one instance"""
        data = self._read()
        if instance_id not in data:
            return False
        del data[instance_id]
        self._write(data)
        logger.info(f"Cleared board selection for instance {instance_id}")
        return True

    def all_selections(self) -> Dict[str, Any]:
        return self._read()

    def clear_all(self) -> int:
        """Remove every stored selection; returns how many were removed"""
        count = len(self._read())
        self._write({})
        logger.info(f"Cleared {count} board selections")
        return count

"""JSON file persistence for game state."""

import json
import logging
from pathlib import Path
from typing import Optional, Union

from .models import GameState

logger = logging.getLogger(__name__)

DEFAULT_SAVE_PATH = Path.home() / ".battle_economy" / "save.json"


class SaveStore:
    """Saves and loads a single GameState as a JSON file.

    An unreadable or corrupt save is treated as no save at all.
    """

    def __init__(self, path: Union[str, Path] = DEFAULT_SAVE_PATH):
        self.path = Path(path)

    def save(self, state: GameState) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(state.to_dict(), indent=2), encoding="utf-8")
        tmp_path.replace(self.path)

    def load(self) -> Optional[GameState]:
        """Load the saved state, or None when missing or unusable."""
        if not self.path.exists():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return GameState.from_dict(data)
        except (OSError, json.JSONDecodeError, KeyError, TypeError, ValueError, AttributeError) as e:
            logger.warning("Ignoring unreadable save %s: %s", self.path, e)
            return None

    def clear(self) -> None:
        self.path.unlink(missing_ok=True)

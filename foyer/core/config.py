"""
Configuration management for the Foyer Board Display
Handles loading and saving connection settings and display knobs
"""

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Any, Optional, List, Tuple


PROJECT_ROOT = Path(__file__).parent.parent.parent


def parse_board_ids(raw: Any) -> List[int]:
    """
    Parse board ids from a comma-separated string or a list.

    Invalid and non-positive entries are dropped.
    """
    if raw is None:
        return []
    if isinstance(raw, str):
        parts = [p.strip() for p in raw.split(",")]
    elif isinstance(raw, (list, tuple, set)):
        parts = list(raw)
    else:
        parts = [raw]

    ids = []
    for part in parts:
        if part == "" or isinstance(part, bool):
            continue
        try:
            value = int(part)
        except (TypeError, ValueError):
            continue
        if value > 0:
            ids.append(value)
    return ids


@dataclass(frozen=True)
class DeckSettings:
    """Connection settings for the Deck API"""
    base_url: str
    username: str
    password: str
    verify_ssl: bool = True
    request_timeout: float = 30.0
    default_boards: Tuple[int, ...] = ()


@dataclass(frozen=True)
class DisplaySettings:
    """Rotation, urgency and refresh knobs for the display"""
    rotation_base_ms: int = 40000
    progress_tick_ms: int = 100
    transition_ms: int = 150
    max_tasks_per_board: int = 5
    refresh_interval_seconds: int = 1200
    urgent_threshold_days: int = 3
    upcoming_threshold_days: int = 7
    max_overdue_days: int = 30
    high_priority_keywords: Tuple[str, ...] = ("wichtig",)
    low_priority_keywords: Tuple[str, ...] = ("niedrig",)
    max_workers: int = 4


class Config:
    """Configuration manager for the display"""

    ENV_OVERRIDES = {
        "DECK_URL": "deck_url",
        "DECK_USERNAME": "deck_username",
        "DECK_PASSWORD": "deck_password",
        "DECK_DEFAULT_BOARDS": "default_boards",
        "DECK_VERIFY_SSL": "verify_ssl",
    }

    def __init__(self, config_dir: Optional[Path] = None):
        """
        Initialize configuration manager

        Args:
            config_dir: Path to configuration directory (defaults to
                $FOYER_CONFIG_DIR, then ./config)
        """
        if config_dir is None:
            env_dir = os.environ.get("FOYER_CONFIG_DIR")
            config_dir = Path(env_dir) if env_dir else PROJECT_ROOT / "config"

        self.config_dir = Path(config_dir)
        self.config_dir.mkdir(parents=True, exist_ok=True)

        self.settings_file = self.config_dir / "settings.json"
        self.display_file = self.config_dir / "display.json"
        self.selection_file = self.config_dir / "selection.json"

        # Load configurations
        self.settings = self._load_json(self.settings_file, self._default_settings())
        self.display = self._load_json(self.display_file, self._default_display())
        self._apply_env_overrides()

    def _load_json(self, file_path: Path, default: Dict[str, Any]) -> Dict[str, Any]:
        """Load JSON file or return default if file doesn't exist"""
        if file_path.exists():
            with open(file_path, 'r') as f:
                loaded = json.load(f)
            # Keys added in newer versions keep their defaults
            merged = dict(default)
            merged.update(loaded)
            return merged
        else:
            # Create file with defaults
            self._save_json(file_path, default)
            return dict(default)

    def _save_json(self, file_path: Path, data: Dict[str, Any]) -> None:
        """Save data to JSON file"""
        with open(file_path, 'w') as f:
            json.dump(data, f, indent=2)

    def _apply_env_overrides(self) -> None:
        """Environment variables win over file values (never written back)"""
        for env_name, key in self.ENV_OVERRIDES.items():
            value = os.environ.get(env_name)
            if value is not None and value != "":
                self.settings[key] = value

    def _default_settings(self) -> Dict[str, Any]:
        """Default connection and runtime settings"""
        return {
            "deck_url": "https://your-nextcloud-server.com",
            "deck_username": "",
            "deck_password": "",
            "verify_ssl": True,
            "request_timeout": 30,
            "default_boards": "",
            "instance_id": "default",
            "log_directory": "logs",
            "debug": False,
            "cors_origins": [
                "http://localhost:3000",
                "http://localhost:5173",
                "http://127.0.0.1:3000",
            ],
        }

    def _default_display(self) -> Dict[str, Any]:
        """Default display knobs"""
        return {
            "rotation_base_ms": 40000,
            "progress_tick_ms": 100,
            "transition_ms": 150,
            "max_tasks_per_board": 5,
            "refresh_interval_seconds": 1200,
            "urgent_threshold_days": 3,
            "upcoming_threshold_days": 7,
            "max_overdue_days": 30,
            "high_priority_keywords": ["wichtig"],
            "low_priority_keywords": ["niedrig"],
            "max_workers": 4,
        }

    def get(self, key: str, section: str = "settings", default: Any = None) -> Any:
        """
        Get configuration value

        Args:
            key: Configuration key
            section: Configuration section ('settings', 'display')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        section_map = {
            "settings": self.settings,
            "display": self.display,
        }

        return section_map.get(section, {}).get(key, default)

    def set(self, key: str, value: Any, section: str = "settings") -> None:
        """
        Set configuration value and save to disk

        Args:
            key: Configuration key
            value: Value to set
            section: Configuration section ('settings', 'display')
        """
        section_map = {
            "settings": (self.settings, self.settings_file),
            "display": (self.display, self.display_file),
        }

        if section in section_map:
            config_dict, file_path = section_map[section]
            config_dict[key] = value
            self._save_json(file_path, config_dict)

    def deck_settings(self) -> DeckSettings:
        """Typed view of the Deck connection settings"""
        verify = self.settings.get("verify_ssl", True)
        if isinstance(verify, str):
            verify = verify.strip().lower() not in ("0", "false", "no", "off")

        return DeckSettings(
            base_url=str(self.settings.get("deck_url", "")),
            username=str(self.settings.get("deck_username", "")),
            password=str(self.settings.get("deck_password", "")),
            verify_ssl=bool(verify),
            request_timeout=float(self.settings.get("request_timeout", 30)),
            default_boards=tuple(parse_board_ids(self.settings.get("default_boards"))),
        )

    def display_settings(self) -> DisplaySettings:
        """Typed view of the display knobs"""
        d = self.display
        return DisplaySettings(
            rotation_base_ms=int(d["rotation_base_ms"]),
            progress_tick_ms=int(d["progress_tick_ms"]),
            transition_ms=int(d["transition_ms"]),
            max_tasks_per_board=int(d["max_tasks_per_board"]),
            refresh_interval_seconds=int(d["refresh_interval_seconds"]),
            urgent_threshold_days=int(d["urgent_threshold_days"]),
            upcoming_threshold_days=int(d["upcoming_threshold_days"]),
            max_overdue_days=int(d["max_overdue_days"]),
            high_priority_keywords=tuple(str(k) for k in d["high_priority_keywords"]),
            low_priority_keywords=tuple(str(k) for k in d["low_priority_keywords"]),
            max_workers=max(1, int(d["max_workers"])),
        )

    def instance_id(self) -> str:
        return str(self.settings.get("instance_id") or "default")

    def get_log_directory(self) -> Path:
        """Get full path to the log directory"""
        log_dir = Path(self.settings.get("log_directory", "logs"))
        if not log_dir.is_absolute():
            log_dir = PROJECT_ROOT / log_dir
        return log_dir


def configure_logging(config: Config, level: int = logging.INFO) -> None:
    """Set up file and console logging for an entry point"""
    log_dir = config.get_log_directory()
    log_dir.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.FileHandler(log_dir / 'foyer.log'),
            logging.StreamHandler()
        ]
    )

"""
Client Configuration Management
"""

import os
import json
from pathlib import Path
from dataclasses import dataclass, field, asdict
from typing import Optional, Dict, Any


@dataclass
class ClientConfig:
    """Configuration for the union site client"""

    # Remote backend; None keeps everything in the local snapshot
    api_base_url: Optional[str] = "http://localhost:8000/api/v1"
    timeout: int = 30

    # Admin console PIN, checked locally when no remote is configured
    admin_pin: str = "1229"

    # Layout: on wide viewports "notice" opens its first child board
    wide_viewport: bool = True

    # Paths
    data_dir: str = field(default_factory=lambda: str(Path.home() / ".unionsite"))

    # Logging
    verbose: bool = False

    def __post_init__(self):
        Path(self.data_dir).mkdir(parents=True, exist_ok=True)

    @property
    def remote_configured(self) -> bool:
        return bool(self.api_base_url)

    def load_from_file(self, config_path: str) -> None:
        """Load configuration from JSON file"""
        path = Path(config_path)
        if path.exists():
            with open(path) as f:
                data = json.load(f)
                for key, value in data.items():
                    if hasattr(self, key):
                        setattr(self, key, value)

    def save_to_file(self, config_path: Optional[str] = None) -> None:
        """Save configuration to JSON file"""
        path = Path(config_path or (Path(self.data_dir) / "config.json"))
        with open(path, 'w') as f:
            json.dump(asdict(self), f, indent=2)

    @classmethod
    def load_default(cls) -> "ClientConfig":
        """Load default configuration from the user data directory"""
        config = cls()
        default_config_path = Path(config.data_dir) / "config.json"
        if default_config_path.exists():
            config.load_from_file(str(default_config_path))

        config._load_from_env()
        return config

    def _load_from_env(self) -> None:
        """Load configuration from environment variables"""
        env_mappings = {
            "UNIONSITE_API_URL": "api_base_url",
            "UNIONSITE_DATA_DIR": "data_dir",
            "UNIONSITE_ADMIN_PIN": "admin_pin",
            "UNIONSITE_TIMEOUT": ("timeout", int),
            "UNIONSITE_WIDE_VIEWPORT": ("wide_viewport", lambda x: x.lower() == "true"),
            "UNIONSITE_VERBOSE": ("verbose", lambda x: x.lower() == "true"),
        }

        for env_var, mapping in env_mappings.items():
            value = os.environ.get(env_var)
            if value:
                if isinstance(mapping, tuple):
                    attr, converter = mapping
                    setattr(self, attr, converter(value))
                else:
                    setattr(self, mapping, value)

        # "offline" (or "none") disables the remote backend
        if (self.api_base_url or "").lower() in ("offline", "none"):
            self.api_base_url = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

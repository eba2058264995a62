"""
Runtime configuration.

Values come from the environment. A ``config.bat`` next to the code (lines of
the form ``set NAME=value``) is loaded into the environment first, so the same
file drives the web app and the command line tool.
"""

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping, Optional

APP_DIR = Path(__file__).parent

DEFAULT_ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://localhost:5173",
    "http://localhost:3001",
]


SET_LINE_PATTERN = re.compile(r'^set\s+"?([A-Za-z_][A-Za-z0-9_]*)=(.*?)"?$', re.IGNORECASE)


def parse_config_bat(text: str) -> dict[str, str]:
    """
    Variables assigned in a batch file.

    Understands ``set NAME=value`` and ``set "NAME=value"`` (any case).
    Comments, ``@echo`` and every other line are ignored; the last
    assignment to a name wins.
    """
    variables = {}
    for line in text.splitlines():
        match = SET_LINE_PATTERN.match(line.strip())
        if match:
            variables[match.group(1)] = match.group(2)
    return variables


def load_config_bat(config_path: Path = APP_DIR / "config.bat") -> int:
    """
    Copy the variables of config.bat into os.environ, overriding existing
    values.

    Returns:
        Number of variables loaded (0 if the file does not exist)
    """
    if not config_path.exists():
        return 0

    variables = parse_config_bat(config_path.read_text(encoding="utf-8"))
    os.environ.update(variables)
    logging.info("Loaded %d settings from %s", len(variables), config_path)
    return len(variables)


@dataclass
class Settings:
    """Process-wide settings, built once by the entry point."""
    printify_api_base: str = "https://api.printify.com/v1"
    printify_api_token: str = ""
    printify_shop_id: str = ""
    pexels_api_key: str = ""
    port: int = 3001
    environment: str = "development"
    version: str = "1.0.0"
    allowed_origins: list[str] = field(default_factory=lambda: list(DEFAULT_ALLOWED_ORIGINS))
    rate_limit_window: float = 15 * 60  # seconds
    rate_limit_max_requests: int = 50

    @property
    def is_production(self) -> bool:
        return self.environment == "production"

    def missing_credentials(self) -> list[str]:
        missing = []
        if not self.printify_api_token:
            missing.append("PRINTIFY_API_TOKEN")
        if not self.printify_shop_id:
            missing.append("PRINTIFY_SHOP_ID")
        return missing

    def warn_missing_credentials(self) -> None:
        """Log missing credentials; requests needing them fail individually."""
        for name in self.missing_credentials():
            logging.warning("%s is not set - Printify requests needing it will be rejected", name)
        if not self.pexels_api_key:
            logging.warning("PEXELS_API_KEY is not set - image search is disabled")

    @classmethod
    def from_env(cls, env: Optional[Mapping[str, str]] = None) -> "Settings":
        if env is None:
            load_config_bat()
            env = os.environ

        extra_origins = [o.strip() for o in env.get("ALLOWED_ORIGINS", "").split(",") if o.strip()]

        return cls(
            printify_api_base=env.get("PRINTIFY_API_BASE", "https://api.printify.com/v1").rstrip("/"),
            printify_api_token=env.get("PRINTIFY_API_TOKEN", ""),
            printify_shop_id=env.get("PRINTIFY_SHOP_ID", ""),
            pexels_api_key=env.get("PEXELS_API_KEY", ""),
            port=int(env.get("PORT", "3001")),
            environment=env.get("APP_ENV", "development"),
            version=env.get("APP_VERSION", "1.0.0"),
            allowed_origins=DEFAULT_ALLOWED_ORIGINS + extra_origins,
            rate_limit_window=float(env.get("RATE_LIMIT_WINDOW", "900")),
            rate_limit_max_requests=int(env.get("RATE_LIMIT_MAX_REQUESTS", "50")),
        )

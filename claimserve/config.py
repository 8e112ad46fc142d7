"""Settings loaded once from the environment (and a .env file, if present)."""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from claimserve.identifiers import ALPHANUMERIC, ShortIdRule

load_dotenv()

_PROJECT_ROOT = Path(__file__).resolve().parent.parent


def _default_db_path() -> Path:
    return Path(os.getenv("CLAIMSERVE_DB_PATH", str(_PROJECT_ROOT / "data" / "claims.db")))


@dataclass
class Settings:
    # Content network daemon
    daemon_url: str = field(
        default_factory=lambda: os.getenv("CLAIMSERVE_DAEMON_URL", "http://localhost:5279")
    )
    daemon_timeout: float = field(
        default_factory=lambda: float(os.getenv("CLAIMSERVE_DAEMON_TIMEOUT", "30"))
    )

    # Claim index
    db_path: Path = field(default_factory=_default_db_path)

    # Resolution accepts short ids up to this many characters; the index
    # hands out prefixes of 1..39 characters
    short_id_max_length: int = field(
        default_factory=lambda: int(os.getenv("CLAIMSERVE_SHORT_ID_MAX_LENGTH", "39"))
    )

    # Short ids that trigger the /name/claim_id swap on two-segment paths
    legacy_short_id_max_length: int = field(
        default_factory=lambda: int(os.getenv("CLAIMSERVE_LEGACY_SHORT_ID_MAX_LENGTH", "1"))
    )

    # Port the server listens on; keep site_host pointing at it
    port: int = field(default_factory=lambda: int(os.getenv("CLAIMSERVE_PORT", "3000")))

    # Used to build absolute links in rendered pages
    site_host: str = field(
        default_factory=lambda: os.getenv(
            "CLAIMSERVE_SITE_HOST", f"http://localhost:{os.getenv('CLAIMSERVE_PORT', '3000')}"
        )
    )

    @property
    def short_id_rule(self) -> ShortIdRule:
        return ShortIdRule(max_length=self.short_id_max_length, alphabet=ALPHANUMERIC)

    @property
    def legacy_short_id_rule(self) -> ShortIdRule:
        return ShortIdRule(max_length=self.legacy_short_id_max_length, alphabet=ALPHANUMERIC)


def get_settings() -> Settings:
    return Settings()

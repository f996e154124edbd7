"""
PortalConfig schema.

The typed, frozen form of a portal configuration set. YAML files are
parsed into this type by ``portal_config.loader``; the bridge turns it
into a wired ``Portal``.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any

# ---------------------------------------------------------------------------
# Defaults (mirrored by sets/default.yaml)
# ---------------------------------------------------------------------------

DEFAULT_PASSWORD_MIN_LENGTH = 6
DEFAULT_AUTH_LATENCY_SECONDS = 0.8
DEFAULT_INVITE_BASE_URL = "https://contaportal.pt/login"
DEFAULT_INVITER_DISPLAY_NAME = "O Seu Contabilista"


@dataclass(frozen=True)
class PortalConfig:
    """Runtime settings for one portal instance."""

    config_id: str = "default"
    version: int = 1
    data_dir: str | None = None  # None keeps every collection in memory
    upload_dir: str | None = None
    password_min_length: int = DEFAULT_PASSWORD_MIN_LENGTH
    auth_latency_seconds: float = DEFAULT_AUTH_LATENCY_SECONDS
    invite_base_url: str = DEFAULT_INVITE_BASE_URL
    inviter_display_name: str = DEFAULT_INVITER_DISPLAY_NAME
    seed_demo_obligations: bool = True
    demo_owner_user_id: str | None = None  # None lets the first client claim the seed
    strict_invariants: bool = False
    log_level: str = "INFO"
    checksum: str = ""

    def __post_init__(self) -> None:
        if self.password_min_length < 1:
            raise ValueError(
                f"password_min_length must be at least 1, got {self.password_min_length}"
            )
        if self.auth_latency_seconds < 0:
            raise ValueError(
                f"auth_latency_seconds must not be negative, got {self.auth_latency_seconds}"
            )

    def to_dict(self) -> dict[str, Any]:
        """Settings without the checksum, as hashed by ``compute_checksum``."""
        data = asdict(self)
        data.pop("checksum")
        return data

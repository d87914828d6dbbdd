from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]

# Level policy inherited from the course platform: index i holds the points
# needed to reach level i + 1.
DEFAULT_LEVEL_THRESHOLDS = (0, 100, 300, 600, 1000, 1500, 2200, 3000, 4000, 5000)

_TRUE = ("1", "true", "yes", "on")
_FALSE = ("0", "false", "no", "off")


def _getenv(name: str, default: str) -> str:
    return os.environ.get(name, default).strip()


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.lower()
    if value in _TRUE:
        return True
    if value in _FALSE:
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


def _parse_thresholds(raw: str) -> tuple[int, ...]:
    try:
        thresholds = tuple(int(part) for part in raw.split(",") if part.strip())
    except ValueError:
        raise ValueError(
            f"LEVEL_THRESHOLDS must be comma-separated integers (got {raw!r})"
        ) from None

    if not thresholds or thresholds[0] != 0:
        raise ValueError("LEVEL_THRESHOLDS must start at 0")
    if any(b <= a for a, b in zip(thresholds, thresholds[1:])):
        raise ValueError("LEVEL_THRESHOLDS must be strictly increasing")
    return thresholds


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    level_thresholds: tuple[int, ...] = DEFAULT_LEVEL_THRESHOLDS
    seed_default_achievements: bool = False
    catalog_cache_ttl: int = 300
    # PEM public key of the identity service that signs access tokens.
    jwt_public_key: str | None = None
    jwt_issuer: str = "auth-service"
    jwt_audience: str = "achievement-service"

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    port_raw = _getenv("PORT", "8000")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    ttl_raw = _getenv("CATALOG_CACHE_TTL", "300")
    try:
        catalog_cache_ttl = int(ttl_raw)
    except ValueError:
        raise ValueError(
            f"CATALOG_CACHE_TTL must be an integer (got {ttl_raw!r})"
        ) from None
    if catalog_cache_ttl <= 0:
        raise ValueError(f"CATALOG_CACHE_TTL must be positive (got {ttl_raw!r})")

    # Seeding the default badges is a dev convenience; other envs opt in.
    seed_default = "true" if app_env_raw == "dev" else "false"

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=_parse_bool("LOG_JSON", _getenv("LOG_JSON", "false")),
        port=port,
        database_url=_getenv("DATABASE_URL", "") or None,
        redis_url=_getenv("REDIS_URL", "") or None,
        level_thresholds=_parse_thresholds(
            _getenv(
                "LEVEL_THRESHOLDS",
                ",".join(str(t) for t in DEFAULT_LEVEL_THRESHOLDS),
            )
        ),
        seed_default_achievements=_parse_bool(
            "SEED_DEFAULT_ACHIEVEMENTS",
            _getenv("SEED_DEFAULT_ACHIEVEMENTS", seed_default),
        ),
        catalog_cache_ttl=catalog_cache_ttl,
        # Single-line env values may carry the PEM with escaped newlines.
        jwt_public_key=_getenv("JWT_PUBLIC_KEY", "").replace("\\n", "\n") or None,
        jwt_issuer=_getenv("JWT_ISSUER", "auth-service"),
        jwt_audience=_getenv("JWT_AUDIENCE", "achievement-service"),
    )


SETTINGS = load_settings()

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

from caseflow.domain import ServiceDefinition

CONFIG_DIR = Path(__file__).resolve().parent.parent / "config"


def _env_bool(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


@dataclass(frozen=True, slots=True)
class Settings:
    config_dir: Path = CONFIG_DIR
    sla_sweep_enabled: bool = True
    sla_sweep_interval_seconds: float = 3600.0
    sla_at_risk_hours: float = 24.0
    notification_webhook_url: str | None = None
    notification_timeout_seconds: float = 10.0
    cors_origins: tuple[str, ...] = ("http://localhost:3000", "http://127.0.0.1:3000")
    log_level: str = "INFO"


def load_settings() -> Settings:
    config_dir = os.getenv("CASEFLOW_CONFIG_DIR")
    origins_env = os.getenv("API_CORS_ORIGINS", "")
    origins = tuple(origin.strip() for origin in origins_env.split(",") if origin.strip())
    defaults = Settings()
    return Settings(
        config_dir=Path(config_dir).expanduser().resolve() if config_dir else CONFIG_DIR,
        sla_sweep_enabled=_env_bool("SLA_SWEEP_ENABLED", True),
        sla_sweep_interval_seconds=_env_float("SLA_SWEEP_INTERVAL_SECONDS", defaults.sla_sweep_interval_seconds),
        sla_at_risk_hours=_env_float("SLA_AT_RISK_HOURS", defaults.sla_at_risk_hours),
        notification_webhook_url=os.getenv("NOTIFICATION_WEBHOOK_URL") or None,
        notification_timeout_seconds=_env_float("NOTIFICATION_TIMEOUT_SECONDS", defaults.notification_timeout_seconds),
        cors_origins=origins or defaults.cors_origins,
        log_level=(os.getenv("LOG_LEVEL") or defaults.log_level).upper(),
    )


def _load_yaml(path: Path) -> Any:
    if not path.exists():
        return None
    with path.open("r", encoding="utf-8") as fp:
        return yaml.safe_load(fp)


def load_service_catalog(config_dir: Path) -> list[ServiceDefinition]:
    data = _load_yaml(config_dir / "services.yaml") or {}
    services: list[ServiceDefinition] = []
    for service_id, entry in (data.get("services") or {}).items():
        entry = entry or {}
        services.append(
            ServiceDefinition(
                service_id=str(service_id),
                name=str(entry.get("name") or service_id),
                documents_required=tuple(str(item) for item in entry.get("documents_required") or []),
            )
        )
    return services


def load_workflow_seeds(config_dir: Path) -> list[dict[str, Any]]:
    data = _load_yaml(config_dir / "workflows.yaml") or {}
    return [dict(item) for item in data.get("templates") or []]

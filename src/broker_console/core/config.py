"""Configuration loader for store, deployment, and display settings."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from pathlib import Path

import yaml


@dataclass(frozen=True)
class StoreConfig:
    path: str


@dataclass(frozen=True)
class DeploymentConfig:
    id_env: str
    default: str


@dataclass(frozen=True)
class LoggingConfig:
    level: str


@dataclass(frozen=True)
class DisplayConfig:
    currency: str


@dataclass(frozen=True)
class AppConfig:
    store: StoreConfig
    deployment: DeploymentConfig
    logging: LoggingConfig
    display: DisplayConfig


DEFAULT_CONFIG_REL_PATH = Path("config/console.yaml")
CONFIG_PATH_ENV = "BROKER_CONSOLE_CONFIG_PATH"
DEFAULT_DEPLOYMENT_ENV = "BROKER_DEPLOYMENT_ID"
RUNTIME_ENV_REL_PATH = Path("config/runtime.env")
_RUNTIME_ENV_LOADED = False


def _split_key_value(raw_line: str) -> tuple[str, str] | None:
    """Parse a shell or PowerShell key assignment line."""
    line = raw_line.strip()
    if not line or line.startswith("#"):
        return None

    if line.startswith("$env:"):
        line = line[len("$env:") :]
    elif line.startswith("export "):
        line = line[len("export ") :]

    if "=" not in line:
        return None

    key, value = line.split("=", 1)
    key = key.strip()
    value = value.strip()
    if not key:
        return None

    if (value.startswith("'") and value.endswith("'")) or (
        value.startswith('"') and value.endswith('"')
    ):
        value = value[1:-1]

    return key, value


def _project_root() -> Path:
    if getattr(sys, "frozen", False):
        return Path(sys.executable).resolve().parent
    return Path(__file__).resolve().parents[3]


def _iter_env_candidates() -> list[Path]:
    """Return candidate files that may hold deployment variables."""
    paths: list[Path] = []
    for root in [Path.cwd(), _project_root()]:
        paths.extend(
            [
                root / ".env.local",
                root / ".env.local.ps1",
                root / RUNTIME_ENV_REL_PATH,
            ]
        )

    unique: list[Path] = []
    seen: set[Path] = set()
    for path in paths:
        resolved = path.resolve()
        if resolved in seen:
            continue
        seen.add(resolved)
        unique.append(resolved)
    return unique


def _load_env_from_file(path: Path) -> None:
    """Load KEY=VALUE lines into the environment without overriding set values."""
    if not path.exists() or not path.is_file():
        return
    with path.open("r", encoding="utf-8") as file:
        for line in file:
            parsed = _split_key_value(line)
            if not parsed:
                continue
            key, value = parsed
            if key not in os.environ:
                os.environ[key] = value


def ensure_runtime_env_loaded() -> None:
    """Load local env files once per process."""
    global _RUNTIME_ENV_LOADED
    if _RUNTIME_ENV_LOADED:
        return
    for path in _iter_env_candidates():
        _load_env_from_file(path)
    _RUNTIME_ENV_LOADED = True


def resolve_default_config_path() -> Path:
    """Resolve configuration path for source and packaged execution."""
    env_path = os.getenv(CONFIG_PATH_ENV)
    if env_path:
        return Path(env_path)

    candidates = [
        Path.cwd() / DEFAULT_CONFIG_REL_PATH,
        _project_root() / DEFAULT_CONFIG_REL_PATH,
    ]
    for candidate in candidates:
        if candidate.exists():
            return candidate
    return candidates[0]


def load_config(config_path: Path | None = None) -> AppConfig:
    """Load the app configuration from YAML, falling back to defaults."""
    path = config_path or resolve_default_config_path()
    raw: dict = {}
    if path.exists():
        with path.open("r", encoding="utf-8") as file:
            raw = yaml.safe_load(file) or {}

    store = raw.get("store") or {}
    deployment = raw.get("deployment") or {}
    logging_section = raw.get("logging") or {}
    display = raw.get("display") or {}

    return AppConfig(
        store=StoreConfig(path=str(store.get("path", "broker_console.db"))),
        deployment=DeploymentConfig(
            id_env=str(deployment.get("id_env", DEFAULT_DEPLOYMENT_ENV)),
            default=str(deployment.get("default", "local")),
        ),
        logging=LoggingConfig(level=str(logging_section.get("level", "INFO"))),
        display=DisplayConfig(currency=str(display.get("currency", "BGN"))),
    )


def resolve_deployment_id(config: AppConfig) -> str:
    """Return the deployment identifier used to namespace collection paths."""
    ensure_runtime_env_loaded()
    value = os.getenv(config.deployment.id_env, "").strip()
    return value or config.deployment.default

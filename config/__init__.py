# PATH: config/__init__.py
"""
Configuration loading for the explorer data layer.

Defaults come from config/explorer.yaml; endpoints and switches come from
the environment (a .env file is honored via python-dotenv):

- EXPLORER_NODE_URL: chain node endpoint (http(s) or ws(s))
- EXPLORER_INDEXER_URL: GraphQL indexer endpoint
- EXPLORER_USE_MOCK: synthetic data enabled unless exactly "0"
- EXPLORER_DEADLINE_S: default per-operation deadline in seconds
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Mapping, Optional

import yaml
from dotenv import load_dotenv

from core.constants import (
    DEFAULT_CONNECT_TIMEOUT_S,
    DEFAULT_DEADLINE_S,
    DEFAULT_INDEXER_TIMEOUT_S,
    ErrorCode,
)
from core.exceptions import ConfigurationError
from chains.scanner import ScanLimits
from synthetic.generator import MockParams


CONFIG_DIR = Path(__file__).parent
DEFAULT_CONFIG_FILE = "explorer.yaml"

ENV_NODE_URL = "EXPLORER_NODE_URL"
ENV_INDEXER_URL = "EXPLORER_INDEXER_URL"
ENV_USE_MOCK = "EXPLORER_USE_MOCK"
ENV_DEADLINE_S = "EXPLORER_DEADLINE_S"


def load_yaml(filename: str) -> Dict[str, Any]:
    """
    Load a YAML configuration file.

    Args:
        filename: Name of file in config directory

    Returns:
        Parsed YAML as dict
    """
    filepath = CONFIG_DIR / filename
    if not filepath.exists():
        raise FileNotFoundError(f"Config file not found: {filepath}")

    with open(filepath, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


@dataclass(frozen=True)
class ExplorerSettings:
    """Resolved settings consumed by the provider facade."""

    node_url: str = ""
    indexer_url: str = ""
    use_mock: bool = True
    deadline_s: Optional[float] = DEFAULT_DEADLINE_S
    connect_timeout_s: float = DEFAULT_CONNECT_TIMEOUT_S
    indexer_timeout_s: float = DEFAULT_INDEXER_TIMEOUT_S
    scan_limits: ScanLimits = field(default_factory=ScanLimits)
    mock: MockParams = field(default_factory=MockParams)


def _parse_deadline(raw: Any, source: str) -> Optional[float]:
    if raw is None:
        return None
    text = str(raw).strip()
    if not text:
        return None
    try:
        value = float(text)
    except ValueError:
        raise ConfigurationError(
            f"Invalid deadline: {raw!r}",
            details={"setting": source},
            code=ErrorCode.CONFIG_INVALID,
        ) from None
    if value <= 0:
        raise ConfigurationError(
            f"Deadline must be positive, got {value}",
            details={"setting": source},
            code=ErrorCode.CONFIG_INVALID,
        )
    return value


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(
            f"Config section '{name}' must be a mapping",
            details={"section": name},
            code=ErrorCode.CONFIG_INVALID,
        )
    return value


def load_settings(
    env: Optional[Mapping[str, str]] = None,
    config_file: Optional[str] = DEFAULT_CONFIG_FILE,
) -> ExplorerSettings:
    """
    Build settings from the yaml defaults and the environment.

    Args:
        env: Environment mapping (defaults to os.environ after load_dotenv)
        config_file: Yaml file in the config directory, or None to skip it

    Returns:
        ExplorerSettings

    Raises:
        ConfigurationError: If a value cannot be interpreted
    """
    if env is None:
        load_dotenv()
        env = os.environ

    data = load_yaml(config_file) if config_file else {}
    timeouts = _section(data, "timeouts")

    try:
        scan_limits = ScanLimits(**_section(data, "scan"))
        mock = MockParams(**_section(data, "mock"))
        connect_timeout_s = float(timeouts.get("connect_s", DEFAULT_CONNECT_TIMEOUT_S))
        indexer_timeout_s = float(timeouts.get("indexer_s", DEFAULT_INDEXER_TIMEOUT_S))
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"Invalid configuration: {e}",
            details={"file": config_file},
            code=ErrorCode.CONFIG_INVALID,
        ) from e

    deadline_s = _parse_deadline(timeouts.get("deadline_s"), "timeouts.deadline_s")
    if env.get(ENV_DEADLINE_S):
        deadline_s = _parse_deadline(env[ENV_DEADLINE_S], ENV_DEADLINE_S)

    return ExplorerSettings(
        node_url=(env.get(ENV_NODE_URL) or "").strip(),
        indexer_url=(env.get(ENV_INDEXER_URL) or "").strip(),
        use_mock=(env.get(ENV_USE_MOCK) or "").strip() != "0",
        deadline_s=deadline_s,
        connect_timeout_s=connect_timeout_s,
        indexer_timeout_s=indexer_timeout_s,
        scan_limits=scan_limits,
        mock=mock,
    )

"""
Configuration management and loading.

Handles assistant settings from a YAML file and environment variables.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

import yaml
from dotenv import load_dotenv

from editor_assist.core.tiers import DEFAULT_TIER_TABLE, TierPolicy, TierTable


@dataclass(frozen=True)
class LimitsConfig:
    """Input size limits enforced before any external call."""
    max_prompt_chars: int = 12000
    max_context_chars: int = 24000

    def __post_init__(self):
        """Validate limits are positive."""
        if self.max_prompt_chars <= 0:
            raise ValueError("max_prompt_chars must be > 0")
        if self.max_context_chars <= 0:
            raise ValueError("max_context_chars must be > 0")


@dataclass(frozen=True)
class GenerationConfig:
    """Sampling parameters passed to the model."""
    temperature: float = 0.7
    max_tokens: int = 800

    def __post_init__(self):
        """Validate generation values."""
        if not 0 <= self.temperature <= 2:
            raise ValueError("temperature must be between 0 and 2")
        if self.max_tokens <= 0:
            raise ValueError("max_tokens must be > 0")


@dataclass(frozen=True)
class AssistConfig:
    """Complete assistant configuration."""
    tiers: TierTable = DEFAULT_TIER_TABLE
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)


@dataclass(frozen=True)
class Settings:
    """Process settings taken from the environment."""
    config_path: Optional[str]
    db_path: str
    static_tokens: Dict[str, str]
    cors_origins: Tuple[str, ...] = ("http://localhost:3000",)
    log_level: str = "INFO"


def load_settings() -> Settings:
    """Read settings from the environment, loading a .env file if present.

    EDITOR_ASSIST_TOKENS holds comma-separated ``token:user_id`` pairs for the
    static identity verifier.
    """
    load_dotenv()
    tokens = {}
    for pair in os.getenv("EDITOR_ASSIST_TOKENS", "").split(","):
        if not pair.strip():
            continue
        token, sep, user_id = pair.strip().partition(":")
        if not sep or not token or not user_id:
            raise ValueError(f"Invalid EDITOR_ASSIST_TOKENS entry: {pair.strip()!r}")
        tokens[token] = user_id
    return Settings(
        config_path=os.getenv("EDITOR_ASSIST_CONFIG") or None,
        db_path=os.getenv("EDITOR_ASSIST_DB", ".editor-assist.db"),
        static_tokens=tokens,
        cors_origins=tuple(
            origin.strip()
            for origin in os.getenv("EDITOR_ASSIST_CORS_ORIGINS", "http://localhost:3000").split(",")
            if origin.strip()
        ),
        log_level=os.getenv("EDITOR_ASSIST_LOG_LEVEL", "INFO"),
    )


def load_assist_config(path: Optional[str] = None) -> AssistConfig:
    """Load and validate assistant configuration from a YAML file.

    Strict validation ensures no silent misconfigurations: unknown keys are
    rejected and every value is range checked. Sections that are left out
    keep their defaults.

    Args:
        path: Path to YAML configuration file; None returns the defaults

    Returns:
        Validated AssistConfig object

    Raises:
        FileNotFoundError: If config file doesn't exist
        yaml.YAMLError: If YAML is invalid
        ValueError: If configuration is invalid
    """
    if path is None:
        return AssistConfig()

    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(f"Assist config file not found: {path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        try:
            raw_config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise yaml.YAMLError(f"Invalid YAML in config file {path}: {e}")

    if not raw_config:
        raise ValueError("Configuration file is empty")
    if not isinstance(raw_config, dict):
        raise ValueError("Configuration must be a dictionary")

    allowed_top_keys = {'tiers', 'limits', 'generation'}
    unknown_keys = set(raw_config.keys()) - allowed_top_keys
    if unknown_keys:
        raise ValueError(f"Unknown configuration keys: {unknown_keys}")

    defaults = AssistConfig()

    tiers = defaults.tiers
    if 'tiers' in raw_config:
        tiers = _parse_tiers(raw_config['tiers'])

    limits = defaults.limits
    if 'limits' in raw_config:
        data = _section(raw_config['limits'], 'limits', {'max_prompt_chars', 'max_context_chars'})
        limits = LimitsConfig(
            max_prompt_chars=_positive_int(
                data.get('max_prompt_chars', limits.max_prompt_chars), 'limits.max_prompt_chars'),
            max_context_chars=_positive_int(
                data.get('max_context_chars', limits.max_context_chars), 'limits.max_context_chars'),
        )

    generation = defaults.generation
    if 'generation' in raw_config:
        data = _section(raw_config['generation'], 'generation', {'temperature', 'max_tokens'})
        temperature = data.get('temperature', generation.temperature)
        if not isinstance(temperature, (int, float)) or isinstance(temperature, bool):
            raise ValueError("'temperature' in generation must be a number")
        generation = GenerationConfig(
            temperature=float(temperature),
            max_tokens=_positive_int(data.get('max_tokens', generation.max_tokens), 'generation.max_tokens'),
        )

    return AssistConfig(tiers=tiers, limits=limits, generation=generation)


def _parse_tiers(data) -> TierTable:
    """Parse the tiers section; both free and premium are required."""
    data = _section(data, 'tiers', {'free', 'premium'})
    policies = {}
    for name in ('free', 'premium'):
        if name not in data:
            raise ValueError(f"Missing required tier '{name}'")
        policies[name] = _parse_tier_policy(data[name], f"tiers.{name}")
    return TierTable(policies)


def _parse_tier_policy(data, path: str) -> TierPolicy:
    """Parse and validate a single tier policy.

    Args:
        data: Tier configuration data
        path: Path for error messages

    Returns:
        Validated TierPolicy

    Raises:
        ValueError: If configuration is invalid
    """
    data = _section(data, path, {'daily_limit', 'model', 'power_model'})

    if 'daily_limit' not in data:
        raise ValueError(f"Missing required 'daily_limit' in {path}")
    if 'model' not in data:
        raise ValueError(f"Missing required 'model' in {path}")

    model = data['model']
    if not isinstance(model, str) or not model.strip():
        raise ValueError(f"'model' in {path} must be a non-empty string")

    power_model = data.get('power_model', "")
    if not isinstance(power_model, str):
        raise ValueError(f"'power_model' in {path} must be a string")

    return TierPolicy(
        daily_limit=_positive_int(data['daily_limit'], f"{path}.daily_limit"),
        model=model.strip(),
        power_model=power_model.strip(),
    )


def _section(data, path: str, allowed_keys: set) -> Dict:
    if not isinstance(data, dict):
        raise ValueError(f"'{path}' must be a dictionary")
    unknown_keys = set(data.keys()) - allowed_keys
    if unknown_keys:
        raise ValueError(f"Unknown keys in {path}: {unknown_keys}")
    return data


def _positive_int(value, path: str) -> int:
    if not isinstance(value, int) or isinstance(value, bool) or value <= 0:
        raise ValueError(f"'{path}' must be a positive integer")
    return value

"""Configuration loading and management for seedprobe.

This module provides configuration discovery and validation. Configuration
sources are merged in priority order:
    1. Defaults (defined in DetectionConfig and its sections)
    2. Global config (~/.seedprobe.toml)
    3. Project config (./seedprobe.toml)
    4. Explicit config file
    5. Environment variables (SEEDPROBE_* prefix)
    6. Keyword overrides (typically CLI flags)

Example:
    >>> config = load_config(cache={"max_entries": 10})
    >>> config.cache.max_entries
    10
    >>> config.cache.invalidation_strategy
    'hybrid'
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Literal, Optional, get_type_hints

from .exceptions import ConfigFileError, ConfigurationError, InvalidConfigError

Verbosity = Literal["quiet", "normal", "verbose"]
InvalidationStrategy = Literal["time", "schema_change", "hybrid"]

INVALIDATION_STRATEGIES = ("time", "schema_change", "hybrid")

_ENV_PREFIX = "SEEDPROBE"


@dataclass(frozen=True)
class EvidenceCollectionConfig:
    """Filtering and ranking knobs applied to each collector's evidence.

    The four boolean flags enable evidence by type:
        detailed_table_analysis  -> table_pattern
        analyze_column_patterns  -> column_analysis
        analyze_relationships    -> relationship_pattern
        analyze_business_logic   -> business_logic (off by default)

    Attributes:
        max_evidence_per_type: Evidence kept per collector after ranking
        min_evidence_confidence: Evidence below this confidence is dropped
    """

    detailed_table_analysis: bool = True
    analyze_column_patterns: bool = True
    analyze_relationships: bool = True
    analyze_business_logic: bool = False
    max_evidence_per_type: int = 10
    min_evidence_confidence: float = 0.3

    def __post_init__(self) -> None:
        if self.max_evidence_per_type < 1:
            raise ValueError("max_evidence_per_type must be at least 1")
        if not 0.0 <= self.min_evidence_confidence <= 1.0:
            raise ValueError("min_evidence_confidence must be between 0.0 and 1.0")


@dataclass(frozen=True)
class CacheConfig:
    """Detection result cache settings.

    Attributes:
        enabled: Use the cache at all
        cache_dir: Directory for the persistent store
        default_ttl: Entry time-to-live in seconds
        max_cache_size: Upper bound on stored bytes
        max_entries: Upper bound on stored entries
        invalidation_strategy: time, schema_change, or hybrid
        min_confidence_to_cache: Results below this overall confidence are not stored
    """

    enabled: bool = True
    cache_dir: str = ".seedprobe-cache"
    default_ttl: float = 24 * 60 * 60
    max_cache_size: int = 100 * 1024 * 1024
    max_entries: int = 100
    invalidation_strategy: InvalidationStrategy = "hybrid"
    min_confidence_to_cache: float = 0.6

    def __post_init__(self) -> None:
        if self.default_ttl <= 0:
            raise ValueError("default_ttl must be positive")
        if self.max_cache_size < 1:
            raise ValueError("max_cache_size must be at least 1")
        if self.max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        if self.invalidation_strategy not in INVALIDATION_STRATEGIES:
            raise ValueError(
                f"invalidation_strategy must be one of {', '.join(INVALIDATION_STRATEGIES)}"
            )
        if not 0.0 <= self.min_confidence_to_cache <= 1.0:
            raise ValueError("min_confidence_to_cache must be between 0.0 and 1.0")


@dataclass(frozen=True)
class DetectionConfig:
    """Top-level configuration for a detection run.

    Attributes:
        evidence: Evidence filtering and ranking
        cache: Result cache settings
        parallel_collectors: Run the three collectors on a thread pool
        rule_overrides: {rule_name: {confidence, weight, indicators}} replacing
            the built-in rule constants
        verbosity: Logging verbosity level
    """

    evidence: EvidenceCollectionConfig = field(default_factory=EvidenceCollectionConfig)
    cache: CacheConfig = field(default_factory=CacheConfig)
    parallel_collectors: bool = True
    rule_overrides: dict[str, dict[str, Any]] = field(default_factory=dict)
    verbosity: Verbosity = "normal"

    def __post_init__(self) -> None:
        if self.verbosity not in ("quiet", "normal", "verbose"):
            raise ValueError("verbosity must be quiet, normal or verbose")


def load_config(config_file: Optional[Path] = None, **overrides: Any) -> DetectionConfig:
    """Load configuration with auto-discovery and merging.

    Args:
        config_file: Optional explicit config file path
        **overrides: Direct overrides. Section values ("evidence", "cache",
            "rules") are dicts merged key by key over file settings.

    Returns:
        Validated DetectionConfig instance

    Raises:
        ConfigFileError: If a config file is missing or not valid TOML
        ConfigurationError: If merged values fail validation
    """
    merged: dict[str, Any] = {}

    sources = [Path.home() / ".seedprobe.toml", Path.cwd() / "seedprobe.toml"]
    for path in sources:
        if path.exists():
            _merge(merged, _load_toml_file(path))

    if config_file is not None:
        if not config_file.exists():
            raise ConfigFileError(config_file, "file not found")
        _merge(merged, _load_toml_file(config_file))

    _merge(merged, _load_env_vars())

    if "verbose" in overrides:
        if overrides["verbose"]:
            overrides["verbosity"] = "verbose"
        del overrides["verbose"]
    if "quiet" in overrides:
        if overrides["quiet"]:
            overrides["verbosity"] = "quiet"
        del overrides["quiet"]

    _merge(merged, overrides)

    evidence = merged.pop("evidence", {})
    cache = merged.pop("cache", {})
    rules = merged.pop("rules", None)
    if rules is not None:
        merged["rule_overrides"] = rules

    try:
        return DetectionConfig(
            evidence=_build_section(EvidenceCollectionConfig, evidence, "evidence"),
            cache=_build_section(CacheConfig, cache, "cache"),
            **merged,
        )
    except TypeError as e:
        raise ConfigurationError(f"Invalid configuration: {e}")
    except ValueError as e:
        raise ConfigurationError(f"Invalid configuration: {e}")


def _build_section(cls: type, value: Any, name: str) -> Any:
    """Build a config section from a dict, passing instances through."""
    if isinstance(value, cls):
        return value
    if not isinstance(value, dict):
        raise ConfigurationError(f"Invalid [{name}] config: expected a table")
    try:
        return cls(**value)
    except TypeError as e:
        raise ConfigurationError(f"Invalid [{name}] config: {e}")
    except ValueError as e:
        raise ConfigurationError(f"Invalid [{name}] config: {e}")


def _merge(base: dict[str, Any], new: dict[str, Any]) -> None:
    """Merge new into base; nested dicts merge key by key."""
    for key, value in new.items():
        if isinstance(value, dict) and isinstance(base.get(key), dict):
            _merge(base[key], value)
        elif isinstance(value, dict):
            base[key] = dict(value)
        else:
            base[key] = value


def _load_env_vars() -> dict[str, Any]:
    """Load configuration from SEEDPROBE_* environment variables.

    Supported environment variables:
        SEEDPROBE_PARALLEL_COLLECTORS: bool
        SEEDPROBE_VERBOSITY: quiet/normal/verbose
        SEEDPROBE_CACHE_<FIELD>: any CacheConfig field (e.g. SEEDPROBE_CACHE_DIR
            is spelled SEEDPROBE_CACHE_CACHE_DIR)
        SEEDPROBE_EVIDENCE_<FIELD>: any EvidenceCollectionConfig field

    Returns:
        Dict shaped like the TOML document for any variables found.
    """
    result: dict[str, Any] = {}

    top = _env_for(DetectionConfig, _ENV_PREFIX, skip={"evidence", "cache", "rule_overrides"})
    result.update(top)

    cache = _env_for(CacheConfig, f"{_ENV_PREFIX}_CACHE")
    if cache:
        result["cache"] = cache

    evidence = _env_for(EvidenceCollectionConfig, f"{_ENV_PREFIX}_EVIDENCE")
    if evidence:
        result["evidence"] = evidence

    return result


def _env_for(cls: type, prefix: str, skip: Optional[set[str]] = None) -> dict[str, Any]:
    """Collect PREFIX_<FIELD> environment variables for one dataclass."""
    type_hints = get_type_hints(cls)
    skip = skip or set()
    result: dict[str, Any] = {}

    for f in fields(cls):
        if f.name in skip:
            continue
        env_key = f"{prefix}_{f.name.upper()}"
        env_value = os.environ.get(env_key)
        if env_value is None:
            continue

        type_hint = type_hints.get(f.name)
        if type_hint is None:
            continue

        try:
            parsed = _parse_env_value(env_value, type_hint, f.name)
            if parsed is not None:
                result[f.name] = parsed
        except ValueError as e:
            raise InvalidConfigError(env_key, env_value, str(e))

    return result


def _parse_env_value(value: str, type_hint: Any, field_name: str) -> Any:
    """Parse environment variable string to the correct type.

    Raises:
        ValueError: If value can't be parsed to expected type
    """
    origin = getattr(type_hint, "__origin__", None)

    args = getattr(type_hint, "__args__", ())
    if type(None) in args:
        non_none_types = [t for t in args if t is not type(None)]
        if non_none_types:
            type_hint = non_none_types[0]
            origin = getattr(type_hint, "__origin__", None)

    if origin in (list, dict) or type_hint in (list, dict):
        return None

    if type_hint is bool:
        lower = value.lower()
        if lower in ("true", "1", "yes", "on"):
            return True
        elif lower in ("false", "0", "no", "off"):
            return False
        else:
            raise ValueError(f"expected true/false, got '{value}'")

    if type_hint is int:
        return int(value)

    if type_hint is float:
        return float(value)

    if type_hint is str or origin is Literal:
        return value

    return None


def _load_toml_file(path: Path) -> dict:
    """Load TOML file and return parsed dict.

    Raises:
        ConfigurationError: If tomllib/tomli not available
        ConfigFileError: If the file cannot be read or parsed
    """
    try:
        import tomllib
    except ModuleNotFoundError:
        try:
            import tomli as tomllib  # type: ignore
        except ImportError:
            raise ConfigurationError(
                "TOML support requires Python 3.11+ or 'tomli' package. "
                "Install with: pip install tomli"
            )

    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigFileError(path, str(e))

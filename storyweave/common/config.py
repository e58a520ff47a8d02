"""
Configuration Management for Storyweave

Loads configuration from ~/.storyweave/config.json and environment variables.
"""

import os
import json
import logging
from pathlib import Path
from dataclasses import dataclass, field

logger = logging.getLogger("storyweave.common.config")

# Default config paths
CONFIG_DIR = Path.home() / ".storyweave"
CONFIG_PATH = CONFIG_DIR / "config.json"


@dataclass
class LLMConfig:
    """LLM provider configuration for Layer 2 refinement"""
    provider: str = "anthropic"
    anthropic_api_key: str = ""
    anthropic_model: str = "claude-haiku-4-5-20251001"
    openai_api_key: str = ""
    openai_model: str = "gpt-4o-mini"
    google_api_key: str = ""
    google_model: str = "gemini-2.0-flash"

    @property
    def model(self) -> str:
        """Model name for the selected provider"""
        return {
            "anthropic": self.anthropic_model,
            "openai": self.openai_model,
            "google": self.google_model,
        }.get(self.provider, "")


@dataclass
class ClusteringConfig:
    """Layer 1 clustering configuration"""
    min_cluster_size: int = 2
    max_gap_days: int = 14
    collaborator_threshold: int = 2
    collaborator_window_days: int = 30
    dedup_by_container: bool = True
    max_merge_size: int = 15


@dataclass
class RefinerConfig:
    """Layer 2 (LLM cluster assignment) configuration"""
    enabled: bool = True
    timeout_seconds: float = 30.0
    max_tokens: int = 2048
    batch_size: int = 40


@dataclass
class StoryweaveConfig:
    """Main Storyweave configuration"""
    llm: LLMConfig = field(default_factory=LLMConfig)
    clustering: ClusteringConfig = field(default_factory=ClusteringConfig)
    refiner: RefinerConfig = field(default_factory=RefinerConfig)


def _parse_llm_config(data: dict) -> LLMConfig:
    """Parse llm section from config dict"""
    llm_data = data.get("llm", {})
    defaults = LLMConfig()
    return LLMConfig(
        provider=llm_data.get("provider", defaults.provider),
        anthropic_api_key=llm_data.get("anthropic_api_key", ""),
        anthropic_model=llm_data.get("anthropic_model", defaults.anthropic_model),
        openai_api_key=llm_data.get("openai_api_key", ""),
        openai_model=llm_data.get("openai_model", defaults.openai_model),
        google_api_key=llm_data.get("google_api_key", ""),
        google_model=llm_data.get("google_model", defaults.google_model),
    )


def _parse_clustering_config(data: dict) -> ClusteringConfig:
    """Parse clustering section from config dict"""
    clustering_data = data.get("clustering", {})
    return ClusteringConfig(
        min_cluster_size=clustering_data.get("min_cluster_size", 2),
        max_gap_days=clustering_data.get("max_gap_days", 14),
        collaborator_threshold=clustering_data.get("collaborator_threshold", 2),
        collaborator_window_days=clustering_data.get("collaborator_window_days", 30),
        dedup_by_container=clustering_data.get("dedup_by_container", True),
        max_merge_size=clustering_data.get("max_merge_size", 15),
    )


def _parse_refiner_config(data: dict) -> RefinerConfig:
    """Parse refiner section from config dict"""
    refiner_data = data.get("refiner", {})
    return RefinerConfig(
        enabled=refiner_data.get("enabled", True),
        timeout_seconds=refiner_data.get("timeout_seconds", 30.0),
        max_tokens=refiner_data.get("max_tokens", 2048),
        batch_size=refiner_data.get("batch_size", 40),
    )


def _env_flag(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_config() -> StoryweaveConfig:
    """
    Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables
    2. Config file (~/.storyweave/config.json)
    3. Default values
    """
    config = StoryweaveConfig()

    # Load from config file if exists
    if CONFIG_PATH.exists():
        try:
            with open(CONFIG_PATH) as f:
                data = json.load(f)

            config.llm = _parse_llm_config(data)
            config.clustering = _parse_clustering_config(data)
            config.refiner = _parse_refiner_config(data)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Failed to load config file %s: %s", CONFIG_PATH, e)

    # LLM env var overrides
    _env_llm_map = {
        "ANTHROPIC_API_KEY": "anthropic_api_key",
        "ANTHROPIC_MODEL": "anthropic_model",
        "OPENAI_API_KEY": "openai_api_key",
        "OPENAI_MODEL": "openai_model",
        "GOOGLE_API_KEY": "google_api_key",
        "GEMINI_API_KEY": "google_api_key",
        "GOOGLE_MODEL": "google_model",
        "STORYWEAVE_LLM_PROVIDER": "provider",
    }
    for env_var, attr in _env_llm_map.items():
        val = os.getenv(env_var)
        if val:
            setattr(config.llm, attr, val)

    if os.getenv("STORYWEAVE_MIN_CLUSTER_SIZE"):
        config.clustering.min_cluster_size = int(os.getenv("STORYWEAVE_MIN_CLUSTER_SIZE"))
    if os.getenv("STORYWEAVE_MAX_GAP_DAYS"):
        config.clustering.max_gap_days = int(os.getenv("STORYWEAVE_MAX_GAP_DAYS"))
    if os.getenv("STORYWEAVE_REFINE_ENABLED"):
        config.refiner.enabled = _env_flag(os.getenv("STORYWEAVE_REFINE_ENABLED"))
    if os.getenv("STORYWEAVE_REFINE_TIMEOUT"):
        config.refiner.timeout_seconds = float(os.getenv("STORYWEAVE_REFINE_TIMEOUT"))

    return config

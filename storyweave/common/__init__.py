"""
Storyweave Common Module

Shared infrastructure for clustering and refinement.
"""

from .config import StoryweaveConfig, LLMConfig, ClusteringConfig, RefinerConfig, load_config
from .llm_client import LLMClient
from .llm_utils import parse_llm_json

__all__ = [
    "StoryweaveConfig",
    "LLMConfig",
    "ClusteringConfig",
    "RefinerConfig",
    "load_config",
    "LLMClient",
    "parse_llm_json",
]

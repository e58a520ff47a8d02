"""
Storyweave

Groups work activity from many tools (pull requests, tickets, chat threads,
documents, meetings) into clusters that each describe one piece of work.

Philosophy:
- Explicit references beat inferred similarity
- Layer 1 (graph clustering) is deterministic and always a complete answer
- Layer 2 (LLM refinement) is strictly additive and falls back silently
- No hidden singletons: every collaborator is constructed and injected

Usage:
    from storyweave.clustering import RefExtractor, SignalExtractor, ClusteringService
    from storyweave.refinement import ClusterAssigner
    from storyweave.pipeline import StoryClusteringPipeline, extract_refs
"""

__version__ = "0.1.0"

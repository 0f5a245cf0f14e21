"""ComfyUI prompt-graph resolution."""

from .graph import GraphFacts, classify_nodes, resolve_graph

__all__ = ["GraphFacts", "classify_nodes", "resolve_graph"]

from .templates import (
    VARIABLE_TOKEN,
    extract_variables,
    render_inline,
    resolve_arguments,
    resolve_path,
)
from .graph import DependencyGraph, build_dependency_graph, topological_order

__all__ = [
    "VARIABLE_TOKEN",
    "DependencyGraph",
    "build_dependency_graph",
    "extract_variables",
    "render_inline",
    "resolve_arguments",
    "resolve_path",
    "topological_order",
]

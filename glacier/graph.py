"""Graphviz rendering of the framework start-up sequence."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum


class GraphvizNodeStyle(Enum):
    """Extra attributes attached to a rendered node."""

    ERROR = '[fillcolor = "red"]'
    HOOK = '[fillcolor = "darkturquoise"]'
    IMPORTANT = '[fillcolor = "chartreuse"]'


class GraphvizNodeType(Enum):
    """Role of a node in the graph."""

    NODE = "node"
    CLUSTER_START = "cluster_start"
    CLUSTER_END = "cluster_end"


@dataclass(eq=False)
class GraphvizNode:
    """A single step in the start-up graph."""

    name: str
    style: GraphvizNodeStyle | None = None
    parents: list[GraphvizNode] = field(default_factory=list)
    is_async: bool = False
    node_type: GraphvizNodeType | None = None


_HEADER = (
    "digraph G {\n"
    '    node [shape = "box" style = "filled,rounded" fillcolor = "gold"]\n'
)

_CLUSTER = (
    "    subgraph cluster_{name} {{\n"
    '        label = "{name}"\n'
    '        style = "rounded,dashed,filled"\n'
    '        color = "deepskyblue"\n'
    '        fillcolor = "aliceblue" \n'
)


class GraphvizNodes(list):
    """An ordered list of graph nodes that can be rendered as DOT."""

    def draw(self) -> str:
        """Render the nodes as a Graphviz digraph."""
        parts = [_HEADER]
        clusters: dict[str, list[str]] = {}
        cluster: list[str] | None = None
        cluster_name = ""

        for node in self:
            if node.node_type is GraphvizNodeType.CLUSTER_START:
                cluster = []
                cluster_name = node.name
                continue
            if node.node_type is GraphvizNodeType.CLUSTER_END:
                clusters[cluster_name] = cluster if cluster is not None else []
                cluster_name = ""
                cluster = None
                continue

            if cluster is not None:
                cluster.append(node.name)
            if node.style is not None:
                parts.append(f'    "{node.name}" {node.style.value}\n')
            for parent in node.parents:
                parts.append(f'    "{parent.name}" -> "{node.name}";\n')

        for name, members in clusters.items():
            parts.append(_CLUSTER.format(name=name))
            parts.extend(f'        "{member}"\n' for member in members)
            parts.append("    }\n")

        parts.append("}")
        return "".join(parts)
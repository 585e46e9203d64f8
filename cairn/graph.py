"""
Dependency graph of local workspace projects and its build order.

Only dependencies that resolve to another *local* project become edges;
remote coordinates never enter the graph.  Nodes are recorded post-order
while the graph is built (a project after everything it reaches), which is
also the tie-break order used by the topological sort below.

Build order
-----------
Kahn's algorithm over in-degrees, where the edge "A depends on B" counts
towards B.  Zero in-degree candidates are taken in node insertion order.
The raw Kahn sequence lists dependents before their dependencies, so it is
reversed before being returned: every project appears after the local
projects it needs.  ``A → B → C`` therefore yields ``[C, B, A]``.
"""
from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, TYPE_CHECKING

from cairn import logger as log
from cairn.coordinates import normalize_name
from cairn.errors import CircularDependencyError

if TYPE_CHECKING:
    from cairn.workspace import LocalProject


@dataclass
class DependencyNode:
    name:         str
    project_dir:  Path
    dependencies: List[str] = field(default_factory=list)   # local names only


@dataclass
class DependencyGraph:
    root:  str
    nodes: Dict[str, DependencyNode] = field(default_factory=dict)

    def __contains__(self, name: str) -> bool:
        return name in self.nodes

    def __len__(self) -> int:
        return len(self.nodes)

    def edges(self) -> List[tuple]:
        return [(n.name, dep) for n in self.nodes.values() for dep in n.dependencies]


def build_graph(root: str, projects: "Dict[str, LocalProject]") -> DependencyGraph:
    """
    Build the graph reachable from *root* through local projects.

    *root* must itself be one of *projects*; an unknown root yields an empty
    graph.  Revisiting an already visited name is a no-op, so cycles do not
    recurse forever here; they are reported by :func:`topological_sort`.
    """
    root = normalize_name(root)
    graph = DependencyGraph(root=root)
    visited: set = set()

    def _visit(name: str) -> None:
        if name in visited:
            return
        visited.add(name)
        project = projects.get(name)
        if project is None:
            return
        local_deps: List[str] = []
        for dep in project.dependencies:
            dep = normalize_name(dep)
            if dep in projects and dep not in local_deps:
                local_deps.append(dep)
                _visit(dep)
        graph.nodes[name] = DependencyNode(name, project.project_dir, local_deps)

    _visit(root)
    log.debug(f"Dependency graph for {root}: {len(graph)} node(s), {len(graph.edges())} edge(s)")
    return graph


def topological_sort(graph: DependencyGraph) -> List[str]:
    """
    Return project names in build order (dependencies first).

    Raises ``CircularDependencyError`` when the graph contains a cycle; no
    partial order is returned in that case.
    """
    in_degree: Dict[str, int] = {name: 0 for name in graph.nodes}
    for node in graph.nodes.values():
        for dep in node.dependencies:
            if dep in in_degree:
                in_degree[dep] += 1

    ready = deque(name for name in graph.nodes if in_degree[name] == 0)
    result: List[str] = []
    while ready:
        name = ready.popleft()
        result.append(name)
        for dep in graph.nodes[name].dependencies:
            if dep not in in_degree:
                continue
            in_degree[dep] -= 1
            if in_degree[dep] == 0:
                ready.append(dep)

    if len(result) < len(graph.nodes):
        remaining = [name for name in graph.nodes if name not in result]
        raise CircularDependencyError(remaining)

    result.reverse()
    return result


def build_order(
    root: str,
    projects: "Dict[str, LocalProject]",
    *,
    include_root: bool = True,
) -> List[str]:
    """Convenience wrapper: graph + sort, optionally without *root* itself."""
    order = topological_sort(build_graph(root, projects))
    if not include_root:
        order = [name for name in order if name != normalize_name(root)]
    return order

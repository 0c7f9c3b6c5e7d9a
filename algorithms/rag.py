"""
Resource Allocation Graph (RAG) for the Deadlock Analyzer.

Builds the bipartite request/assignment graph from a snapshot and checks it
for cycles. The cycle verdict is a structural cross-check only: with
multi-instance resources a cycle does not imply deadlock, so it is reported
next to the safety verdict rather than replacing it.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Tuple

from models.system_state import SystemState


class EdgeType(Enum):
    """Edge types in the RAG."""
    REQUEST = "request"        # Process -> Resource (process is waiting)
    ASSIGNMENT = "assignment"  # Resource -> Process (resource is held)


@dataclass(frozen=True)
class Edge:
    source: int
    target: int
    edge_type: EdgeType

    def to_dict(self) -> Dict:
        return {'from': self.source, 'to': self.target, 'type': self.edge_type.value}


@dataclass(frozen=True)
class AllocationGraph:
    """
    Immutable RAG derived from one snapshot.

    Node ids: processes occupy 0..P-1, resources P..P+R-1.
    """
    num_processes: int
    num_resources: int
    edges: Tuple[Edge, ...]

    @property
    def num_nodes(self) -> int:
        return self.num_processes + self.num_resources

    def resource_node(self, resource: int) -> int:
        return self.num_processes + resource

    def is_process(self, node: int) -> bool:
        return node < self.num_processes

    def label(self, node: int) -> str:
        if self.is_process(node):
            return f"P{node}"
        return f"R{node - self.num_processes}"

    def successors(self, node: int) -> List[int]:
        """Distinct outgoing neighbours of a node, ascending."""
        return sorted({edge.target for edge in self.edges if edge.source == node})

    def edges_of_type(self, edge_type: EdgeType) -> List[Edge]:
        return [edge for edge in self.edges if edge.edge_type == edge_type]

    def to_dict(self) -> Dict:
        nodes = [
            {
                'id': node,
                'label': self.label(node),
                'type': 'process' if self.is_process(node) else 'resource',
            }
            for node in range(self.num_nodes)
        ]
        return {'nodes': nodes, 'edges': [edge.to_dict() for edge in self.edges]}

    def display(self) -> str:
        """
        Generate an ASCII rendering of the graph.

        Returns:
            Edge list, summary counts and a process/resource grid
        """
        output = []
        output.append("\n" + "="*60)
        output.append("RESOURCE ALLOCATION GRAPH (RAG)")
        output.append("="*60)

        output.append("\nProcesses:  " + " ".join(
            f"[P{i}]" for i in range(self.num_processes)))
        output.append("Resources:  " + " ".join(
            f"(R{j})" for j in range(self.num_resources)))

        output.append("\nEdge List:")
        for edge in self.edges:
            if edge.edge_type == EdgeType.REQUEST:
                output.append(f"  [{self.label(edge.source)}] ----> ({self.label(edge.target)})   (Request)")
            else:
                output.append(f"  ({self.label(edge.source)}) - - > [{self.label(edge.target)}]   (Assignment)")

        output.append("\nSummary:")
        output.append(f"  Total Edges: {len(self.edges)}")
        output.append(f"  Request Edges: {len(self.edges_of_type(EdgeType.REQUEST))}")
        output.append(f"  Assignment Edges: {len(self.edges_of_type(EdgeType.ASSIGNMENT))}")

        # Grid: <--> both, ---> request, <--- assignment
        edge_set = {(edge.source, edge.target) for edge in self.edges}
        output.append("\n       " + "".join(f"  (R{j})  " for j in range(self.num_resources)))
        for i in range(self.num_processes):
            row = f"  [P{i}]"
            for j in range(self.num_resources):
                rnode = self.resource_node(j)
                requests = (i, rnode) in edge_set
                assigned = (rnode, i) in edge_set
                if requests and assigned:
                    row += "  <-->   "
                elif requests:
                    row += "  --->   "
                elif assigned:
                    row += "  <---   "
                else:
                    row += "         "
            output.append(row)

        output.append("\n" + "="*60)
        return "\n".join(output)


def build(system_state: SystemState) -> AllocationGraph:
    """
    Build RAG from system state.

    For each process i and resource j (process-major order):
    - Assignment edge R(j) -> P(i) when Allocation[i][j] > 0
    - Request edge P(i) -> R(j) when Need[i][j] > 0

    A process both holding and still needing the same resource gets both
    edges.

    Args:
        system_state: Snapshot to derive the graph from

    Returns:
        AllocationGraph for this snapshot
    """
    need = system_state.check_need()
    num_processes = system_state.num_processes
    edges = []

    for i in range(num_processes):
        for j in range(system_state.num_resources):
            resource_node = num_processes + j
            if system_state.allocation[i][j] > 0:
                edges.append(Edge(resource_node, i, EdgeType.ASSIGNMENT))
            if need[i][j] > 0:
                edges.append(Edge(i, resource_node, EdgeType.REQUEST))

    return AllocationGraph(
        num_processes=num_processes,
        num_resources=system_state.num_resources,
        edges=tuple(edges)
    )


def detect_cycle(graph: AllocationGraph) -> bool:
    """
    Detect a cycle in the RAG using depth-first search.

    Roots are tried in ascending node id (processes, then resources) and
    neighbours are visited in ascending id. A back edge to a node still on
    the current path means a cycle. Uses an explicit stack of
    (node, neighbour iterator) frames instead of recursion.

    Time Complexity: O((P+R)²)

    Args:
        graph: RAG to inspect

    Returns:
        True if a cycle exists
    """
    adjacency = [graph.successors(node) for node in range(graph.num_nodes)]
    visited = [False] * graph.num_nodes
    on_path = [False] * graph.num_nodes

    for root in range(graph.num_nodes):
        if visited[root]:
            continue

        visited[root] = True
        on_path[root] = True
        stack = [(root, iter(adjacency[root]))]

        while stack:
            node, neighbours = stack[-1]
            advanced = False
            for nxt in neighbours:
                if on_path[nxt]:
                    return True  # Back edge found
                if not visited[nxt]:
                    visited[nxt] = True
                    on_path[nxt] = True
                    stack.append((nxt, iter(adjacency[nxt])))
                    advanced = True
                    break
            if not advanced:
                on_path[node] = False
                stack.pop()

    return False

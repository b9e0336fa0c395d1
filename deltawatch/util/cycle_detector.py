"""
DeltaWatch Cycle Detection - Binding Graph
==========================================

Bindings form a directed graph over *path endpoints*: an endpoint is the pair
``(id(object), path)`` and the binding ``A.p -> B.q`` is the edge from A.p's
endpoint to B.q's. Chains like ``a -> b -> c`` are fine; a binding that lets a
value flow back into its own source (``a -> b`` plus ``b -> a``) closes a
cycle.

Cycles are legitimate (two-way binding is exactly one), so the graph reports
them rather than refusing them. The observer decides, based on its
configuration, whether to accept the edge or raise.

Usage:
    graph = BindingGraph()

    graph.add_edge("a", "b")          # False: no cycle
    graph.add_edge("b", "c")          # False
    graph.would_create_cycle("c", "a")  # True
    graph.add_edge("c", "a")          # True: edge added, cycle closed

    graph.find_cycle("a")             # ["a", "b", "c", "a"]
"""

from collections import defaultdict, deque
from typing import Dict, Generic, Hashable, List, Optional, Set, TypeVar

T = TypeVar("T", bound=Hashable)


class BindingGraph(Generic[T]):
    """
    Directed graph of binding endpoints with incremental cycle detection.

    Edge ``source -> target`` means values flow from ``source`` into
    ``target``. Parallel edges are counted, so two bindings between the same
    endpoints need two removals.

    Attributes:
        graph: Forward edges (endpoint -> endpoints it writes to)
        reverse_graph: Reverse edges (endpoint -> endpoints writing to it)
        nodes: Set of all endpoints in the graph
    """

    def __init__(self):
        """Initialize an empty binding graph."""
        self.graph: Dict[T, Set[T]] = defaultdict(set)
        self.reverse_graph: Dict[T, Set[T]] = defaultdict(set)
        self.edge_counts: Dict[tuple, int] = defaultdict(int)
        self.nodes: Set[T] = set()

    def add_node(self, node: T) -> None:
        """
        Add an endpoint to the graph if it doesn't exist.

        Args:
            node: The endpoint to add
        """
        if node not in self.nodes:
            self.nodes.add(node)
            _ = self.graph[node]
            _ = self.reverse_graph[node]

    def add_edge(self, from_node: T, to_node: T) -> bool:
        """
        Add the edge from_node -> to_node.

        Args:
            from_node: Binding source endpoint
            to_node: Binding target endpoint

        Returns:
            True if the new edge closes a cycle
        """
        closes_cycle = self.would_create_cycle(from_node, to_node)

        self.add_node(from_node)
        self.add_node(to_node)
        self.graph[from_node].add(to_node)
        self.reverse_graph[to_node].add(from_node)
        self.edge_counts[(from_node, to_node)] += 1

        return closes_cycle

    def remove_edge(self, from_node: T, to_node: T) -> bool:
        """
        Remove one edge from_node -> to_node, dropping endpoints left isolated.

        Args:
            from_node: Binding source endpoint
            to_node: Binding target endpoint

        Returns:
            True if an edge was removed, False if it didn't exist
        """
        key = (from_node, to_node)
        if self.edge_counts.get(key, 0) == 0:
            return False

        self.edge_counts[key] -= 1
        if self.edge_counts[key] == 0:
            del self.edge_counts[key]
            self.graph[from_node].discard(to_node)
            self.reverse_graph[to_node].discard(from_node)
            self._discard_if_isolated(from_node)
            self._discard_if_isolated(to_node)

        return True

    def would_create_cycle(self, from_node: T, to_node: T) -> bool:
        """
        Check if adding from_node -> to_node would close a cycle.

        That is the case when to_node can already reach from_node (a
        self-binding is a cycle of length one).

        Args:
            from_node: Potential source of new edge
            to_node: Potential target of new edge

        Returns:
            True if adding the edge would create a cycle
        """
        return self._path_between(to_node, from_node) is not None

    def find_cycle(self, node: T) -> Optional[List[T]]:
        """
        Find a cycle passing through ``node``.

        Args:
            node: Endpoint to start from

        Returns:
            The endpoints along the cycle, starting and ending at ``node``, or
            None if ``node`` is not on a cycle
        """
        for successor in self.graph.get(node, ()):
            path = self._path_between(successor, node)
            if path is not None:
                return [node] + path
        return None

    def has_cycle(self) -> bool:
        """
        Check if the current graph contains any cycles.

        Returns:
            True if cycles exist, False otherwise
        """
        try:
            self.topological_sort()
            return False
        except ValueError:
            return True

    def topological_sort(self) -> List[T]:
        """
        Order endpoints so every binding source precedes its targets.

        Returns:
            List of endpoints in topological order

        Raises:
            ValueError: If the graph contains cycles
        """
        # Kahn's algorithm
        indegrees = {node: len(self.reverse_graph[node]) for node in self.nodes}
        queue = deque(node for node in self.nodes if indegrees[node] == 0)
        result = []

        while queue:
            node = queue.popleft()
            result.append(node)
            for dependent in self.graph[node]:
                indegrees[dependent] -= 1
                if indegrees[dependent] == 0:
                    queue.append(dependent)

        if len(result) != len(self.nodes):
            raise ValueError("Binding graph contains cycles")

        return result

    def _path_between(self, start: T, target: T) -> Optional[List[T]]:
        """Breadth-first search for a path start -> ... -> target."""
        if start == target:
            return [start]
        if start not in self.nodes:
            return None

        parents: Dict[T, T] = {}
        visited = {start}
        queue = deque([start])
        while queue:
            node = queue.popleft()
            for successor in self.graph.get(node, ()):
                if successor in visited:
                    continue
                parents[successor] = node
                if successor == target:
                    path = [target]
                    while path[-1] != start:
                        path.append(parents[path[-1]])
                    path.reverse()
                    return path
                visited.add(successor)
                queue.append(successor)
        return None

    def _discard_if_isolated(self, node: T) -> None:
        if node in self.nodes and not self.graph[node] and not self.reverse_graph[node]:
            del self.graph[node]
            del self.reverse_graph[node]
            self.nodes.remove(node)

    def clear(self) -> None:
        """Clear all endpoints and edges from the graph."""
        self.graph.clear()
        self.reverse_graph.clear()
        self.edge_counts.clear()
        self.nodes.clear()

    def __len__(self) -> int:
        """Return number of endpoints in the graph."""
        return len(self.nodes)

    def __contains__(self, node: T) -> bool:
        """Check if an endpoint exists in the graph."""
        return node in self.nodes

    def __str__(self) -> str:
        """String representation of the graph."""
        edges = sum(len(targets) for targets in self.graph.values())
        return f"BindingGraph(nodes={len(self.nodes)}, edges={edges})"

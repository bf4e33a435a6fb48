"""
Small graph helpers used to order and untangle actions.
"""

from __future__ import annotations

import heapq
from typing import Dict, Hashable, Iterable, List, Mapping, Sequence, Set, TypeVar

Node = TypeVar("Node", bound=Hashable)


def strongly_connected_components(
    nodes: Sequence[Node], edges: Mapping[Node, Iterable[Node]]
) -> List[List[Node]]:
    """
    Tarjan's algorithm, iterative. Components come out in discovery order and
    the members of each component keep the order of ``nodes``.
    """
    position = {node: i for i, node in enumerate(nodes)}
    index: Dict[Node, int] = {}
    lowlink: Dict[Node, int] = {}
    on_stack: Set[Node] = set()
    stack: List[Node] = []
    components: List[List[Node]] = []
    counter = 0

    for root in nodes:
        if root in index:
            continue
        work = [(root, iter(_successors(edges, root, position)))]
        index[root] = lowlink[root] = counter
        counter += 1
        stack.append(root)
        on_stack.add(root)
        while work:
            node, successors = work[-1]
            advanced = False
            for succ in successors:
                if succ not in index:
                    index[succ] = lowlink[succ] = counter
                    counter += 1
                    stack.append(succ)
                    on_stack.add(succ)
                    work.append((succ, iter(_successors(edges, succ, position))))
                    advanced = True
                    break
                if succ in on_stack:
                    lowlink[node] = min(lowlink[node], index[succ])
            if advanced:
                continue
            work.pop()
            if work:
                parent = work[-1][0]
                lowlink[parent] = min(lowlink[parent], lowlink[node])
            if lowlink[node] == index[node]:
                component: List[Node] = []
                while True:
                    member = stack.pop()
                    on_stack.discard(member)
                    component.append(member)
                    if member == node:
                        break
                component.sort(key=position.__getitem__)
                components.append(component)
    return components


def _successors(edges: Mapping[Node, Iterable[Node]], node: Node, position: Mapping[Node, int]) -> List[Node]:
    return sorted((succ for succ in edges.get(node, ()) if succ in position), key=position.__getitem__)


def stable_topological_order(count: int, dependencies: Sequence[Set[int]]) -> tuple[List[int], Set[int]]:
    """
    Order ``range(count)`` so every item follows its dependencies, always
    emitting the smallest ready index next.

    Returns the order and the set of indices left unresolved by a cycle.
    """
    remaining = [len(deps) for deps in dependencies]
    dependents: List[List[int]] = [[] for _ in range(count)]
    for item, deps in enumerate(dependencies):
        for dep in deps:
            dependents[dep].append(item)

    ready = [item for item in range(count) if remaining[item] == 0]
    heapq.heapify(ready)
    order: List[int] = []
    while ready:
        item = heapq.heappop(ready)
        order.append(item)
        for dependent in dependents[item]:
            remaining[dependent] -= 1
            if remaining[dependent] == 0:
                heapq.heappush(ready, dependent)
    unresolved = {item for item in range(count) if remaining[item] > 0}
    return order, unresolved

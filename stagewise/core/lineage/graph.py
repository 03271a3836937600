from __future__ import annotations

from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Dict, List, Set

from stagewise.core.errors import CircularDependencyError
from stagewise.core.manifest.models import PipelineManifest
from stagewise.core.stages.catalog import StageName, get_stage


@dataclass
class ModelNode:
    name: str
    stage: StageName
    depends_on: List[str] = field(default_factory=list)

    @property
    def order(self) -> int:
        return get_stage(self.stage).order


class ModelGraph:
    def __init__(self):
        self.nodes: Dict[str, ModelNode] = {}
        self.edges: Dict[str, List[str]] = defaultdict(list)

    @classmethod
    def from_manifest(cls, manifest: PipelineManifest) -> "ModelGraph":
        g = cls()
        declared = manifest.model_map()
        for m in declared.values():
            # inputs that are not models (source systems, unknown names) are leaves
            deps = [i for i in dict.fromkeys(m.inputs) if i in declared and i != m.name]
            g.add_node(ModelNode(name=m.name, stage=m.stage, depends_on=deps))
        return g

    def add_node(self, node: ModelNode) -> None:
        self.nodes[node.name] = node
        for dep in node.depends_on:
            self.edges[dep].append(node.name)

    def _sort_key(self, name: str):
        node = self.nodes[name]
        return (node.order, node.name)

    def topological_order(self) -> List[str]:
        in_degree: Dict[str, int] = {name: 0 for name in self.nodes}

        for deps in self.edges.values():
            for node in deps:
                if node in in_degree:
                    in_degree[node] += 1

        ready = sorted([n for n, d in in_degree.items() if d == 0], key=self._sort_key)
        queue = deque(ready)
        order: List[str] = []

        while queue:
            current = queue.popleft()
            order.append(current)

            released = []
            for neighbor in self.edges[current]:
                in_degree[neighbor] -= 1
                if in_degree[neighbor] == 0:
                    released.append(neighbor)
            # keep the queue ordered by (stage, name) so output is stable
            queue = deque(sorted(list(queue) + released, key=self._sort_key))

        if len(order) != len(self.nodes):
            done = set(order)
            remaining = sorted(n for n in self.nodes if n not in done)
            raise CircularDependencyError(remaining)

        return order

    def _walk(self, start: str, neighbours) -> List[str]:
        if start not in self.nodes:
            raise KeyError(start)
        seen: Set[str] = set()
        stack = list(neighbours(start))
        while stack:
            cur = stack.pop()
            if cur in seen or cur == start:
                continue
            seen.add(cur)
            stack.extend(neighbours(cur))
        return sorted(seen, key=self._sort_key)

    def upstream(self, name: str) -> List[str]:
        return self._walk(name, lambda n: self.nodes[n].depends_on)

    def downstream(self, name: str) -> List[str]:
        return self._walk(name, lambda n: self.edges.get(n, []))

    def consumers(self, name: str) -> List[str]:
        return sorted(self.edges.get(name, []))

    def layers(self) -> Dict[str, List[str]]:
        out: Dict[str, List[str]] = {}
        for node in sorted(self.nodes.values(), key=lambda n: (n.order, n.name)):
            out.setdefault(node.stage.value, []).append(node.name)
        return out

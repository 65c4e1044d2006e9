"""
Dependency graph construction and cycle detection.

Tasks are stored in an arena indexed by integer handle; `handles` maps a task
id back to its slot. Edges keep their metadata (type, lag, origin) so the
CPM pass and the assembled timeline can both use them.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from .models import (
    CycleReport,
    DateRange,
    DependencyRecord,
    Edge,
    InlineDependency,
    RecordedDependency,
    Task,
)

logger = logging.getLogger(__name__)

UNVISITED, VISITING, VISITED = 0, 1, 2


@dataclass
class DependencyGraph:
    task_ids: List[str] = field(default_factory=list)
    handles: Dict[str, int] = field(default_factory=dict)
    successors: List[List[Tuple[int, Edge]]] = field(default_factory=list)
    predecessors: List[List[Tuple[int, Edge]]] = field(default_factory=list)
    edges: List[Edge] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.task_ids)

    def add_node(self, task_id: str) -> int:
        handle = len(self.task_ids)
        self.task_ids.append(task_id)
        self.handles[task_id] = handle
        self.successors.append([])
        self.predecessors.append([])
        return handle

    def add_edge(self, edge: Edge) -> None:
        pred = self.handles[edge.predecessor_id]
        succ = self.handles[edge.successor_id]
        self.successors[pred].append((succ, edge))
        self.predecessors[succ].append((pred, edge))
        self.edges.append(edge)

    def successor_ids(self, task_id: str) -> List[str]:
        return [self.task_ids[h] for h, _ in self.successors[self.handles[task_id]]]

    def predecessor_ids(self, task_id: str) -> List[str]:
        return [self.task_ids[h] for h, _ in self.predecessors[self.handles[task_id]]]


def _in_date_range(task: Task, date_range: DateRange) -> bool:
    start: Optional[datetime] = task.start_date
    due: Optional[datetime] = task.due_date
    if start is not None and due is not None:
        return date_range.overlaps(start, due)
    if start is not None:
        return date_range.contains(start)
    if due is not None:
        return date_range.contains(due)
    return False


def select_tasks(
    tasks: Iterable[Task],
    project_id: Optional[str] = None,
    date_range: Optional[DateRange] = None,
) -> List[Task]:
    """
    Keep tasks of the requested project whose explicit dates touch the range.
    Undated tasks cannot be placed in a date-constrained view and are left out.
    """
    selected = [t for t in tasks if project_id is None or t.project_id == project_id]
    if date_range is not None:
        selected = [t for t in selected if _in_date_range(t, date_range)]
    return selected


def dependency_records(
    tasks: Iterable[Task],
    dependencies: Iterable[RecordedDependency],
) -> List[DependencyRecord]:
    """Recorded dependencies first, then the inline ids stored on each task."""
    records: List[DependencyRecord] = list(dependencies)
    for task in tasks:
        records.extend(InlineDependency(pred_id, task.id) for pred_id in task.dependencies)
    return records


def to_edge(record: DependencyRecord) -> Edge:
    if isinstance(record, RecordedDependency):
        return Edge(
            predecessor_id=record.predecessor_id,
            successor_id=record.successor_id,
            type=record.type,
            lag=record.lag,
            source="recorded",
            dependency_id=record.id,
        )
    return Edge(predecessor_id=record.predecessor_id, successor_id=record.successor_id, source="inline")


def normalize_dependencies(
    records: Iterable[DependencyRecord],
    task_ids: Sequence[str],
) -> List[Edge]:
    """
    Resolve the tagged records into unique edges between known tasks.
    Recorded edges win over inline ones for the same predecessor/successor pair.
    Self-edges are kept so cycle detection reports them as ("A", "A").
    """
    known = set(task_ids)
    chosen: Dict[Tuple[str, str], Edge] = {}
    dropped = 0
    for record in records:
        edge = to_edge(record)
        if edge.predecessor_id not in known or edge.successor_id not in known:
            dropped += 1
            continue
        key = (edge.predecessor_id, edge.successor_id)
        current = chosen.get(key)
        if current is None or (current.source == "inline" and edge.source == "recorded"):
            chosen[key] = edge

    if dropped:
        logger.debug("Dropped %d dependencies outside the selected task set", dropped)
    return list(chosen.values())


def build_graph(task_ids: Sequence[str], edges: Iterable[Edge]) -> DependencyGraph:
    graph = DependencyGraph()
    for task_id in task_ids:
        graph.add_node(task_id)
    for edge in edges:
        graph.add_edge(edge)
    return graph


def build_dependency_graph(
    tasks: Sequence[Task],
    dependencies: Iterable[RecordedDependency],
) -> DependencyGraph:
    task_ids = [t.id for t in tasks]
    edges = normalize_dependencies(dependency_records(tasks, dependencies), task_ids)
    graph = build_graph(task_ids, edges)
    logger.debug("Built dependency graph with %d nodes and %d edges", len(graph), len(graph.edges))
    return graph


def find_cycles(graph: DependencyGraph) -> CycleReport:
    """
    Depth-first search with visiting/visited marks over an explicit stack.
    Each back edge yields the path from the repeated node to the closing edge,
    e.g. A -> B -> C -> A is reported as ("A", "B", "C", "A").
    """
    state = [UNVISITED] * len(graph)
    cycles: List[Tuple[str, ...]] = []

    for root in range(len(graph)):
        if state[root] != UNVISITED:
            continue
        state[root] = VISITING
        path: List[int] = [root]
        position: Dict[int, int] = {root: 0}
        stack = [iter(graph.successors[root])]

        while stack:
            descended = False
            for child, _edge in stack[-1]:
                if state[child] == VISITING:
                    cycle = [graph.task_ids[h] for h in path[position[child]:]]
                    cycle.append(graph.task_ids[child])
                    cycles.append(tuple(cycle))
                    continue
                if state[child] == UNVISITED:
                    state[child] = VISITING
                    position[child] = len(path)
                    path.append(child)
                    stack.append(iter(graph.successors[child]))
                    descended = True
                    break
            if not descended:
                node = path.pop()
                del position[node]
                state[node] = VISITED
                stack.pop()

    if cycles:
        logger.warning("Found %d circular dependencies: %s", len(cycles), cycles)
    return CycleReport(is_acyclic=not cycles, cycles=tuple(cycles))

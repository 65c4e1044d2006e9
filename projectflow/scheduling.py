"""
Critical Path Method over an Activity-on-Node dependency graph.

Times are expressed in days from the project anchor (day 0). Only
finish-to-start lag is applied; start-to-start, finish-to-finish and
start-to-finish edges propagate from the predecessor's finish with no
offset. This is a known simplification, not a full multi-type CPM.

Earliest starts are clamped at day 0: a lead never schedules a task before
the project anchor.
"""
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .graph import UNVISITED, VISITED, VISITING, DependencyGraph
from .settings import DEFAULT_SETTINGS, EngineSettings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CpmResult:
    es: Dict[str, float]
    ef: Dict[str, float]
    ls: Dict[str, float]
    lf: Dict[str, float]
    slack: Dict[str, float]
    critical: frozenset
    project_duration: float
    order: Tuple[str, ...]


def topological_order(graph: DependencyGraph) -> List[int]:
    """
    Memoized depth-first walk over predecessors: every node is emitted after
    all of its predecessors. Nodes already on the walk are skipped, so a cyclic
    graph still terminates (with an order that is meaningless for the cycle).
    """
    state = [UNVISITED] * len(graph)
    order: List[int] = []

    for root in range(len(graph)):
        if state[root] != UNVISITED:
            continue
        state[root] = VISITING
        stack = [(root, iter(graph.predecessors[root]))]
        while stack:
            node, preds = stack[-1]
            for pred, _edge in preds:
                if state[pred] == UNVISITED:
                    state[pred] = VISITING
                    stack.append((pred, iter(graph.predecessors[pred])))
                    break
            else:
                state[node] = VISITED
                order.append(node)
                stack.pop()
    return order


def run_cpm(
    graph: DependencyGraph,
    durations: Sequence[float],
    settings: EngineSettings = DEFAULT_SETTINGS,
) -> CpmResult:
    """
    Forward pass (ES/EF), backward pass (LS/LF), total float and the critical set.
    `durations` is indexed by node handle. Callers validate acyclicity first.
    """
    count = len(graph)
    topologicalOrder = topological_order(graph)

    es: List[float] = [0.0] * count
    ef: List[float] = [0.0] * count
    done = [False] * count
    for node in topologicalOrder:
        start = max(
            (ef[pred] + edge.applied_lag for pred, edge in graph.predecessors[node] if done[pred]),
            default=0.0,
        )
        es[node] = max(0.0, float(start))
        ef[node] = es[node] + durations[node]
        done[node] = True
    projectDuration = max(ef, default=0.0)

    ls: List[float] = [0.0] * count
    lf: List[float] = [0.0] * count
    done = [False] * count
    for node in reversed(topologicalOrder):
        lf[node] = min(
            (ls[succ] - edge.applied_lag for succ, edge in graph.successors[node] if done[succ]),
            default=projectDuration,
        )
        ls[node] = lf[node] - durations[node]
        done[node] = True

    ids = graph.task_ids
    slack = {ids[n]: ls[n] - es[n] for n in range(count)}
    critical = frozenset(task_id for task_id, value in slack.items() if abs(value) < settings.critical_epsilon)

    logger.debug(
        "CPM pass over %d tasks: project duration %.2f days, %d critical",
        count, projectDuration, len(critical),
    )
    return CpmResult(
        es={ids[n]: es[n] for n in range(count)},
        ef={ids[n]: ef[n] for n in range(count)},
        ls={ids[n]: ls[n] for n in range(count)},
        lf={ids[n]: lf[n] for n in range(count)},
        slack=slack,
        critical=critical,
        project_duration=projectDuration,
        order=tuple(ids[n] for n in topologicalOrder),
    )


def critical_chains(
    graph: DependencyGraph,
    result: CpmResult,
    settings: EngineSettings = DEFAULT_SETTINGS,
    limit: Optional[int] = 50,
) -> List[Tuple[str, ...]]:
    """
    Ordered chains through the critical set.

    The critical set may hold several disjoint zero-float chains. A chain
    follows edges between critical tasks where the successor starts exactly
    when the edge allows (EF + lag == ES). Chains are maximal and returned in
    order of their first task's earliest start, at most `limit` of them.
    """
    eps = settings.critical_epsilon

    def tight_successors(task_id: str) -> List[str]:
        found = []
        for succ, edge in graph.successors[graph.handles[task_id]]:
            succ_id = graph.task_ids[succ]
            if succ_id not in result.critical:
                continue
            if abs(result.ef[task_id] + edge.applied_lag - result.es[succ_id]) < eps:
                found.append(succ_id)
        return sorted(found, key=lambda t: (result.es[t], t))

    has_tight_pred = set()
    for task_id in result.critical:
        has_tight_pred.update(tight_successors(task_id))
    heads = sorted(
        (t for t in result.critical if t not in has_tight_pred),
        key=lambda t: (result.es[t], t),
    )

    chains: List[Tuple[str, ...]] = []
    for head in heads:
        stack = [(head,)]
        while stack:
            path = stack.pop()
            nexts = [s for s in tight_successors(path[-1]) if s not in path]
            if not nexts:
                chains.append(path)
                if limit is not None and len(chains) >= limit:
                    return chains
                continue
            for succ in reversed(nexts):
                stack.append(path + (succ,))
    return chains

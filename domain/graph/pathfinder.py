"""
Path search over a RateGraph.

The best conversion maximises the product of edge rates. Taking -log(rate) as
the edge weight turns that product into a sum, so the search becomes an
ordinary shortest-path problem. Rates above 1 give negative weights, so a label
is kept per (currency, visited currencies) pair and re-expanded when it
improves. Two routes with the same label have exactly the same extensions, so
dropping the worse one never loses a better path, and the visited set bounds
every chain to `max_hops` edges even when the graph contains loops whose rate
product exceeds 1.
"""

import heapq
import itertools
import math

from domain.models.rates import PathResult, RateEdge, RateGraph

DEFAULT_MAX_HOPS = 5
DEFAULT_MIN_CONFIDENCE = 0.1
DEFAULT_ALL_PATHS_MAX_HOPS = 4
DEFAULT_MAX_RESULTS = 10

_State = tuple[str, frozenset[str]]


def _to_path_result(origin: str, edges: list[RateEdge]) -> PathResult:
    path = [origin] + [edge.to_currency for edge in edges]
    return PathResult(
        path=path,
        total_rate=math.prod(edge.rate for edge in edges),
        hops=len(edges),
        edges=list(edges),
    )


def find_best_path(
    graph: RateGraph,
    from_currency: str,
    to_currency: str,
    max_hops: int = DEFAULT_MAX_HOPS,
    min_confidence: float = DEFAULT_MIN_CONFIDENCE,
) -> PathResult | None:
    """Highest cumulative-rate simple path of at most `max_hops` edges, or None."""
    if from_currency not in graph.nodes or to_currency not in graph.nodes:
        return None
    if from_currency == to_currency:
        return PathResult(path=[from_currency], total_rate=1.0, hops=0, edges=[])

    start: _State = (from_currency, frozenset({from_currency}))
    distances: dict[_State, float] = {start: 0.0}
    routes: dict[_State, tuple[RateEdge, ...]] = {start: ()}

    # the counter keeps heap ordering stable for equal distances
    counter = itertools.count()
    queue: list[tuple[float, int, _State]] = [(0.0, next(counter), start)]

    best: _State | None = None
    while queue:
        distance, _, state = heapq.heappop(queue)
        if distance > distances[state]:
            continue

        currency, visited = state
        route = routes[state]
        if currency == to_currency:
            if best is None or distance < distances[best] or (
                distance == distances[best] and len(route) < len(routes[best])
            ):
                best = state
            continue
        if len(route) >= max_hops:
            continue

        for neighbour, edge in graph.neighbours(currency).items():
            if edge.confidence < min_confidence or neighbour in visited:
                continue

            candidate = distance - math.log(edge.rate)
            next_state = (neighbour, visited | {neighbour})
            if candidate < distances.get(next_state, math.inf):
                distances[next_state] = candidate
                routes[next_state] = route + (edge,)
                heapq.heappush(queue, (candidate, next(counter), next_state))

    if best is None:
        return None
    return _to_path_result(from_currency, list(routes[best]))


def find_all_paths(
    graph: RateGraph,
    from_currency: str,
    to_currency: str,
    max_hops: int = DEFAULT_ALL_PATHS_MAX_HOPS,
    max_results: int = DEFAULT_MAX_RESULTS,
    min_confidence: float = 0.0,
) -> list[PathResult]:
    """
    Enumerate up to `max_results` simple paths of 1..`max_hops` edges.

    Plain backtracking DFS: a currency on the current branch cannot be entered
    again, and is released once the branch is abandoned. Results are ordered
    best rate first. Far more expensive than find_best_path on dense graphs.
    """
    results: list[PathResult] = []
    if from_currency not in graph.nodes or to_currency not in graph.nodes:
        return results

    on_branch: set[str] = set()
    branch: list[RateEdge] = []

    def walk(currency: str) -> None:
        if len(results) >= max_results:
            return
        if currency == to_currency and branch:
            results.append(_to_path_result(from_currency, branch))
            return
        if len(branch) >= max_hops:
            return

        on_branch.add(currency)
        try:
            for neighbour, edge in graph.neighbours(currency).items():
                if neighbour in on_branch or edge.confidence < min_confidence:
                    continue
                branch.append(edge)
                walk(neighbour)
                branch.pop()
                if len(results) >= max_results:
                    break
        finally:
            on_branch.discard(currency)

    walk(from_currency)
    results.sort(key=lambda result: result.total_rate, reverse=True)
    return results

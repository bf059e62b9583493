"""
경로 탐색 (PriorityQueue, A*/Dijkstra, 양방향 Dijkstra, 후보 경로 생성) 테스트
"""

import pytest

from app.algorithms.graph_builder import virtual_node_id
from app.algorithms.location_connector import LocationConnector
from app.algorithms.path_search import (
    PriorityQueue,
    SearchPath,
    SearchStats,
    astar_graph_path,
    bidirectional_dijkstra,
    dijkstra,
    find_path,
)
from app.algorithms.path_strategies import (
    PATH_STRATEGIES,
    STRATEGIES_BY_NAME,
    penalize_edges,
    penalize_lines,
)
from app.algorithms.route_generator import PathGenerator, jaccard
from app.models.domain import Coordinates, EdgeType, GraphEdge

from conftest import BASE_LAT, BASE_LNG, LNG_KM

# 작은 추상 그래프: a -> b -> d (3), a -> c -> d (4), a -> d (10)
GRAPH = {
    "a": [("b", 1), ("c", 1), ("d", 10)],
    "b": [("d", 2)],
    "c": [("d", 3)],
    "d": [],
}


def neighbors(node):
    for target, cost in GRAPH[node]:
        yield target, (node, target, cost)


def cost(edge):
    return edge[2]


class TestPriorityQueue:

    def test_pop_in_priority_order(self):
        queue = PriorityQueue()
        queue.push("a", 3)
        queue.push("b", 1)
        queue.push("c", 2)

        assert [queue.pop()[0] for _ in range(3)] == ["b", "c", "a"]

    def test_decrease_key(self):
        queue = PriorityQueue()
        queue.push("a", 5)

        assert queue.push("a", 2) is True
        assert queue.priority_of("a") == 2
        assert len(queue) == 1
        assert queue.pop()[:2] == ("a", 2)

    def test_reject_equal_or_higher_priority(self):
        queue = PriorityQueue()
        queue.push("a", 2, item="first")

        assert queue.push("a", 2, item="second") is False
        assert queue.push("a", 3) is False
        assert queue.pop() == ("a", 2, "first")

    def test_empty_queue(self):
        queue = PriorityQueue()

        assert not queue
        assert "a" not in queue
        with pytest.raises(IndexError):
            queue.pop()

    def test_peek_priority_skips_stale_entries(self):
        queue = PriorityQueue()
        queue.push("a", 5)
        queue.push("b", 4)
        queue.push("a", 1)

        assert queue.peek_priority() == 1


class TestFindPath:

    def test_dijkstra_shortest_path(self):
        nodes, edges, total = dijkstra("a", lambda n: n == "d", neighbors, cost)

        assert nodes == ["a", "b", "d"]
        assert total == 3
        assert len(edges) == 2

    def test_heuristic_does_not_change_optimal_path(self):
        # admissible heuristic
        h = {"a": 2, "b": 2, "c": 3, "d": 0}
        nodes, _, total = find_path(
            "a", lambda n: n == "d", neighbors, cost, heuristic=lambda n: h[n]
        )

        assert nodes == ["a", "b", "d"]
        assert total == 3

    def test_start_is_goal(self):
        nodes, edges, total = dijkstra("a", lambda n: n == "a", neighbors, cost)

        assert nodes == ["a"]
        assert edges == []
        assert total == 0

    def test_unreachable_returns_empty(self):
        nodes, edges, total = dijkstra("d", lambda n: n == "a", neighbors, cost)

        assert nodes == [] and edges == []
        assert total == float("inf")

    def test_iteration_limit(self):
        def endless(node):
            yield node + 1, (node, node + 1, 1)

        stats = SearchStats()
        nodes, _, _ = find_path(
            0, lambda n: n == -1, endless, cost, max_iterations=50, stats=stats
        )

        assert nodes == []
        assert stats.exhausted
        assert stats.iterations == 50


class TestGraphSearch:

    def test_bidirectional_matches_astar(self, network):
        weight = STRATEGIES_BY_NAME["standard"].weight

        bidirectional = bidirectional_dijkstra(network.graph, "r0", "b3", weight)
        forward = astar_graph_path(network.graph, "r0", "b3", weight)

        assert bidirectional.cost == pytest.approx(forward.cost)
        assert bidirectional.nodes[0] == "r0"
        assert bidirectional.nodes[-1] == "b3"

    def test_bidirectional_path_is_connected(self, network):
        weight = STRATEGIES_BY_NAME["standard"].weight
        path = bidirectional_dijkstra(network.graph, "r7", "b2", weight)

        assert len(path.edges) == len(path.nodes) - 1
        for node, edge, nxt in zip(path.nodes, path.edges, path.nodes[1:]):
            assert edge.source == node and edge.target == nxt

    def test_bidirectional_unknown_node(self, network):
        path = bidirectional_dijkstra(
            network.graph, "r0", "nowhere", STRATEGIES_BY_NAME["standard"].weight
        )

        assert path.nodes == () and path.edges == ()

    def test_bidirectional_same_node(self, network):
        path = bidirectional_dijkstra(
            network.graph, "r0", "r0", STRATEGIES_BY_NAME["standard"].weight
        )

        assert path.nodes == ("r0",)
        assert path.edges == ()


class TestStrategies:

    @pytest.fixture
    def edges(self):
        return {
            EdgeType.TRANSIT: GraphEdge("a", "b", EdgeType.TRANSIT, 100, 800, line_id="red"),
            EdgeType.WALKING: GraphEdge("a", "c", EdgeType.WALKING, 100, 140),
            EdgeType.TRANSFER: GraphEdge("a", "a_red", EdgeType.TRANSFER, 100, 0),
        }

    def test_four_strategies(self):
        assert [s.name for s in PATH_STRATEGIES] == [
            "standard",
            "minimizeTransfers",
            "preferTransit",
            "preferWalking",
        ]

    @pytest.mark.parametrize(
        "name, transit, walking, transfer",
        [
            ("standard", 100, 100, 100),
            ("minimizeTransfers", 100, 100, 500),
            ("preferTransit", 100, 200, 100),
            ("preferWalking", 150, 80, 150),
        ],
    )
    def test_strategy_weights(self, edges, name, transit, walking, transfer):
        weight = STRATEGIES_BY_NAME[name].weight

        assert weight(edges[EdgeType.TRANSIT]) == pytest.approx(transit)
        assert weight(edges[EdgeType.WALKING]) == pytest.approx(walking)
        assert weight(edges[EdgeType.TRANSFER]) == pytest.approx(transfer)

    def test_penalize_edges(self, edges):
        base = STRATEGIES_BY_NAME["standard"].weight
        transit = edges[EdgeType.TRANSIT]
        weight = penalize_edges(base, {transit.key}, 2.0)

        assert weight(transit) == 200
        assert weight(edges[EdgeType.WALKING]) == 100

    def test_penalize_lines(self, edges):
        base = STRATEGIES_BY_NAME["standard"].weight
        weight = penalize_lines(base, ["red"], 10.0)

        assert weight(edges[EdgeType.TRANSIT]) == 1000
        assert weight(edges[EdgeType.TRANSFER]) == 100


class TestPathGenerator:

    @pytest.fixture
    def connected(self, network):
        origin = Coordinates(lat=BASE_LAT, lng=BASE_LNG)
        destination = Coordinates(lat=BASE_LAT, lng=BASE_LNG + 7 * LNG_KM)
        return LocationConnector().connect(network, origin, destination)

    def test_jaccard(self):
        assert jaccard(set(), set()) == 1.0
        assert jaccard({"a"}, set()) == 0.0
        assert jaccard({"a", "b"}, {"b", "c"}) == pytest.approx(1 / 3)

    def test_generates_paths_between_endpoints(self, connected):
        paths = PathGenerator().generate(connected)

        assert paths
        for path in paths:
            assert path.nodes[0] == "origin"
            assert path.nodes[-1] == "destination"

    def test_node_sequences_are_unique(self, connected):
        paths = PathGenerator().generate(connected)

        assert len({p.nodes for p in paths}) == len(paths)

    def test_max_paths_cap(self, connected):
        paths = PathGenerator(max_paths=1).generate(connected, force_line_diversity=True)

        assert len(paths) == 1

    def test_unconnected_endpoints_only_walk(self, network):
        far = Coordinates(lat=BASE_LAT + 0.5, lng=BASE_LNG)
        connected = LocationConnector().connect(
            network, far, Coordinates(lat=BASE_LAT - 0.5, lng=BASE_LNG)
        )
        # 출발/도착 모두 역과 연결되지 않음 => 직접 보행 edge만 존재
        paths = PathGenerator().generate(connected)

        assert len(paths) == 1
        assert [e.type for e in paths[0].edges] == [EdgeType.WALKING]

    def test_shared_graph_weights_untouched(self, connected, network):
        before = [(e.key, e.duration) for e in network.graph.edges()]

        PathGenerator().generate(connected, force_line_diversity=True)

        assert [(e.key, e.duration) for e in network.graph.edges()] == before


def _line_path(*legs):
    """_line_path(("red", ["r0", "r1", "r2"]), ...) => 노선별 연속 transit edge 경로"""
    edges = []
    for line_id, station_ids in legs:
        for a, b in zip(station_ids, station_ids[1:]):
            edges.append(
                GraphEdge(
                    source=virtual_node_id(a, line_id),
                    target=virtual_node_id(b, line_id),
                    type=EdgeType.TRANSIT,
                    duration=125,
                    distance=1000,
                    line_id=line_id,
                )
            )
    nodes = ("origin",) + tuple(e.target for e in edges) + ("destination",)
    return SearchPath(nodes=nodes, edges=tuple(edges), cost=125 * len(edges))


class TestAlternativePaths:
    """재탐색 결과 채택 기준 (transit 역 집합 Jaccard <= 0.7)"""

    RED = [f"r{i}" for i in range(7)]

    @pytest.fixture
    def connected(self, network):
        origin = Coordinates(lat=BASE_LAT, lng=BASE_LNG)
        destination = Coordinates(lat=BASE_LAT + 3 * 0.009, lng=BASE_LNG + 3 * LNG_KM)
        return LocationConnector().connect(network, origin, destination)

    def _try(self, mocker, connected, existing, candidate):
        mocker.patch(
            "app.algorithms.route_generator.astar_graph_path", return_value=candidate
        )
        paths = [existing]
        accepted = PathGenerator()._try_alternative(
            connected, paths, STRATEGIES_BY_NAME["standard"].weight, lambda n: 0.0, "test"
        )
        return accepted, paths

    def test_similar_candidate_rejected(self, mocker, connected):
        existing = _line_path(("red", self.RED))
        # 교집합 7 / 합집합 9 => 0.78
        candidate = _line_path(("red", self.RED), ("blue", ["b1", "b2"]))

        accepted, paths = self._try(mocker, connected, existing, candidate)

        assert accepted is False
        assert paths == [existing]

    def test_candidate_at_threshold_accepted(self, mocker, connected):
        existing = _line_path(("red", self.RED))
        # 교집합 7 / 합집합 10 => 정확히 0.7
        candidate = _line_path(("red", self.RED), ("blue", ["b1", "b2", "b3"]))

        accepted, paths = self._try(mocker, connected, existing, candidate)

        assert accepted is True
        assert paths == [existing, candidate]

    def test_disjoint_candidate_accepted(self, mocker, connected):
        existing = _line_path(("red", ["r0", "r1", "r2"]))
        candidate = _line_path(("blue", ["b1", "b2", "b3"]))

        accepted, _ = self._try(mocker, connected, existing, candidate)

        assert accepted is True

    def test_empty_candidate_ignored(self, mocker, connected):
        accepted, paths = self._try(
            mocker, connected, _line_path(("red", self.RED)), SearchPath()
        )

        assert accepted is False
        assert len(paths) == 1

    def test_reused_edges_include_every_edge_type(self):
        walk = GraphEdge(
            source="origin", target="r0", type=EdgeType.WALKING, duration=300, distance=400
        )
        first = _line_path(("red", ["r0", "r1"]))
        second = _line_path(("red", ["r0", "r1"]), ("blue", ["b1", "b2"]))
        first = SearchPath(nodes=first.nodes, edges=(walk,) + first.edges)
        second = SearchPath(nodes=second.nodes, edges=(walk,) + second.edges)

        reused = PathGenerator._reused_edges([first, second])

        assert walk.key in reused
        assert first.edges[1].key in reused
        assert second.edges[-1].key not in reused

    def test_reuse_pass_penalizes_shared_edges(self, mocker, connected):
        """전략 경로들이 공유한 edge만 x2 가중치로 재탐색"""
        walk = GraphEdge(
            source="origin", target="r0", type=EdgeType.WALKING, duration=300, distance=400
        )
        red = _line_path(("red", ["r0", "r1", "r2"]))
        blue = _line_path(("red", ["r0", "r1"]), ("blue", ["b1", "b2"]))
        first = SearchPath(nodes=red.nodes, edges=(walk,) + red.edges)
        second = SearchPath(nodes=blue.nodes, edges=(walk,) + blue.edges)
        mocker.patch(
            "app.algorithms.route_generator.bidirectional_dijkstra",
            side_effect=[first, second, first, second],
        )
        astar = mocker.patch(
            "app.algorithms.route_generator.astar_graph_path", return_value=SearchPath()
        )

        paths = PathGenerator().generate(connected)

        assert paths == [first, second]
        weight = astar.call_args.args[3]
        shared_red = first.edges[1]
        assert weight(walk) == pytest.approx(600)
        assert weight(shared_red) == pytest.approx(250)
        assert weight(first.edges[2]) == pytest.approx(125)

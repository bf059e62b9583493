"""
SegmentConverter 테스트
"""

import pytest

from app.algorithms.path_search import SearchPath
from app.algorithms.segment_converter import SegmentConverter, find_station_sequence
from app.algorithms.transit_graph import GraphOverlay
from app.models.domain import (
    EdgeType,
    GraphEdge,
    GraphNode,
    Station,
    TransitSegment,
    WalkSegment,
)


def _edge(graph, source, target):
    return next(e for e in graph.out_edges(source) if e.target == target)


def _path(graph, nodes):
    edges = tuple(_edge(graph, a, b) for a, b in zip(nodes, nodes[1:]))
    return SearchPath(tuple(nodes), edges, sum(e.duration for e in edges))


class TestFindStationSequence:

    def test_forward(self, repository):
        red = repository.get_line("red")
        assert [s.id for s in find_station_sequence(red, "r1", "r4")] == [
            "r1", "r2", "r3", "r4",
        ]

    def test_reversed(self, repository):
        red = repository.get_line("red")
        assert [s.id for s in find_station_sequence(red, "r4", "r1")] == [
            "r4", "r3", "r2", "r1",
        ]

    def test_unknown_station(self, repository):
        with pytest.raises(ValueError):
            find_station_sequence(repository.get_line("red"), "r1", "b2")


class TestSegmentConverter:

    @pytest.fixture
    def converter(self, network):
        return SegmentConverter(network.lines)

    def test_same_line_edges_merge_into_one_segment(self, converter, network):
        graph = network.graph
        path = _path(graph, ["r0", "r0_red", "r2_red", "r5_red", "r5"])

        segments = converter.convert(path, graph)

        assert len(segments) == 1
        segment = segments[0]
        assert isinstance(segment, TransitSegment)
        assert segment.line.id == "red"
        assert [s.id for s in segment.stations] == [f"r{i}" for i in range(6)]
        assert segment.duration == pytest.approx(
            _edge(graph, "r0_red", "r2_red").duration
            + _edge(graph, "r2_red", "r5_red").duration
        )

    def test_line_change_starts_new_segment(self, converter, network):
        graph = network.graph
        path = _path(graph, ["r0", "r0_red", "r3_red", "r3_blue", "b2_blue", "b2"])

        segments = converter.convert(path, graph)

        # 같은 역(r3) 안의 환승 edge는 구간이 되지 않음
        assert [type(s) for s in segments] == [TransitSegment, TransitSegment]
        assert [s.line.id for s in segments] == ["red", "blue"]
        assert segments[0].last_station.id == "r3"
        assert segments[1].first_station.id == "r3"
        assert [s.id for s in segments[1].stations] == ["r3", "b1", "b2"]

    def test_reverse_direction_segment(self, converter, network):
        graph = network.graph
        path = _path(graph, ["r6", "r6_red", "r2_red", "r2"])

        segments = converter.convert(path, graph)

        assert [s.id for s in segments[0].stations] == ["r6", "r5", "r4", "r3", "r2"]

    def test_walk_edges_and_zero_duration_drop(self, converter, network):
        overlay = GraphOverlay(network.graph)
        r0 = network.stations["r0"]
        origin = Station(id="origin", name="Origin", coordinates=r0.coordinates)
        overlay.add_node(GraphNode(id="origin", station=origin))
        # 출발지가 역과 같은 위치 => 0초 보행
        overlay.add_bidirectional_edge(
            GraphEdge("origin", "r0_red", EdgeType.WALKING, 0, 0)
        )
        b3 = network.stations["b3"]
        destination = Station(id="destination", name="Destination", coordinates=b3.coordinates)
        overlay.add_node(GraphNode(id="destination", station=destination))
        overlay.add_bidirectional_edge(
            GraphEdge("b2", "destination", EdgeType.WALKING, 700, 1000)
        )

        path = _path(
            overlay,
            ["origin", "r0_red", "r3_red", "r3_blue", "b2_blue", "b2", "destination"],
        )
        segments = converter.convert(path, overlay)

        assert [type(s) for s in segments] == [
            TransitSegment,
            TransitSegment,
            WalkSegment,
        ]
        # b2_blue -> b2 (15초 transfer, 같은 역) 는 생략
        walk = segments[-1]
        assert walk.from_station.id == "b2"
        assert walk.to_station.id == "destination"
        assert walk.duration == 700

    def test_unknown_node_raises(self, converter, network):
        edge = GraphEdge("r0", "ghost", EdgeType.WALKING, 10, 10)
        path = SearchPath(("r0", "ghost"), (edge,), 10)

        with pytest.raises(ValueError):
            converter.convert(path, network.graph)

    def test_empty_path(self, converter, network):
        assert converter.convert(SearchPath(), network.graph) == []


class TestConsolidateWalks:

    def test_consecutive_walks_merge(self, walk_segment, transit_segment):
        segments = [
            walk_segment("origin", "a", duration=100, distance=140),
            walk_segment("a", "b", duration=50, distance=70),
            transit_segment("red", ["b", "c"]),
            walk_segment("c", "destination", duration=30, distance=40),
        ]

        merged = SegmentConverter.consolidate_walks(segments)

        assert len(merged) == 3
        first = merged[0]
        assert first.from_station.id == "origin"
        assert first.to_station.id == "b"
        assert first.duration == 150
        assert first.distance == 210
        assert merged[-1].to_station.id == "destination"

    def test_transfer_flag_is_kept(self, walk_segment):
        plain = walk_segment("a", "b")
        transfer = WalkSegment(
            from_station=plain.to_station,
            to_station=plain.from_station,
            duration=10,
            walking_time=10,
            distance=10,
            is_transfer=True,
        )

        merged = SegmentConverter.consolidate_walks([plain, transfer])

        assert len(merged) == 1
        assert merged[0].is_transfer

    def test_no_walks(self, transit_segment):
        segments = [transit_segment("red", ["a", "b"]), transit_segment("blue", ["b", "c"])]

        assert SegmentConverter.consolidate_walks(segments) == segments

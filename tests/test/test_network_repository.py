"""
NetworkRepository 테스트
"""

import json
import os

import pytest

from app.core.config import settings
from app.core.exceptions import GraphBuildException
from app.db.network_repository import NetworkRepository


class TestNetworkRepository:

    def test_from_dict(self, repository):
        assert len(repository.stations) == 11
        assert [line.id for line in repository.lines] == ["red", "blue"]

        red = repository.get_line("red")
        assert red.fare == 30
        assert red.frequency_minutes == 4
        assert [s.id for s in red.stations][:3] == ["r0", "r1", "r2"]

    def test_lines_for_station(self, repository):
        assert repository.lines_for_station("r3") == ["red", "blue"]
        assert repository.lines_for_station("b2") == ["blue"]
        assert repository.lines_for_station("nowhere") == []

    def test_line_classes(self, repository):
        assert repository.line_classes == {"red": "primary", "blue": "primary"}

    def test_unknown_line_class(self, network_data):
        network_data["lines"][0]["class"] = "express"

        with pytest.raises(GraphBuildException):
            NetworkRepository.from_dict(network_data)

    def test_unknown_station_reference(self, network_data):
        network_data["lines"][1]["stations"].append("ghost")

        with pytest.raises(GraphBuildException):
            NetworkRepository.from_dict(network_data)

    def test_duplicate_station(self, network_data):
        network_data["stations"].append(dict(network_data["stations"][0]))

        with pytest.raises(GraphBuildException):
            NetworkRepository.from_dict(network_data)

    @pytest.mark.parametrize("reserved", ["origin", "destination"])
    def test_reserved_station_id(self, network_data, reserved):
        network_data["stations"][0]["id"] = reserved

        with pytest.raises(GraphBuildException):
            NetworkRepository.from_dict(network_data)

    def test_invalid_coordinates(self, network_data):
        network_data["stations"][0]["lat"] = 120

        with pytest.raises(GraphBuildException):
            NetworkRepository.from_dict(network_data)

    def test_missing_field(self, network_data):
        del network_data["lines"]

        with pytest.raises(GraphBuildException):
            NetworkRepository.from_dict(network_data)

    def test_walking_shortcuts(self, network_data):
        network_data["walking_shortcuts"] = [{"from": "r0", "to": "b1", "priority": 5}]

        repository = NetworkRepository.from_dict(network_data)

        shortcut = repository.shortcuts[0]
        assert (shortcut.from_id, shortcut.to_id, shortcut.priority) == ("r0", "b1", 5)


class TestStationSearch:
    """역 이름 검색 (정확 > 접두 > 부분 일치)"""

    @pytest.fixture
    def repository(self):
        return NetworkRepository.from_dict(
            {
                "stations": [
                    {"id": "1", "name": "PIMS Gate", "lat": 33.70, "lng": 73.05},
                    {"id": "2", "name": "PIMS", "lat": 33.71, "lng": 73.05},
                    {"id": "3", "name": "Near PIMS", "lat": 33.72, "lng": 73.05},
                    {"id": "4", "name": "Faizabad", "lat": 33.66, "lng": 73.08},
                ],
                "lines": [
                    {"id": "green", "name": "Green", "stations": ["1", "2", "3", "4"]}
                ],
            }
        )

    def test_priority_order(self, repository):
        results = repository.search_stations("pims")

        assert [s.name for s in results] == ["PIMS", "PIMS Gate", "Near PIMS"]

    def test_limit(self, repository):
        assert len(repository.search_stations("pims", limit=1)) == 1

    def test_blank_keyword(self, repository):
        assert repository.search_stations("   ") == []


class TestBundledNetwork:
    """배포용 노선 데이터"""

    def test_bundled_file_loads(self):
        repository = NetworkRepository.from_file(settings.NETWORK_DATA_PATH)

        assert repository.get_line("red") is not None
        assert repository.line_classes["fr_1"] == "secondary"
        assert "fr_4" not in repository.line_classes

    def test_missing_file(self, tmp_path):
        with pytest.raises(GraphBuildException):
            NetworkRepository.from_file(os.path.join(tmp_path, "missing.json"))

    def test_invalid_json(self, tmp_path):
        path = tmp_path / "network.json"
        path.write_text("{broken", encoding="utf-8")

        with pytest.raises(GraphBuildException):
            NetworkRepository.from_file(str(path))

    def test_from_file(self, tmp_path, network_data):
        path = tmp_path / "network.json"
        path.write_text(json.dumps(network_data), encoding="utf-8")

        repository = NetworkRepository.from_file(str(path))

        assert len(repository.lines) == 2

from enum import Enum
from typing import Dict, Optional

from app.core.config import LINE_CLASSIFICATION, LINE_COMFORT
from app.models.domain import Route


class LineClass(str, Enum):
    PRIMARY = "primary"  # 간선 (main metro)
    SECONDARY = "secondary"  # 주요 지선
    TERTIARY = "tertiary"  # 지역 연계


class LinePolicy:
    """
    노선 등급/쾌적도 정책

    등급 분류는 외부 설정이므로 주입받고, 등록되지 않은 노선은 TERTIARY
    """

    def __init__(
        self,
        classification: Optional[Dict[str, str]] = None,
        comfort: Optional[Dict[str, float]] = None,
    ):
        source = LINE_CLASSIFICATION if classification is None else classification
        self.classification = {line_id: LineClass(c) for line_id, c in source.items()}
        self.comfort_by_class = {**LINE_COMFORT, **(comfort or {})}

    def classify(self, line_id: Optional[str]) -> Optional[LineClass]:
        if not line_id:
            return None
        return self.classification.get(line_id, LineClass.TERTIARY)

    def is_primary(self, line_id: Optional[str]) -> bool:
        return self.classify(line_id) == LineClass.PRIMARY

    def is_secondary(self, line_id: Optional[str]) -> bool:
        return self.classify(line_id) == LineClass.SECONDARY

    def comfort(self, line_id: str) -> float:
        return float(self.comfort_by_class[self.classify(line_id).value])

    def uses_primary_lines(self, route: Route) -> bool:
        return any(self.is_primary(line_id) for line_id in route.line_ids)

    def uses_secondary_lines(self, route: Route) -> bool:
        return any(self.is_secondary(line_id) for line_id in route.line_ids)

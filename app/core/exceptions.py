# custom exception 정의 및 관리


class MetroRouterException(Exception):  # 예외 구조 정의
    def __init__(self, message: str, code: str = "INTERNAL_ERROR"):
        self.message = message
        self.code = code
        super().__init__(self.message)


class StationNotFoundException(MetroRouterException):
    def __init__(self, message: str = "역을 찾을 수 없습니다"):
        super().__init__(message, code="STATION_NOT_FOUND")


class InvalidLocationException(MetroRouterException):
    def __init__(self, message: str = "유효하지 않은 위치입니다"):
        super().__init__(message, code="INVALID_LOCATION")


class GraphBuildException(MetroRouterException):
    def __init__(self, message: str = "노선 데이터가 올바르지 않습니다"):
        super().__init__(message, code="GRAPH_BUILD_FAILED")


class ProviderException(MetroRouterException):
    def __init__(self, message: str = "거리/시간 조회에 실패했습니다"):
        super().__init__(message, code="PROVIDER_ERROR")


class RoutePlanningTimeoutException(MetroRouterException):
    def __init__(self, message: str = "경로 계산 시간이 초과되었습니다"):
        super().__init__(message, code="ROUTE_TIMEOUT")

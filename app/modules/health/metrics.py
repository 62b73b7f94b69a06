import time
from collections import deque
from dataclasses import dataclass, field

MAX_ERROR_LOG_SIZE = 100


@dataclass
class EndpointStats:
    count: int = 0
    success_count: int = 0
    failure_count: int = 0
    avg_response_time: float = 0.0
    last_accessed: float = 0.0


@dataclass
class RequestMetrics:
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    total_response_time: float = 0.0
    last_reset: float = field(default_factory=time.time)
    endpoints: dict[str, EndpointStats] = field(default_factory=dict)
    errors: deque = field(default_factory=lambda: deque(maxlen=MAX_ERROR_LOG_SIZE))

    def track_request(self, endpoint: str, success: bool, response_time_ms: float):
        self.total_requests += 1
        if success:
            self.successful_requests += 1
        else:
            self.failed_requests += 1
        self.total_response_time += response_time_ms

        stats = self.endpoints.setdefault(endpoint, EndpointStats())
        stats.count += 1
        if success:
            stats.success_count += 1
        else:
            stats.failure_count += 1
        # running mean
        stats.avg_response_time += (response_time_ms - stats.avg_response_time) / stats.count
        stats.last_accessed = time.time()

    def track_error(self, endpoint: str, error: str, status_code: int):
        self.errors.appendleft({
            "timestamp": time.time(),
            "endpoint": endpoint,
            "error": error,
            "status_code": status_code,
        })

    @property
    def success_rate(self) -> float:
        if not self.total_requests:
            return 100.0
        return round(self.successful_requests / self.total_requests * 100, 2)

    @property
    def avg_response_time(self) -> float:
        if not self.total_requests:
            return 0.0
        return round(self.total_response_time / self.total_requests, 2)

    def summary(self) -> dict:
        return {
            "total_requests": self.total_requests,
            "successful_requests": self.successful_requests,
            "failed_requests": self.failed_requests,
            "success_rate": self.success_rate,
            "avg_response_time": self.avg_response_time,
        }

    def endpoint_report(self) -> list[dict]:
        rows = [
            {
                "path": path,
                "total_requests": s.count,
                "successful_requests": s.success_count,
                "failed_requests": s.failure_count,
                "success_rate": round(s.success_count / s.count * 100, 2) if s.count else 100.0,
                "avg_response_time": round(s.avg_response_time, 2),
                "last_accessed": s.last_accessed,
            }
            for path, s in self.endpoints.items()
        ]
        rows.sort(key=lambda r: r["total_requests"], reverse=True)
        return rows

    def recent_errors(self, limit: int = 50) -> list[dict]:
        return list(self.errors)[:limit]

    def reset(self):
        self.total_requests = self.successful_requests = self.failed_requests = 0
        self.total_response_time = 0.0
        self.last_reset = time.time()
        self.endpoints.clear()
        self.errors.clear()

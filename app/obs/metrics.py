# app/obs/metrics.py
import time

from prometheus_client import Counter, Histogram
from starlette.middleware.base import BaseHTTPMiddleware

http_requests_total = Counter("http_requests_total", "HTTP requests", ["method", "path", "code"])
http_request_duration = Histogram(
    "http_request_duration_seconds", "HTTP request duration seconds", ["method", "path"]
)

# 批次预占：outcome = ok / expired / insufficient
lot_reservations_total = Counter(
    "prep_lot_reservations_total", "Lot reservation attempts", ["outcome"]
)
# 补偿（归还批次）：reason = update / cancel
lot_compensations_total = Counter(
    "prep_lot_compensations_total", "Lot quantity restored by compensation", ["reason"]
)
# 任务操作：op = create / update / cancel / status / delete，result = ok / error
prep_task_ops_total = Counter("prep_task_ops_total", "Prep task operations", ["op", "result"])

lot_alerts_total = Counter("prep_lot_alerts_total", "Lot alerts emitted", ["kind"])


class PrometheusMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request, call_next):
        start = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - start
        # 用路由模板而不是原始 path，避免 /prep-tasks/{id} 高基数
        route = request.scope.get("route")
        path = getattr(route, "path", None) or request.url.path
        http_requests_total.labels(request.method, path, str(response.status_code)).inc()
        http_request_duration.labels(request.method, path).observe(elapsed)
        return response

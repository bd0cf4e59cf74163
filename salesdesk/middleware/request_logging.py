import time
import logging
from fastapi import Request

logger = logging.getLogger("access")

CART_PREFIX = "/cart/sessions/"


def _cart_session_id(path: str) -> str:
    if not path.startswith(CART_PREFIX):
        return "-"
    return path[len(CART_PREFIX):].split("/", 1)[0] or "-"


async def request_logging_middleware(request: Request, call_next):
    start_time = time.perf_counter()

    response = await call_next(request)

    process_time = (time.perf_counter() - start_time) * 1000
    response.headers["X-Process-Time-Ms"] = f"{process_time:.2f}"

    logger.info(
        "%s %s",
        request.method,
        request.url.path,
        extra={
            "client_addr": request.client.host if request.client else "unknown",
            "user": request.headers.get("x-user") or "anonymous",
            "cart_session": _cart_session_id(request.url.path),
            "method": request.method,
            "path": request.url.path,
            "status_code": response.status_code,
            "process_time_ms": round(process_time, 2),
        },
    )

    return response

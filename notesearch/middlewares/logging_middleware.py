from notesearch.core.headers import redact_headers
from notesearch.core.logging_config import setup_logging
import logging
from fastapi import Request
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.responses import Response
import time
import json

logger = setup_logging()

class LoggingMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        """Log request and response details.

        The request body is never read here: relayed uploads are streamed
        to the backend and can only be consumed once.
        """
        start_time = time.time()

        logger.info(
            "Incoming Request",
            method=request.method,
            path=request.url.path,
            query_params=dict(request.query_params),
            headers=redact_headers(dict(request.headers)),
        )

        response = await call_next(request)

        response_body = b""
        async for chunk in response.body_iterator:
            response_body += chunk

        # Rebuild the response (the body iterator can be consumed only once)
        rebuilt = Response(content=response_body, status_code=response.status_code)
        rebuilt.raw_headers = list(response.raw_headers)

        process_time = time.time() - start_time
        response_log = {
            "status_code": response.status_code,
            "headers": redact_headers(dict(response.headers)),
            "process_time": f"{process_time:.4f}s",
        }

        if logger.isEnabledFor(logging.DEBUG):
            try:
                response_log["body"] = json.loads(response_body.decode("utf-8"))
            except ValueError:
                response_log["body"] = response_body.decode("utf-8", errors="replace")
            logger.debug("Outgoing Response", **response_log)
        else:
            logger.info("Outgoing Response", **response_log)

        return rebuilt

from contextlib import asynccontextmanager

from fastapi import Depends, FastAPI, Request

from notesearch.core.config import settings
from notesearch.core.logging_config import setup_logging
from notesearch.core.proxy import HTTP_METHODS, ProxyGateway, ProxyRequest, create_relay_client
from notesearch.core.target import BaseTargetResolver, FileTargetStore, is_local_target
from notesearch.middlewares.logging_middleware import LoggingMiddleware
from notesearch.middlewares.metrics_middleware import PrometheusMiddleware, metrics
from notesearch.schemas.health import HealthCheck, TargetSetting

logger = setup_logging()

RELAY_METHODS = sorted(HTTP_METHODS)


def get_gateway(request: Request) -> ProxyGateway:
    return request.app.state.gateway


def get_resolver(request: Request) -> BaseTargetResolver:
    return request.app.state.resolver


def create_app(
    gateway: ProxyGateway | None = None,
    resolver: BaseTargetResolver | None = None,
) -> FastAPI:
    """Create and configure the relay application.

    Without an explicit *gateway*, one is built at startup around a
    fresh httpx client and closed again at shutdown.
    """
    if resolver is None:
        resolver = gateway.resolver if gateway is not None else BaseTargetResolver(FileTargetStore())

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("Application startup...")
        client = None
        if app.state.gateway is None:
            client = create_relay_client()
            app.state.gateway = ProxyGateway(client, resolver)
        try:
            yield
        finally:
            if client is not None:
                await client.aclose()
            logger.info("Application shutdown...")

    app = FastAPI(title=settings.app_name, debug=settings.debug, lifespan=lifespan)
    app.state.gateway = gateway
    app.state.resolver = resolver

    # Add Logging Middleware
    app.add_middleware(LoggingMiddleware)
    # Add Prometheus middleware
    app.add_middleware(PrometheusMiddleware)

    @app.get("/metrics")
    async def get_metrics():
        return await metrics()

    @app.get("/status")
    async def status():
        return {"status": "Application is running"}

    @app.get("/health", response_model=HealthCheck)
    async def health(request: Request):
        relay = "ok" if request.app.state.gateway is not None else "down"
        return HealthCheck(
            status="ok" if relay == "ok" else "degraded",
            components={"relay": relay},
            version=settings.version,
            default_target=resolver.resolve(),
        )

    @app.get(f"{settings.settings_prefix}/target", response_model=TargetSetting)
    async def get_target(resolver: BaseTargetResolver = Depends(get_resolver)):
        target = resolver.resolve()
        return TargetSetting(target=target, default=resolver.default, is_local=is_local_target(target))

    @app.put(f"{settings.settings_prefix}/target", response_model=TargetSetting)
    async def put_target(data: TargetSetting, resolver: BaseTargetResolver = Depends(get_resolver)):
        # Blank input is discarded by the resolver; the current value comes back
        resolver.store(data.target)
        target = resolver.resolve()
        return TargetSetting(target=target, default=resolver.default, is_local=is_local_target(target))

    @app.api_route(settings.relay_prefix, methods=RELAY_METHODS)
    async def relay_root(request: Request, gateway: ProxyGateway = Depends(get_gateway)):
        return await gateway.forward(ProxyRequest.from_starlette(request))

    @app.api_route(f"{settings.relay_prefix}/{{full_path:path}}", methods=RELAY_METHODS)
    async def relay(full_path: str, request: Request, gateway: ProxyGateway = Depends(get_gateway)):
        return await gateway.forward(ProxyRequest.from_starlette(request, full_path))

    return app

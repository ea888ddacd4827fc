from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from watchparty.config import settings
from watchparty.routers import rooms_router, websocket_router
from watchparty.routers.websocket import ConnectionManager
from watchparty.services.chat_service import ChatHistoryStore
from watchparty.services.room_service import RoomRegistry
from watchparty.services.session_gateway import SessionGateway
from watchparty.utils.logging_config import setup_logging, fastapi_logger
from watchparty.utils.rate_limit import FrameRateLimiter
from watchparty.error_handlers import register_exception_handlers


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    fastapi_logger.info(
        "Starting application",
        extra={"app_name": settings.APP_NAME, "version": settings.APP_VERSION}
    )
    yield
    fastapi_logger.info(
        "Shutting down application",
        extra={"rooms": len(app.state.registry.rooms)}
    )


def create_app(
    registry: RoomRegistry = None,
    chat: ChatHistoryStore = None,
    rate_limiter: FrameRateLimiter = None,
) -> FastAPI:
    """
    Build an application with its own room state.
    Every call gets independent stores unless they are passed in.
    """
    app = FastAPI(
        title=settings.APP_NAME,
        description="Watch videos in sync with friends and chat while you do",
        version=settings.APP_VERSION,
        lifespan=lifespan
    )

    app.state.registry = registry if registry is not None else RoomRegistry()
    app.state.chat = chat if chat is not None else ChatHistoryStore()
    app.state.gateway = SessionGateway(app.state.registry, app.state.chat)
    app.state.connection_manager = ConnectionManager()
    app.state.rate_limiter = rate_limiter if rate_limiter is not None else FrameRateLimiter()

    # CORS
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.get_cors_origins(),
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )

    # Global Exception Handlers
    register_exception_handlers(app)

    # API Routers
    app.include_router(rooms_router)
    app.include_router(websocket_router)

    @app.get("/")
    async def index(request: Request):
        return {
            "message": f"{settings.APP_NAME} Backend API",
            "version": settings.APP_VERSION,
            "status": "running",
            "rooms": len(request.app.state.registry.rooms),
        }

    # Health Check
    @app.get("/health")
    async def health_check(request: Request):
        return {
            "status": "healthy",
            "service": settings.APP_NAME,
            "rooms": len(request.app.state.registry.rooms),
            "connections": len(request.app.state.connection_manager.connections),
        }

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("watchparty.main:app", host=settings.HOST, port=settings.PORT, reload=settings.DEBUG)

from __future__ import annotations

from contextlib import asynccontextmanager
import logging

from fastapi import FastAPI

from authsync.api.deps import build_session_coordinator
from authsync.api.routers.auth import router as auth_router
from authsync.api.routers.me import router as me_router
from authsync.application.use_cases.session_coordinator import SessionCoordinator
from authsync.shared.config import get_settings


logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(name)s %(message)s")


def create_app(
    *,
    coordinator: SessionCoordinator | None = None,
    signin_path: str | None = None,
) -> FastAPI:
    settings = get_settings()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if coordinator is not None:
            async with coordinator:
                app.state.session_coordinator = coordinator
                yield
            return

        async with build_session_coordinator(settings) as built:
            app.state.session_coordinator = built
            yield

    app = FastAPI(title="authsync", lifespan=lifespan)
    app.state.signin_path = signin_path or settings.signin_path
    app.include_router(auth_router)
    app.include_router(me_router)
    return app


app = create_app()

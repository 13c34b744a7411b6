# main.py
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from adapters.external.database.factory_events_repository_mongodb import FactoryEventsRepositoryMongoDB
from adapters.external.database.factory_state_repository_mongodb import FactoryStateRepositoryMongoDB
from adapters.entry.http.views.strategy_factory_view import router as strategy_factory_router
from config import get_settings


def configure_logging() -> None:
    s = get_settings()
    logging.basicConfig(
        level=getattr(logging, s.LOG_LEVEL, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


def init_mongo_indexes() -> None:
    """
    Make sure the deployment table's unique (chain, asset, collateral) index
    exists before any deploy request is served.
    """
    chain = get_settings().CHAIN
    FactoryStateRepositoryMongoDB(chain=chain).ensure_indexes()
    FactoryEventsRepositoryMongoDB(chain=chain).ensure_indexes()


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_mongo_indexes()
    yield


def create_app(*, with_lifespan: bool = True) -> FastAPI:
    """
    Application factory for the Silo Strategy Factory API.
    """
    configure_logging()
    app = FastAPI(
        title="Silo Strategy Factory API",
        version="0.1.0",
        lifespan=lifespan if with_lifespan else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(strategy_factory_router, prefix="/api")

    return app


app = create_app()

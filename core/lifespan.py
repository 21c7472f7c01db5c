import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI
from core import wal

logger = logging.getLogger("sheetboard.lifespan")


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("SheetBoard: starting up")

    wal.load_snapshot()

    wal.recover_from_wal()

    logger.info("SheetBoard: startup complete, service is running")

    yield

    wal.perform_checkpoint()
    logger.info("SheetBoard: shut down after checkpoint")

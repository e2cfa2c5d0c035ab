from contextlib import asynccontextmanager

from dotenv import load_dotenv
from fastapi import FastAPI

from api.flatfile_routes import router as flatfile_router
from api.health_routes import router as health_router
from config.logging_config import print_startup_info, setup_console_logging

load_dotenv()

logger = setup_console_logging()


@asynccontextmanager
async def lifespan(_app: FastAPI):
    # The store client is built on first use, so missing credentials only
    # surface when a flat-file endpoint is called.
    print_startup_info()
    yield


app = FastAPI(title="flatfile-ingest", lifespan=lifespan)

app.include_router(health_router)
app.include_router(flatfile_router)


if __name__ == "__main__":
    import os

    import uvicorn

    uvicorn.run(
        "main:app",
        host=os.getenv("FLATFILES_HOST", "0.0.0.0"),
        port=int(os.getenv("FLATFILES_PORT", "8000")),
    )

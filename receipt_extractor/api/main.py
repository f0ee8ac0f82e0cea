from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from ..core.logging import setup_logging
from ..core.config import settings
from .routers import health, receipt

logger = setup_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    Path(settings.uploads_dir).mkdir(parents=True, exist_ok=True)
    logger.info(
        "Receipt extractor ready",
        uploads_dir=settings.uploads_dir,
        ledger=str(settings.resolved_ledger_path),
        ocr_engine=settings.ocr_engine
    )
    yield


app = FastAPI(title=settings.app_name, lifespan=lifespan)


# Add custom exception handler for validation errors
@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    # Uploads are binary, so only the validation errors are logged
    logger.error(f"Validation error on {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=422,
        content={"detail": jsonable_errors(exc)},
    )


def jsonable_errors(exc: RequestValidationError) -> list:
    return [
        {"loc": list(err.get("loc", ())), "msg": err.get("msg"), "type": err.get("type")}
        for err in exc.errors()
    ]


# Configure CORS to allow frontend access
# Example: CORS_ORIGINS=http://localhost:5173,https://your-frontend.com
allowed_origins = [origin.strip() for origin in settings.cors_origins.split(",")]

app.add_middleware(
    CORSMiddleware,
    allow_origins=allowed_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(health.router)
app.include_router(receipt.router)

# Stored images are reachable at the image_url recorded on each receipt
app.mount(
    settings.uploads_url_prefix,
    StaticFiles(directory=settings.uploads_dir, check_dir=False),
    name="uploads",
)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=3000)

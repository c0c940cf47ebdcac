# main.py
import logging
from fastapi_limiter import FastAPILimiter
import routes
from contextlib import asynccontextmanager
from util.enums import Environment, Color
from fastapi import FastAPI, Request
from starlette.middleware.cors import CORSMiddleware
from config.settings import settings
from config.cache import close_redis, get_redis
from fastapi.responses import JSONResponse
from repository.file_store import LocalFileStore
from util.errors import DocumentSyncError, to_app_error
from util.logger import init_logger


async def _real_ip(request: Request) -> str:
    if settings.TRUST_PROXY:
        fwd = request.headers.get("x-forwarded-for")
        if fwd:
            return fwd.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


@asynccontextmanager
async def lifespan(fastApi: FastAPI):
    logger = init_logger()
    try:
        print(f"{Color.GREEN}Initializing...{Color.RESET}")
        # Document root must exist before the first upload or scan
        if LocalFileStore(settings.DOCUMENTS_DIR).mkdir_all(""):
            logger.info("startup.documents_dir.created path=%s", settings.DOCUMENTS_DIR)
        redis = await get_redis()
        await FastAPILimiter.init(redis, identifier=_real_ip)
        print(f"{Color.BLUE}Server Started{Color.RESET}")
    except Exception as e:
        logger.error("startup.error err=%s", e)
        raise

    try:
        yield
    finally:
        try:
            await close_redis()
        except Exception as e:
            logger.error("shutdown.error err=%s", e)

        print(f"{Color.RED}Server Shutdown{Color.RESET}")


app: FastAPI = FastAPI(lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.ALLOWED_ORIGIN],
    allow_credentials=True,
    allow_methods=["GET", "POST", "DELETE"],
    allow_headers=["Authorization", "Content-Type", "Accept"],
)


@app.get("/healthz")
async def healthz():
    return {"ok": True}


@app.exception_handler(429)
async def ratelimit_handler(request: Request, exc):
    seconds = str(settings.RATE_LIMIT_SECONDS)
    return JSONResponse(
        status_code=429,
        content={
            "ok": False,
            "error": "rate_limited",
            "message": f"Too many requests. Try again in {seconds}s.",
        },
        headers={"Retry-After": seconds},
    )


@app.exception_handler(DocumentSyncError)
async def document_sync_error_handler(request: Request, exc: DocumentSyncError):
    # Services translate their own errors; this catches any that slip through.
    err = to_app_error(exc)
    logging.getLogger(settings.LOGGER_NAME).error(
        "request.unhandled path=%s err=%s", request.url.path, exc
    )
    return JSONResponse(status_code=err.status_code, content={"detail": err.detail})


routes.register_routes(app)

if __name__ == "__main__":
    import uvicorn

    reload = settings.APP_ENV == Environment.DEV
    uvicorn.run("main:app", host="127.0.0.1", port=8000, reload=reload)

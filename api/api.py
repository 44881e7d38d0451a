import asyncio
from contextlib import asynccontextmanager

from fastapi import FastAPI
import uvicorn
from fastapi.middleware.cors import CORSMiddleware
from api.routes.auth_routes import auth_routes
from api.routes.study_routes import study_routes
from api.routes.practice_routes import practice_routes
from api.routes.achievement_routes import achievement_routes
from api.routes.leaderboard_routes import leaderboard_routes
from api.routes.presence_routes import presence_routes
from api.bootstrap import bootstrap_study
from api.config import settings
from api.utils.logger import configure_logging, set_request_id, clear_request_id
from api.ws.presence_broadcast import presence_sweeper
from progression.errors import ProgressionError
from fastapi import Request
from starlette.responses import Response, JSONResponse
from starlette.status import HTTP_500_INTERNAL_SERVER_ERROR
from fastapi.exceptions import RequestValidationError
from fastapi import HTTPException

logger = configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    bootstrap_study()
    sweeper = asyncio.create_task(presence_sweeper(settings.PRESENCE_SWEEP_SECONDS))
    try:
        yield
    finally:
        sweeper.cancel()
        try:
            await sweeper
        except asyncio.CancelledError:
            pass


app = FastAPI(title=settings.APP_NAME, lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_logger(request: Request, call_next):
    rid = set_request_id(request.headers.get("x-request-id"))
    try:
        logger.info("request start method=%s path=%s client=%s", request.method, request.url.path, request.client)
        response: Response = await call_next(request)
        logger.info("request end status=%s method=%s path=%s", response.status_code, request.method, request.url.path)
        response.headers["x-request-id"] = rid
        return response
    except Exception:
        logger.exception("request error method=%s path=%s", request.method, request.url.path)
        raise
    finally:
        clear_request_id()


@app.exception_handler(ProgressionError)
async def progression_exception_handler(request: Request, exc: ProgressionError) -> JSONResponse:
    # Expected outcomes: logged without a stack trace.
    logger.warning(
        "domain error kind=%s status=%s method=%s path=%s detail=%s",
        exc.kind, exc.status_code, request.method, request.url.path, exc.message,
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    # Log server-side errors with stack traces; client errors as warnings.
    if exc.status_code >= 500:
        logger.exception("http error status=%s method=%s path=%s detail=\n%s", exc.status_code, request.method, request.url.path, exc.detail)
    else:
        logger.warning("http error status=%s method=%s path=%s detail=\n%s", exc.status_code, request.method, request.url.path, exc.detail)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.detail})


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    logger.warning("validation error method=%s path=%s errors=\n%s", request.method, request.url.path, exc.errors())
    return JSONResponse(status_code=422, content={"detail": exc.errors(), "kind": "InvalidSubmission"})


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    # Never leak internal exception details to clients.
    logger.exception("unhandled error method=%s path=%s", request.method, request.url.path)
    return JSONResponse(
        status_code=HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "Internal Server Error"},
    )


@app.get("/")
def read_root():
    return {"message": "DeoGlory Study is Healthy"}

app.include_router(auth_routes, prefix="/auth")
app.include_router(study_routes, prefix="/study")
app.include_router(practice_routes, prefix="/study")
app.include_router(achievement_routes, prefix="/study")
app.include_router(leaderboard_routes, prefix="/study")
app.include_router(presence_routes, prefix="/study")


if __name__ == "__main__":
    uvicorn.run("api.api:app", host="0.0.0.0", port=8000, reload=False)

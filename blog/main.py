import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from .config import settings
from .database import Base, engine
from .exceptions import AuthorizationError, NotFoundError, ValidationError
from .routers import auth, posts, tags

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

# Create DB tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title=settings.app_name,
    description="Posts, tags and the people who write them.",
)
app.add_middleware(
    SessionMiddleware,
    secret_key=settings.secret_key,
    session_cookie="blog_session",
)


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse({"detail": str(exc)}, status_code=status.HTTP_404_NOT_FOUND)


@app.exception_handler(ValidationError)
async def validation_handler(request: Request, exc: ValidationError):
    return JSONResponse({"detail": str(exc)}, status_code=422)


@app.exception_handler(AuthorizationError)
async def authorization_handler(request: Request, exc: AuthorizationError):
    return JSONResponse({"detail": str(exc)}, status_code=status.HTTP_403_FORBIDDEN)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled application error", exc_info=exc)
    return JSONResponse({"detail": "Internal server error"}, status_code=500)


app.include_router(auth.router)
app.include_router(posts.router)
app.include_router(tags.router)


@app.get("/")
def read_root():
    return {"message": f"{settings.app_name} is up"}

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.middleware.cors import CORSMiddleware

from coursestore.api import auth, catalog, payments, root, students
from coursestore.core.config import AUTO_CREATE_TABLES, LOG_LEVEL, get_cors_origins
from coursestore.core.database import engine, init_models
from coursestore.services.errors import CheckoutError

# Configure logging
logging.basicConfig(
    level=LOG_LEVEL,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger("coursestore")


@asynccontextmanager
async def lifespan(app: FastAPI):
    if AUTO_CREATE_TABLES:
        await init_models()
        logger.info("Database tables ensured")
    yield
    await engine.dispose()


app = FastAPI(title="Course Store API", lifespan=lifespan)


@app.exception_handler(CheckoutError)
async def checkout_error_handler(request: Request, exc: CheckoutError):
    if exc.status_code >= 500:
        logger.error("Checkout failed: %s", exc.message, exc_info=exc)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message})


app.include_router(root.router)
app.include_router(auth.router)
app.include_router(catalog.router)
app.include_router(students.router)
app.include_router(payments.router)

app.add_middleware(
    CORSMiddleware,
    allow_credentials=False,
    allow_origins=get_cors_origins(),
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-User-Id", "X-Requested-With"],
    expose_headers=["Location"],
)

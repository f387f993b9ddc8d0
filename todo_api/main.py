import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import Depends, FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from pydantic import BaseModel
from starlette.responses import JSONResponse, PlainTextResponse

from . import todos
from .config import PORT, Configuration
from .database import PoolManager
from .vault import SecretResolver, initialize_vault, load_secrets

logger = logging.getLogger(__name__)


# --- 1. STARTUP / SHUTDOWN ---
# Order matters: vault client -> secrets -> pool manager -> table.
# The pool itself only opens inside init_table (first get_pool call).
async def bootstrap(app: FastAPI, vault) -> PoolManager:
    logger.info("Starting application initialization...")
    configuration = Configuration()
    logger.info("Loading secrets...")
    await load_secrets(SecretResolver(vault), configuration)
    logger.info("Port configured: %s", configuration.get(PORT))

    pools = PoolManager(configuration)
    app.state.configuration = configuration
    app.state.pools = pools

    logger.info("Initializing database connection...")
    await todos.init_table(pools)
    return pools


@asynccontextmanager
async def lifespan(app: FastAPI):
    vault = initialize_vault()
    try:
        try:
            await bootstrap(app, vault)
        except Exception:
            logger.exception("Failed to start application")
            raise
        logger.info("Application started successfully")
        yield
    finally:
        pools = getattr(app.state, "pools", None)
        if pools is not None:
            await pools.close()
        if vault is not None:
            await vault.close()


app = FastAPI(title="Todo API", lifespan=lifespan)
app.add_middleware(CORSMiddleware, allow_origins=["*"], allow_methods=["*"], allow_headers=["*"])


# Dependency for the shared pool manager
def get_pools(request: Request) -> PoolManager:
    return request.app.state.pools


class TodoCreate(BaseModel):
    title: Optional[str] = None


# --- 2. ROUTES ---

@app.get("/")
async def home():
    return PlainTextResponse("API is running with SQL Database")


@app.get("/todos")
async def list_todos(pools: PoolManager = Depends(get_pools)):
    try:
        return JSONResponse(content=await todos.get_all_todos(pools))
    except Exception as e:
        logger.error("Failed to list todos: %s", e)
        return PlainTextResponse(str(e), status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)


@app.post("/todos")
async def create_todo(item: TodoCreate, pools: PoolManager = Depends(get_pools)):
    try:
        await todos.add_todo(pools, item.title)
    except Exception as e:
        logger.error("Failed to add todo: %s", e)
        return PlainTextResponse(str(e), status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return PlainTextResponse("Todo added", status_code=status.HTTP_201_CREATED)


@app.delete("/todos/{todo_id}")
async def remove_todo(todo_id: int, pools: PoolManager = Depends(get_pools)):
    try:
        await todos.delete_todo(pools, todo_id)
    except Exception as e:
        logger.error("Failed to delete todo %s: %s", todo_id, e)
        return PlainTextResponse(str(e), status_code=status.HTTP_500_INTERNAL_SERVER_ERROR)
    return PlainTextResponse("Todo deleted")

"""
Todo storage.

Every function asks the pool manager for the engine on each call and keeps
no reference to it afterwards. Values always travel as bound parameters.
"""

import logging
from typing import Any, Dict, List, Optional

from sqlalchemy import delete, insert, select

from .database import Base, PoolManager
from .models import Todo

logger = logging.getLogger(__name__)


async def init_table(pools: PoolManager) -> None:
    # create_all checks for the table first, so this is safe on every boot
    pool = await pools.get_pool()
    async with pool.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Todos table checked/created")


async def get_all_todos(pools: PoolManager) -> List[Dict[str, Any]]:
    pool = await pools.get_pool()
    async with pool.connect() as conn:
        result = await conn.execute(select(Todo.id, Todo.title, Todo.completed))
        return [dict(row) for row in result.mappings().all()]


async def add_todo(pools: PoolManager, title: Optional[str]) -> None:
    pool = await pools.get_pool()
    async with pool.begin() as conn:
        await conn.execute(insert(Todo).values(title=title))


async def delete_todo(pools: PoolManager, todo_id: int) -> None:
    pool = await pools.get_pool()
    async with pool.begin() as conn:
        await conn.execute(delete(Todo).where(Todo.id == todo_id))

"""
HTTP layer tests (FastAPI TestClient).
"""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from todo_api.config import Configuration
from todo_api.database import PoolManager, PoolState
from todo_api.errors import BootstrapFailed, ConnectionFailed
from todo_api.main import app, bootstrap, get_pools
from tests.fakes import CountingConnect


@pytest.fixture
def pools():
    return MagicMock(spec=PoolManager)


@pytest.fixture
def client(pools):
    # No `with`: lifespan (secrets + DB) does not run
    app.dependency_overrides[get_pools] = lambda: pools
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestHome:

    def test_home_reports_running(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.text == "API is running with SQL Database"


class TestListTodos:

    def test_returns_json_list(self, client, pools):
        rows = [{"id": 1, "title": "milk", "completed": False}]
        with patch("todo_api.todos.get_all_todos", new=AsyncMock(return_value=rows)) as get_all:
            response = client.get("/todos")

        assert response.status_code == 200
        assert response.json() == rows
        get_all.assert_awaited_once_with(pools)

    def test_database_error_is_500_text(self, client):
        error = ConnectionFailed("Database connection failed: login timeout expired")
        with patch("todo_api.todos.get_all_todos", new=AsyncMock(side_effect=error)):
            response = client.get("/todos")

        assert response.status_code == 500
        assert response.text == "Database connection failed: login timeout expired"


class TestCreateTodo:

    def test_created(self, client, pools):
        with patch("todo_api.todos.add_todo", new=AsyncMock()) as add:
            response = client.post("/todos", json={"title": "milk"})

        assert response.status_code == 201
        assert response.text == "Todo added"
        add.assert_awaited_once_with(pools, "milk")

    def test_missing_title_inserts_null(self, client, pools):
        with patch("todo_api.todos.add_todo", new=AsyncMock()) as add:
            response = client.post("/todos", json={})

        assert response.status_code == 201
        add.assert_awaited_once_with(pools, None)

    def test_database_error_is_500_text(self, client):
        with patch("todo_api.todos.add_todo", new=AsyncMock(side_effect=RuntimeError("insert failed"))):
            response = client.post("/todos", json={"title": "milk"})

        assert response.status_code == 500
        assert response.text == "insert failed"


class TestDeleteTodo:

    def test_deleted(self, client, pools):
        with patch("todo_api.todos.delete_todo", new=AsyncMock()) as remove:
            response = client.delete("/todos/3")

        assert response.status_code == 200
        assert response.text == "Todo deleted"
        remove.assert_awaited_once_with(pools, 3)

    def test_non_integer_id_is_rejected(self, client):
        with patch("todo_api.todos.delete_todo", new=AsyncMock()) as remove:
            response = client.delete("/todos/abc")

        assert response.status_code == 422
        remove.assert_not_awaited()


class TestLifespan:

    def test_startup_and_shutdown(self, monkeypatch, sql_env):
        for key, value in sql_env.items():
            monkeypatch.setenv(key, value)
        monkeypatch.delenv("SQL_ENCRYPT", raising=False)
        connect = CountingConnect()

        async def fake_init_table(pools):
            await pools.get_pool()

        with patch("todo_api.main.initialize_vault", return_value=None), \
                patch("todo_api.main.PoolManager",
                      side_effect=lambda configuration: PoolManager(configuration, connect=connect, environ={})), \
                patch("todo_api.todos.init_table", new=AsyncMock(side_effect=fake_init_table)) as init_table:
            with TestClient(app) as test_client:
                assert test_client.get("/").status_code == 200
                manager = app.state.pools
                assert app.state.configuration.get("SQL_SERVER") == "s"
                assert app.state.configuration.get("SQL_ENCRYPT") == "true"
                assert manager.state is PoolState.ESTABLISHED
                init_table.assert_awaited_once_with(manager)

        assert manager.state is PoolState.ABSENT
        assert connect.engines[0].disposed is True
        assert len(connect.calls) == 1


class TestBootstrap:

    @pytest.mark.asyncio
    async def test_missing_secret_stops_startup(self, monkeypatch, sql_env):
        for key, value in sql_env.items():
            monkeypatch.setenv(key, value)
        monkeypatch.delenv("SQL_PASSWORD")
        fake_app = SimpleNamespace(state=SimpleNamespace())

        with patch("todo_api.todos.init_table", new=AsyncMock()) as init_table:
            with pytest.raises(BootstrapFailed):
                await bootstrap(fake_app, None)

        init_table.assert_not_awaited()
        assert not hasattr(fake_app.state, "pools")

    @pytest.mark.asyncio
    async def test_publishes_state_before_table_init(self, monkeypatch, sql_env):
        for key, value in sql_env.items():
            monkeypatch.setenv(key, value)
        fake_app = SimpleNamespace(state=SimpleNamespace())

        with patch("todo_api.todos.init_table", new=AsyncMock()):
            pools = await bootstrap(fake_app, None)

        assert fake_app.state.pools is pools
        assert isinstance(fake_app.state.configuration, Configuration)
        assert pools.state is PoolState.ABSENT

"""
Load scenarios for the Todo API.

Run headless against a local server:
    locust --headless --users 10 --spawn-rate 2 --run-time 1m --host http://localhost:8080
Read-only traffic:
    locust --tags read --host http://localhost:8080
"""

import random

from locust import HttpUser, between, tag, task

WORDS = ("milk", "eggs", "laundry", "dentist", "taxes", "groceries")


def _make_title() -> str:
    return f"load-{random.choice(WORDS)}-{random.randrange(10_000)}"


class TodoUser(HttpUser):
    wait_time = between(0.5, 3)

    @task(5)
    @tag("read")
    def list_todos(self):
        self.client.get("/todos", name="GET /todos")

    @task(3)
    @tag("write")
    def create_todo(self):
        self.client.post("/todos", json={"title": _make_title()}, name="POST /todos")

    @task(1)
    @tag("write")
    def delete_todo(self):
        # Delete whatever is first in the list, if anything
        with self.client.get("/todos", name="GET /todos", catch_response=True) as response:
            todos = response.json() if response.ok else []
        if todos:
            self.client.delete(f"/todos/{todos[0]['id']}", name="DELETE /todos/{id}")

    @task(1)
    @tag("read")
    def health(self):
        self.client.get("/", name="GET /")

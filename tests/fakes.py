"""
Stand-ins for the secret store and the database driver, shared by the tests.
"""

import asyncio


class FakeVault:
    """Secret store stand-in that records every lookup."""

    def __init__(self, secrets=None, error=None):
        self.secrets = dict(secrets or {})
        self.error = error
        self.calls = []

    async def get_secret(self, name):
        self.calls.append(name)
        await asyncio.sleep(0)
        if self.error is not None:
            raise self.error
        if name not in self.secrets:
            raise LookupError(f"secret {name} not found")
        return self.secrets[name]


class CountingConnect:
    """
    connect() replacement.

    Holds every attempt until `release` is set, fails while `failures` is
    positive, and remembers the settings it was called with.
    """

    def __init__(self, failures=0, hold=False):
        self.calls = []
        self.engines = []
        self.failures = failures
        self.release = asyncio.Event()
        if not hold:
            self.release.set()

    async def __call__(self, settings):
        self.calls.append(settings)
        await self.release.wait()
        if self.failures > 0:
            self.failures -= 1
            raise OSError("login timeout expired")
        engine = FakeEngine()
        self.engines.append(engine)
        return engine


class FakeEngine:
    def __init__(self):
        self.disposed = False

    async def dispose(self):
        self.disposed = True

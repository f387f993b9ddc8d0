"""
Shared pytest fixtures.
"""

import pytest

from todo_api.config import Configuration


# ================================================================
# Environment / configuration
# ================================================================

@pytest.fixture
def sql_env():
    return {
        "SQL_SERVER": "s",
        "SQL_DATABASE": "d",
        "SQL_USER": "u",
        "SQL_PASSWORD": "p",
    }


@pytest.fixture
def configuration(sql_env):
    return Configuration(dict(sql_env, SQL_ENCRYPT="true", SQL_TRUST_SERVER_CERTIFICATE="false"))

"""Shared test fixtures."""

import pytest

from warpstore.i18n import LocaleManager
from warpstore.storage import NetworkedDataConnection, open_sqlite_connection
from warpstore.warp import EulerDirection, Vector3, WarpBuilder

OPEN_TIMEOUT = 10


@pytest.fixture(autouse=True)
def default_locale():
    """Every test starts from the English default locale."""
    LocaleManager.set_default_locale("en")
    yield
    LocaleManager.set_default_locale("en")


@pytest.fixture
def db_path(tmp_path):
    return tmp_path / "warps.db"


@pytest.fixture
def embedded(db_path):
    """Embedded connection on a fresh, fully migrated file."""
    connection = open_sqlite_connection(db_path).result(timeout=OPEN_TIMEOUT)
    yield connection
    connection.close()


@pytest.fixture
def server_url(tmp_path):
    """SQLAlchemy URL standing in for the networked database server."""
    return f"sqlite:///{tmp_path / 'server.db'}"


@pytest.fixture
def networked(server_url):
    """Networked connection to an empty database."""
    connection = NetworkedDataConnection(server_url)
    yield connection
    connection.close()


@pytest.fixture(params=["embedded", "networked"])
def store(request, db_path, server_url):
    """A ready DataConnection of each backend."""
    if request.param == "embedded":
        connection = open_sqlite_connection(db_path).result(timeout=OPEN_TIMEOUT)
    else:
        connection = NetworkedDataConnection(server_url)
        connection.check_schema(True)
    yield connection
    connection.close()


@pytest.fixture
def spawn_builder():
    return WarpBuilder(
        "spawn",
        "player-1",
        "overworld",
        Vector3(x=0, y=64, z=0),
        EulerDirection(yaw=0, pitch=0),
    )


@pytest.fixture
def spawn(spawn_builder):
    return spawn_builder.build()

"""
Test fixture helpers

Wrap provisioning, registration and cleanup of a template database copy
into a context manager and a pytest fixture factory.
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Iterator, Optional, Union

import pytest

from dbimager.config.config_manager import ImagerConfig
from dbimager.models.provisioned_database import ProvisionedDatabase
from dbimager.testing.active_connections import ActiveConnections
from dbimager.testing.database_imager import DatabaseImager



@contextmanager
def provisioned_database(
    db_name: str,
    imager: Optional[DatabaseImager] = None,
    registry: Optional[ActiveConnections] = None
) -> Iterator[ProvisionedDatabase]:
    """
    Provision a database copy for the duration of a block.

    The connection string is registered as active in ``registry`` (if given)
    while the block runs. Cleanup runs even when the block raises, and
    cleanup failures propagate.
    """
    imager = imager or DatabaseImager()
    database = imager.provision(db_name)

    try:
        if registry is not None:
            registry.set(db_name, database.connection_string)
        yield database
    finally:
        try:
            if registry is not None:
                registry.set(db_name, None)
        finally:
            imager.cleanup(db_name)


def provide_database(
    db_name: str,
    registry_path: Optional[Union[str, Path]] = None
) -> Iterator[ProvisionedDatabase]:
    """Generator body shared by fixtures built with database_fixture."""
    config = ImagerConfig()
    registry = ActiveConnections(registry_path) if registry_path else ActiveConnections.from_config(config)
    with provisioned_database(db_name, DatabaseImager(config), registry) as database:
        yield database


def database_fixture(
    db_name: str,
    name: Optional[str] = None,
    scope: str = "function",
    registry_path: Optional[Union[str, Path]] = None
):
    """
    Build a pytest fixture that yields a provisioned copy of ``db_name``.

    The fixture is named ``name``, or ``db_name`` lower-cased.

    Example (in conftest.py):
        northwind = database_fixture("Northwind")
    """

    @pytest.fixture(scope=scope, name=name or db_name.lower())
    def _fixture() -> Iterator[ProvisionedDatabase]:
        yield from provide_database(db_name, registry_path)

    return _fixture

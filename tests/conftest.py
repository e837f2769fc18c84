"""
Centralized test configuration and fixtures for dbimager.

This module provides shared test fixtures that:
1. Build template directories with fake database files
2. Provide an ImagerConfig pointed at per-test directories
3. Provide a mocked administrative connection for unit tests
"""

import pytest
import logging
from unittest.mock import Mock
from pathlib import Path

from dbimager.config.config_manager import ImagerConfig
from dbimager.database.connection_manager import AdminConnectionManager
from dbimager.testing.database_imager import DatabaseImager

# Configure logging for tests
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

TEMPLATE_DATA = b"MDF template contents"
TEMPLATE_LOG = b"LDF template contents"


@pytest.fixture
def app_root(tmp_path) -> Path:
    """Application root containing App_Data/Templates/Northwind.{mdf,ldf}."""
    root = tmp_path / "app"
    templates = root / "App_Data" / "Templates"
    templates.mkdir(parents=True)
    (templates / "Northwind.mdf").write_bytes(TEMPLATE_DATA)
    (templates / "Northwind.ldf").write_bytes(TEMPLATE_LOG)
    return root


@pytest.fixture
def temp_dir(tmp_path) -> Path:
    """Directory receiving database copies."""
    directory = tmp_path / "temp"
    directory.mkdir()
    return directory


@pytest.fixture
def imager_config(app_root, temp_dir) -> ImagerConfig:
    """ImagerConfig isolated from the developer's environment."""
    return ImagerConfig(
        config_dir=app_root,
        app_root=app_root,
        temp_dir=temp_dir,
        templates_dir="App_Data/Templates",
        registry_file=str(app_root / "activeconnections.txt"),
        server="(localdb)\\MSSQLLocalDB",
        odbc_driver="ODBC Driver 18 for SQL Server",
        trust_server_certificate=True,
        connect_timeout=5,
        admin_connect_timeout=10
    )


@pytest.fixture
def mock_connection_manager() -> Mock:
    """Administrative connection that records calls instead of talking to a server."""
    return Mock(spec=AdminConnectionManager)


@pytest.fixture
def imager(imager_config, mock_connection_manager) -> DatabaseImager:
    """DatabaseImager backed by fake templates and a mocked server."""
    return DatabaseImager(imager_config, mock_connection_manager)

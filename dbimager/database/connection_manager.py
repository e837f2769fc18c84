"""
Database Connection Manager for dbimager

Opens administrative connections to a SQL Server instance and issues the
single-user and detach commands used when tearing down a test database.
Also converts the ADO-style connection strings handed out to tests into
ODBC connection strings that pyodbc understands.
"""

import logging
from typing import Dict, Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import URL, Connection, Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.pool import NullPool

from dbimager.config.config_manager import ImagerConfig

logger = logging.getLogger(__name__)


class DatabaseConnectionError(Exception):
    """Raised when database connection operations fail."""
    pass


# ADO-style keyword -> ODBC keyword
_ODBC_KEYWORDS = {
    'data source': 'SERVER',
    'server': 'SERVER',
    'initial catalog': 'DATABASE',
    'database': 'DATABASE',
    'attachdbfilename': 'AttachDBFileName',
}


def parse_connection_string(connection_string: str) -> Dict[str, str]:
    """Split a ``key=value;key=value`` connection string into an ordered dict."""
    settings: Dict[str, str] = {}
    for part in connection_string.split(';'):
        part = part.strip()
        if not part:
            continue
        if '=' not in part:
            raise ValueError(f"Malformed connection string segment: {part!r}")
        key, value = part.split('=', 1)
        settings[key.strip()] = value.strip()
    return settings


def quote_identifier(name: str) -> str:
    """Bracket-quote a SQL Server identifier."""
    return "[" + name.replace("]", "]]") + "]"


def to_odbc_connection_string(connection_string: str, driver: str, trust_server_certificate: bool = True) -> str:
    """
    Convert an ADO-style connection string to an ODBC connection string.

    ``Connect Timeout`` is dropped; pass it as the login timeout instead.
    """
    parts = [f"DRIVER={{{driver}}}"]
    for key, value in parse_connection_string(connection_string).items():
        lowered = key.lower()
        if lowered in _ODBC_KEYWORDS:
            parts.append(f"{_ODBC_KEYWORDS[lowered]}={value}")
        elif lowered in ('integrated security', 'trusted_connection'):
            if value.lower() in ('true', 'yes', 'sspi'):
                parts.append("Trusted_Connection=yes")
        elif lowered in ('connect timeout', 'connection timeout'):
            continue
        else:
            parts.append(f"{key}={value}")
    if trust_server_certificate:
        parts.append("TrustServerCertificate=yes")
    return ';'.join(parts) + ';'


def connect_timeout_of(connection_string: str, default: int) -> int:
    """Return the ``Connect Timeout`` value of a connection string."""
    settings = {k.lower(): v for k, v in parse_connection_string(connection_string).items()}
    value = settings.get('connect timeout') or settings.get('connection timeout')
    return int(value) if value else default


class AdminConnectionManager:
    """
    Manages administrative connections to the database server.

    Features:
    - Connections to the ``master`` catalog with integrated authentication
    - Autocommit execution (detach cannot run inside a transaction)
    - Single-user eviction and detach of attached catalogs
    - Driver errors wrapped in DatabaseConnectionError
    """

    def __init__(self, config: ImagerConfig):
        """
        Initialize AdminConnectionManager.

        Args:
            config: Configuration with server, driver and timeout settings
        """
        self.config = config

    def get_connection_string(self) -> str:
        """Get the ODBC connection string for the server's master catalog."""
        ado = f"Data Source={self.config.server};Initial Catalog=master;Integrated Security=True"
        connection_string = to_odbc_connection_string(
            ado,
            driver=self.config.odbc_driver,
            trust_server_certificate=self.config.trust_server_certificate
        )
        logger.debug(f"Generated admin connection string: {connection_string}")
        return connection_string

    def _create_engine(self, odbc_connection_string: str, timeout: int) -> Engine:
        """Create a non-pooling autocommit engine for a single ODBC connection string."""
        url = URL.create("mssql+pyodbc", query={"odbc_connect": odbc_connection_string})
        return create_engine(
            url,
            poolclass=NullPool,
            isolation_level="AUTOCOMMIT",
            connect_args={"timeout": timeout}
        )

    def execute(self, statement: str, parameters: Optional[Dict[str, str]] = None) -> None:
        """Execute a single administrative statement against master."""
        engine = self._create_engine(self.get_connection_string(), self.config.admin_connect_timeout)
        try:
            with engine.connect() as conn:
                conn.execute(text(statement), parameters or {})
        except SQLAlchemyError as e:
            raise DatabaseConnectionError(f"Administrative command failed: {e}") from e
        finally:
            engine.dispose()

    def set_single_user(self, catalog_name: str) -> None:
        """Force single-user mode, rolling back and disconnecting other sessions."""
        logger.info(f"Forcing single-user mode on {catalog_name}")
        self.execute(self._single_user_sql(catalog_name))

    def detach_database(self, catalog_name: str) -> None:
        """Detach a catalog from the server, skipping statistics update."""
        logger.info(f"Detaching {catalog_name}")
        self.execute(self._detach_sql(), {"dbname": catalog_name, "skipchecks": "true"})

    def detach(self, catalog_name: str) -> None:
        """Evict other sessions and detach a catalog over a single connection."""
        engine = self._create_engine(self.get_connection_string(), self.config.admin_connect_timeout)
        try:
            with engine.connect() as conn:
                logger.info(f"Forcing single-user mode on {catalog_name}")
                conn.execute(text(self._single_user_sql(catalog_name)))
                logger.info(f"Detaching {catalog_name}")
                conn.execute(text(self._detach_sql()), {"dbname": catalog_name, "skipchecks": "true"})
        except SQLAlchemyError as e:
            raise DatabaseConnectionError(f"Failed to detach {catalog_name}: {e}") from e
        finally:
            engine.dispose()

    def open_connection(self, connection_string: str) -> Connection:
        """
        Open a connection using an ADO-style connection string.

        The caller owns the returned connection and must close it.

        Raises:
            DatabaseConnectionError: If the connection cannot be opened
        """
        odbc = to_odbc_connection_string(
            connection_string,
            driver=self.config.odbc_driver,
            trust_server_certificate=self.config.trust_server_certificate
        )
        timeout = connect_timeout_of(connection_string, self.config.connect_timeout)
        engine = self._create_engine(odbc, timeout)
        try:
            return engine.connect()
        except SQLAlchemyError as e:
            engine.dispose()
            raise DatabaseConnectionError(f"Cannot open database connection: {e}") from e

    @staticmethod
    def _single_user_sql(catalog_name: str) -> str:
        return f"ALTER DATABASE {quote_identifier(catalog_name)} SET SINGLE_USER WITH ROLLBACK IMMEDIATE"

    @staticmethod
    def _detach_sql() -> str:
        return "EXEC sp_detach_db :dbname, :skipchecks"

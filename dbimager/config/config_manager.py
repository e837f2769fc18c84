"""
Configuration Manager for dbimager

Handles environment file loading, template/temp directory locations,
database server address and connection timeouts.
"""

import os
import tempfile
from pathlib import Path
from typing import Dict, Any, Optional, Union


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""
    pass


class ImagerConfig:
    """
    Central configuration for database imaging.

    Provides:
    - Environment file loading with precedence
    - Template and temporary directory locations
    - Database server address, ODBC driver and timeouts
    - Application-relative path mapping
    """

    DEFAULT_SERVER = "(localdb)\\MSSQLLocalDB"
    DEFAULT_TEMPLATES_DIR = "App_Data/Templates"
    DEFAULT_REGISTRY_FILE = "activeconnections.txt"
    DEFAULT_ODBC_DRIVER = "ODBC Driver 18 for SQL Server"

    # Default timeouts in seconds
    DEFAULT_TIMEOUTS = {
        'connect': 5,
        'admin_connect': 10,
    }

    # Environment variable mappings
    TIMEOUT_ENV_VARS = {
        'connect': 'DBIMAGER_CONNECT_TIMEOUT',
        'admin_connect': 'DBIMAGER_ADMIN_CONNECT_TIMEOUT',
    }

    def __init__(
        self,
        config_dir: Optional[Union[str, Path]] = None,
        **overrides: Any
    ):
        """
        Initialize ImagerConfig.

        Args:
            config_dir: Directory containing environment files
            **overrides: Explicit setting values (server, app_root, templates_dir,
                temp_dir, registry_file, connect_timeout, admin_connect_timeout,
                odbc_driver, trust_server_certificate). These take precedence
                over environment variables and environment files.
        """
        self.config_dir = Path(config_dir) if config_dir else Path.cwd()
        self._overrides = overrides

        # Initialize internal state
        self._env_vars: Dict[str, str] = {}

        # Load configuration
        self._load_env_files()
        self._load_timeouts()

    def _load_env_files(self):
        """Load environment files with precedence: .env.prod > .env.staging > .env.dev > .env"""
        env = os.getenv('ENV', 'dev')

        env_files = ['.env']
        if env in ['dev', 'staging', 'prod']:
            env_files.append('.env.dev')
        if env in ['staging', 'prod']:
            env_files.append('.env.staging')
        if env == 'prod':
            env_files.append('.env.prod')

        # Later files override earlier ones
        for env_file in env_files:
            env_path = self.config_dir / env_file
            if env_path.exists():
                self._load_env_file(env_path)

    def _load_env_file(self, env_path: Path):
        """Load a single environment file into our internal env_vars dict."""
        with open(env_path, 'r') as f:
            for line in f:
                line = line.strip()
                if line and not line.startswith('#') and '=' in line:
                    key, value = line.split('=', 1)
                    self._env_vars[key.strip()] = value.strip()

    def _get(self, env_var: str, default: Optional[str] = None) -> Optional[str]:
        """Look up a setting: os.environ first, then file-loaded env_vars."""
        value = os.getenv(env_var) or self._env_vars.get(env_var)
        return value if value else default

    def _load_timeouts(self):
        """Load and validate timeout configuration."""
        self._timeouts = {}
        for name, env_var in self.TIMEOUT_ENV_VARS.items():
            override = self._overrides.get(f"{name}_timeout")
            raw_value = override if override is not None else self._get(env_var)
            if raw_value is None:
                self._timeouts[name] = self.DEFAULT_TIMEOUTS[name]
                continue
            try:
                timeout = int(raw_value)
            except (TypeError, ValueError):
                raise ConfigValidationError(
                    f"Invalid {env_var}: '{raw_value}' - timeout must be a whole number of seconds"
                )
            if timeout <= 0:
                raise ConfigValidationError(
                    f"Invalid {env_var}: '{raw_value}' - timeout must be positive"
                )
            self._timeouts[name] = timeout

    def get_timeout(self, name: str) -> int:
        """Get the configured timeout (seconds) by name."""
        if name not in self._timeouts:
            raise ValueError(f"Unknown timeout: {name}")
        return self._timeouts[name]

    def map_path(self, path: Union[str, Path]) -> Path:
        """
        Map an application-relative path to an absolute one.

        ``~/App_Data/x`` and ``App_Data/x`` both map to ``<app_root>/App_Data/x``.
        Absolute paths are returned unchanged.
        """
        path_str = str(path)
        if path_str.startswith('~/') or path_str.startswith('~\\'):
            path_str = path_str[2:]
        candidate = Path(path_str)
        if candidate.is_absolute():
            return candidate
        return self.app_root / candidate

    @property
    def server(self) -> str:
        """Get the database server address."""
        return self._overrides.get('server') or self._get('DBIMAGER_SERVER', self.DEFAULT_SERVER)

    @property
    def app_root(self) -> Path:
        """Get the application root used to map virtual paths."""
        app_root = self._overrides.get('app_root') or self._get('DBIMAGER_APP_ROOT')
        return Path(app_root) if app_root else self.config_dir

    @property
    def templates_dir(self) -> str:
        """Get the (possibly application-relative) template directory."""
        templates_dir = self._overrides.get('templates_dir') or self._get('DBIMAGER_TEMPLATES_DIR')
        return str(templates_dir) if templates_dir else self.DEFAULT_TEMPLATES_DIR

    @property
    def temp_dir(self) -> Path:
        """Get the directory that receives database copies."""
        temp_dir = self._overrides.get('temp_dir') or self._get('TEMP')
        return Path(temp_dir) if temp_dir else Path(tempfile.gettempdir())

    @property
    def registry_path(self) -> Path:
        """Get the absolute path of the active connections file."""
        registry_file = self._overrides.get('registry_file') or self._get(
            'DBIMAGER_REGISTRY_FILE', self.DEFAULT_REGISTRY_FILE
        )
        return self.map_path(registry_file)

    @property
    def connect_timeout(self) -> int:
        """Get the connect timeout embedded in generated connection strings."""
        return self.get_timeout('connect')

    @property
    def admin_connect_timeout(self) -> int:
        """Get the login timeout for the administrative connection."""
        return self.get_timeout('admin_connect')

    @property
    def odbc_driver(self) -> str:
        """Get the ODBC driver name."""
        return self._overrides.get('odbc_driver') or self._get('DBIMAGER_ODBC_DRIVER', self.DEFAULT_ODBC_DRIVER)

    @property
    def trust_server_certificate(self) -> bool:
        """Check whether the server certificate is trusted without validation."""
        override = self._overrides.get('trust_server_certificate')
        if isinstance(override, str):
            return override.strip().lower() == 'true'
        if override is not None:
            return bool(override)
        return self._get('DBIMAGER_TRUST_SERVER_CERTIFICATE', 'true').lower() == 'true'

    def generate_env_template(self) -> str:
        """Generate environment template with default settings."""
        template_lines = [
            f"DBIMAGER_SERVER={self.DEFAULT_SERVER}",
            f"DBIMAGER_TEMPLATES_DIR={self.DEFAULT_TEMPLATES_DIR}",
            f"DBIMAGER_REGISTRY_FILE={self.DEFAULT_REGISTRY_FILE}",
            f"DBIMAGER_ODBC_DRIVER={self.DEFAULT_ODBC_DRIVER}",
        ]
        for name, env_var in self.TIMEOUT_ENV_VARS.items():
            template_lines.append(f"{env_var}={self.DEFAULT_TIMEOUTS[name]}")

        return '\n'.join(template_lines)

"""Record of a database copy provisioned from a template."""

from pathlib import Path
from pydantic import BaseModel, Field


class ProvisionedDatabase(BaseModel):
    """A template copy living in the temp directory, attachable under catalog_name."""
    name: str = Field(..., min_length=1)
    catalog_name: str
    data_file: Path
    log_file: Path
    connection_string: str

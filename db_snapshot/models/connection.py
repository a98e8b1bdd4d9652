"""
Connection descriptor handed to the diagnostic collector.
"""

from typing import Optional

from pydantic import BaseModel, Field


class ConnectionDescriptor(BaseModel):
    """Fully resolved MariaDB connection parameters for one collection attempt."""

    host: str = Field(..., description="Database host")
    port: int = Field(default=3306, description="Database port")
    user: str = Field(..., description="Database user")
    password: str = Field(default="", repr=False, description="Database password")
    database: Optional[str] = Field(default=None, description="Schema (optional)")
    connect_timeout: int = Field(default=10, ge=1, description="Connection timeout in seconds")
    probe_timeout: int = Field(default=30, ge=1, description="Per-probe timeout in seconds")

    model_config = {"frozen": True}

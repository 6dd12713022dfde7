"""Directory service providers behind the IDirectoryService protocol."""

from __future__ import annotations

from devsweep.core.config import DirectoryConfig
from devsweep.directory_providers.google_admin_provider import GoogleAdminDirectory
from devsweep.directory_providers.mock_provider import MockDirectoryService


def create_directory(
    config: DirectoryConfig | None = None, *, environment: str = "dev",
) -> GoogleAdminDirectory | MockDirectoryService:
    """Create the Admin SDK provider; dev without a token gets the mock one."""
    if config is None:
        config = DirectoryConfig()
    if not config.access_token:
        if environment != "dev":
            raise ValueError(f"DEVSWEEP_DIRECTORY_ACCESS_TOKEN is required in {environment}")
        return MockDirectoryService()
    return GoogleAdminDirectory(
        config.access_token,
        base_url=config.base_url,
        customer_id=config.customer_id,
        timeout=config.timeout,
        page_size=config.page_size,
    )

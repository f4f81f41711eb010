"""
FastAPI dependency injection.

Dependencies provide instances of services and configuration to route
handlers. The preloading service, the provider and the session store are
built once per application in the lifespan (the composition root) and
kept on `app.state`; the functions here just hand them out.

Using dependency injection means:
- Routes don't instantiate their own dependencies (easier to test)
- There is exactly one cache per running app, without a module global
"""

import functools
import logging
from contextlib import AbstractContextManager
from typing import Annotated, Callable, Optional

from fastapi import Depends, HTTPException, Request, status

from ..config.settings import Settings, get_settings
from ..core.preload.models import ResourceName
from ..core.preload.provider import PreloadProvider
from ..core.preload.service import PreloadingService
from ..core.session import SessionStore
from ..infrastructure.snowflake.client import MockSnowflakeConnection, create_snowflake_connection
from ..infrastructure.snowflake.repositories.training import SnowflakeConfig, SnowflakeDataSource

logger = logging.getLogger(__name__)

ConnectionFactory = Callable[[], AbstractContextManager]


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------

def build_connection_factory(settings: Settings) -> ConnectionFactory:
    """
    Build the backend connection factory from settings.

    In mock mode every connection is one shared in-memory instance so
    seeded data stays put for the life of the app.
    """
    if settings.snowflake_mock_mode:
        mock_connection = MockSnowflakeConnection()
        logger.info("Using shared mock Snowflake connection")
        factory = functools.partial(create_snowflake_connection, mock_connection=mock_connection)
    else:
        config = SnowflakeConfig(
            account=settings.snowflake_account,
            user=settings.snowflake_user,
            password=settings.snowflake_password or None,
            private_key_path=settings.snowflake_private_key_path,
            private_key_base64=settings.snowflake_private_key_base64,
            database=settings.snowflake_database,
            schema=settings.snowflake_schema,
            warehouse=settings.snowflake_warehouse,
            role=settings.snowflake_role,
        )
        factory = functools.partial(create_snowflake_connection, config=config)

    return factory


def build_data_source(
    settings: Settings,
    user_id_provider: Optional[Callable[[], Optional[str]]] = None,
    connection_factory: Optional[ConnectionFactory] = None,
) -> SnowflakeDataSource:
    """Backend data source over `connection_factory` (built from settings if omitted)."""
    factory = connection_factory or build_connection_factory(settings)
    return SnowflakeDataSource(factory, user_id_provider=user_id_provider)


# ---------------------------------------------------------------------------
# Service Dependencies
# ---------------------------------------------------------------------------

def get_app_settings(request: Request) -> Settings:
    """Settings the app was created with (falls back to the environment)."""
    return getattr(request.app.state, "settings", None) or get_settings()


def get_preloading_service(request: Request) -> PreloadingService:
    return request.app.state.preloading_service


def get_preload_provider(request: Request) -> PreloadProvider:
    return request.app.state.preload_provider


def get_session_store(request: Request) -> SessionStore:
    return request.app.state.session_store


def get_connection_factory(request: Request) -> ConnectionFactory:
    return request.app.state.connection_factory


def get_resource_name(resource: str) -> ResourceName:
    """Path parameter -> ResourceName, 404 for anything else."""
    try:
        return ResourceName(resource)
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Unknown resource '{resource}'. Expected one of: "
                   f"{', '.join(name.value for name in ResourceName)}",
        )


# ---------------------------------------------------------------------------
# Convenience Type Aliases
# ---------------------------------------------------------------------------

# These type aliases make route signatures cleaner
SettingsDep = Annotated[Settings, Depends(get_app_settings)]
PreloadingServiceDep = Annotated[PreloadingService, Depends(get_preloading_service)]
PreloadProviderDep = Annotated[PreloadProvider, Depends(get_preload_provider)]
SessionStoreDep = Annotated[SessionStore, Depends(get_session_store)]
ConnectionFactoryDep = Annotated[ConnectionFactory, Depends(get_connection_factory)]
ResourceNameDep = Annotated[ResourceName, Depends(get_resource_name)]

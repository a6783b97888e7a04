'''
Admin-only endpoints.
'''
from typing import Annotated, Any, Optional
from fastapi import APIRouter, Depends, Query

from ..database import models as db_models
from ..database.db_enums import ConnectionStatus
from ..models import connection as connection_models
from ..services.security import require_admin
from ..services.connection_service import ConnectionService


class AdminAPI:
    def __init__(self):
        self.router = APIRouter(
            prefix="/admin",
            tags=["Admin"]
        )
        self._register_routes()

    def _register_routes(self):
        self.router.add_api_route(
                "/connections",
                self.list_all_connections,
                methods=["GET"],
                response_model=connection_models.ConnectionListRead)

    async def list_all_connections(
        self,
        admin_user: Annotated[db_models.Users, Depends(require_admin)],
        connection_service: Annotated[ConnectionService, Depends(ConnectionService)],
        connection_status: Annotated[Optional[ConnectionStatus], Query(alias="status")] = None
    ) -> Any:
        """
        Every connection on the platform, newest first.
        """
        return await connection_service.list_all_connections(connection_status)

# Instantiate the class and export its router
admin_api = AdminAPI()
router = admin_api.router

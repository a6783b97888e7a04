'''
API endpoints for connections and the sessions scheduled inside them.
'''
from typing import Annotated, Any, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status

from ..database import models as db_models
from ..database.db_enums import ConnectionStatus
from ..models import connection as connection_models
from ..services.security import verify_token_and_get_user
from ..services.connection_service import ConnectionService


class ConnectionsAPI:
    """
    A class to encapsulate the connection endpoints.
    The acting user is always the authenticated user.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/connections",
            tags=["Connections"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/",
                self.list_connections,
                methods=["GET"],
                response_model=connection_models.ConnectionListRead)

        self.router.add_api_route(
                "/",
                self.create_connection,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=connection_models.ConnectionRead)

        self.router.add_api_route(
                "/{connection_id}",
                self.get_connection,
                methods=["GET"],
                response_model=connection_models.ConnectionRead)

        self.router.add_api_route(
                "/{connection_id}",
                self.update_connection,
                methods=["PATCH"],
                response_model=connection_models.ConnectionRead)

        self.router.add_api_route(
                "/{connection_id}",
                self.cancel_connection,
                methods=["DELETE"],
                response_model=connection_models.ConnectionRead)

        self.router.add_api_route(
                "/{connection_id}/sessions",
                self.schedule_session,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=connection_models.ConnectionRead)

        self.router.add_api_route(
                "/{connection_id}/sessions/{index}",
                self.update_session,
                methods=["PATCH"],
                response_model=connection_models.ConnectionRead)

    async def list_connections(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        connection_service: Annotated[ConnectionService, Depends(ConnectionService)],
        connection_status: Annotated[Optional[ConnectionStatus], Query(alias="status")] = None,
        list_type: Annotated[connection_models.ConnectionListType, Query(alias="type")] = connection_models.ConnectionListType.ALL
    ) -> Any:
        """
        Lists the current user's connections, newest first.
        type=received / type=sent return pending requests only.
        """
        if list_type == connection_models.ConnectionListType.RECEIVED:
            return await connection_service.get_pending_requests(current_user.id)
        if list_type == connection_models.ConnectionListType.SENT:
            return await connection_service.get_sent_requests(current_user.id)
        return await connection_service.get_user_connections(current_user.id, connection_status)

    async def create_connection(
        self,
        data: connection_models.ConnectionCreate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        connection_service: Annotated[ConnectionService, Depends(ConnectionService)]
    ) -> Any:
        return await connection_service.create_connection_request(current_user.id, data)

    async def get_connection(
        self,
        connection_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        connection_service: Annotated[ConnectionService, Depends(ConnectionService)]
    ) -> Any:
        return await connection_service.get_connection(connection_id, current_user.id)

    async def update_connection(
        self,
        connection_id: UUID,
        data: connection_models.ConnectionAction,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        connection_service: Annotated[ConnectionService, Depends(ConnectionService)]
    ) -> Any:
        """
        Applies accept, decline or cancel to a connection.
        """
        if data.action == connection_models.ConnectionActionType.ACCEPT:
            return await connection_service.accept_connection(connection_id, current_user.id)
        if data.action == connection_models.ConnectionActionType.DECLINE:
            return await connection_service.decline_connection(connection_id, current_user.id)
        return await connection_service.cancel_connection(connection_id, current_user.id)

    async def cancel_connection(
        self,
        connection_id: UUID,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        connection_service: Annotated[ConnectionService, Depends(ConnectionService)]
    ) -> Any:
        return await connection_service.cancel_connection(connection_id, current_user.id)

    async def schedule_session(
        self,
        connection_id: UUID,
        data: connection_models.ScheduledSessionCreate,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        connection_service: Annotated[ConnectionService, Depends(ConnectionService)]
    ) -> Any:
        """
        Books the slot on both sides and appends a scheduled session.
        """
        return await connection_service.schedule_session(connection_id, current_user.id, data)

    async def update_session(
        self,
        connection_id: UUID,
        index: int,
        data: connection_models.SessionAction,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        connection_service: Annotated[ConnectionService, Depends(ConnectionService)]
    ) -> Any:
        if data.action == connection_models.SessionActionType.COMPLETE:
            return await connection_service.complete_session(connection_id, index, current_user.id, data.notes)
        return await connection_service.cancel_session(connection_id, index, current_user.id)

# Instantiate the class and export its router
connections_api = ConnectionsAPI()
router = connections_api.router

'''
API endpoints for managing a user's availability.
'''
import datetime
from typing import Annotated, Any, Optional
from uuid import UUID
from fastapi import APIRouter, Depends, Query, status, Response

from ..database import models as db_models
from ..database.db_enums import SlotListType
from ..models import availability as availability_models
from ..models.user import UserRead
from ..services.security import verify_token_and_get_user
from ..services.availability_service import AvailabilityService
from ..services.user_service import UserService


class AvailabilityAPI:
    """
    A class to encapsulate the availability endpoints.
    Every write acts on the authenticated user's own record.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/availability",
            tags=["Availability"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/",
                self.get_my_availability,
                methods=["GET"],
                response_model=Optional[availability_models.UserAvailabilityRead])

        self.router.add_api_route(
                "/",
                self.set_my_availability,
                methods=["PUT"],
                response_model=availability_models.UserAvailabilityRead)

        self.router.add_api_route(
                "/slots",
                self.list_my_slots,
                methods=["GET"],
                response_model=availability_models.SlotListRead)

        self.router.add_api_route(
                "/slots",
                self.add_slots,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED,
                response_model=availability_models.UserAvailabilityRead)

        self.router.add_api_route(
                "/slots",
                self.remove_slot,
                methods=["DELETE"],
                status_code=status.HTTP_204_NO_CONTENT)

        self.router.add_api_route(
                "/recurring",
                self.set_recurring,
                methods=["PUT"],
                response_model=availability_models.UserAvailabilityRead)

        self.router.add_api_route(
                "/generate",
                self.generate_from_recurring,
                methods=["POST"],
                response_model=availability_models.UserAvailabilityRead)

        self.router.add_api_route(
                "/bulk-generate",
                self.bulk_generate,
                methods=["POST"],
                response_model=availability_models.UserAvailabilityRead)

        self.router.add_api_route(
                "/common/{user_id}",
                self.get_common_availability,
                methods=["GET"],
                response_model=availability_models.CommonAvailabilityRead)

        self.router.add_api_route(
                "/users/{user_id}/slots",
                self.list_user_slots,
                methods=["GET"],
                response_model=availability_models.SlotListRead)

        self.router.add_api_route(
                "/users/{user_id}/check",
                self.check_user_slot,
                methods=["GET"],
                response_model=availability_models.SlotCheckRead)

    # --- Own record ---

    async def get_my_availability(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        availability_service: Annotated[AvailabilityService, Depends(AvailabilityService)]
    ) -> Any:
        """
        Returns the current user's record, or null if it was never set.
        """
        return await availability_service.get_user_availability(current_user.id)

    async def set_my_availability(
        self,
        data: availability_models.UserAvailabilitySet,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        availability_service: Annotated[AvailabilityService, Depends(AvailabilityService)]
    ) -> Any:
        return await availability_service.set_user_availability(current_user.id, data)

    async def list_my_slots(
        self,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        availability_service: Annotated[AvailabilityService, Depends(AvailabilityService)],
        start_date: datetime.date,
        end_date: datetime.date,
        slot_type: Annotated[SlotListType, Query(alias="type")] = SlotListType.AVAILABLE
    ) -> Any:
        """
        Lists the current user's slots in [start_date, end_date].
        'type' selects available (default), booked or all slots.
        """
        slots = await availability_service.get_slots(current_user.id, start_date, end_date, slot_type)
        return availability_models.SlotListRead(slots=slots, total=len(slots))

    async def add_slots(
        self,
        data: availability_models.AvailabilitySlotsAdd,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        availability_service: Annotated[AvailabilityService, Depends(AvailabilityService)]
    ) -> Any:
        """
        Adds dated slots. Slots not strictly in the future are dropped.
        """
        return await availability_service.add_available_slots(current_user.id, data.slots)

    async def remove_slot(
        self,
        date: datetime.date,
        time_slot: str,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        availability_service: Annotated[AvailabilityService, Depends(AvailabilityService)]
    ):
        await availability_service.remove_available_slot(current_user.id, date, time_slot)
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    async def set_recurring(
        self,
        data: availability_models.RecurringAvailabilitySet,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        availability_service: Annotated[AvailabilityService, Depends(AvailabilityService)]
    ) -> Any:
        return await availability_service.set_recurring_availability(current_user.id, data.recurring_availability)

    async def generate_from_recurring(
        self,
        data: availability_models.GenerateSlotsRequest,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        availability_service: Annotated[AvailabilityService, Depends(AvailabilityService)]
    ) -> Any:
        return await availability_service.generate_slots_from_recurring(
            current_user.id, data.start_date, data.end_date
        )

    async def bulk_generate(
        self,
        config: availability_models.BulkGenerateConfig,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        availability_service: Annotated[AvailabilityService, Depends(AvailabilityService)]
    ) -> Any:
        return await availability_service.bulk_generate_slots(current_user.id, config)

    # --- Other users ---

    async def get_common_availability(
        self,
        user_id: UUID,
        start_date: datetime.date,
        end_date: datetime.date,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        availability_service: Annotated[AvailabilityService, Depends(AvailabilityService)],
        user_service: Annotated[UserService, Depends(UserService)]
    ) -> Any:
        """
        Free slots shared by the current user and 'user_id', in the current user's order.
        """
        other_user = await user_service.get_existing_user(user_id)
        common = await availability_service.get_common_availability(
            current_user.id, other_user.id, start_date, end_date
        )
        return availability_models.CommonAvailabilityRead(
            common_availability=common,
            total=len(common),
            current_user=UserRead.model_validate(current_user),
            other_user=UserRead.model_validate(other_user)
        )

    async def list_user_slots(
        self,
        user_id: UUID,
        start_date: datetime.date,
        end_date: datetime.date,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        availability_service: Annotated[AvailabilityService, Depends(AvailabilityService)]
    ) -> Any:
        """
        Another user's free slots. Booked slots are never exposed to other users.
        """
        slots = await availability_service.get_available_slots(user_id, start_date, end_date)
        return availability_models.SlotListRead(slots=slots, total=len(slots))

    async def check_user_slot(
        self,
        user_id: UUID,
        date: datetime.date,
        time_slot: str,
        current_user: Annotated[db_models.Users, Depends(verify_token_and_get_user)],
        availability_service: Annotated[AvailabilityService, Depends(AvailabilityService)]
    ) -> Any:
        is_available = await availability_service.is_slot_available(user_id, date, time_slot)
        return availability_models.SlotCheckRead(
            user_id=user_id, date=date, time_slot=time_slot, is_available=is_available
        )

# Instantiate the class and export its router
availability_api = AvailabilityAPI()
router = availability_api.router

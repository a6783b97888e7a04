'''
User API Models
'''
from uuid import UUID
from typing import Optional

from pydantic import BaseModel, ConfigDict


class UserRead(BaseModel):
    """
    Lean, public representation of a user, used when nesting users inside
    connections and common-availability responses.
    Only references and display fields; never denormalized into other rows.
    """
    id: UUID
    name: str
    email: str
    image: Optional[str] = None
    level: int = 1

    model_config = ConfigDict(from_attributes=True)

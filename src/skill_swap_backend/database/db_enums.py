'''
Static enums mirroring the database enum types.
'''
import enum


class ListableEnum(str, enum.Enum):
    """A custom Enum base class that can list all member values."""
    @classmethod
    def get_all_names(cls) -> list[str]:
        return [member.value for member in cls]


class UserRole(ListableEnum):
    USER = "user"
    ADMIN = "admin"

class ConnectionStatus(ListableEnum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    DECLINED = "declined"
    CANCELLED = "cancelled"

class ConnectionType(ListableEnum):
    SKILL_SWAP = "skill-swap"
    MENTORSHIP = "mentorship"
    COLLABORATION = "collaboration"

class SessionStatus(ListableEnum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"

class SlotListType(ListableEnum):
    AVAILABLE = "available"
    BOOKED = "booked"
    ALL = "all"

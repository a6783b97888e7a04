import factory
import uuid
from factory.alchemy import SQLAlchemyModelFactory
from factory.faker import Faker

from src.skill_swap_backend.database import models as db_models


class BaseFactory(SQLAlchemyModelFactory):
    """
    Factories only add rows to the session; the async test session flushes them.
    The session is attached by the fixture that uses the factory.
    """
    class Meta:
        abstract = True
        sqlalchemy_session_persistence = None


class UserFactory(BaseFactory):
    id = factory.LazyFunction(uuid.uuid4)
    email = factory.Sequence(lambda n: f"user{n}@skillswap.io")
    name = Faker("name")
    image = None
    level = 1
    is_active = True

    class Meta:
        model = db_models.Users

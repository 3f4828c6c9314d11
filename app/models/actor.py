"""Acting user passed explicitly through every service call."""
from pydantic import BaseModel


class Actor(BaseModel):
    """The authenticated owner on whose behalf an operation runs."""

    user_id: str

    model_config = {"frozen": True}

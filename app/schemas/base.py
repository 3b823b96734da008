"""Shared pydantic configuration: snake_case in Python, camelCase on the wire."""

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        from_attributes=True,
    )


class MessageResponse(CamelModel):
    message: str


class MessageWithEmailResponse(CamelModel):
    """Primary outcome in message; mail delivery reported separately."""

    message: str
    email_sent: bool

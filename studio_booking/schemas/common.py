# studio_booking/schemas/common.py

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Accepts and emits the camelCase keys the booking front-end uses."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

"""Machine schemas for Training Desk."""

from pydantic import BaseModel, ConfigDict


class MachineRead(BaseModel):
    id: int
    machine_number: int
    name: str
    is_available: bool

    model_config = ConfigDict(from_attributes=True)

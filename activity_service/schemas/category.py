from pydantic import BaseModel, Field


class Category(BaseModel):
    id: int
    name: str = Field(..., json_schema_extra={"example": "Basketball"})

    model_config = {"from_attributes": True}

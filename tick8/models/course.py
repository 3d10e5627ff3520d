from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Course(BaseModel):
    model_config = ConfigDict(extra="allow")

    filename: str = Field(..., description="Identité du cours (ex: German-1a2b3c4d.json)")
    name: str
    pageSize: Optional[int] = Field(default=None, ge=1)
    order: int = 0

    @field_validator("pageSize", mode="before")
    @classmethod
    def _unset_page_size(cls, v):
        # anciens index : 0 ou négatif = taille par défaut
        if isinstance(v, (int, float)) and not isinstance(v, bool) and v < 1:
            return None
        return v

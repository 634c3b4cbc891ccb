from typing import List, Optional
from uuid import UUID
from pydantic import BaseModel, ConfigDict, Field


class CategoryBase(BaseModel):
    name: str


class CategoryCreate(CategoryBase):
    parent_id: Optional[UUID] = None


class CategoryUpdate(BaseModel):
    """
    Patch parcial. Somente campos enviados são aplicados
    (`model_dump(exclude_unset=True)`), então `parent_id: null` explícito
    transforma a categoria em raiz.
    """

    name: Optional[str] = None
    parent_id: Optional[UUID] = None
    is_active: Optional[bool] = None

    model_config = ConfigDict(extra="forbid")


class CategoryResponse(CategoryBase):
    id: UUID
    parent_id: Optional[UUID] = None
    level: int
    is_active: bool
    # Derivado do índice reverso de parent_id, nunca persistido
    child_ids: List[UUID] = Field(default_factory=list)

    model_config = ConfigDict(from_attributes=True)

from sqlalchemy import Boolean, Column, DateTime, Integer, String
from sqlalchemy.dialects.postgresql import UUID
import uuid
from datetime import datetime, timezone
from ..database.core import Base


class Category(Base):
    """
    Nó da árvore de categorias.

    `parent_id` é uma referência fraca: não há foreign key, então excluir o pai
    deixa os filhos apontando para um ID inexistente. `level` é sempre
    derivado do pai pelo store, nunca informado pelo chamador.
    """

    __tablename__ = "categories"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String, nullable=False, unique=True)
    parent_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    level = Column(Integer, nullable=False, default=1)
    is_active = Column(Boolean, nullable=False, default=True)
    created_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    updated_at = Column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    def __repr__(self):
        return f"<Category(name='{self.name}', level={self.level})>"

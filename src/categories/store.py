"""
Persistência de categorias.

Nenhuma função aqui faz commit: o serviço agrupa a escrita do nó, a cascata e
o deslocamento de níveis numa única unidade de trabalho e só então confirma.
"""

import asyncio
import functools
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple
from uuid import UUID
from logging import getLogger

from sqlalchemy import update
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.future import select

from src.config import MAX_CATEGORY_LEVEL
from src.entities.category import Category
from src.exceptions.categories import (
    CategoryNotFoundError,
    CategoryValidationError,
    StoreUnavailableError,
)

logger = getLogger(__name__)


def store_call(func):
    """Converte falhas do driver e timeouts do banco em StoreUnavailableError."""

    @functools.wraps(func)
    async def wrapper(*args, **kwargs):
        try:
            return await func(*args, **kwargs)
        except IntegrityError:
            raise
        except (DBAPIError, asyncio.TimeoutError) as e:
            logger.error(f"Falha no banco de dados em {func.__name__}: {e}")
            raise StoreUnavailableError(str(e))

    return wrapper


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _clean_name(name: Optional[str]) -> str:
    if name is None or not name.strip():
        raise CategoryValidationError("O nome da categoria é obrigatório.")
    return name.strip()


async def _ensure_unique_name(
    db: AsyncSession, name: str, exclude_id: Optional[UUID] = None
) -> None:
    statement = select(Category.id).filter(Category.name == name)
    if exclude_id is not None:
        statement = statement.filter(Category.id != exclude_id)
    result = await db.execute(statement)
    if result.scalars().first() is not None:
        raise CategoryValidationError(f"Já existe uma categoria com o nome {name}.")


async def _level_under(db: AsyncSession, parent_id: Optional[UUID], height: int = 0) -> int:
    """
    Nível que um nó teria sob `parent_id`. `height` é a profundidade da
    subárvore que acompanha o nó; nenhum nó dela pode passar de MAX_CATEGORY_LEVEL.
    """
    if parent_id is None:
        level = 1
    else:
        result = await db.execute(select(Category).filter(Category.id == parent_id))
        parent = result.scalars().first()
        if parent is None:
            raise CategoryValidationError(
                f"Categoria pai de ID {parent_id} não encontrada."
            )
        level = parent.level + 1

    if level + height > MAX_CATEGORY_LEVEL:
        raise CategoryValidationError(
            f"Não é possível aninhar categorias com mais de {MAX_CATEGORY_LEVEL} níveis."
        )
    return level


async def flush(db: AsyncSession) -> None:
    """Envia as alterações pendentes, traduzindo violação de unicidade."""
    try:
        await db.flush()
    except IntegrityError as e:
        await db.rollback()
        logger.error(f"Violação de integridade ao gravar categoria: {e.orig}")
        raise CategoryValidationError("Já existe uma categoria com esse nome.")


@store_call
async def create_category_record(
    db: AsyncSession, name: Optional[str], parent_id: Optional[UUID] = None
) -> Category:
    name = _clean_name(name)
    await _ensure_unique_name(db, name)
    level = await _level_under(db, parent_id)

    category = Category(name=name, parent_id=parent_id, level=level, is_active=True)
    db.add(category)
    await flush(db)
    return category


@store_call
async def get_category_record(db: AsyncSession, category_id: UUID) -> Category:
    result = await db.execute(select(Category).filter(Category.id == category_id))
    category = result.scalars().first()
    if not category:
        logger.warning(f"Categoria de ID {category_id} não encontrada")
        raise CategoryNotFoundError(category_id)
    return category


@store_call
async def list_category_records(db: AsyncSession) -> List[Category]:
    result = await db.execute(select(Category).order_by(Category.created_at))
    return list(result.scalars().all())


@store_call
async def load_parent_links(db: AsyncSession) -> List[Tuple[UUID, Optional[UUID]]]:
    """Pares (id, parent_id) de todas as categorias, numa única consulta."""
    result = await db.execute(
        select(Category.id, Category.parent_id).order_by(Category.created_at)
    )
    return [(row.id, row.parent_id) for row in result.all()]


@store_call
async def update_category_record(
    db: AsyncSession,
    category: Category,
    patch: Dict[str, Any],
    descendant_ids: Iterable[UUID] = (),
    subtree_height: int = 0,
) -> Category:
    """
    Aplica `name` e `parent_id` de `patch`. `is_active` não é tratado aqui:
    mudanças de ativação passam pela cascata.

    Ao trocar o pai, `descendant_ids` e `subtree_height` descrevem a subárvore
    do nó para rejeitar ciclos e profundidade excessiva.
    """
    if "name" in patch:
        name = _clean_name(patch["name"])
        if name != category.name:
            await _ensure_unique_name(db, name, exclude_id=category.id)
            category.name = name

    if "parent_id" in patch and patch["parent_id"] != category.parent_id:
        new_parent_id = patch["parent_id"]
        if new_parent_id == category.id or new_parent_id in set(descendant_ids):
            raise CategoryValidationError(
                "Uma categoria não pode ser movida para dentro de si mesma."
            )
        category.level = await _level_under(db, new_parent_id, subtree_height)
        category.parent_id = new_parent_id

    category.updated_at = _now()
    await flush(db)
    return category


@store_call
async def bulk_set_active(db: AsyncSession, ids: Set[UUID], is_active: bool) -> int:
    if not ids:
        return 0
    result = await db.execute(
        update(Category)
        .where(Category.id.in_(list(ids)))
        .values(is_active=is_active, updated_at=_now())
    )
    return result.rowcount


@store_call
async def bulk_shift_levels(
    db: AsyncSession, depths: Dict[UUID, int], base_level: int
) -> int:
    """Regrava `level` dos descendentes como `base_level + profundidade`, uma faixa por vez."""
    bands: Dict[int, List[UUID]] = {}
    for category_id, depth in depths.items():
        bands.setdefault(depth, []).append(category_id)

    updated = 0
    for depth, ids in sorted(bands.items()):
        result = await db.execute(
            update(Category)
            .where(Category.id.in_(list(ids)))
            .values(level=base_level + depth, updated_at=_now())
        )
        updated += result.rowcount
    return updated


@store_call
async def delete_category_record(db: AsyncSession, category_id: UUID) -> Category:
    """Remove o nó. Os filhos ficam com `parent_id` pendente."""
    category = await get_category_record(db, category_id)
    await db.delete(category)
    await db.flush()
    return category


@store_call
async def list_child_ids(db: AsyncSession, parent_id: UUID) -> List[UUID]:
    result = await db.execute(
        select(Category.id)
        .filter(Category.parent_id == parent_id)
        .order_by(Category.created_at)
    )
    return list(result.scalars().all())

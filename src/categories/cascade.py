from typing import Set
from uuid import UUID
from logging import getLogger

from sqlalchemy.ext.asyncio import AsyncSession

from src.categories import hierarchy, store
from src.entities.category import Category
from src.exceptions.categories import PartialCascadeError

logger = getLogger(__name__)


async def cascade_active_state(
    db: AsyncSession, category: Category, is_active: bool
) -> Set[UUID]:
    """
    Aplica `is_active` à categoria e, na desativação, a toda a subárvore,
    com uma única escrita em massa.

    Retorna os IDs gravados (vazio quando o valor não muda). Reativar um nó
    não reativa os descendentes: o estado anterior deles não é preservado.
    """
    if category.is_active == is_active:
        return set()

    targets = {category.id}
    if not is_active:
        targets |= await hierarchy.descendants_of(db, category.id)

    updated = await store.bulk_set_active(db, targets, is_active)
    if updated < len(targets):
        logger.error(
            f"Cascata parcial a partir da categoria {category.id}: "
            f"{updated} de {len(targets)} registros atualizados"
        )
        raise PartialCascadeError(targets, updated)

    logger.info(
        f"Categoria {category.id} {'ativada' if is_active else 'desativada'}; "
        f"{len(targets) - 1} descendentes afetados"
    )
    return targets

"""
Travessia da árvore de categorias.

A árvore é guardada como uma lista plana de registros com `parent_id`; os
filhos de cada nó são descobertos por um índice reverso montado uma única vez
por chamada, nunca com uma consulta por nó.
"""

from collections import defaultdict, deque
from typing import Dict, Iterable, List, Optional, Set, Tuple
from uuid import UUID
from logging import getLogger

from sqlalchemy.ext.asyncio import AsyncSession

from src.config import MAX_TRAVERSAL_DEPTH
from src.entities.category import Category
from src.categories import store

logger = getLogger(__name__)

ChildrenIndex = Dict[UUID, List[UUID]]


def build_children_index(pairs: Iterable[Tuple[UUID, Optional[UUID]]]) -> ChildrenIndex:
    """Monta o índice `parent_id -> [ids dos filhos]` a partir de pares (id, parent_id)."""
    index: ChildrenIndex = defaultdict(list)
    for category_id, parent_id in pairs:
        if parent_id is not None:
            index[parent_id].append(category_id)
    return dict(index)


def descendant_depths(
    index: ChildrenIndex, root_id: UUID, max_depth: int = MAX_TRAVERSAL_DEPTH
) -> Dict[UUID, int]:
    """
    BFS a partir de `root_id`. Retorna `id -> profundidade abaixo da raiz`
    (filhos diretos = 1), sem incluir a própria raiz.

    Cada nó é visitado no máximo uma vez, então um ciclo introduzido por dados
    corrompidos não impede a terminação. Nós além de `max_depth` níveis são
    ignorados.
    """
    depths: Dict[UUID, int] = {}
    visited: Set[UUID] = {root_id}
    queue = deque([(root_id, 0)])

    while queue:
        current_id, depth = queue.popleft()
        if depth >= max_depth:
            if index.get(current_id):
                logger.warning(
                    f"Travessia de {root_id} interrompida no limite de {max_depth} níveis"
                )
            continue
        for child_id in index.get(current_id, []):
            if child_id in visited:
                logger.warning(
                    f"Ciclo detectado na hierarquia: {child_id} já visitado a partir de {root_id}"
                )
                continue
            visited.add(child_id)
            depths[child_id] = depth + 1
            queue.append((child_id, depth + 1))

    return depths


async def load_children_index(db: AsyncSession) -> ChildrenIndex:
    return build_children_index(await store.load_parent_links(db))


async def descendants_of(
    db: AsyncSession, root_id: UUID, max_depth: int = MAX_TRAVERSAL_DEPTH
) -> Set[UUID]:
    index = await load_children_index(db)
    return set(descendant_depths(index, root_id, max_depth))


async def ancestors_of(
    db: AsyncSession, category_id: UUID, max_depth: int = MAX_TRAVERSAL_DEPTH
) -> List[Category]:
    """
    Cadeia de pais, do pai imediato até a raiz.

    Para em um `parent_id` pendente (pai excluído) em vez de falhar, e também
    ao revisitar um nó ou ao atingir `max_depth`.
    """
    category = await store.get_category_record(db, category_id)
    records = {c.id: c for c in await store.list_category_records(db)}

    chain: List[Category] = []
    visited: Set[UUID] = {category.id}
    parent_id = category.parent_id

    while parent_id is not None and len(chain) < max_depth:
        if parent_id in visited:
            logger.warning(f"Ciclo detectado ao subir a hierarquia de {category_id}")
            break
        parent = records.get(parent_id)
        if parent is None:
            logger.warning(
                f"Categoria de ID {chain[-1].id if chain else category_id} "
                f"aponta para pai inexistente {parent_id}"
            )
            break
        visited.add(parent_id)
        chain.append(parent)
        parent_id = parent.parent_id

    return chain

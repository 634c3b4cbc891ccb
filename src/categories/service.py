from typing import Annotated, Iterable, List, Optional, Set
from uuid import UUID
from logging import getLogger

from fastapi import Depends
from sqlalchemy.exc import DBAPIError, IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from . import model
from . import cascade, hierarchy, store
from ..database.core import DbSession
from ..entities.category import Category
from ..exceptions.cache import CacheUnavailableError
from ..exceptions.categories import (
    CategoryError,
    CategoryValidationError,
    PartialCascadeError,
    StoreUnavailableError,
)
from ..utils.cache import CategoryCache, CategoryCacheDep, invalidation_keys

logger = getLogger(__name__)


def _to_response(
    category: Category, child_ids: Iterable[UUID] = ()
) -> model.CategoryResponse:
    return model.CategoryResponse(
        id=category.id,
        name=category.name,
        parent_id=category.parent_id,
        level=category.level,
        is_active=category.is_active,
        child_ids=list(child_ids),
    )


class CategoryService:
    """
    Ponto de entrada das operações de categoria.

    Toda mutação segue a mesma ordem: escrita no banco, cascata, commit e só
    então invalidação do cache. Erros de cache são registrados e nunca mudam o
    resultado visto pelo chamador; leituras que falham no cache caem no banco.
    """

    def __init__(self, db: AsyncSession, cache: CategoryCache):
        self.db = db
        self.cache = cache

    async def _commit(self) -> None:
        try:
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            logger.error(f"Violação de integridade no commit de categoria: {e.orig}")
            raise CategoryValidationError("Já existe uma categoria com esse nome.")
        except DBAPIError as e:
            await self.db.rollback()
            logger.error(f"Falha no commit de categoria: {e}")
            raise StoreUnavailableError(str(e))

    async def _invalidate(self, affected_ids: Set[Optional[UUID]]) -> None:
        keys = invalidation_keys(i for i in affected_ids if i is not None)
        try:
            await self.cache.invalidate(keys)
        except CacheUnavailableError as e:
            logger.warning(f"Falha ao invalidar cache de categorias: {e}")

    async def create_category(
        self, category: model.CategoryCreate
    ) -> model.CategoryResponse:
        try:
            new_category = await store.create_category_record(
                self.db, category.name, category.parent_id
            )
        except CategoryError:
            await self.db.rollback()
            logger.error(f"Falha na criação da categoria {category.name!r}")
            raise
        await self._commit()
        logger.info(
            f"Nova categoria registrada: {new_category.name} (nível {new_category.level})"
        )

        await self._invalidate({new_category.id, new_category.parent_id})
        return _to_response(new_category)

    async def list_categories(
        self, populate_children: bool = True
    ) -> List[model.CategoryResponse]:
        cached = None
        try:
            cached = await self.cache.get_collection()
        except CacheUnavailableError as e:
            logger.warning(f"Cache indisponível na listagem de categorias: {e}")

        if cached is not None:
            logger.info("Listagem de categorias servida do cache")
        else:
            records = await store.list_category_records(self.db)
            index = await hierarchy.load_children_index(self.db)
            known_ids = {record.id for record in records}
            for record in records:
                if record.parent_id is not None and record.parent_id not in known_ids:
                    logger.warning(
                        f"Categoria de ID {record.id} aponta para pai inexistente {record.parent_id}"
                    )
            cached = [_to_response(r, index.get(r.id, [])) for r in records]
            logger.info(f"Recuperadas {len(cached)} categorias do banco")
            try:
                await self.cache.put_collection(cached)
            except CacheUnavailableError as e:
                logger.warning(f"Falha ao gravar listagem no cache: {e}")

        if populate_children:
            return cached
        return [c.model_copy(update={"child_ids": []}) for c in cached]

    async def get_category(self, category_id: UUID) -> model.CategoryResponse:
        try:
            cached = await self.cache.get_node(category_id)
        except CacheUnavailableError as e:
            logger.warning(f"Cache indisponível ao ler categoria {category_id}: {e}")
            cached = None

        if cached is not None:
            logger.info(f"Categoria de ID {category_id} servida do cache")
            return cached

        category = await store.get_category_record(self.db, category_id)
        child_ids = await store.list_child_ids(self.db, category.id)
        response = _to_response(category, child_ids)
        logger.info(f"Categoria de ID {category_id} recuperada do banco")

        try:
            await self.cache.put_node(response)
        except CacheUnavailableError as e:
            logger.warning(f"Falha ao gravar categoria {category_id} no cache: {e}")
        return response

    async def get_category_ancestors(
        self, category_id: UUID
    ) -> List[model.CategoryResponse]:
        ancestors = await hierarchy.ancestors_of(self.db, category_id)
        return [_to_response(a) for a in ancestors]

    async def update_category(
        self, category_id: UUID, category_update: model.CategoryUpdate
    ) -> model.CategoryResponse:
        patch = category_update.model_dump(exclude_unset=True)
        for field in ("name", "is_active"):
            if field in patch and patch[field] is None:
                raise CategoryValidationError(f"O campo {field} não pode ser nulo.")

        category = await store.get_category_record(self.db, category_id)
        affected: Set[Optional[UUID]] = {category.id}

        try:
            old_parent_id = category.parent_id
            moved = "parent_id" in patch and patch["parent_id"] != old_parent_id
            depths = {}
            if moved:
                index = await hierarchy.load_children_index(self.db)
                depths = hierarchy.descendant_depths(index, category.id)

            await store.update_category_record(
                self.db,
                category,
                patch,
                descendant_ids=depths.keys(),
                subtree_height=max(depths.values(), default=0),
            )

            if moved:
                await store.bulk_shift_levels(self.db, depths, category.level)
                affected |= set(depths) | {old_parent_id, category.parent_id}
                logger.info(
                    f"Categoria {category_id} movida de {old_parent_id} para {category.parent_id}"
                )

            if "is_active" in patch:
                affected |= await cascade.cascade_active_state(
                    self.db, category, patch["is_active"]
                )
            elif moved and category.is_active and category.parent_id is not None:
                new_parent = await store.get_category_record(
                    self.db, category.parent_id
                )
                if not new_parent.is_active:
                    # Subárvore ativa sob pai inativo herda a desativação
                    affected |= await cascade.cascade_active_state(
                        self.db, category, False
                    )
        except PartialCascadeError as e:
            # Parte das linhas pode ter mudado: confirma e invalida tudo o que foi tentado
            await self._commit()
            await self._invalidate(affected | e.attempted_ids)
            raise
        except CategoryError:
            await self.db.rollback()
            logger.error(f"Falha na atualização da categoria {category_id}")
            raise

        await self._commit()
        logger.info(f"Categoria de ID {category_id} atualizada com sucesso")

        await self._invalidate(affected)
        child_ids = await store.list_child_ids(self.db, category.id)
        return _to_response(category, child_ids)

    async def delete_category(self, category_id: UUID) -> None:
        category = await store.delete_category_record(self.db, category_id)
        parent_id = category.parent_id
        await self._commit()
        logger.info(f"Categoria de ID {category_id} foi excluída")

        await self._invalidate({category_id, parent_id})


def get_category_service(db: DbSession, cache: CategoryCacheDep) -> CategoryService:
    return CategoryService(db, cache)


CategoryServiceDep = Annotated[CategoryService, Depends(get_category_service)]

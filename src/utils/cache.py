"""
Cache de leitura das categorias.

O cache nunca é autoritativo: cada mutação apaga as chaves afetadas depois do
commit, e o TTL cobre escritas feitas por fora deste serviço.
"""
import asyncio
import time
from abc import ABC, abstractmethod
from typing import Annotated, Callable, Iterable, List, Optional, Set, Tuple
from uuid import UUID
import logging

from cachetools import TLRUCache
from fastapi import Depends, Request
from pydantic import TypeAdapter, ValidationError

from src.categories.model import CategoryResponse
from src.config import settings
from src.exceptions.cache import CacheUnavailableError

logger = logging.getLogger(__name__)

COLLECTION_KEY = "categories"

_collection_adapter = TypeAdapter(List[CategoryResponse])


def node_key(category_id: UUID) -> str:
    return f"category_{category_id}"


def invalidation_keys(affected_ids: Iterable[UUID]) -> Set[str]:
    """Chaves a apagar após uma mutação: a listagem completa e cada nó afetado."""
    return {COLLECTION_KEY} | {node_key(category_id) for category_id in affected_ids}


class CacheClient(ABC):
    """Interface mínima de chave/valor usada pelo coordenador."""

    @abstractmethod
    async def get(self, key: str) -> Optional[str]: ...

    @abstractmethod
    async def set(self, key: str, value: str, ttl: int) -> None: ...

    @abstractmethod
    async def delete(self, *keys: str) -> int: ...


def _entry_expiry(_key: str, entry: Tuple[str, int], now: float) -> float:
    return now + entry[1]


class MemoryCacheClient(CacheClient):
    """
    Cliente em memória sobre `TLRUCache`: cada entrada guarda o próprio TTL,
    então `set` sempre renova a expiração.
    """

    def __init__(
        self,
        maxsize: int = settings.CATEGORY_CACHE_MAXSIZE,
        timer: Callable[[], float] = time.monotonic,
    ):
        self._cache: TLRUCache = TLRUCache(
            maxsize=maxsize, ttu=_entry_expiry, timer=timer
        )

    async def get(self, key: str) -> Optional[str]:
        entry = self._cache.get(key)
        return entry[0] if entry is not None else None

    async def set(self, key: str, value: str, ttl: int) -> None:
        self._cache[key] = (value, ttl)

    async def delete(self, *keys: str) -> int:
        removed = 0
        for key in keys:
            if self._cache.pop(key, None) is not None:
                removed += 1
        return removed

    def __contains__(self, key: str) -> bool:
        return key in self._cache

    def __len__(self) -> int:
        return len(self._cache)


class CategoryCache:
    """
    Coordena leitura, escrita e invalidação das chaves de categorias.

    Qualquer falha do cliente (inclusive timeout ou payload ilegível) vira
    `CacheUnavailableError`; decidir se isso importa é papel do serviço.
    """

    def __init__(
        self,
        client: CacheClient,
        ttl: int = settings.CATEGORY_CACHE_TTL,
        timeout: float = settings.CACHE_TIMEOUT_SECONDS,
    ):
        self.client = client
        self.ttl = ttl
        self.timeout = timeout

    async def _call(self, operation: str, awaitable):
        try:
            return await asyncio.wait_for(awaitable, timeout=self.timeout)
        except Exception as e:
            raise CacheUnavailableError(operation, e) from e

    async def get_node(self, category_id: UUID) -> Optional[CategoryResponse]:
        raw = await self._call("get", self.client.get(node_key(category_id)))
        if raw is None:
            return None
        try:
            return CategoryResponse.model_validate_json(raw)
        except ValidationError as e:
            raise CacheUnavailableError("decode", e) from e

    async def get_collection(self) -> Optional[List[CategoryResponse]]:
        raw = await self._call("get", self.client.get(COLLECTION_KEY))
        if raw is None:
            return None
        try:
            return _collection_adapter.validate_json(raw)
        except ValidationError as e:
            raise CacheUnavailableError("decode", e) from e

    def _ttl(self, ttl: Optional[int]) -> int:
        return self.ttl if ttl is None else ttl

    async def put_node(
        self, category: CategoryResponse, ttl: Optional[int] = None
    ) -> None:
        await self._call(
            "set",
            self.client.set(
                node_key(category.id), category.model_dump_json(), self._ttl(ttl)
            ),
        )

    async def put_collection(
        self, categories: List[CategoryResponse], ttl: Optional[int] = None
    ) -> None:
        payload = _collection_adapter.dump_json(categories).decode()
        await self._call(
            "set", self.client.set(COLLECTION_KEY, payload, self._ttl(ttl))
        )

    async def invalidate(self, keys: Iterable[str]) -> None:
        keys = sorted(set(keys))
        if not keys:
            return
        await self._call("delete", self.client.delete(*keys))
        logger.info(f"Cache de categorias invalidado: {len(keys)} chaves")


def get_category_cache(request: Request) -> CategoryCache:
    """O cache é criado no startup da aplicação e guardado em `app.state`."""
    return request.app.state.category_cache


CategoryCacheDep = Annotated[CategoryCache, Depends(get_category_cache)]

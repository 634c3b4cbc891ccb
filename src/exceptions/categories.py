from fastapi import HTTPException


class CategoryError(HTTPException):
    """Exceção base para erros relacionados às categorias"""

    pass


class CategoryNotFoundError(CategoryError):
    def __init__(self, category_id=None):
        message = (
            "Categoria não encontrada"
            if category_id is None
            else f"Categoria de ID {category_id} não encontrada"
        )
        super().__init__(status_code=404, detail=message)


class CategoryValidationError(CategoryError):
    def __init__(self, error: str):
        super().__init__(status_code=400, detail=f"Categoria inválida: {error}")


class PartialCascadeError(CategoryError):
    """
    A atualização em massa afetou menos registros do que o esperado.
    `attempted_ids` é o conjunto completo que a cascata tentou atualizar.
    """

    def __init__(self, attempted_ids: set, updated: int):
        self.attempted_ids = set(attempted_ids)
        self.updated = updated
        super().__init__(
            status_code=500,
            detail=(
                f"Cascata parcial: {updated} de {len(self.attempted_ids)} "
                "categorias atualizadas"
            ),
        )


class StoreUnavailableError(CategoryError):
    def __init__(self, error: str):
        super().__init__(
            status_code=503, detail=f"Banco de dados indisponível: {error}"
        )

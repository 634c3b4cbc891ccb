class CacheUnavailableError(Exception):
    """
    Falha em qualquer operação do cache. Nunca é exposta ao cliente HTTP:
    quem chama registra o erro e segue como se fosse um cache miss.
    """

    def __init__(self, operation: str, error: Exception | str):
        self.operation = operation
        self.error = error
        super().__init__(f"Cache indisponível durante '{operation}': {error}")

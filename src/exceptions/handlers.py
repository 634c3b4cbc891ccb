from fastapi import Request, FastAPI
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError


def translate_pydantic_error(error: dict) -> str:
    type_ = error.get("type", "")
    msg = error.get("msg", "")

    translations = {
        "missing": "Campo obrigatório ausente.",
        "string_type": "O valor fornecido deve ser uma string.",
        "bool_parsing": "O valor fornecido não é um booleano válido.",
        "bool_type": "O valor fornecido deve ser um booleano.",
        "uuid_parsing": "O valor fornecido não é um UUID válido.",
        "uuid_type": "O valor fornecido deve ser um UUID.",
        "extra_forbidden": "Campo não permitido na atualização de categoria.",
        "value_error": f"Erro de valor: {msg}",
    }

    if type_ in translations:
        return translations[type_]

    if "Input should be" in msg:
        return msg.replace("Input should be", "O valor deve ser")

    if "Field required" in msg:
        return "Campo obrigatório."

    return msg


async def validation_exception_handler(request: Request, exc: RequestValidationError):
    translated_errors = []

    for error in exc.errors():
        translated_error = {
            "loc": list(error.get("loc", [])),
            "type": error.get("type"),
            "msg": translate_pydantic_error(error),
        }
        translated_errors.append(translated_error)

    return JSONResponse(
        status_code=422,
        content={"detail": translated_errors},
    )


def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

from fastapi import FastAPI
from src.categories.controller import router as categories_router


def register_routes(app: FastAPI):
    app.include_router(categories_router)

# Routes package __init__.py - re-exports routers for main.py convenience
from .practice import router as practice_router
from .drills import router as drills_router
from .modules import router as modules_router

__all__ = ['practice_router', 'drills_router', 'modules_router']

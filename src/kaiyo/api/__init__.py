from .app import create_app
from .schemas import TurnRequest

__all__ = ["create_app", "TurnRequest"]

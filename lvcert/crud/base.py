from typing import TypeVar, Generic, Type
from sqlalchemy import Select
from sqlalchemy.orm import Session
from lvcert.db.base import Base

ModelType = TypeVar("ModelType", bound=Base)

class CRUDBase(Generic[ModelType]):
    """
    Somente leitura: escrita de certificados passa pelo motor de transições
    (services.transitions), nunca por CRUD genérico.
    """
    def __init__(self, model: Type[ModelType]): self.model = model

    def _page(self, db: Session, stmt: Select, skip: int = 0, limit: int = 50) -> list:
        return list(db.execute(stmt.offset(skip).limit(limit)).scalars().all())

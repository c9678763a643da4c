"""
Operator directory lookups (enrichment and existence checks only).
"""
from typing import Dict, List, Optional
import uuid
from sqlalchemy.orm import Session

from opschat.model.operator import Operator
from opschat.crud.base import CRUDBase


class CRUDOperator(CRUDBase[Operator, dict, dict]):
    """Operator-specific lookups."""

    def usernames_by_id(self, db: Session, *, operator_ids: List[uuid.UUID]) -> Dict[uuid.UUID, str]:
        """One query for every id; missing operators are simply absent from the map."""
        ids = list({i for i in operator_ids if i})
        if not ids:
            return {}
        rows = db.query(self.model.id, self.model.username).filter(self.model.id.in_(ids)).all()
        return {row.id: row.username for row in rows}

    def list_active(self, db: Session, *, exclude_id: Optional[uuid.UUID] = None) -> List[Operator]:
        query = db.query(self.model).filter(self.model.status == "active")
        if exclude_id:
            query = query.filter(self.model.id != exclude_id)
        return query.order_by(self.model.username.asc()).all()


operator_crud = CRUDOperator(Operator)

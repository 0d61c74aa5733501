from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from ..core.exceptions import NoCompanyForUser
from ..models.company import Company


def find_company_by_owner(db: Session, user_id: str) -> Optional[Company]:
    return db.query(Company).filter(Company.owner_user_id == user_id).first()


def find_company_by_id(db: Session, company_id: UUID | str) -> Optional[Company]:
    if not isinstance(company_id, UUID):
        try:
            company_id = UUID(str(company_id))
        except ValueError:
            return None
    return db.query(Company).filter(Company.id == company_id).first()


def resolve_company_for_user(db: Session, user_id: str) -> Company:
    """
    The caller's company, or NoCompanyForUser. Never returns None.
    """
    company = find_company_by_owner(db, user_id)
    if company is None:
        raise NoCompanyForUser(user_id)
    return company

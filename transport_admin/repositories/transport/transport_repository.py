"""
Repositories for students and admins.
"""

from typing import List, Optional

from sqlalchemy.orm import Session

from transport_admin.models.transport.admin_user import AdminUser
from transport_admin.models.transport.student import Student
from transport_admin.repositories.base.base_repository import BaseRepository


class StudentRepository(BaseRepository[Student]):

    def __init__(self, session: Session):
        super().__init__(Student, session)


class AdminUserRepository(BaseRepository[AdminUser]):

    def __init__(self, session: Session):
        super().__init__(AdminUser, session)

    def find_active(self, admin_id: str) -> Optional[AdminUser]:
        return (
            self.db.query(AdminUser)
            .filter(AdminUser.id == admin_id, AdminUser.is_active.is_(True))
            .first()
        )

    def find_all_active(self) -> List[AdminUser]:
        return (
            self.db.query(AdminUser)
            .filter(AdminUser.is_active.is_(True))
            .order_by(AdminUser.name.asc())
            .all()
        )

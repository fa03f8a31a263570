from pydantic import BaseModel
from app.models.shared.enums import PrincipalRole


class Principal(BaseModel):
    """Authenticated caller as handed over by the auth collaborator"""
    id: str
    role: PrincipalRole = PrincipalRole.STAFF

    @property
    def is_admin(self) -> bool:
        return self.role == PrincipalRole.ADMIN

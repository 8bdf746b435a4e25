from typing import Dict, Optional
from uuid import UUID

from pydantic import BaseModel


class CurrentUser(BaseModel):
    """Lightweight representation of the authenticated caller for RBAC checks.
    Issued by the identity service; this backend only decodes it.
    """

    id: UUID
    school_id: Optional[UUID] = None  # the unit the user belongs to (main school or campus)
    role: str
    permissions: Dict[str, Dict[str, bool]]

"""
Request dependencies: who is calling and for which group.
"""
from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from sqlalchemy.orm import Session

from tripledger.core.security import decode_access_token
from tripledger.db.session import get_db
from tripledger.models.group import GroupMember

bearer_scheme = HTTPBearer(auto_error=False)


class MemberContext(BaseModel):
    """The acting member and the group every query is scoped to."""
    member_id: int
    group_id: int
    traveler_name: str


def get_current_member(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
    db: Session = Depends(get_db)
) -> MemberContext:
    """Resolve the bearer token to a group member."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None:
        raise credentials_exception

    payload = decode_access_token(credentials.credentials)
    if not payload or payload.get("sub") is None or payload.get("group_id") is None:
        raise credentials_exception

    try:
        member_id = int(payload["sub"])
        group_id = int(payload["group_id"])
    except (TypeError, ValueError):
        raise credentials_exception

    member = db.query(GroupMember).filter(
        GroupMember.id == member_id,
        GroupMember.group_id == group_id
    ).first()
    if not member:
        raise credentials_exception

    return MemberContext(member_id=member.id, group_id=member.group_id, traveler_name=member.traveler_name)

from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from servicedesk.core.config import Settings, get_settings
from servicedesk.users import Actor, Role, UserDirectory

bearer_scheme = HTTPBearer(auto_error=False)


async def get_user_directory(request: Request) -> UserDirectory:
    directory = getattr(request.app.state, "user_directory", None)
    if directory is None:
        raise HTTPException(status_code=503, detail="User directory is not configured")
    return directory


async def get_current_actor(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
    request: Request,
    settings: Annotated[Settings, Depends(get_settings)],
    directory: Annotated[UserDirectory, Depends(get_user_directory)],
) -> Actor:
    """Resolve the bearer token to an active user of the directory.

    Tokens are issued by the account service and handed to us as a static
    ``token -> user id`` map; anything unknown is rejected with 401.
    """

    cached = getattr(request.state, "actor", None)
    if isinstance(cached, Actor):
        return cached

    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authenticated")
    user_id = settings.auth_tokens.get(credentials.credentials)
    if user_id is None:
        raise HTTPException(status_code=401, detail="Invalid authentication credentials")
    actor = await directory.find_by_id(user_id)
    if actor is None:
        raise HTTPException(status_code=401, detail="Invalid authentication credentials")

    request.state.actor = actor
    return actor


def role_required(*roles: Role) -> Callable[[Actor], Actor]:
    """Dependency factory ensuring the current actor has one of ``roles``."""

    async def dependency(actor: Annotated[Actor, Depends(get_current_actor)]) -> Actor:
        if actor.role not in roles:
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return actor

    return dependency


require_admin = role_required(Role.ADMIN)
require_staff = role_required(Role.ADMIN, Role.TECHNICIAN)

CurrentActor = Annotated[Actor, Depends(get_current_actor)]
AdminActor = Annotated[Actor, Depends(require_admin)]
StaffActor = Annotated[Actor, Depends(require_staff)]

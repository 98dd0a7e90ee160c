from fastapi import APIRouter

from servicedesk.dependencies import CurrentActor

router = APIRouter(prefix="/ping", tags=["health"])


@router.get("", summary="Public health probe")
async def ping() -> dict[str, str]:
    return {"status": "ok"}


@router.get("/secure", summary="Authenticated health probe")
async def secure_ping(actor: CurrentActor) -> dict[str, str]:
    return {"status": "ok", "user": actor.display_name, "role": actor.role.value}

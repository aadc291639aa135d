"""Script endpoints."""

from typing import Any, Dict, List

from fastapi import APIRouter, Query, Request, status

from app.api.deps import CurrentUser, DbSession, Scripts
from app.core.exceptions import BadRequest, NotFound, PermissionDenied, ScriptValidationError
from app.models.script import SUBSETS, Script, ScriptDeleteType
from app.schemas.script import ScriptCreate, ScriptResponse, ScriptVersionSubmit

router = APIRouter(prefix="/scripts", tags=["scripts"])


async def _load_script(scripts: Scripts, script_id: int) -> Script:
    script = await scripts.get_script(script_id)
    if script is None:
        raise NotFound("Script")
    return script


def _ensure_author(script: Script, user) -> None:
    if all(author.user_id != user.id for author in script.authors):
        raise PermissionDenied("Only the script's authors can do that")


@router.get("/", response_model=List[ScriptResponse])
async def list_scripts(
    scripts: Scripts,
    subset: str = Query(default="greasyfork"),
    skip: int = Query(default=0, ge=0),
    limit: int = Query(default=50, ge=1, le=100),
) -> List[Dict[str, Any]]:
    """List listable scripts in a site subset."""
    if subset not in SUBSETS:
        raise BadRequest(f"Invalid subset {subset}")
    return [s.serializable_hash() for s in await scripts.list_scripts(subset, skip, limit)]


@router.get("/{script_id}", response_model=ScriptResponse)
async def get_script(script_id: int, scripts: Scripts) -> Dict[str, Any]:
    """Get a script by ID."""
    script = await _load_script(scripts, script_id)
    return script.serializable_hash()


@router.post("/", response_model=ScriptResponse, status_code=status.HTTP_201_CREATED)
async def create_script(
    script_data: ScriptCreate,
    db: DbSession,
    scripts: Scripts,
    current_user: CurrentUser,
) -> Dict[str, Any]:
    """Post a new script."""
    try:
        script = await scripts.create_script(current_user, script_data)
    except ScriptValidationError:
        await db.rollback()
        raise
    return script.serializable_hash()


@router.post("/{script_id}/versions", response_model=ScriptResponse)
async def submit_version(
    script_id: int,
    version_data: ScriptVersionSubmit,
    db: DbSession,
    scripts: Scripts,
    current_user: CurrentUser,
) -> Dict[str, Any]:
    """Post an update to an existing script."""
    script = await _load_script(scripts, script_id)
    _ensure_author(script, current_user)
    try:
        script = await scripts.submit_version(script, version_data)
    except ScriptValidationError:
        await db.rollback()
        raise
    return script.serializable_hash()


@router.delete("/{script_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_script(
    script_id: int,
    scripts: Scripts,
    current_user: CurrentUser,
) -> None:
    """Delete a script, keeping its page up with a deletion notice."""
    script = await _load_script(scripts, script_id)
    _ensure_author(script, current_user)
    await scripts.soft_delete(script, ScriptDeleteType.KEEP)


@router.post("/{script_id}/installs")
async def record_install(script_id: int, request: Request, scripts: Scripts) -> Dict[str, bool]:
    """Count an install from the requesting IP."""
    await _load_script(scripts, script_id)
    ip = request.client.host if request.client else "unknown"
    return {"counted": await scripts.record_install(script_id, ip)}

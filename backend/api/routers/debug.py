"""Debug router - admin view of recorded outbound calls."""

from fastapi import APIRouter, Depends, Response

from api.auth.dependencies import require_admin
from api.models import User
from api.schemas.debug import DebugEntryResponse, DebugLogResponse, DebugToggleResponse
from common.debug import DebugRecorder, get_debug_recorder

router = APIRouter(prefix="/admin/debug", tags=["debug"])


@router.get("", response_model=DebugLogResponse, summary="Recorded calls, newest first")
async def list_entries(
    _: User = Depends(require_admin),
    recorder: DebugRecorder = Depends(get_debug_recorder),
) -> DebugLogResponse:
    return DebugLogResponse(
        enabled=recorder.enabled,
        capacity=recorder.capacity,
        entries=[DebugEntryResponse.model_validate(e.to_dict()) for e in recorder.entries],
    )


@router.delete("", response_model=DebugLogResponse, summary="Clear recorded calls")
async def clear_entries(
    _: User = Depends(require_admin),
    recorder: DebugRecorder = Depends(get_debug_recorder),
) -> DebugLogResponse:
    recorder.clear()
    return DebugLogResponse(enabled=recorder.enabled, capacity=recorder.capacity, entries=[])


@router.post("/toggle", response_model=DebugToggleResponse, summary="Turn recording on or off")
async def toggle_recording(
    _: User = Depends(require_admin),
    recorder: DebugRecorder = Depends(get_debug_recorder),
) -> DebugToggleResponse:
    return DebugToggleResponse(enabled=recorder.toggle())


@router.get("/export", summary="Download recorded calls as JSON")
async def export_entries(
    _: User = Depends(require_admin),
    recorder: DebugRecorder = Depends(get_debug_recorder),
) -> Response:
    return Response(
        content=recorder.export(),
        media_type="application/json",
        headers={"Content-Disposition": 'attachment; filename="debug-log.json"'},
    )

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, HTTPException, Request

from ..models import ParticipantOut


router = APIRouter()


@router.get("/presence", response_model=list[ParticipantOut], response_model_exclude_none=True)
async def list_presence(request: Request, groupCode: Optional[str] = None) -> list[dict]:
    reg = request.app.state.registry
    if groupCode:
        return reg.list_by_group(groupCode)
    return reg.list()


@router.get("/presence/{participant_id}", response_model=ParticipantOut, response_model_exclude_none=True)
async def get_participant(participant_id: str, request: Request) -> dict:
    entry = request.app.state.registry.get(participant_id)
    if entry is None:
        raise HTTPException(status_code=404, detail="Participant not connected")
    return entry.to_dict()

from fastapi import APIRouter, Depends
from fastapi.responses import PlainTextResponse

from ..application.services.export_service import render_transcript
from ..dependencies import Services, get_current_profile, get_services
from ..exceptions import create_success_response
from ..schemas.analysis.analysis import AnalysisResultUpdate, HistoryRecord, HistoryResponse
from ..schemas.auth.auth import Profile

router = APIRouter(prefix="/history", tags=["History"])


@router.get("", response_model=HistoryResponse, response_model_by_alias=True)
async def list_history(profile: Profile = Depends(get_current_profile), services: Services = Depends(get_services)):
    return HistoryResponse(data=await services.history.list(profile.email))


@router.get("/{record_id}", response_model=HistoryRecord, response_model_by_alias=True)
async def get_record(record_id: str, profile: Profile = Depends(get_current_profile), services: Services = Depends(get_services)):
    return await services.history.get(profile.email, record_id)


@router.put("/{record_id}", response_model=HistoryResponse, response_model_by_alias=True)
async def replace_result(
    record_id: str,
    body: AnalysisResultUpdate,
    profile: Profile = Depends(get_current_profile),
    services: Services = Depends(get_services),
):
    return HistoryResponse(data=await services.history.replace(profile.email, record_id, body.result))


@router.delete("")
async def clear_history(profile: Profile = Depends(get_current_profile), services: Services = Depends(get_services)):
    await services.history.clear(profile.email)
    return create_success_response({"message": "History cleared"})


@router.get("/{record_id}/transcript", response_class=PlainTextResponse)
async def transcript(record_id: str, profile: Profile = Depends(get_current_profile), services: Services = Depends(get_services)):
    record = await services.history.get(profile.email, record_id)
    return render_transcript(record, profile)

import logging

from fastapi import APIRouter, Depends, File, UploadFile

from ..dependencies import Services, get_current_profile, get_services
from ..schemas.analysis.analysis import HistoryRecord
from ..schemas.auth.auth import Profile

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/analysis", tags=["Analysis"])


@router.post("", response_model=HistoryRecord, response_model_by_alias=True, status_code=201)
async def analyze_slide(
    file: UploadFile = File(...),
    profile: Profile = Depends(get_current_profile),
    services: Services = Depends(get_services),
):
    image_bytes = await file.read()
    mime_type = file.content_type or "application/octet-stream"
    logger.info(f"Analyzing slide '{file.filename}' ({mime_type}, {len(image_bytes)} bytes) for {profile.email}")
    return await services.analysis.analyze_and_record(profile.email, image_bytes, mime_type)

from fastapi import APIRouter, Depends

from milo.core.errors import NotFoundError
from milo.core.security import require_user
from milo.db.users import get_resume_record
from milo.schemas.resume import ResumeRecord

router = APIRouter()


@router.get("/user/profile/resume", response_model=ResumeRecord)
def user_profile_resume(user_id: str = Depends(require_user)):
    record = get_resume_record(user_id)
    if record is None:
        raise NotFoundError("Resume not found")
    return record

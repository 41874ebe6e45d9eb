# lvcert/api/v1/verify.py
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from lvcert.api.deps import get_db
from lvcert.schemas.certificate import VerificationResult
from lvcert.services.verification import verify_certificate

# público: sem token
router = APIRouter()


@router.get("/{code}", response_model=VerificationResult)
def verify(code: str, db: Session = Depends(get_db)):
    return verify_certificate(db, code)

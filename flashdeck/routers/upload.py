from fastapi import APIRouter, File, HTTPException, Request, UploadFile
import structlog

from flashdeck.config import settings
from flashdeck.middleware.rate_limit import upload_limit
from flashdeck.services.extract import ExtractionError, extract_text


logger = structlog.get_logger()

router = APIRouter(prefix="/api", tags=["upload"])


@router.post("/extract-text")
@upload_limit()
async def extract_uploaded_text(request: Request, file: UploadFile = File(...)):
    """Extract plain text from an uploaded TXT, PDF or DOCX document"""
    limit = settings.MAX_UPLOAD_MB * 1024 * 1024
    content = await file.read(limit + 1)
    if len(content) > limit:
        raise HTTPException(
            status_code=413,
            detail=f"File too large. Please upload files smaller than {settings.MAX_UPLOAD_MB}MB.",
        )

    try:
        text = extract_text(file.filename, content)
    except ExtractionError as e:
        logger.warning("text_extraction_failed", filename=file.filename, error=str(e))
        raise HTTPException(status_code=e.status_code, detail=str(e))

    return {"filename": file.filename, "chars": len(text), "text": text}

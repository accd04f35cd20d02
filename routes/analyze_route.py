"""FastAPI route for one-shot page analysis."""

import base64
import binascii
from typing import Optional

from fastapi import APIRouter, HTTPException, Request
from pydantic import BaseModel, Field, field_validator

from controllers.agent_controller import error_detail
from controllers.analyze_controller import ANALYSIS_FAILED, analyze_page
from services.agent.page_analyzer import IMAGE_MIME_TYPES, strip_data_url

router = APIRouter(prefix="/api/v1/analyze")


class AnalyzeRequest(BaseModel):
	prompt: str = Field(..., min_length=1, max_length=10000)
	html_content: str = Field(..., min_length=1)
	image_base64: str = Field(..., min_length=1)
	image_mime_type: str = "image/png"

	@field_validator("image_base64")
	@classmethod
	def _check_base64(cls, value: str) -> str:
		try:
			base64.b64decode(strip_data_url(value), validate=True)
		except (binascii.Error, ValueError) as exc:
			raise ValueError("image_base64 must be a valid base64 string") from exc
		return value

	@field_validator("image_mime_type")
	@classmethod
	def _check_mime_type(cls, value: str) -> str:
		if value.lower() not in IMAGE_MIME_TYPES:
			raise ValueError(f"image_mime_type must be one of {', '.join(IMAGE_MIME_TYPES)}")
		return value


class AnalyzeResponse(BaseModel):
	success: bool
	result: Optional[str] = None
	error: Optional[str] = None
	tokens_used: Optional[int] = None


@router.post("", response_model=AnalyzeResponse)
async def analyze_route(request: Request, payload: AnalyzeRequest):
	try:
		return await analyze_page(
			request,
			payload.prompt,
			payload.html_content,
			payload.image_base64,
			payload.image_mime_type,
		)
	except HTTPException:
		raise
	except Exception as exc:
		raise HTTPException(status_code=500, detail=error_detail(f"Analysis failed: {exc}", ANALYSIS_FAILED))

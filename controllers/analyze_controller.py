"""Handler for one-shot page analysis requests."""

from __future__ import annotations

from dataclasses import asdict
from typing import Any, Dict

from fastapi import HTTPException, Request

from controllers.agent_controller import error_detail
from services.agent.page_analyzer import PageAnalyzer

ANALYSIS_FAILED = "ANALYSIS_FAILED"


async def analyze_page(
	request: Request,
	prompt: str,
	html_content: str,
	image_base64: str,
	image_mime_type: str,
) -> Dict[str, Any]:
	"""Analyze a page and return the result, or raise a 500 with ANALYSIS_FAILED."""
	analyzer: PageAnalyzer = request.app.state.page_analyzer
	result = await analyzer.analyze(prompt, html_content, image_base64, image_mime_type)
	if not result.success:
		raise HTTPException(status_code=500, detail=error_detail(result.error or "Analysis failed", ANALYSIS_FAILED))
	return asdict(result)

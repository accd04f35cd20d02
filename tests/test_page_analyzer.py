import pytest

from conftest import FakeLLMClient
from services.agent.errors import ModelCallError
from services.agent.page_analyzer import PageAnalyzer, strip_data_url

PNG = "iVBORw0KGgo="


def test_strip_data_url():
    assert strip_data_url(f"data:image/png;base64,{PNG}") == PNG
    assert strip_data_url(f"  {PNG} ") == PNG


@pytest.mark.asyncio
async def test_analyze_sends_prompt_markup_and_image_in_one_message():
    llm = FakeLLMClient(["The page shows a login form."])
    result = await PageAnalyzer(llm).analyze("What is on this page?", "<form id='login'></form>", PNG, "image/JPEG")

    assert result.success is True
    assert result.result == "The page shows a login form."
    assert result.error is None
    assert result.tokens_used == 15

    (call,) = llm.calls
    assert call["response_schema"] is None
    (sent,) = call["messages"]
    assert sent.role == "user"
    assert "User's Request:\nWhat is on this page?" in sent.text
    assert "```html\n<form id='login'></form>\n```" in sent.text
    assert sent.image == f"data:image/jpeg;base64,{PNG}"


@pytest.mark.asyncio
async def test_analyze_model_failure_is_reported_not_raised():
    llm = FakeLLMClient(error=ModelCallError("upstream timeout"))
    result = await PageAnalyzer(llm).analyze("Summarize", "<p>hi</p>", PNG)

    assert result.success is False
    assert result.result is None
    assert result.error == "Analysis failed: upstream timeout"


@pytest.mark.asyncio
async def test_analyze_rejects_empty_image_payload():
    llm = FakeLLMClient(["unused"])
    result = await PageAnalyzer(llm).analyze("Summarize", "<p>hi</p>", "data:image/png;base64,")

    assert result.success is False
    assert result.error == "Invalid base64 image data"
    assert llm.calls == []


def test_analyzer_requires_client():
    with pytest.raises(ValueError):
        PageAnalyzer(None)

"""Prompt builders for the browser navigation agent."""

from services.agent.action_schema import ACTION_CAPABILITIES


def _capabilities_block() -> str:
    return "\n".join(f"- {cap.signature}: {cap.description}" for cap in ACTION_CAPABILITIES)


def build_system_prompt(goal: str, session_id: str, current_url: str) -> str:
    """Return the system prompt describing the goal, vocabulary and output rules."""
    return (
        "You are an AI assistant helping elderly users navigate websites step-by-step.\n\n"
        f"Your goal: {goal}\n"
        f"Current page: {current_url}\n"
        f"Session ID: {session_id}\n\n"
        "You can use the following browser actions:\n"
        f"{_capabilities_block()}\n\n"
        "Prefer acting over waiting. Only wait if you clicked something that triggers a loading state, "
        "an animation must finish before the next action, or there is an explicit time-based requirement.\n\n"
        "Use XPath expressions, NOT CSS selectors, to locate elements. Examples:\n"
        "- '//button[@id=\"submit\"]' - button with id=\"submit\"\n"
        "- '//a[@href=\"/login\"]' - link with href=\"/login\"\n"
        "- '//input[@type=\"text\" and @name=\"email\"]' - text input named email\n"
        "- '//div[@class=\"button\" and contains(text(), \"Click me\")]' - div containing text\n\n"
        "CRITICAL INSTRUCTIONS:\n"
        "1. The full page content is ALREADY provided to you. Do NOT ask for an updated page state.\n"
        "2. Analyze the page directly and decide the next action(s) immediately.\n"
        "3. If you cannot find the element you need, use a message action to explain what you are "
        "looking for.\n"
        "4. Use complete only when the user's goal is fully accomplished.\n\n"
        "OUTPUT FORMAT: respond with a single JSON object and nothing else:\n"
        '{"actions": [{"action_type": "click", "xpath": "//a[@id=\\"nav-cart\\"]", "reasoning": "..."}]}\n'
        'Valid action_type values: "click" (requires "xpath"), "wait" (requires integer "duration"), '
        '"message" (requires "message"), "complete" (requires "message"). '
        '"reasoning" is optional for every action.'
    )


def build_history_prompt(lines: list) -> str:
    return "Previous actions:\n" + "\n".join(lines)


def build_page_prompt(page_context: str) -> str:
    return f"Current page state:\n{page_context}"


def build_goal_prompt(goal: str) -> str:
    return f"User goal: {goal}"


def build_analysis_prompt(request: str, html_content: str) -> str:
    """Prompt for a one-shot question about a page screenshot plus its markup."""
    return (
        "You are analyzing a webpage. The user has provided:\n\n"
        "1. A screenshot of the page\n"
        "2. The HTML content of the page\n"
        "3. A specific request/question\n\n"
        f"User's Request:\n{request}\n\n"
        f"HTML Content:\n```html\n{html_content}\n```\n\n"
        "Please analyze the screenshot in combination with the HTML content and respond to the user's request."
    )

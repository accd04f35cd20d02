from models.actions import ClickAction, CompleteAction, MessageAction, WaitAction
from services.agent.response_parser import (
    NO_ACTION_MESSAGE,
    extract_actions,
    parse_call_actions,
    parse_structured_actions,
)


def test_structured_wait():
    actions = extract_actions('{"actions":[{"action_type":"wait","duration":2,"reasoning":"r"}]}')
    assert len(actions) == 1
    assert isinstance(actions[0], WaitAction)
    assert actions[0].duration == 2
    assert actions[0].reasoning == "r"


def test_structured_skips_item_without_action_type():
    raw = '{"actions":[{"xpath":"//a"},{"action_type":"click","xpath":"//button[@id=\\"ok\\"]"}]}'
    actions = extract_actions(raw)
    assert len(actions) == 1
    assert isinstance(actions[0], ClickAction)
    assert actions[0].xpath == '//button[@id="ok"]'


def test_structured_skips_unknown_and_invalid_items(caplog):
    raw = (
        '{"actions":['
        '{"action_type":"scroll","xpath":"//div"},'
        '{"action_type":"wait","duration":500},'
        '"not an object",'
        '{"action_type":"message","message":"Looking for the search box"}'
        "]}"
    )
    with caplog.at_level("WARNING"):
        actions = extract_actions(raw)
    assert actions == [MessageAction(message="Looking for the search box")]
    assert sum("Skipping" in r.getMessage() for r in caplog.records) == 3


def test_structured_keeps_order_and_all_actions():
    raw = (
        '{"actions":['
        '{"action_type":"click","xpath":"//a[1]","reasoning":null},'
        '{"action_type":"complete","message":"All done","reasoning":null},'
        '{"action_type":"message","message":"Bye","reasoning":null}'
        "]}"
    )
    actions = extract_actions(raw)
    assert [a.action_type for a in actions] == ["click", "complete", "message"]


def test_structured_accepts_code_fence_and_prose():
    fenced = '```json\n{"actions":[{"action_type":"wait","duration":1}]}\n```'
    assert parse_structured_actions(fenced) == [WaitAction(duration=1)]
    chatty = 'Sure! Here you go: {"actions":[{"action_type":"wait","duration":4}]} Hope that helps.'
    assert parse_structured_actions(chatty) == [WaitAction(duration=4)]


def test_structured_without_actions_array_returns_empty():
    assert parse_structured_actions('{"action_type":"wait","duration":1}') == []
    assert parse_structured_actions("[1, 2]") == []
    assert parse_structured_actions("not json") == []


def test_fallback_complete_preempts_other_calls():
    raw = "ClickElement('//a[@id=\"cart\"]', 'open cart') and then Complete('Order placed')"
    actions = extract_actions(raw)
    assert len(actions) == 1
    assert isinstance(actions[0], CompleteAction)
    assert actions[0].message == "Order placed"
    assert actions[0].reasoning == raw[:200]


def test_fallback_click_with_embedded_quotes():
    actions = parse_call_actions("""ClickElement('//button[@id="submit"]', 'Submit the form')""")
    assert actions == [ClickAction(xpath='//button[@id="submit"]', reasoning="Submit the form")]

    actions = parse_call_actions('''click(xpath="//a[text()='Home']", reasoning="go home")''')
    assert actions == [ClickAction(xpath="//a[text()='Home']", reasoning="go home")]


def test_fallback_orders_by_position_in_text():
    raw = "First Message('Hold on') then ClickElement(selector='//a') and Wait(3)"
    actions = parse_call_actions(raw)
    assert [a.action_type for a in actions] == ["message", "click", "wait"]
    assert actions[1].reasoning == raw[:200]
    assert actions[2] == WaitAction(duration=3, reasoning="Waiting as requested")


def test_fallback_is_case_insensitive_and_clips_long_text():
    actions = parse_call_actions(f"message('{'m' * 1500}')")
    assert len(actions) == 1
    assert len(actions[0].message) == 1000


def test_fallback_clamps_wait():
    assert parse_call_actions("Wait(900, 'slow page')") == [WaitAction(duration=300, reasoning="slow page")]


def test_empty_output_synthesizes_message(caplog):
    with caplog.at_level("WARNING"):
        actions = extract_actions("")
    assert len(actions) == 1
    assert isinstance(actions[0], MessageAction)
    assert actions[0].message == NO_ACTION_MESSAGE
    assert actions[0].reasoning.endswith("Response preview: (empty)")
    assert any("No actions extracted" in r.getMessage() for r in caplog.records)


def test_unparseable_output_synthesizes_message():
    raw = "I think the user should probably look at the page more carefully."
    actions = extract_actions(raw)
    assert len(actions) == 1
    assert actions[0].message == NO_ACTION_MESSAGE
    assert raw in actions[0].reasoning


def test_structured_all_invalid_falls_through_to_synthesized_message():
    actions = extract_actions('{"actions":[{"action_type":"wait","duration":999}]}')
    assert [a.action_type for a in actions] == ["message"]
    assert actions[0].message == NO_ACTION_MESSAGE


def test_deeply_nested_output_falls_back_to_message():
    for raw in ("[" * 1100, '{"a":' * 5000 + "1" + "}" * 5000):
        actions = extract_actions(raw)
        assert len(actions) == 1
        assert isinstance(actions[0], MessageAction)
        assert actions[0].message == NO_ACTION_MESSAGE

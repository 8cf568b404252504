"""Tests for action dispatch."""

import pytest

from helpdesk_automation.actions.executor import ActionExecutor
from helpdesk_automation.models.execution import ExecutionContext
from helpdesk_automation.models.rule import Action

from tests.fakes import RecordingHandler


@pytest.fixture
def context() -> ExecutionContext:
    return ExecutionContext(
        tenant_id="tenant-a",
        message_data={"message_id": "msg_1", "content": "hi", "sender": "a@b.c", "channel": "email"},
        rule_id="r1",
        rule_name="Rule r1",
    )


@pytest.mark.asyncio
async def test_one_result_per_action_in_input_order(context: ExecutionContext) -> None:
    handler = RecordingHandler(fail_ids={"b"}, raise_ids={"c"}, slow_ids={"d"})
    executor = ActionExecutor([handler], timeout=0.05)
    actions = [
        Action(id="a", type="record"),
        Action(id="b", type="record"),
        Action(id="c", type="record"),
        Action(id="d", type="record"),
        Action(id="e", type="missing"),
        Action(id="f", type="record"),
    ]

    results = await executor.execute_actions(actions, context)

    assert [r.action_id for r in results] == ["a", "b", "c", "d", "e", "f"]
    assert [r.success for r in results] == [True, False, False, False, False, True]
    assert results[2].error == "boom in c"
    assert "timeout" in results[3].error
    assert results[4].error == "unsupported_action_type"
    assert results[4].action_type == "missing"


def test_capabilities() -> None:
    executor = ActionExecutor([RecordingHandler(types=("add_tag", "escalate"))])

    assert executor.can_execute("add_tag") is True
    assert executor.can_execute("webhook") is False
    assert executor.supported_types() == ["add_tag", "escalate"]


def test_later_registration_wins() -> None:
    first = RecordingHandler(types=("record",))
    second = RecordingHandler(types=("record",))
    executor = ActionExecutor([first])

    executor.register(second)

    assert executor._handlers["record"] is second

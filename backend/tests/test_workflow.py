"""Per-idea workflow state machine."""

import pytest

from conftest import FakeTextClient
from shorts_studio.errors import FormatError, ServiceError, WorkflowStateError
from shorts_studio.workflow import (
    ScriptHistory,
    ScriptWorkflow,
    WorkflowState,
    validate_finalize_inputs,
)

FIRST_DRAFT = [
    "**Suggested Narration Styles**\n",
    "1. **Calm:** soft tone *because it fits*\n",
    "2. **Hype:** loud and fast\n---\n",
    "| Timestamp | Action |\n|---|---|\n| 0:00 | Open |",
]
SEO_JSON = '{"title": "Pixel Escape", "description": "Watch till the end", "tags": ["#shorts"]}'


def _workflow(idea, make_orchestrator, text_client, history=None):
    return ScriptWorkflow(idea, make_orchestrator(text_client), history)


def _drafted(idea, make_orchestrator, text_client, history=None):
    workflow = _workflow(idea, make_orchestrator, text_client, history)
    for _ in workflow.draft_script("30 seconds"):
        pass
    return workflow


def test_draft_streams_progressively_and_parses_styles(idea, make_orchestrator):
    workflow = _workflow(idea, make_orchestrator, FakeTextClient(stream_replies=[FIRST_DRAFT]))

    stream = workflow.draft_script("30 seconds", False, "English")
    assert workflow.state == WorkflowState.DRAFTING
    seen = []
    for fragment in stream:
        seen.append(workflow.draft)
        assert workflow.draft.endswith(fragment)

    assert seen[0] == FIRST_DRAFT[0]
    assert workflow.state == WorkflowState.DRAFT_READY
    assert [style.name for style in workflow.narration_styles] == ["Calm", "Hype"]
    assert workflow.selected_style == "Calm"
    assert workflow.scene_table_text.startswith("| Timestamp | Action |")


def test_revision_carries_selected_style_and_keeps_first_suggestions(idea, make_orchestrator):
    text_client = FakeTextClient(
        stream_replies=[FIRST_DRAFT, ["1. **Other:** x\n---\n| Timestamp | Action |\n|---|---|\n| 0:00 | New |"]]
    )
    workflow = _drafted(idea, make_orchestrator, text_client)
    workflow.select_narration_style("Hype")

    with pytest.raises(ValueError):
        workflow.revise_script("   ", "30 seconds")
    assert workflow.state == WorkflowState.DRAFT_READY

    for _ in workflow.revise_script("Make it funnier", "30 seconds", True, "French"):
        assert workflow.state == WorkflowState.REVISING

    assert workflow.state == WorkflowState.DRAFT_READY
    assert "| 0:00 | New |" in workflow.draft
    assert [style.name for style in workflow.narration_styles] == ["Calm", "Hype"]
    request = text_client.calls[1]["messages"][-1]["content"]
    assert '"Hype" style' in request
    assert "Make it funnier" in request
    assert len(workflow.conversation.turns) == 2


def test_unknown_style_is_rejected(idea, make_orchestrator):
    workflow = _drafted(idea, make_orchestrator, FakeTextClient(stream_replies=[FIRST_DRAFT]))
    with pytest.raises(ValueError):
        workflow.select_narration_style("Whisper")
    assert workflow.selected_style == "Calm"


def test_draft_without_style_block_offers_no_styles(idea, make_orchestrator):
    table = "| Timestamp | Action |\n|---|---|\n| 0:00 | Open |"
    workflow = _drafted(idea, make_orchestrator, FakeTextClient(stream_replies=[[table]]))

    assert workflow.narration_styles == []
    assert workflow.selected_style is None
    assert workflow.scene_table_text == table


def test_seo_before_finalize_is_rejected_without_network(idea, make_orchestrator):
    text_client = FakeTextClient(stream_replies=[FIRST_DRAFT])
    workflow = _workflow(idea, make_orchestrator, text_client)

    with pytest.raises(WorkflowStateError):
        workflow.generate_seo()
    assert text_client.calls == []

    for _ in workflow.draft_script("30 seconds"):
        pass
    with pytest.raises(WorkflowStateError):
        workflow.generate_seo()
    assert len(text_client.calls) == 1


def test_finalize_before_draft_is_rejected(idea, make_orchestrator):
    text_client = FakeTextClient()
    workflow = _workflow(idea, make_orchestrator, text_client)

    with pytest.raises(WorkflowStateError):
        workflow.finalize(15)
    with pytest.raises(WorkflowStateError):
        workflow.revise_script("change", "30 seconds")
    assert text_client.calls == []
    assert workflow.state == WorkflowState.IDLE


@pytest.mark.parametrize(
    "seconds, count",
    [(4, None), (61, None), ("abc", None), (None, None), (15, 0), (15, "two"), (15, -3)],
)
def test_finalize_inputs_are_validated(seconds, count):
    with pytest.raises(ValueError):
        validate_finalize_inputs(seconds, count)


def test_finalize_inputs_accept_form_strings():
    assert validate_finalize_inputs("15", "") == (15, None)
    assert validate_finalize_inputs(5, "3") == (5, 3)
    assert validate_finalize_inputs(60.0, 8) == (60, 8)


def test_full_run_appends_history(idea, make_orchestrator):
    history = ScriptHistory()
    text_client = FakeTextClient(
        stream_replies=[FIRST_DRAFT],
        replies=['```json\n[{"scene": 1, "scene_timestamp": "0:00-0:05"}]\n```', SEO_JSON],
    )
    workflow = _drafted(idea, make_orchestrator, text_client, history)

    final = workflow.finalize("20", "2")
    assert final == '[{"scene": 1, "scene_timestamp": "0:00-0:05"}]'
    assert workflow.state == WorkflowState.FINALIZED
    finalize_request = text_client.calls[1]["messages"][1]["content"]
    assert "Suggested Narration Styles" not in finalize_request
    assert "| 0:00 | Open |" in finalize_request

    with pytest.raises(WorkflowStateError):
        workflow.select_narration_style("Hype")
    with pytest.raises(WorkflowStateError):
        workflow.revise_script("again", "30 seconds")

    seo = workflow.generate_seo()
    assert workflow.state == WorkflowState.COMPLETE
    assert seo.title == "Pixel Escape"
    assert len(history) == 1
    item = list(history)[0]
    assert item.idea == idea
    assert item.final_script == final
    assert item.seo == seo

    with pytest.raises(WorkflowStateError):
        workflow.generate_seo()
    assert len(history) == 1


def test_failed_revision_restores_draft_and_recovers(idea, make_orchestrator):
    text_client = FakeTextClient(
        stream_replies=[FIRST_DRAFT, ["half a", RuntimeError("stream reset")], ["| Timestamp | x |"]]
    )
    workflow = _drafted(idea, make_orchestrator, text_client)
    before = workflow.draft

    with pytest.raises(ServiceError):
        for _ in workflow.revise_script("shorter", "30 seconds"):
            pass

    assert workflow.state == WorkflowState.ERROR
    assert isinstance(workflow.error, ServiceError)
    assert workflow.draft == before
    assert workflow.stable_state == WorkflowState.DRAFT_READY
    assert workflow.recover() == WorkflowState.DRAFT_READY
    assert workflow.error is None

    for _ in workflow.revise_script("shorter", "30 seconds"):
        pass
    assert workflow.draft == "| Timestamp | x |"


def test_retry_straight_from_error_state(idea, make_orchestrator):
    text_client = FakeTextClient(
        stream_replies=[FIRST_DRAFT],
        replies=[RuntimeError("timeout"), '[{"scene": 1}]'],
    )
    workflow = _drafted(idea, make_orchestrator, text_client)

    with pytest.raises(ServiceError):
        workflow.finalize(15)
    assert workflow.state == WorkflowState.ERROR

    assert workflow.finalize(15) == '[{"scene": 1}]'
    assert workflow.state == WorkflowState.FINALIZED


def test_abandoned_first_draft_returns_to_idle(idea, make_orchestrator):
    workflow = _workflow(idea, make_orchestrator, FakeTextClient(stream_replies=[FIRST_DRAFT, FIRST_DRAFT]))

    stream = workflow.draft_script("30 seconds")
    next(stream)
    stream.close()

    assert workflow.state == WorkflowState.IDLE
    assert workflow.draft == ""
    for _ in workflow.draft_script("30 seconds"):
        pass
    assert workflow.state == WorkflowState.DRAFT_READY


def test_history_is_append_only_snapshot():
    history = ScriptHistory()
    assert len(history) == 0
    assert history.latest_first() == []
    assert not hasattr(history, "remove")


def test_draft_without_scene_table_cannot_be_finalized(idea, make_orchestrator):
    styles_only = ["**Suggested Narration Styles**\n1. **Calm:** soft\n---\n"]
    text_client = FakeTextClient(stream_replies=[styles_only, ["| Timestamp | x |"]])
    workflow = _drafted(idea, make_orchestrator, text_client)

    with pytest.raises(ValueError):
        workflow.finalize(15)
    assert workflow.state == WorkflowState.DRAFT_READY
    assert len(text_client.calls) == 1

    for _ in workflow.revise_script("Add the table", "30 seconds"):
        pass
    assert workflow.scene_table_text == "| Timestamp | x |"


def test_empty_finalize_reply_is_retryable(idea, make_orchestrator):
    text_client = FakeTextClient(stream_replies=[FIRST_DRAFT], replies=["```json\n```", '[{"scene": 1}]'])
    workflow = _drafted(idea, make_orchestrator, text_client)

    with pytest.raises(FormatError):
        workflow.finalize(15)
    assert workflow.state == WorkflowState.ERROR
    assert workflow.stable_state == WorkflowState.DRAFT_READY
    assert workflow.final_script is None

    assert workflow.finalize(15) == '[{"scene": 1}]'
    assert workflow.state == WorkflowState.FINALIZED


def test_input_error_during_seo_returns_to_finalized(idea, make_orchestrator, monkeypatch):
    text_client = FakeTextClient(stream_replies=[FIRST_DRAFT], replies=['[{"scene": 1}]', SEO_JSON])
    workflow = _drafted(idea, make_orchestrator, text_client)
    workflow.finalize(15)

    original = workflow.orchestrator.generate_seo

    def _rejecting(final_script, idea):
        raise ValueError("bad template input")

    monkeypatch.setattr(workflow.orchestrator, "generate_seo", _rejecting)
    with pytest.raises(ValueError):
        workflow.generate_seo()
    assert workflow.state == WorkflowState.FINALIZED

    monkeypatch.setattr(workflow.orchestrator, "generate_seo", original)
    assert workflow.generate_seo().title == "Pixel Escape"
    assert workflow.state == WorkflowState.COMPLETE


def test_stream_dropped_before_first_fragment_can_be_recovered(idea, make_orchestrator):
    workflow = _workflow(idea, make_orchestrator, FakeTextClient(stream_replies=[FIRST_DRAFT]))

    stream = workflow.draft_script("30 seconds")
    stream.close()
    assert workflow.state == WorkflowState.DRAFTING

    assert workflow.recover() == WorkflowState.IDLE
    for _ in workflow.draft_script("30 seconds"):
        pass
    assert workflow.state == WorkflowState.DRAFT_READY


def test_revise_without_conversation_is_rejected(idea, make_orchestrator):
    text_client = FakeTextClient()
    workflow = _workflow(idea, make_orchestrator, text_client)
    workflow.state = WorkflowState.DRAFT_READY
    workflow._stable = WorkflowState.DRAFT_READY

    with pytest.raises(WorkflowStateError):
        workflow.revise_script("shorter", "30 seconds")
    assert workflow.state == WorkflowState.DRAFT_READY
    assert text_client.calls == []

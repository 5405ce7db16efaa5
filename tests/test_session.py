from datetime import datetime, timezone

import pytest

from flowlogic.errors import FormSessionError
from flowlogic.session import FormSession


def _vip_flow():
    return {
        "id": "event",
        "nodes": [
            {
                "id": "A",
                "data": {
                    "label": "Start",
                    "questions": [{"id": "vip", "type": "single_choice", "label": "VIP?", "options": ["yes", "no"]}],
                    "logic": [
                        {
                            "id": "to-c",
                            "conditions": [{"fieldId": "vip", "operator": "equals", "value": "yes"}],
                            "actions": {"jumpToStep": "stepC"},
                        }
                    ],
                },
            },
            {"id": "stepB", "data": {"label": "Regular", "questions": [{"id": "seat", "label": "Seat"}]}},
            {"id": "stepC", "data": {"label": "VIP lounge", "questions": [{"id": "drink", "label": "Drink"}]}},
        ],
    }


def test_jump_then_back():
    session = FormSession(_vip_flow(), {"vip": "yes"})
    assert session.current_step.id == "A"
    assert session.can_go_back is False

    result = session.next()
    assert result.action == "jump"
    assert result.step_id == "stepC"
    assert session.history == ("A", "stepC")

    back = session.previous()
    assert back is not None and back.id == "A"
    assert session.history == ("A",)


def test_no_jump_advances_linearly():
    session = FormSession(_vip_flow(), {"vip": "no"})
    result = session.next()
    assert result.action == "advance"
    assert result.step_id == "stepB"
    assert session.progress() == (2, 3)


def test_jump_to_hidden_target_is_skipped():
    flow = _vip_flow()
    flow["nodes"][0]["data"]["logic"].append({"conditions": [], "actions": {"hideStep": "stepC"}})
    session = FormSession(flow, {"vip": "yes"})
    result = session.next()
    assert result.action == "advance"
    assert result.step_id == "stepB"


def test_first_rule_with_visible_target_wins():
    flow = _vip_flow()
    flow["nodes"][0]["data"]["logic"] = [
        {"conditions": [], "actions": {"jumpToStep": "missing"}},
        {"conditions": [], "actions": {"jumpToStep": "stepC"}},
        {"conditions": [], "actions": {"jumpToStep": "stepB"}},
    ]
    session = FormSession(flow)
    assert session.next().step_id == "stepC"


def test_required_field_keeps_session_on_step():
    flow = _vip_flow()
    flow["nodes"][0]["data"]["questions"][0]["required"] = True
    session = FormSession(flow)
    result = session.next()
    assert result.action == "stay"
    assert result.step_id == "A"
    assert result.errors == {"vip": "VIP? is required"}
    assert session.history == ("A",)

    session.set_value("vip", "no")
    assert session.next().moved


def test_hidden_required_field_is_not_validated():
    flow = _vip_flow()
    flow["nodes"][1]["data"]["questions"][0]["required"] = True
    flow["nodes"][0]["data"]["logic"].append({"conditions": [], "actions": {"hideFields": ["seat"]}})
    session = FormSession(flow, {"vip": "no"})
    session.next()
    assert session.current_step.id == "stepB"
    assert session.validate_current_step() == {}


def test_logic_required_field_is_validated():
    flow = _vip_flow()
    flow["nodes"][0]["data"]["logic"].append({"conditions": [], "actions": {"requireFields": ["vip"]}})
    session = FormSession(flow)
    assert session.next().action == "stay"


def test_submit_on_last_visible_step_and_payload():
    session = FormSession(_vip_flow(), {"vip": "yes"})
    session.next()
    session.set_value("drink", "tea")
    result = session.next()
    assert result.action == "submit"
    assert session.submitted is True

    now = datetime(2024, 1, 1, tzinfo=timezone.utc)
    payload = session.submission(now=now)
    assert payload.flow_id == "event"
    assert payload.submitted_at == now
    assert [(r.node_id, r.question_id, r.value) for r in payload.responses] == [
        ("A", "vip", "yes"),
        ("stepC", "drink", "tea"),
    ]
    dumped = payload.model_dump(by_alias=True)
    assert dumped["responses"][0]["questionId"] == "vip"


def test_session_is_closed_after_submit():
    session = FormSession({"id": "one", "nodes": [{"id": "only"}]})
    assert session.next().action == "submit"
    with pytest.raises(FormSessionError):
        session.next()
    with pytest.raises(FormSessionError):
        session.previous()
    with pytest.raises(FormSessionError):
        session.set_value("x", 1)


def test_submission_before_submit_raises():
    with pytest.raises(FormSessionError):
        FormSession(_vip_flow()).submission()


def test_previous_is_disabled_on_first_step():
    session = FormSession(_vip_flow())
    assert session.previous() is None
    assert session.current_step.id == "A"


def test_empty_flow_cannot_navigate():
    session = FormSession({"id": "empty", "nodes": []})
    assert session.current_step is None
    assert session.progress() == (0, 0)
    with pytest.raises(FormSessionError):
        session.next()


def _looped_flow():
    return {
        "id": "party",
        "nodes": [
            {"id": "count", "data": {"questions": [{"id": "guests", "type": "number", "label": "Guests"}]}},
            {
                "id": "guest",
                "data": {
                    "label": "Guest",
                    "questions": [{"id": "name", "label": "Name"}],
                    "loop": {
                        "enabled": True,
                        "sourceFieldId": "guests",
                        "minCount": 0,
                        "maxCount": 3,
                        "labelTemplate": "Guest {index}",
                    },
                },
            },
            {"id": "done", "data": {"label": "Done"}},
        ],
    }


def test_loop_steps_are_walked_in_order():
    session = FormSession(_looped_flow(), {"guests": 2})
    assert [s.id for s in session.visible_steps] == ["count", "guest_loop_0", "guest_loop_1", "done"]

    assert session.next().step_id == "guest_loop_0"
    assert session.current_step.label == "Guest 1"
    session.set_value("name_loop_0", "Ann")
    assert session.next().step_id == "guest_loop_1"
    session.set_value("name_loop_1", "Bob")
    assert session.next().step_id == "done"
    assert session.next().action == "submit"

    responses = session.submission().responses
    assert [(r.node_id, r.question_id, r.value) for r in responses] == [
        ("count", "guests", 2),
        ("guest", "name_loop_0", "Ann"),
        ("guest", "name_loop_1", "Bob"),
    ]


def test_current_step_follows_changed_answers():
    session = FormSession(_looped_flow(), {"guests": 2})
    session.next()
    session.next()
    assert session.current_step.id == "guest_loop_1"

    # Fewer guests: the vanished instance falls back to the last one of the same loop.
    session.set_value("guests", 1)
    assert session.current_step.id == "guest_loop_0"


def test_values_property_returns_a_copy():
    session = FormSession(_vip_flow(), {"vip": "no"})
    session.values["vip"] = "yes"
    assert session.values == {"vip": "no"}

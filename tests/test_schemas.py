from flowlogic.schemas.flow import Flow, LogicActions, LogicCondition, Question


def test_legacy_question_types_are_normalized():
    assert Question.model_validate({"id": "a", "type": "text_input"}).type == "text"
    assert Question.model_validate({"id": "a", "type": "Phone_Input"}).type == "phone"
    assert Question.model_validate({"id": "a", "type": None}).type == "text"
    assert Question.model_validate({"id": "a", "type": "single_choice"}).type == "single_choice"


def test_plain_string_options():
    q = Question.model_validate({"id": "a", "options": ["red", {"value": "blue", "label": "Blue"}, {"value": 3}]})
    assert [(o.value, o.label) for o in q.options] == [("red", "red"), ("blue", "Blue"), ("3", "3")]


def test_condition_aliases_and_connection_shape():
    c = LogicCondition.model_validate({"fieldId": "x", "operator": "equals", "value": 1, "logicOperator": "or"})
    assert c.field_id == "x"
    assert c.logic_operator == "OR"
    assert LogicCondition.model_validate({"field": "y", "operator": "is_empty"}).field_id == "y"
    assert LogicCondition.model_validate({"fieldId": "z", "logicOperator": ""}).logic_operator is None


def test_action_targets():
    a = LogicActions.model_validate({"jumpToStep": "  ", "showFields": "one", "showField": ["two", "one"]})
    assert a.jump_to_step is None
    assert a.show_fields == ["one", "two"]
    assert a.hide_fields == []


def test_flow_round_trips_to_wire_names():
    flow = Flow.model_validate(
        {
            "id": "f",
            "status": "Published",
            "version": None,
            "nodes": [
                {
                    "id": "s",
                    "data": {
                        "questions": [{"id": "q", "type": "number"}],
                        "loop": {"enabled": True, "sourceFieldId": "q", "minCount": "", "labelTemplate": "N {index}"},
                        "logic": None,
                    },
                    "connections": [{"targetNodeId": "t", "condition": {"field": "q", "operator": "not_empty"}}],
                    "customUiFlag": True,
                }
            ],
        }
    )
    assert flow.status == "published"
    assert flow.version == 0
    node = flow.nodes[0]
    assert node.is_step
    assert node.data.loop.min_count is None
    assert node.connections[0].condition.field_id == "q"

    doc = flow.to_json()
    assert doc["nodes"][0]["data"]["loop"]["sourceFieldId"] == "q"
    assert doc["nodes"][0]["connections"][0]["targetNodeId"] == "t"
    assert doc["nodes"][0]["customUiFlag"] is True
    assert "minCount" not in doc["nodes"][0]["data"]["loop"]


def test_find_question():
    flow = Flow.model_validate({"nodes": [{"id": "a", "data": {"questions": [{"id": "q1"}]}}, {"id": "b", "type": "note"}]})
    node, q = flow.find_question("q1")
    assert node.id == "a" and q.id == "q1"
    assert flow.find_question("nope") is None
    assert [n.id for n in flow.step_nodes()] == ["a"]
    assert flow.find_node("b").is_step is False


def test_null_scalars_fall_back_to_defaults():
    flow = Flow.model_validate(
        {
            "id": None,
            "title": None,
            "version": None,
            "nodes": [
                {
                    "id": "A",
                    "type": None,
                    "data": {
                        "label": None,
                        "description": None,
                        "questions": [
                            {
                                "id": "q",
                                "label": None,
                                "required": None,
                                "placeholder": None,
                                "options": [{"value": None, "label": None}],
                                "validation": [{"type": None, "message": None}],
                            }
                        ],
                        "logic": [{"id": None, "conditions": [{"fieldId": None, "field": "q", "operator": None}]}],
                        "loop": {"enabled": None, "minCount": None, "maxCount": None},
                    },
                    "connections": [{"targetNodeId": None}],
                }
            ],
            "settings": {"showProgressBar": None},
        }
    )
    assert flow.id == "" and flow.title == ""
    node = flow.nodes[0]
    assert node.is_step
    assert node.data.label == ""
    q = node.data.questions[0]
    assert (q.label, q.required, q.placeholder) == ("", False, None)
    assert q.options[0].value == ""
    assert q.validation[0].type == "" and q.validation[0].message == ""
    cond = node.data.logic[0].conditions[0]
    assert (cond.field_id, cond.operator) == ("q", "equals")
    assert node.data.loop.enabled is False
    assert node.data.loop.min_count is None
    assert node.connections[0].target_node_id == ""
    assert flow.settings.show_progress_bar is True


def test_engine_accepts_documents_with_nulls():
    from flowlogic.engine import evaluate_step_visibility, get_visible_steps

    doc = {"nodes": [{"id": "A", "data": {"label": None, "questions": [{"id": "q", "required": None}]}}]}
    assert evaluate_step_visibility("A", doc, {}) is True
    assert [s.id for s in get_visible_steps(doc, {})] == ["A"]

import copy

from flowlogic.diff import compare_flow_versions, diff_summary


def _flow():
    return {
        "id": "f",
        "title": "Survey",
        "description": "About you",
        "theme": {"id": "default"},
        "nodes": [
            {
                "id": "s1",
                "data": {
                    "label": "Contact",
                    "questions": [
                        {"id": "name", "label": "Name", "required": True},
                        {"id": "email", "type": "email", "label": "Email"},
                    ],
                },
            },
            {"id": "s2", "data": {"label": "Extra", "questions": []}},
        ],
    }


def test_identical_flows_have_no_differences():
    result = compare_flow_versions(_flow(), _flow())
    assert result.has_differences is False
    assert diff_summary(result) == "No changes"


def test_never_published_is_a_single_addition():
    result = compare_flow_versions(_flow(), None)
    assert len(result.differences) == 1
    assert result.differences[0].type == "added"
    assert result.differences[0].path == "entire_flow"


def test_field_changes_are_reported_per_attribute():
    draft = _flow()
    draft["nodes"][0]["data"]["questions"][0]["label"] = "Full name"
    draft["nodes"][0]["data"]["questions"][1]["required"] = True
    result = compare_flow_versions(draft, _flow())
    paths = [d.path for d in result.differences]
    assert paths == ["nodes[0].data.questions[0].label", "nodes[0].data.questions[1].required"]
    assert all(d.type == "modified" and d.section == "fields" for d in result.differences)
    assert result.differences[0].old_value == "Name"
    assert result.differences[0].new_value == "Full name"


def test_placeholder_none_and_empty_are_the_same():
    draft = _flow()
    draft["nodes"][0]["data"]["questions"][0]["placeholder"] = ""
    assert compare_flow_versions(draft, _flow()).has_differences is False


def test_added_and_removed_steps_and_fields():
    draft = _flow()
    draft["nodes"].append({"id": "s3", "data": {"label": "Thanks"}})
    draft["nodes"][0]["data"]["questions"].pop()
    result = compare_flow_versions(draft, _flow())
    kinds = [(d.type, d.section) for d in result.differences]
    assert ("added", "steps") in kinds
    assert ("removed", "fields") in kinds
    assert diff_summary(result) == "1 added, 2 modified, 1 removed"


def test_logic_loop_theme_settings_and_description():
    draft = _flow()
    draft["description"] = "Changed"
    draft["theme"] = {"id": "dark"}
    draft["settings"] = {"showProgressBar": False}
    draft["nodes"][1]["data"]["loop"] = {"enabled": True, "sourceFieldId": "name"}
    draft["nodes"][0]["data"]["logic"] = [{"actions": {"hideStep": "s2"}}]
    published = copy.deepcopy(_flow())
    sections = sorted({d.section for d in compare_flow_versions(draft, published).differences})
    assert sections == ["description", "logic", "settings", "theme"]


def test_loop_setting_change_inside_enabled_loop():
    pub = _flow()
    pub["nodes"][1]["data"]["loop"] = {"enabled": True, "sourceFieldId": "name", "maxCount": 3}
    draft = copy.deepcopy(pub)
    draft["nodes"][1]["data"]["loop"]["maxCount"] = 4
    [d] = compare_flow_versions(draft, pub).differences
    assert d.path == "nodes[1].data.loop.maxCount"
    assert (d.old_value, d.new_value) == (3, 4)

"""
Tests for the form builder: pure transitions and the FormBuilder state machine.
"""

from dataclasses import replace
from datetime import datetime, timezone

import pytest

from formkit.builder import BuilderSession, FormBuilder, transitions
from formkit.field_types import UnknownFieldTypeError, create_field
from formkit.model import Form, FormStatus, RuleKind


# =============================================================================
# Pure transitions
# =============================================================================

class TestTransitions:

    def test_insert_records_history_and_selects(self):
        session = BuilderSession()
        field = create_field("text", {"id": "a"})
        after = transitions.insert_field(session, field)
        assert after.form.field_ids() == ["a"]
        assert after.selected_field_id == "a"
        assert after.undo_stack == (session.form,)
        assert session.form.fields == []

    def test_noop_returns_same_session(self):
        session = BuilderSession()
        assert transitions.update_field(session, "missing", {"label": "x"}) is session
        assert transitions.remove_field(session, "missing") is session
        assert transitions.update_form(session, {"id": "other", "status": "archived"}) is session
        assert transitions.undo(session) is session
        assert transitions.redo(session) is session

    def test_history_cap(self):
        session = BuilderSession()
        for index in range(5):
            session = transitions.update_form(session, {"title": f"T{index}"}, max_history=3)
        assert len(session.undo_stack) == 3
        assert session.undo_stack[0].title == "T1"

    def test_zero_cap_is_unbounded(self):
        session = BuilderSession()
        for index in range(5):
            session = transitions.update_form(session, {"title": f"T{index}"}, max_history=0)
        assert len(session.undo_stack) == 5

    def test_new_mutation_clears_redo(self):
        session = transitions.update_form(BuilderSession(), {"title": "A"})
        session = transitions.undo(session)
        assert session.can_redo
        session = transitions.update_form(session, {"title": "B"})
        assert not session.can_redo

    def test_set_status_stamps_publication(self):
        when = datetime(2024, 1, 1, tzinfo=timezone.utc)
        session = transitions.set_status(BuilderSession(), FormStatus.PUBLISHED, now=when)
        assert session.form.status == FormStatus.PUBLISHED
        assert session.form.published_at == when

    def test_insert_refuses_taken_id(self):
        session = transitions.insert_field(BuilderSession(), create_field("text", {"id": "a"}))
        assert transitions.insert_field(session, create_field("number", {"id": "a"})) is session

    def test_set_form_refuses_duplicate_ids(self):
        session = BuilderSession()
        twins = Form(fields=[create_field("text", {"id": "a"}), create_field("text", {"id": "a"})])
        assert transitions.set_form(session, twins) is session

    def test_select_ignored_while_previewing(self):
        session = transitions.insert_field(BuilderSession(), create_field("text", {"id": "a"}))
        previewing = transitions.toggle_preview(session)
        assert previewing.selected_field_id is None
        assert transitions.select_field(previewing, "a") is previewing

    def test_leaving_preview_keeps_selection(self):
        session = replace(BuilderSession(), preview_mode=True, selected_field_id="a")
        editing = transitions.toggle_preview(session, False)
        assert not editing.preview_mode
        assert editing.selected_field_id == "a"
        assert transitions.toggle_preview(editing, False) is editing

    def test_reset_uses_configured_title(self, settings_override):
        with settings_override("builder.new_form_title", "Blank"):
            assert transitions.reset().form.title == "Blank"


# =============================================================================
# FormBuilder
# =============================================================================

class TestFields:

    def test_add_field(self, builder):
        field_id = builder.add_field("text", {"label": "Name"})
        assert field_id == "field_1"
        assert builder.selected_field_id == field_id
        assert builder.get_selected_field().label == "Name"
        assert builder.can_undo()

    def test_add_unknown_kind_raises(self, builder):
        with pytest.raises(UnknownFieldTypeError):
            builder.add_field("signature")
        assert builder.form.fields == []

    def test_add_field_drops_inapplicable_rules(self, builder):
        field_id = builder.add_field("number", {
            "validationRules": [{"kind": "min", "params": {"min": 1}}, {"kind": "email"}],
        })
        assert builder.form.fields[0].id == field_id
        assert builder.form.fields[0].rule_kinds() == [RuleKind.MIN]

    def test_add_field_after(self, builder):
        first = builder.add_field("text")
        last = builder.add_field("text")
        middle = builder.add_field_after(first, "number")
        top = builder.add_field_after(None, "email")
        assert builder.form.field_ids() == [top, first, middle, last]
        assert [f.order for f in builder.form.fields] == [0, 1, 2, 3]

    def test_update_field(self, builder):
        field_id = builder.add_field("text")
        assert builder.update_field(field_id, {"label": "Full name", "type": "number", "id": "x"})
        field = builder.form.fields[0]
        assert field.id == field_id
        assert field.label == "Full name"
        assert field.type.value == "text"

    def test_update_field_rejects_inapplicable_rule(self, builder):
        field_id = builder.add_field("text")
        before = builder.form
        assert not builder.update_field(field_id, {"validationRules": [{"kind": "min", "params": {"min": 1}}]})
        assert not builder.update_field(field_id, {"validationRules": [{"kind": "bogus"}]})
        assert builder.form is before

    def test_update_unknown_field(self, builder):
        assert builder.update_field("missing", {"label": "x"}) is False
        assert not builder.can_undo()

    def test_remove_field_strips_conditions_and_selection(self, builder):
        trigger = builder.add_field("text", {"label": "Trigger"})
        dependent = builder.add_field("text", {
            "label": "Dependent",
            "visibilityCondition": {"field": trigger, "operator": "is_not_empty"},
        })
        builder.select_field(trigger)
        assert builder.remove_field(trigger)
        assert builder.form.field_ids() == [dependent]
        assert builder.form.fields[0].visibility_condition is None
        assert builder.form.fields[0].order == 0
        assert builder.selected_field_id is None
        assert builder.remove_field("missing") is False

    def test_reorder_fields(self, builder):
        a = builder.add_field("text")
        b = builder.add_field("number")
        c = builder.add_field("email")
        assert builder.reorder_fields([c, a, b])
        assert builder.form.field_ids() == [c, a, b]
        assert [f.order for f in builder.form.fields] == [0, 1, 2]

    def test_reorder_accepts_fields_and_dicts(self, builder):
        a = builder.add_field("text")
        b = builder.add_field("text")
        fields = builder.form.fields
        assert builder.reorder_fields([fields[1].to_dict(), fields[0]])
        assert builder.form.field_ids() == [b, a]

    @pytest.mark.parametrize("ordered", [[], ["field_1"], ["field_1", "field_1"], ["field_1", "x"]])
    def test_reorder_rejects_non_permutations(self, builder, ordered):
        builder.add_field("text")
        builder.add_field("text")
        before = builder.form
        assert builder.reorder_fields(ordered) is False
        assert builder.form is before

    def test_duplicate_field(self, builder):
        source = builder.add_field("select", {"label": "Country"})
        copy_id = builder.duplicate_field(source)
        assert copy_id == "field_2"
        assert builder.selected_field_id == copy_id
        copy = builder.form.fields[1]
        assert copy.label == "Country (Copy)"
        assert copy.options == builder.form.fields[0].options
        assert builder.duplicate_field("missing") is None

    def test_select_and_preview(self, builder):
        field_id = builder.add_field("text")
        assert builder.select_field(None)
        assert builder.selected_field_id is None
        assert not builder.select_field("missing")
        builder.select_field(field_id)
        assert builder.toggle_preview() is True
        assert builder.session.mode == "previewing"
        assert builder.selected_field_id is None
        assert builder.select_field(field_id) is False
        assert builder.selected_field_id is None
        assert builder.toggle_preview() is False
        assert builder.select_field(field_id)
        assert builder.selected_field_id == field_id

    def test_add_field_with_taken_id_gets_fresh_id(self, builder):
        first = builder.add_field("text", {"id": "a"})
        second = builder.add_field("text", {"id": "a"})
        assert first == "a"
        assert second == "field_1"
        assert builder.form.field_ids() == ["a", "field_1"]
        assert builder.remove_field("a")
        assert builder.form.field_ids() == ["field_1"]

    def test_update_field_rejects_duplicate_option_values(self, builder):
        field_id = builder.add_field("select", {"label": "Pick"})
        before = builder.form
        assert not builder.update_field(field_id, {"options": [{"value": "x"}, {"value": "x"}]})
        assert builder.form is before
        assert builder.update_field(field_id, {"options": [{"value": "x"}, {"value": "y"}]})
        assert builder.form.fields[0].option_values() == ["x", "y"]


class TestForm:

    def test_update_form_ignores_protected_keys(self, builder):
        form_id = builder.form.id
        assert builder.update_form({"title": "Survey", "id": "x", "status": "archived", "fields": []})
        assert builder.form.title == "Survey"
        assert builder.form.id == form_id
        assert builder.form.status == FormStatus.DRAFT
        assert builder.update_form({"id": "x"}) is False

    def test_update_settings_merges(self, builder):
        builder.update_settings({"theme": "dark"})
        assert builder.form.settings["theme"] == "dark"
        assert builder.form.settings["submitText"] == "Submit"

    def test_set_form_is_undoable(self, builder, contact_form):
        original = builder.form
        builder.set_form(contact_form)
        assert builder.form.id == "form_contact"
        assert [f.order for f in builder.form.fields] == [0, 1, 2, 3]
        assert builder.undo()
        assert builder.form == original

    def test_set_form_rejects_duplicate_ids(self, builder):
        original = builder.form
        twins = Form(fields=[create_field("text", {"id": "a"}), create_field("email", {"id": "a"})])
        assert builder.set_form(twins) is False
        assert builder.form is original
        assert not builder.can_undo()

    def test_reset_clears_history(self, builder):
        builder.add_field("text")
        builder.reset()
        assert builder.form.fields == []
        assert not builder.can_undo()


class TestHistory:

    def test_undo_redo_round_trip(self, builder):
        builder.add_field("text")
        builder.add_field("number")
        after = builder.form
        assert builder.undo()
        assert builder.form.field_ids() == ["field_1"]
        assert builder.redo()
        assert builder.form == after

    def test_undo_clears_stale_selection(self, builder):
        builder.add_field("text")
        assert builder.selected_field_id == "field_1"
        builder.undo()
        assert builder.selected_field_id is None

    def test_exhausted_history(self, builder):
        assert builder.undo() is False
        assert builder.redo() is False

    def test_builder_history_cap(self, id_factory):
        builder = FormBuilder(id_factory=id_factory, max_history=2)
        for _ in range(4):
            builder.add_field("text")
        assert builder.undo() and builder.undo()
        assert builder.undo() is False
        assert len(builder.form.fields) == 2


class TestPublishing:

    def test_publish_valid_form(self, builder):
        builder.add_field("text", {"label": "Name"})
        assert builder.publish_form()
        assert builder.form.status == FormStatus.PUBLISHED
        assert builder.form.published_at is not None
        assert "publish" not in builder.errors

    def test_choice_without_options_cannot_publish(self, builder):
        field_id = builder.add_field("select", {"label": "Country"})
        builder.update_field(field_id, {"options": []})
        assert builder.publish_form() is False
        assert builder.form.status == FormStatus.DRAFT
        assert builder.errors["publish"] == ["Field 'Country' needs at least one option"]

    def test_empty_form_cannot_publish(self, builder):
        assert builder.publish_form() is False
        assert "Form has no fields" in builder.errors["publish"]

    def test_rejection_cleared_by_successful_publish(self, builder):
        builder.publish_form()
        builder.add_field("text")
        assert builder.publish_form()
        assert builder.errors == {}

    def test_status_lifecycle(self, builder):
        builder.add_field("text")
        builder.publish_form()
        assert builder.publish_form() is False
        assert builder.unpublish_form()
        assert builder.form.status == FormStatus.DRAFT
        assert builder.archive_form()
        assert builder.unpublish_form() is False
        assert builder.form.status == FormStatus.ARCHIVED

    def test_publish_is_undoable(self, builder):
        builder.add_field("text")
        builder.publish_form()
        builder.undo()
        assert builder.form.status == FormStatus.DRAFT


def test_repr(builder):
    assert "status=draft" in repr(builder)
    assert "mode=editing" in repr(builder)


def test_builder_over_existing_form():
    form = Form(id="form_x", title="Existing")
    assert FormBuilder(form).form is form

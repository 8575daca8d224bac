"""Rules tab implementation."""

from __future__ import annotations

from typing import Any, Optional

from textual import on
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import Button, DataTable, Input, Static, Switch, TextArea

from core.errors import TweetRouterError
from core.models import NewRule, RoutingRule, RuleUpdate

from ..modals import AddRuleScreen, DeleteRuleScreen
from ..validators import parse_rule_form


class RulesTab(Container):
    """Rules tab for editing routing rules and testing them against text."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._current_rule_id: Optional[int] = None
        self._table_ready = False

    def compose(self):
        with Vertical(id="rules-panel"):
            with Horizontal(id="rules-body"):
                with Container(id="rules-left"):
                    yield DataTable(id="rules-table", cursor_type="row")
                with Container(id="rules-right"):
                    yield Static("Rule editor", id="rules-title")
                    yield Static("name", classes="form-label")
                    yield Input(placeholder="Rule name", id="rule-name")
                    with Horizontal(id="rules-meta-row"):
                        with Container(id="rules-priority-block"):
                            yield Static("priority", classes="form-label")
                            yield Input(placeholder="1-10", id="rule-priority")
                        with Container(id="rules-active-block"):
                            yield Static("active", classes="form-label")
                            yield Switch(value=True, id="rule-active")
                    yield Static("keywords (one per line)", classes="form-label")
                    yield TextArea(id="rule-keywords")
                    yield Static("response template", classes="form-label")
                    yield TextArea(id="rule-template")
                    with Horizontal(id="rules-edit-actions"):
                        yield Button("Save rule", id="save-rule", variant="primary")
                    yield Static("", id="rule-error", classes="settings-error")
                    yield Static("Rule tester", id="rules-test-title")
                    yield TextArea(id="rule-test-text", placeholder="Paste a tweet to test against active rules")
                    with Horizontal(id="rules-test-actions"):
                        yield Button("Test", id="rule-test", variant="primary")
                    yield Static("", id="rule-test-result")
            with Horizontal(id="rules-actions"):
                yield Button("Add rule", id="add-rule", variant="success")
                yield Button("Toggle active", id="toggle-rule")
                yield Button("Delete rule", id="delete-rule", variant="error")
                yield Button("Seed defaults", id="seed-rules", variant="warning")

    def on_mount(self) -> None:
        table = self.query_one("#rules-table", DataTable)
        table.add_column("active", key="active", width=8)
        table.add_column("prio", key="priority", width=6)
        table.add_column("name", key="name", width=30)
        table.add_column("keywords", key="keywords", width=10)
        table.zebra_stripes = True
        self.query_one("#rules-edit-actions").styles.height = 3
        self.query_one("#rules-test-actions").styles.height = 3
        self._table_ready = True
        self.reload_from_store()
        self._set_form_state(None)

    def reload_from_store(self) -> None:
        if not self._table_ready:
            return
        table = self.query_one("#rules-table", DataTable)
        table.clear()
        # Highest priority first, the order routing considers them.
        for rule in self.app.rule_service.list_rules_by_priority():
            table.add_row(
                "yes" if rule.is_active else "no",
                str(rule.priority),
                rule.name,
                str(len(rule.keywords)),
                key=str(rule.id),
            )
        self._update_action_state()

    def _update_action_state(self) -> None:
        has_selection = self._current_rule_id is not None
        self.query_one("#delete-rule", Button).disabled = not has_selection
        self.query_one("#toggle-rule", Button).disabled = not has_selection
        self.query_one("#save-rule", Button).disabled = not has_selection

    def on_data_table_row_selected(self, event: DataTable.RowSelected) -> None:
        self._current_rule_id = self._coerce_row_key(event.row_key)
        self._set_form_state(self._current_rule())
        self._update_action_state()

    def _current_rule(self) -> Optional[RoutingRule]:
        if self._current_rule_id is None:
            return None
        return self.app.storage.get_rule(self._current_rule_id)

    @on(Button.Pressed, "#save-rule")
    def _on_save_rule(self) -> None:
        if self._current_rule_id is None:
            return
        info = parse_rule_form(
            name=self.query_one("#rule-name", Input).value,
            priority=self.query_one("#rule-priority", Input).value,
            keywords=self.query_one("#rule-keywords", TextArea).text,
            template=self.query_one("#rule-template", TextArea).text,
            is_active=self.query_one("#rule-active", Switch).value,
        )
        error = self.query_one("#rule-error", Static)
        if info.error or info.rule is None:
            error.update(info.error or "invalid rule")
            return
        rule = info.rule
        update = RuleUpdate(
            name=rule.name,
            keywords=rule.keywords,
            priority=rule.priority,
            response_template=rule.response_template,
            is_active=rule.is_active,
        )
        if not self._run(lambda: self.app.rule_service.update_rule(self._current_rule_id, update)):
            return
        error.update("")
        self.app.set_status(f"Saved {rule.name}")
        self.reload_from_store()

    @on(Button.Pressed, "#add-rule")
    def _on_add_rule(self) -> None:
        self.app.push_screen(AddRuleScreen(), self._handle_add_rule)

    def _handle_add_rule(self, rule: NewRule | None) -> None:
        if rule is None:
            return
        try:
            rule_id = self.app.rule_service.create_rule(rule)
        except TweetRouterError as exc:
            self.app.set_status(str(exc))
            return
        self.app.set_status(f"Created {rule.name}")
        self._current_rule_id = rule_id
        self.reload_from_store()
        self._set_form_state(self._current_rule())

    @on(Button.Pressed, "#toggle-rule")
    def _on_toggle_rule(self) -> None:
        if self._current_rule_id is None:
            return
        if not self._run(lambda: self.app.rule_service.toggle_rule(self._current_rule_id)):
            return
        self.reload_from_store()
        self._set_form_state(self._current_rule())

    @on(Button.Pressed, "#delete-rule")
    def _on_delete_rule(self) -> None:
        rule = self._current_rule()
        if rule is None:
            return
        self.app.push_screen(DeleteRuleScreen(rule.name), self._handle_delete_rule)

    def _handle_delete_rule(self, confirmed: bool | None) -> None:
        if not confirmed or self._current_rule_id is None:
            return
        if not self._run(lambda: self.app.rule_service.delete_rule(self._current_rule_id)):
            return
        self._current_rule_id = None
        self.reload_from_store()
        self._set_form_state(None)

    @on(Button.Pressed, "#seed-rules")
    def _on_seed_rules(self) -> None:
        result = self.app.rule_service.initialize_defaults()
        self.app.set_status(result.message)
        self.reload_from_store()

    @on(Button.Pressed, "#rule-test")
    def _on_test_rule(self) -> None:
        test_text = self.query_one("#rule-test-text", TextArea).text
        result = self.query_one("#rule-test-result", Static)
        if not test_text.strip():
            result.update("Add test text to run.")
            return
        best, matches = self.app.rule_service.test_text(test_text)
        if best is None:
            result.update("Not matched (tweet would be skipped)")
            return
        lines = [f"Routes to: {best.name}", f"Matched {len(matches)} active rule(s):"]
        for match in matches:
            lines.append(f"- [{match.priority}] {match.name}")
        result.update("\n".join(lines))

    def _run(self, action) -> bool:
        try:
            action()
        except TweetRouterError as exc:
            self.query_one("#rule-error", Static).update(str(exc))
            return False
        return True

    def _set_form_state(self, rule: Optional[RoutingRule]) -> None:
        name_input = self.query_one("#rule-name", Input)
        priority_input = self.query_one("#rule-priority", Input)
        active_toggle = self.query_one("#rule-active", Switch)
        keywords_input = self.query_one("#rule-keywords", TextArea)
        template_input = self.query_one("#rule-template", TextArea)
        self.query_one("#rule-error", Static).update("")
        editors = (name_input, priority_input, active_toggle, keywords_input, template_input)
        if rule is None:
            name_input.value = ""
            priority_input.value = ""
            active_toggle.value = False
            keywords_input.text = ""
            template_input.text = ""
        else:
            name_input.value = rule.name
            priority_input.value = str(rule.priority)
            active_toggle.value = rule.is_active
            keywords_input.text = "\n".join(rule.keywords)
            template_input.text = rule.response_template
        for widget in editors:
            widget.disabled = rule is None

    @staticmethod
    def _coerce_row_key(value: Any) -> int:
        if hasattr(value, "value"):
            value = value.value
        return int(value)

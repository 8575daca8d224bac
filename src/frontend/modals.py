"""Modal dialogs for the Textual admin panel."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Static, Switch, TextArea

from core.models import NewRule

from .constants import DEFAULT_PRIORITY
from .validators import parse_rule_form


class AddRuleScreen(ModalScreen[NewRule | None]):
    """Modal form for creating a routing rule."""

    def compose(self) -> ComposeResult:
        yield Container(
            Static("Add rule", classes="modal-title"),
            Static("", id="add-error", classes="modal-error"),
            Static("name", classes="form-label"),
            Input(placeholder="e.g. Medical Refund", id="add-name"),
            Static("priority (1-10, higher wins)", classes="form-label"),
            Input(value=str(DEFAULT_PRIORITY), id="add-priority"),
            Static("keywords (one per line)", classes="form-label"),
            TextArea(id="add-keywords"),
            Static("response template", classes="form-label"),
            TextArea(id="add-template"),
            Static("active", classes="form-label"),
            Switch(value=True, id="add-active"),
            Horizontal(
                Button("Add", id="add-confirm", variant="success"),
                Button("Cancel", id="add-cancel"),
                classes="modal-actions",
            ),
            classes="modal-dialog modal-dialog--form",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "add-cancel":
            self.dismiss(None)
            return
        if event.button.id != "add-confirm":
            return
        info = parse_rule_form(
            name=self.query_one("#add-name", Input).value,
            priority=self.query_one("#add-priority", Input).value,
            keywords=self.query_one("#add-keywords", TextArea).text,
            template=self.query_one("#add-template", TextArea).text,
            is_active=self.query_one("#add-active", Switch).value,
        )
        if info.error or info.rule is None:
            self.query_one("#add-error", Static).update(info.error or "invalid rule")
            return
        self.dismiss(info.rule)


class DeleteRuleScreen(ModalScreen[bool]):
    """Confirm deletion of a rule."""

    def __init__(self, rule_name: str) -> None:
        super().__init__()
        self._rule_name = rule_name or "(unnamed rule)"

    def compose(self) -> ComposeResult:
        yield Container(
            Static("Delete rule?", classes="modal-title"),
            Static(self._rule_name, classes="modal-body"),
            Static("Routed tweets keep pointing at it.", classes="modal-body"),
            Horizontal(
                Button("Delete", id="delete-rule-confirm", variant="error"),
                Button("Cancel", id="delete-rule-cancel"),
                classes="modal-actions",
            ),
            classes="modal-dialog modal-dialog--confirm",
        )

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "delete-rule-confirm":
            self.dismiss(True)
        else:
            self.dismiss(False)

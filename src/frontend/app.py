"""Main Textual app for the tweetrouter admin panel."""

from __future__ import annotations

from typing import Any

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Center, Container, Horizontal, Vertical
from textual.widgets import Button, ContentSwitcher, Footer, Static, Tab, Tabs

import settings
from client import build_storage
from core.rules_admin import RuleService

from .constants import ACCENT_BLUE
from .tabs.rules import RulesTab
from .tabs.tweets import TweetsTab


class AdminPanelApp(App):
    """Admin panel over the rule store; every edit is written immediately."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self.storage = build_storage()
        self.rule_service = RuleService(self.storage)

    BINDINGS = [
        ("ctrl+r", "reload", "Reload"),
        ("q", "quit", "Quit"),
        ("ctrl+c", "quit", "Quit"),
    ]

    CSS_PATH = "app.tcss"

    def compose(self) -> ComposeResult:
        with Container(id="header"):
            with Horizontal(id="header-row"):
                with Vertical(id="header-left"):
                    yield Static(self._title_text(), id="title")
                    yield Static("keyword routing admin", classes="subtle")
                with Vertical(id="header-right"):
                    yield Static(f"db: {settings.DB_PATH}", classes="subtle")
                    yield Static("", id="header-status")
                    yield Horizontal(
                        Button("Reload", id="reload-btn"),
                        id="header-actions",
                    )

        with Container(id="tabs-bar"):
            with Center(id="tabs-center"):
                yield Tabs(
                    Tab("Rules", id="rules"),
                    Tab("Tweets", id="tweets"),
                    id="tabs",
                )

        with ContentSwitcher(id="content"):
            yield RulesTab(id="rules")
            yield TweetsTab(id="tweets")
        yield Footer()

    def on_mount(self) -> None:
        self._set_active_tab("rules")
        self.set_status(f"{len(self.rule_service.list_rules())} rules loaded")

    def on_tabs_tab_activated(self, event: Tabs.TabActivated) -> None:
        tab_id = event.tab.id or ""
        if not tab_id:
            label = event.tab.label
            if hasattr(label, "plain"):
                label = label.plain
            tab_id = str(label).strip().lower()
        self._set_active_tab(tab_id)

    def _set_active_tab(self, tab_id: str) -> None:
        switcher = self.query_one("#content", ContentSwitcher)
        switcher.current = tab_id

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "reload-btn":
            self.action_reload()

    def action_reload(self) -> None:
        self.query_one(RulesTab).reload_from_store()
        self.query_one(TweetsTab).reload_from_store()
        self.set_status("reloaded")

    def set_status(self, message: str) -> None:
        self.query_one("#header-status", Static).update(message)

    @staticmethod
    def _title_text() -> Text:
        return Text.assemble(
            ("TWEET", ACCENT_BLUE),
            ("ROUTER > Admin Panel", "bold"),
        )

"""Tweets tab for viewing routing outcomes and exporting them."""

from __future__ import annotations

import csv
import json
from datetime import datetime
from typing import Any

from textual import on
from textual.containers import Container, Horizontal, Vertical
from textual.widgets import Button, DataTable, Select, Static

from core.models import STATUS_PENDING, STATUS_ROUTED, STATUS_SKIPPED
from core.processor import list_routed_tweets

from ..constants import EXPORTS_DIR

_ALL = "all"


class TweetsTab(Container):
    """Tweets tab to browse routing results and export to JSON/CSV."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._rows: list[dict[str, Any]] = []
        self._table_ready = False

    def compose(self):
        with Vertical(id="tweets-panel"):
            with Horizontal(id="tweets-filter"):
                yield Static("Tweets", id="tweets-title")
                yield Select(
                    [
                        ("all", _ALL),
                        ("pending", STATUS_PENDING),
                        ("routed", STATUS_ROUTED),
                        ("skipped", STATUS_SKIPPED),
                    ],
                    id="tweets-status",
                    value=_ALL,
                    allow_blank=False,
                )
            yield DataTable(id="tweets-table", cursor_type="row")
            with Horizontal(id="tweets-actions"):
                yield Button("Refresh", id="tweets-refresh")
                yield Button("Export JSON", id="export-json", variant="success")
                yield Button("Export CSV", id="export-csv")
            yield Static("", id="tweets-output")

    def on_mount(self) -> None:
        table = self.query_one("#tweets-table", DataTable)
        table.add_column("date", key="date", width=18)
        table.add_column("author", key="author", width=14)
        table.add_column("status", key="status", width=10)
        table.add_column("rule", key="rule", width=18)
        table.add_column("text", key="text", width=42)
        table.zebra_stripes = True
        table.styles.height = "1fr"
        self.query_one("#tweets-actions").styles.height = 3
        self._table_ready = True
        self.reload_from_store()

    @on(Select.Changed, "#tweets-status")
    def _on_status_changed(self) -> None:
        self.reload_from_store()

    @on(Button.Pressed, "#tweets-refresh")
    def _on_refresh(self) -> None:
        self.reload_from_store()

    @on(Button.Pressed, "#export-json")
    def _on_export_json(self) -> None:
        self._export_rows("json")

    @on(Button.Pressed, "#export-csv")
    def _on_export_csv(self) -> None:
        self._export_rows("csv")

    def reload_from_store(self) -> None:
        if not self._table_ready:
            return
        table = self.query_one("#tweets-table", DataTable)
        table.clear()
        status = self.query_one("#tweets-status", Select).value
        tweets = list_routed_tweets(self.app.storage, None if status == _ALL else str(status))
        self._rows = [self._flatten(item.to_dict()) for item in tweets]
        for row in self._rows:
            table.add_row(
                self._format_date_display(row["createdAt"]),
                row["author"] or "",
                row["routingStatus"] or STATUS_PENDING,
                row["matchedRuleName"] or "",
                self._clip_text(row["text"]),
                key=str(row["id"]),
            )
        self._set_output(f"loaded {len(self._rows)} tweets")

    def _export_rows(self, fmt: str) -> None:
        if not self._rows:
            self._set_output("No tweets to export.")
            return
        EXPORTS_DIR.mkdir(parents=True, exist_ok=True)
        timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
        path = EXPORTS_DIR / f"tweets-{timestamp}.{fmt}"
        try:
            if fmt == "json":
                path.write_text(json.dumps(self._rows, indent=2, ensure_ascii=True), encoding="utf-8")
            else:
                fieldnames = list(self._rows[0].keys())
                with path.open("w", encoding="utf-8", newline="") as handle:
                    writer = csv.DictWriter(handle, fieldnames=fieldnames)
                    writer.writeheader()
                    writer.writerows(self._rows)
            self._set_output(f"exported {len(self._rows)} tweets to {path}")
        except OSError as exc:
            self._set_output(f"export failed: {exc.strerror or exc}")

    def _set_output(self, message: str) -> None:
        self.query_one("#tweets-output", Static).update(message)

    @staticmethod
    def _flatten(payload: dict[str, Any]) -> dict[str, Any]:
        # CSV needs flat columns; nested rule/response become prefixed fields.
        rule = payload.pop("matchedRule") or {}
        response = payload.pop("pendingResponse") or {}
        payload["matchedRuleName"] = rule.get("name")
        payload["responseStatus"] = response.get("status")
        payload["responseText"] = response.get("text")
        return payload

    @staticmethod
    def _clip_text(value: str, limit: int = 64) -> str:
        if len(value) <= limit:
            return value
        return value[: limit - 3] + "..."

    @staticmethod
    def _format_date_display(value: str) -> str:
        if not value:
            return ""
        display = value.replace("T", " ")
        return display[:19]

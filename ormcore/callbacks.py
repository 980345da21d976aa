"""Ordered registries of callbacks run for create, update, delete and queries."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Optional

CallbackFunc = Callable[[Any], Any]

ROW_QUERY_CALLBACK = "orm:row_query"

_KINDS = ("create", "update", "delete", "query", "row_query")


def _log(logger: Any, level: str, message: str) -> None:
    if logger is not None:
        getattr(logger, level)(message)


def _rindex(names: list[str], name: str) -> int:
    for i in range(len(names) - 1, -1, -1):
        if names[i] == name:
            return i
    return -1


class Callback:
    """Holds every registered callback processor and the sorted callback chains."""

    def __init__(self, logger: Any = None) -> None:
        self.logger = logger
        self.creates: list[CallbackFunc] = []
        self.updates: list[CallbackFunc] = []
        self.deletes: list[CallbackFunc] = []
        self.queries: list[CallbackFunc] = []
        self.row_queries: list[CallbackFunc] = []
        self.processors: list[CallbackProcessor] = []

    def clone(self, logger: Any) -> "Callback":
        """Return a copy using ``logger`` that can be changed independently."""
        copy = Callback(logger)
        copy.creates = list(self.creates)
        copy.updates = list(self.updates)
        copy.deletes = list(self.deletes)
        copy.queries = list(self.queries)
        copy.row_queries = list(self.row_queries)
        copy.processors = list(self.processors)
        return copy

    def _processor(self, kind: str) -> "CallbackProcessor":
        return CallbackProcessor(parent=self, kind=kind, logger=self.logger)

    def create(self) -> "CallbackProcessor":
        """Start registering a callback run when creating records."""
        return self._processor("create")

    def update(self) -> "CallbackProcessor":
        """Start registering a callback run when updating records."""
        return self._processor("update")

    def delete(self) -> "CallbackProcessor":
        """Start registering a callback run when deleting records."""
        return self._processor("delete")

    def query(self) -> "CallbackProcessor":
        """Start registering a callback run when querying records."""
        return self._processor("query")

    def row_query(self) -> "CallbackProcessor":
        """Start registering a callback run for raw row queries."""
        return self._processor("row_query")

    def _reorder(self) -> None:
        grouped: dict[str, list[CallbackProcessor]] = {kind: [] for kind in _KINDS}
        for processor in self.processors:
            if processor.name and processor.kind in grouped:
                grouped[processor.kind].append(processor)
        self.creates = sort_processors(grouped["create"])
        self.updates = sort_processors(grouped["update"])
        self.deletes = sort_processors(grouped["delete"])
        self.queries = sort_processors(grouped["query"])
        self.row_queries = sort_processors(grouped["row_query"])


@dataclass(eq=False)
class CallbackProcessor:
    """One registration request: a named callback and where it goes."""

    parent: Callback
    kind: str
    logger: Any = None
    name: str = ""
    before_name: str = ""
    after_name: str = ""
    is_replace: bool = False
    is_remove: bool = False
    handler: Optional[CallbackFunc] = field(default=None, repr=False)

    def after(self, callback_name: str) -> "CallbackProcessor":
        """Place the callback after ``callback_name``."""
        self.after_name = callback_name
        return self

    def before(self, callback_name: str) -> "CallbackProcessor":
        """Place the callback before ``callback_name``."""
        self.before_name = callback_name
        return self

    def _commit(self) -> None:
        self.parent.processors.append(self)
        self.parent._reorder()

    def register(self, callback_name: str, callback: CallbackFunc) -> None:
        """Register ``callback`` under ``callback_name``."""
        if (
            self.kind == "row_query"
            and not self.before_name
            and not self.after_name
            and callback_name != ROW_QUERY_CALLBACK
        ):
            _log(
                self.logger,
                "info",
                f"Registering RowQuery callback {callback_name} without specify order with "
                f"before(), after(), applying before('{ROW_QUERY_CALLBACK}') by default for compatibility...",
            )
            self.before_name = ROW_QUERY_CALLBACK
        _log(self.logger, "info", f"[info] registering callback `{callback_name}`")
        self.name = callback_name
        self.handler = callback
        self._commit()

    def remove(self, callback_name: str) -> None:
        """Remove the callback registered under ``callback_name``."""
        _log(self.logger, "info", f"[info] removing callback `{callback_name}`")
        self.name = callback_name
        self.is_remove = True
        self._commit()

    def replace(self, callback_name: str, callback: CallbackFunc) -> None:
        """Replace the callback registered under ``callback_name``."""
        _log(self.logger, "info", f"[info] replacing callback `{callback_name}`")
        self.name = callback_name
        self.handler = callback
        self.is_replace = True
        self._commit()

    def get(self, callback_name: str) -> Optional[CallbackFunc]:
        """Return the current callback for ``callback_name``, or None."""
        found: Optional[CallbackFunc] = None
        for processor in self.parent.processors:
            if processor.name == callback_name and processor.kind == self.kind:
                found = None if processor.is_remove else processor.handler
        return found


def sort_processors(processors: list[CallbackProcessor]) -> list[CallbackFunc]:
    """Order processors by their before/after constraints and return their callbacks."""
    all_names: list[str] = []
    for processor in processors:
        if _rindex(all_names, processor.name) > -1 and not processor.is_replace and not processor.is_remove:
            _log(processor.logger, "warning", f"[warning] duplicated callback `{processor.name}`")
        all_names.append(processor.name)

    sorted_names: list[str] = []

    def place(current: CallbackProcessor) -> None:
        if _rindex(sorted_names, current.name) != -1:
            return

        if current.before_name:
            index = _rindex(sorted_names, current.before_name)
            if index != -1:
                sorted_names.insert(index, current.name)
            else:
                index = _rindex(all_names, current.before_name)
                if index != -1:
                    sorted_names.append(current.name)
                    place(processors[index])

        if current.after_name:
            index = _rindex(sorted_names, current.after_name)
            if index != -1:
                sorted_names.insert(index + 1, current.name)
            else:
                index = _rindex(all_names, current.after_name)
                if index != -1:
                    target = processors[index]
                    if not target.before_name:
                        target.before_name = current.name
                    place(target)

        if _rindex(sorted_names, current.name) == -1:
            sorted_names.append(current.name)

    for processor in processors:
        place(processor)

    result: list[CallbackFunc] = []
    for name in sorted_names:
        chosen = processors[_rindex(all_names, name)]
        if not chosen.is_remove:
            result.append(chosen.handler)
    return result
"""Crossword board and the session adapter that checks one word at a time."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Collection, Iterable, Mapping, Sequence

from literallyinvented.backend.content import CROSSWORD_COLS, CROSSWORD_ROWS
from literallyinvented.backend.engine import SessionEngine
from literallyinvented.backend.errors import RemoteUnavailable
from literallyinvented.backend.models import Item
from literallyinvented.backend.sessions import GameSession
from literallyinvented.backend.state import Phase

logger = logging.getLogger(__name__)

Cell = tuple[int, int]

BLANK = " "


@dataclass(frozen=True)
class Clue:
    key: str
    number: int
    direction: str
    row: int
    col: int
    length: int

    @classmethod
    def from_item(cls, item: Item) -> "Clue":
        payload = item.payload
        return cls(
            key=item.id,
            number=int(payload["number"]),
            direction=str(payload["direction"]),
            row=int(payload["row"]),
            col=int(payload["col"]),
            length=int(payload["length"]),
        )

    def cells(self) -> list[Cell]:
        if self.direction == "across":
            return [(self.row, self.col + offset) for offset in range(self.length)]
        return [(self.row + offset, self.col) for offset in range(self.length)]


class CrosswordBoard:
    """Letters on the grid plus which clues own each cell."""

    def __init__(self, clues: Iterable[Clue], rows: int = CROSSWORD_ROWS, cols: int = CROSSWORD_COLS) -> None:
        self.clues: dict[str, Clue] = {clue.key: clue for clue in clues}
        self.grid: list[list[str]] = [["" for _ in range(cols)] for _ in range(rows)]
        self._owners: dict[Cell, list[str]] = {}
        for clue in self.clues.values():
            for row, col in clue.cells():
                if not (0 <= row < rows and 0 <= col < cols):
                    raise ValueError(f"clue {clue.key} runs off the grid")
                self._owners.setdefault((row, col), []).append(clue.key)

    @classmethod
    def from_items(cls, items: Sequence[Item], rows: int = CROSSWORD_ROWS, cols: int = CROSSWORD_COLS) -> "CrosswordBoard":
        return cls((Clue.from_item(item) for item in items), rows=rows, cols=cols)

    def owners(self, cell: Cell) -> list[str]:
        return list(self._owners.get(cell, []))

    def is_cell(self, cell: Cell) -> bool:
        return cell in self._owners

    def is_locked_cell(self, cell: Cell, locked: Collection[str], excluding: str | None = None) -> bool:
        return any(key in locked and key != excluding for key in self._owners.get(cell, []))

    def set_letter(self, row: int, col: int, letter: str, locked: Collection[str]) -> bool:
        """Write one letter; cells of a locked word cannot change."""
        cell = (row, col)
        if not self.is_cell(cell) or self.is_locked_cell(cell, locked):
            return False
        self.grid[row][col] = letter.strip().upper()[-1:] if letter else ""
        return True

    def word(self, key: str) -> str:
        return "".join(self.grid[row][col] or BLANK for row, col in self.clues[key].cells())

    def write_word(self, key: str, word: str, locked: Collection[str]) -> None:
        clue = self.clues[key]
        for (row, col), letter in zip(clue.cells(), word.ljust(clue.length, BLANK)):
            self.set_letter(row, col, "" if letter == BLANK else letter, locked)

    def fill(self, key: str, word: str) -> None:
        for (row, col), letter in zip(self.clues[key].cells(), word.upper()):
            self.grid[row][col] = "" if letter == BLANK else letter

    def cells_to_clear(self, key: str, locked: Collection[str]) -> list[Cell]:
        """Cells of ``key`` that no other locked word shares."""
        return [cell for cell in self.clues[key].cells() if not self.is_locked_cell(cell, locked, excluding=key)]

    def clear_word(self, key: str, locked: Collection[str]) -> list[Cell]:
        cleared = self.cells_to_clear(key, locked)
        for row, col in cleared:
            self.grid[row][col] = ""
        return cleared

    def draft_answers(self, locked: Collection[str]) -> dict[str, str]:
        drafts: dict[str, str] = {}
        for key in self.clues:
            if key in locked:
                continue
            word = self.word(key)
            if word.strip():
                drafts[key] = word
        return drafts

    def rows(self) -> list[list[str]]:
        return [list(row) for row in self.grid]


class CrosswordSession(GameSession):
    def __init__(self, engine: SessionEngine) -> None:
        super().__init__(engine)
        self.board = CrosswordBoard.from_items(engine.pool)

    async def start(self) -> None:
        await super().start()
        for record in self.engine.state.answered.values():
            if record.is_correct and record.item_id in self.board.clues:
                self.board.fill(record.item_id, str(record.submitted_value))
        if self.engine.state.phase is not Phase.IN_PROGRESS:
            return
        try:
            draft = await self.engine.load_draft()
        except RemoteUnavailable as exc:
            logger.warning("could not restore crossword draft: %s", exc)
            return
        for key, word in draft.items():
            if key in self.board.clues:
                self.board.write_word(key, str(word), self.engine.state.locked)

    def set_letter(self, row: int, col: int, letter: str) -> bool:
        if self.engine.state.phase is not Phase.IN_PROGRESS:
            return False
        return self.board.set_letter(row, col, letter, self.engine.state.locked)

    async def answer(self, item_id: str, value: Any) -> dict[str, Any]:
        if item_id not in self.board.clues:
            return {"accepted": False}
        if value is not None and self.engine.state.phase is Phase.IN_PROGRESS and item_id not in self.engine.state.locked:
            self.board.write_word(item_id, str(value), self.engine.state.locked)
        word = self.board.word(item_id)
        payload = await super().answer(item_id, word)
        if not payload["accepted"]:
            return payload
        if payload["isCorrect"]:
            payload["clearedCells"] = []
        else:
            cleared = self.board.clear_word(item_id, self.engine.state.locked)
            payload["clearedCells"] = [[row, col] for row, col in cleared]
        return payload

    async def check_word(self, key: str) -> dict[str, Any]:
        return await self.answer(key, None)

    async def save_draft(self, answers: Mapping[str, Any]) -> bool:
        if self.engine.state.phase is not Phase.IN_PROGRESS:
            return False
        for key, word in answers.items():
            if key in self.board.clues:
                self.board.write_word(key, str(word), self.engine.state.locked)
        return await self.engine.save_draft(self.board.draft_answers(self.engine.state.locked))

    def snapshot(self) -> dict[str, Any]:
        snapshot = super().snapshot()
        snapshot["grid"] = self.board.rows()
        return snapshot

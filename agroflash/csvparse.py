"""Parsing and validation of flashcard CSV uploads."""

from __future__ import annotations

import csv
import io
import itertools
from dataclasses import dataclass, field
from typing import Any

from agroflash.models import (
    MAX_ANSWER_LEN,
    MAX_DECK_NAME_LEN,
    MAX_QUESTION_LEN,
    MAX_SOURCE_LEN,
    MAX_TOPIC_LEN,
    is_valid_card_type,
)

MAX_FILE_SIZE = 2 << 20
MAX_ROWS = 2000
MAX_PREVIEW_ROWS = 50

STATUS_OK = "ok"
STATUS_ERROR = "error"

_REQUIRED_COLUMNS = ("type", "question", "answer")
_BOM = "\ufeff"


class CsvParseError(Exception):
    """Raised for structural problems: unreadable header, missing columns, too many rows."""


@dataclass
class ParseOptions:
    """Optional parser behaviour.

    default_deck is used when the CSV has no deck column; with force_deck it
    replaces the deck column of every row.
    """

    default_deck: str = ""
    force_deck: bool = False


@dataclass
class Row:
    """One data row after parsing and validation."""

    line: int
    deck: str = ""
    subject: str = ""
    type: str = ""
    question: str = ""
    answer: str = ""
    topic: str = ""
    source: str = ""
    status: str = ""
    error: str = ""

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {"line": self.line, "deck": self.deck}
        if self.subject:
            body["subject"] = self.subject
        body.update(type=self.type, question=self.question, answer=self.answer)
        if self.topic:
            body["topic"] = self.topic
        if self.source:
            body["source"] = self.source
        body["status"] = self.status
        if self.error:
            body["error"] = self.error
        return body


@dataclass
class Result:
    """The full outcome of a parse."""

    rows: list[Row] = field(default_factory=list)
    total_rows: int = 0
    valid_rows: int = 0
    invalid_rows: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "rows": [row.to_dict() for row in self.rows],
            "total_rows": self.total_rows,
            "valid_rows": self.valid_rows,
            "invalid_rows": self.invalid_rows,
        }


def _read_text(stream: Any) -> str:
    data = stream.read() if hasattr(stream, "read") else stream
    if isinstance(data, (bytes, bytearray, memoryview)):
        return bytes(data).decode("utf-8", errors="replace")
    return data


def _next_record(reader: Any) -> list[str] | None:
    """Return the next non-empty record, or None at end of input."""
    for record in reader:
        if record:
            return record
    return None


def _column_index(header: list[str]) -> dict[str, int]:
    index: dict[str, int] = {}
    for position, name in enumerate(header):
        if position == 0 and name.startswith(_BOM):
            name = name[len(_BOM):]
        index[name.strip().lower()] = position
    return index


def _sanitize(value: str) -> str:
    return value.strip().replace("\x00", "")


def _normalize_spaces(value: str) -> str:
    return " ".join(value.split())


def _column(record: list[str], index: dict[str, int], name: str) -> str:
    position = index.get(name)
    if position is None or position >= len(record):
        return ""
    return _sanitize(record[position])


def _quote(value: str) -> str:
    escaped = []
    for char in value:
        if char in ('"', "\\"):
            escaped.append("\\" + char)
        elif char == "\n":
            escaped.append("\\n")
        elif char == "\t":
            escaped.append("\\t")
        elif char == "\r":
            escaped.append("\\r")
        elif not char.isprintable():
            escaped.append(f"\\x{ord(char):02x}" if ord(char) < 0x100 else f"\\u{ord(char):04x}")
        else:
            escaped.append(char)
    return '"' + "".join(escaped) + '"'


def _validate_row(record: list[str], index: dict[str, int], line: int, options: ParseOptions) -> Row:
    if options.force_deck:
        deck = options.default_deck
    elif "deck" in index:
        deck = _normalize_spaces(_column(record, index, "deck"))
    else:
        deck = options.default_deck

    row = Row(
        line=line,
        deck=deck,
        subject=_column(record, index, "subject"),
        type=_column(record, index, "type"),
        question=_normalize_spaces(_column(record, index, "question")),
        answer=_column(record, index, "answer"),
        topic=_column(record, index, "topic"),
        source=_column(record, index, "source"),
    )

    errors: list[str] = []
    if not row.deck:
        errors.append("deck é obrigatório")
    elif len(row.deck) > MAX_DECK_NAME_LEN:
        errors.append(f"nome do deck excede {MAX_DECK_NAME_LEN} caracteres")

    if not row.question:
        errors.append("pergunta é obrigatória")
    elif len(row.question) > MAX_QUESTION_LEN:
        errors.append(f"pergunta excede {MAX_QUESTION_LEN} caracteres")

    if not row.answer:
        errors.append("resposta é obrigatória")
    elif len(row.answer) > MAX_ANSWER_LEN:
        errors.append(f"resposta excede {MAX_ANSWER_LEN} caracteres")

    if not is_valid_card_type(row.type):
        errors.append(
            f"tipo inválido {_quote(row.type)}; deve ser: conceito, processo, aplicacao ou comparacao"
        )

    if row.topic and len(row.topic) > MAX_TOPIC_LEN:
        errors.append(f"tópico excede {MAX_TOPIC_LEN} caracteres")
    if row.source and len(row.source) > MAX_SOURCE_LEN:
        errors.append(f"fonte excede {MAX_SOURCE_LEN} caracteres")

    if errors:
        row.status = STATUS_ERROR
        row.error = "; ".join(errors)
    else:
        row.status = STATUS_OK
    return row


def parse(stream: Any, options: ParseOptions | None = None) -> Result:
    """Read a UTF-8 CSV and validate every row.

    stream may be a text or binary file object, a str or bytes. Structural
    problems raise CsvParseError; per-row problems are recorded on the row.
    """
    options = options or ParseOptions()
    text = _read_text(stream).replace("\x00", "")
    reader = csv.reader(io.StringIO(text, newline=""), skipinitialspace=True, strict=False)

    try:
        header = _next_record(reader)
    except csv.Error as exc:
        raise CsvParseError(f"falha ao ler cabeçalho do CSV: {exc}") from exc
    if header is None:
        raise CsvParseError("falha ao ler cabeçalho do CSV: EOF")

    index = _column_index(header)

    if "deck" not in index and not options.default_deck:
        raise CsvParseError(
            "coluna obrigatória ausente: deck (ou informe um deckId para modo de deck único)"
        )
    for column in _REQUIRED_COLUMNS:
        if column not in index:
            raise CsvParseError(f"coluna obrigatória ausente: {column}")

    result = Result()
    for line in itertools.count(2):
        read_error: csv.Error | None = None
        try:
            record = _next_record(reader)
        except csv.Error as exc:
            record, read_error = None, exc
        else:
            if record is None:
                break

        if result.total_rows >= MAX_ROWS:
            raise CsvParseError(f"CSV excede o máximo de {MAX_ROWS} linhas de dados")

        if read_error is not None:
            result.rows.append(
                Row(line=line, status=STATUS_ERROR, error=f"erro de leitura na linha: {read_error}")
            )
            result.invalid_rows += 1
            result.total_rows += 1
            continue

        row = _validate_row(record, index, line, options)
        if row.status == STATUS_OK:
            result.valid_rows += 1
        else:
            result.invalid_rows += 1
        result.rows.append(row)
        result.total_rows += 1

    return result
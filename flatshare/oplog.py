"""
oplog.py - Operation Log Format

One operation per line:

    <OPCODE> <timestamp> <args...>

    START    <ts> <name>
    STOP     <ts> <name>
    PAUSE    <ts> <name-or-id>
    RESUME   <ts> <name-or-id>
    TRANSFER <ts> <from> <to> <amount>
    PAY      <ts> <name> <amount> <start-date> <end-date>
    BUY      <ts> <name> <amount> [description...]

Blank lines and lines starting with '#' are ignored. Timestamps are
ISO-8601 dates (YYYY-MM-DD or YYYY-MM-DDTHH:MM:SS, optionally with an
offset) or integer unix seconds; dates without an offset are read in UTC
unless another zone is given. Amounts are decimal strings converted to
integer cents with banker's rounding.
"""

from __future__ import annotations
from datetime import datetime, timezone, tzinfo
from decimal import Decimal, InvalidOperation, ROUND_HALF_EVEN
import re
from typing import Iterable, Iterator, List, Optional

from .core import (
    Operation, OpCode, Timestamp, Cents,
    MINUS_INFINITY, PLUS_INFINITY, CENTS_PER_UNIT,
    MalformedOperation,
)


_DATE_FORMATS = ("%Y-%m-%dT%H:%M:%S", "%Y-%m-%d")
_UNIX_RE = re.compile(r"^-?\d+$")
_OPERATION_RE = re.compile(r"^\s*(\S+)\s+(\S+)(.*)$")


# ============================================================================
# TIMESTAMPS AND AMOUNTS
# ============================================================================

def parse_timestamp(text: str, tz: tzinfo = timezone.utc) -> Timestamp:
    """
    Parse an ISO-8601 date, unix seconds, or an infinity sentinel.

    Raises:
        MalformedOperation: If text is not a recognised timestamp
    """
    if text == "-inf":
        return MINUS_INFINITY
    if text == "inf":
        return PLUS_INFINITY
    if _UNIX_RE.match(text):
        return int(text)

    parsed: Optional[datetime] = None
    for fmt in _DATE_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt)
            break
        except ValueError:
            continue
    if parsed is None:
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise MalformedOperation(f"Invalid date {text!r}") from None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return int(parsed.timestamp())


def format_timestamp(ts: Timestamp, tz: tzinfo = timezone.utc) -> str:
    """
    Render a timestamp the way the log writes it.

    Midnight renders as YYYY-MM-DD, anything else as YYYY-MM-DDTHH:MM:SS;
    sentinels render as -inf / inf. Values outside the calendar range
    render as plain integers.
    """
    if ts == MINUS_INFINITY:
        return "-inf"
    if ts == PLUS_INFINITY:
        return "inf"
    try:
        moment = datetime.fromtimestamp(ts, tz)
    except (OverflowError, ValueError, OSError):
        return str(ts)
    if moment.hour or moment.minute or moment.second:
        return moment.strftime("%Y-%m-%dT%H:%M:%S")
    return moment.strftime("%Y-%m-%d")


def parse_amount(text: str) -> Cents:
    """
    Convert a decimal amount string to integer cents.

    Example:
        parse_amount("12.34") == 1234
        parse_amount("0.005") == 0     # half-even

    Raises:
        MalformedOperation: If text is not a finite decimal number
    """
    try:
        value = Decimal(text)
    except InvalidOperation:
        raise MalformedOperation(f"Invalid amount {text!r}") from None
    if not value.is_finite():
        raise MalformedOperation(f"Amount must be finite, got {text!r}")
    cents = (value * CENTS_PER_UNIT).quantize(Decimal("1"), rounding=ROUND_HALF_EVEN)
    return int(cents)


# ============================================================================
# LINES
# ============================================================================

def _expect(opcode: OpCode, args: List[str], count: int) -> None:
    if len(args) != count:
        raise MalformedOperation(f"{opcode.value} takes {count} arguments, got {len(args)}")


def _parse_args(opcode: OpCode, args: List[str], tz: tzinfo) -> tuple:
    if opcode in (OpCode.START, OpCode.STOP, OpCode.PAUSE, OpCode.RESUME):
        _expect(opcode, args, 1)
        return (args[0],)
    if opcode is OpCode.TRANSFER:
        _expect(opcode, args, 3)
        return (args[0], args[1], parse_amount(args[2]))
    if opcode is OpCode.PAY:
        _expect(opcode, args, 4)
        return (args[0], parse_amount(args[1]), parse_timestamp(args[2], tz), parse_timestamp(args[3], tz))
    if opcode is OpCode.BUY:
        if len(args) < 2:
            raise MalformedOperation(f"BUY takes at least 2 arguments, got {len(args)}")
        return (args[0], parse_amount(args[1]), " ".join(args[2:]))
    raise MalformedOperation(f"Unsupported opcode {opcode.value}")


def is_operation_line(line: str) -> bool:
    """False for blank lines and '#' comments."""
    stripped = line.strip()
    return bool(stripped) and not stripped.startswith("#")


def parse_line(line: str, line_number: Optional[int] = None, tz: tzinfo = timezone.utc) -> Optional[Operation]:
    """
    Parse one log line into an Operation, or None for blanks and comments.

    Raises:
        MalformedOperation: With line context, for any unparsable line
    """
    if not is_operation_line(line):
        return None
    source = line.rstrip("\n")
    tokens = source.split()
    try:
        if len(tokens) < 2:
            raise MalformedOperation("Missing opcode or timestamp")
        try:
            opcode = OpCode(tokens[0])
        except ValueError:
            raise MalformedOperation(f"Unknown opcode {tokens[0]!r}") from None
        ts = parse_timestamp(tokens[1], tz)
        args = _parse_args(opcode, tokens[2:], tz)
    except MalformedOperation as exc:
        if exc.line_number is not None:
            raise
        raise MalformedOperation(str(exc), line_number, source) from exc
    return Operation(ts, opcode, args, line_number, source)


def parse_log(lines: Iterable[str], tz: tzinfo = timezone.utc) -> Iterator[Operation]:
    """Parse every operation line, numbering lines from 1."""
    for number, line in enumerate(lines, 1):
        op = parse_line(line, number, tz)
        if op is not None:
            yield op


def read_log(path: str, tz: tzinfo = timezone.utc) -> List[Operation]:
    """Read and parse a whole log file."""
    with open(path, encoding="utf-8") as handle:
        return list(parse_log(handle, tz))


def insert_operation(lines: Iterable[str], new_line: str, tz: tzinfo = timezone.utc) -> List[str]:
    """
    Insert new_line before the first operation at or after its timestamp.

    Operation lines passed before the insertion point have their timestamps
    normalised through format_timestamp; comments, blank lines and
    everything after the insertion point are kept as-is. If no operation is
    late enough, new_line is appended.

    Raises:
        MalformedOperation: If new_line or a normalised line is unparsable
    """
    new_op = parse_line(new_line, tz=tz)
    if new_op is None:
        raise MalformedOperation(f"Not an operation: {new_line!r}")
    new_text = new_line.rstrip("\n")

    result: List[str] = []
    inserted = False
    for number, raw in enumerate(lines, 1):
        line = raw.rstrip("\n")
        if inserted or not is_operation_line(line):
            result.append(line)
            continue
        match = _OPERATION_RE.match(line)
        if match is None:
            raise MalformedOperation("Missing opcode or timestamp", number, line)
        opcode, stamp, rest = match.groups()
        try:
            ts = parse_timestamp(stamp, tz)
        except MalformedOperation as exc:
            raise MalformedOperation(str(exc), number, line) from exc
        if ts >= new_op.timestamp:
            result.append(new_text)
            inserted = True
        result.append(f"{opcode} {format_timestamp(ts, tz)}{rest}")

    if not inserted:
        result.append(new_text)
    return result

"""Command table and routine-call builder.

Every command type the gateway understands is described by one
:class:`CommandSpec`: the stored routine it calls, the positional order of
its required arguments, which optional arguments may follow, and, for query
commands, how each returned row is projected into a fixed-order tuple.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from votegate.util.timestamps import format_timestamp

# Placeholder suffix per argument kind. Untyped arguments let the server
# resolve the literal against the routine signature.
CASTS = {
    "timestamp": "::TIMESTAMP",
    "text": "::TEXT",
    "numeric": "::NUMERIC",
    "untyped": "",
}

SCALAR_TYPES = (str, int, float)


class CommandError(RuntimeError):
    pass


class UnknownCommandError(CommandError):
    pass


@dataclass(frozen=True)
class Argument:
    field: str
    kind: str


@dataclass(frozen=True)
class OptionalArgument:
    """Alternatives of which at most one is appended, first present wins.

    ``tagged`` appends a ``(kind, id)`` pair, the kind being the field name.
    ``null_when_absent`` appends an explicit NULL instead of eliding.
    """

    fields: tuple[str, ...]
    kind: str = "numeric"
    tagged: bool = False
    null_when_absent: bool = False


@dataclass(frozen=True)
class Column:
    name: str
    kind: str


@dataclass(frozen=True)
class CommandSpec:
    name: str
    routine: str
    required: tuple[Argument, ...]
    optional: tuple[OptionalArgument, ...] = ()
    columns: tuple[Column, ...] | None = None

    @property
    def returns_rows(self) -> bool:
        return self.columns is not None


@dataclass
class RoutineCall:
    routine: str
    returns_rows: bool
    params: list[Any] = field(default_factory=list)
    casts: list[str] = field(default_factory=list)

    def add(self, value: Any, kind: str) -> None:
        self.params.append(value)
        self.casts.append(CASTS[kind])

    @property
    def sql(self) -> str:
        # Routine names come from COMMANDS only; values are always bound.
        placeholders = ", ".join(f"%s{cast}" for cast in self.casts)
        if self.returns_rows:
            return f"SELECT * FROM {self.routine}({placeholders})"
        return f"SELECT {self.routine}({placeholders})"


TIMESTAMP = Argument("timestamp", "timestamp")
PASSWORD = Argument("password", "text")
MEMBER = Argument("member", "numeric")
ACTION = Argument("action", "numeric")
PROJECT = Argument("project", "numeric")

VOTE_COLUMNS = (
    Column("member_id", "number"),
    Column("upvotes", "number"),
    Column("downvotes", "number"),
)

COMMANDS: dict[str, CommandSpec] = {
    spec.name: spec
    for spec in (
        CommandSpec("leader", "leader", (TIMESTAMP, PASSWORD, MEMBER)),
        CommandSpec(
            "support",
            "support",
            (TIMESTAMP, MEMBER, PASSWORD, ACTION, PROJECT),
            (OptionalArgument(("authority",)),),
        ),
        CommandSpec(
            "protest",
            "protest",
            (TIMESTAMP, MEMBER, PASSWORD, ACTION, PROJECT),
            (OptionalArgument(("authority",)),),
        ),
        CommandSpec("upvote", "upvote", (TIMESTAMP, MEMBER, PASSWORD, ACTION)),
        CommandSpec("downvote", "downvote", (TIMESTAMP, MEMBER, PASSWORD, ACTION)),
        CommandSpec(
            "actions",
            "get_actions",
            (TIMESTAMP, MEMBER, PASSWORD),
            (
                OptionalArgument(("type",), kind="untyped", null_when_absent=True),
                OptionalArgument(("project", "authority"), tagged=True),
            ),
            columns=(
                Column("action_id", "number"),
                Column("type", "text"),
                Column("project_id", "number"),
                Column("authority_id", "number"),
                Column("upvotes", "number"),
                Column("downvotes", "number"),
            ),
        ),
        CommandSpec(
            "projects",
            "get_projects",
            (TIMESTAMP, MEMBER, PASSWORD),
            (OptionalArgument(("authority",)),),
            columns=(
                Column("project_id", "number"),
                Column("authority_id", "number"),
            ),
        ),
        CommandSpec(
            "votes",
            "get_votes",
            (TIMESTAMP, MEMBER, PASSWORD),
            (OptionalArgument(("action", "project"), tagged=True),),
            columns=VOTE_COLUMNS,
        ),
        CommandSpec(
            "trolls",
            "get_trolls",
            (TIMESTAMP,),
            columns=(*VOTE_COLUMNS, Column("is_active", "flag")),
        ),
    )
}

# Provisioning mode only registers leadership claims.
PROVISIONING_COMMANDS: dict[str, CommandSpec] = {"leader": COMMANDS["leader"]}


def resolve_envelope(payload: Any, commands: Mapping[str, CommandSpec]) -> tuple[CommandSpec, dict[str, Any]]:
    if not isinstance(payload, dict):
        raise CommandError(f"envelope must be a JSON object, got {type(payload).__name__}")
    if len(payload) != 1:
        raise CommandError(f"envelope must have exactly one top-level key, got {len(payload)}")
    ((name, fields),) = payload.items()
    spec = commands.get(name)
    if spec is None:
        raise UnknownCommandError(f"unknown command: {name}")
    if not isinstance(fields, dict):
        raise CommandError(f"{name}: fields must be a JSON object")
    return spec, fields


def _is_present(value: Any, *, elide_falsy: bool) -> bool:
    if elide_falsy:
        return bool(value)
    return value is not None


def _checked(spec: CommandSpec, name: str, value: Any) -> Any:
    if value is not None and (isinstance(value, bool) or not isinstance(value, SCALAR_TYPES)):
        raise CommandError(f"{spec.name}: field '{name}' must be a string or number")
    if isinstance(value, str):
        try:
            value.encode("utf-8")
        except UnicodeEncodeError as exc:
            raise CommandError(f"{spec.name}: field '{name}' is not valid UTF-8 text") from exc
    return value


def build_call(spec: CommandSpec, fields: Mapping[str, Any], *, elide_falsy: bool = True) -> RoutineCall:
    call = RoutineCall(routine=spec.routine, returns_rows=spec.returns_rows)

    for argument in spec.required:
        if argument.field not in fields:
            raise CommandError(f"{spec.name} requires '{argument.field}'")
        value = fields[argument.field]
        if argument.kind == "timestamp":
            try:
                value = format_timestamp(value)
            except (TypeError, ValueError, OverflowError, OSError) as exc:
                raise CommandError(f"{spec.name}: invalid timestamp: {exc}") from exc
        call.add(_checked(spec, argument.field, value), argument.kind)

    for optional in spec.optional:
        chosen = next(
            (name for name in optional.fields if _is_present(fields.get(name), elide_falsy=elide_falsy)),
            None,
        )
        if chosen is None:
            if optional.null_when_absent:
                call.add(None, optional.kind)
            continue
        if optional.tagged:
            call.add(chosen, "untyped")
        call.add(_checked(spec, chosen, fields[chosen]), optional.kind)

    return call

"""HTTP verb classification and change-safety hints."""

import logging
from dataclasses import dataclass
from typing import Literal, get_args

from mcpify.core.logging import Log

logger = logging.getLogger(__name__)

Verb = Literal["get", "post", "put", "patch", "delete", "head", "options"]

HTTP_VERBS: frozenset[str] = frozenset(get_args(Verb))


@dataclass(frozen=True)
class ReadOnly:
    """The operation never changes server state."""

    access: Literal["readonly"] = "readonly"


@dataclass(frozen=True)
class Update:
    """The operation changes server state without destroying it."""

    idempotent: bool
    access: Literal["update"] = "update"


@dataclass(frozen=True)
class Delete:
    """The operation destroys server state."""

    access: Literal["delete"] = "delete"


ChangeSafety = ReadOnly | Update | Delete


@dataclass(frozen=True)
class ToolHints:
    """Behaviour hints advertised with a tool (MCP ``ToolAnnotations``)."""

    read_only_hint: bool
    destructive_hint: bool
    idempotent_hint: bool
    open_world_hint: bool

    def to_dict(self) -> dict[str, bool]:
        return {
            "readOnlyHint": self.read_only_hint,
            "destructiveHint": self.destructive_hint,
            "idempotentHint": self.idempotent_hint,
            "openWorldHint": self.open_world_hint,
        }


def to_verb(method: str) -> Verb | None:
    """Normalize a method token; None when it is not a supported verb."""
    lower = method.strip().lower()
    if lower in HTTP_VERBS:
        return lower  # type: ignore[return-value]
    return None


def safety_for(verb: Verb) -> ChangeSafety:
    """Derive change safety purely from the verb."""
    if verb in ("get", "head", "options"):
        return ReadOnly()
    if verb in ("put", "patch"):
        return Update(idempotent=True)
    if verb == "post":
        return Update(idempotent=False)
    return Delete()


def hints_for(safety: ChangeSafety, open_world: bool = True) -> ToolHints:
    """Map a change-safety value onto tool hints."""
    if isinstance(safety, ReadOnly):
        return ToolHints(
            read_only_hint=True,
            destructive_hint=False,
            idempotent_hint=True,
            open_world_hint=open_world,
        )
    if isinstance(safety, Update):
        return ToolHints(
            read_only_hint=False,
            destructive_hint=False,
            idempotent_hint=safety.idempotent,
            open_world_hint=open_world,
        )
    return ToolHints(
        read_only_hint=False,
        destructive_hint=True,
        idempotent_hint=False,
        open_world_hint=open_world,
    )


def describe_safety(safety: ChangeSafety, open_world: bool = True) -> str:
    """Short human-readable label such as ``idempotent update (open world)``."""
    if isinstance(safety, ReadOnly):
        label = "readonly"
    elif isinstance(safety, Update):
        label = "idempotent update" if safety.idempotent else "update"
    else:
        label = "delete"
    return f"{label} (open world)" if open_world else label


@dataclass(frozen=True)
class HttpVerb:
    """A supported HTTP verb together with its change safety."""

    verb: Verb
    change: ChangeSafety
    open_world: bool = True

    @classmethod
    def parse(
        cls,
        method: str,
        *,
        open_world: bool = True,
        log: Log = logger,
    ) -> "HttpVerb | None":
        """Classify a raw method string.

        Args:
            method: Method token in any casing, surrounding whitespace allowed
            open_world: Whether the operation may reach unbounded external state
            log: Logger receiving the "unsupported verb" notice

        Returns:
            The classified verb, or None for an unsupported method (callers skip
            the operation instead of failing the whole load)
        """
        verb = to_verb(method)
        if verb is None:
            log.debug(f"Unsupported HTTP method '{method}', skipping operation")
            return None
        return cls(verb=verb, change=safety_for(verb), open_world=open_world)

    @property
    def uppercase(self) -> str:
        return self.verb.upper()

    @property
    def hints(self) -> ToolHints:
        return hints_for(self.change, self.open_world)

    def describe(self) -> str:
        return describe_safety(self.change, self.open_world)

"""Item, page request and read result models for postcache."""

from __future__ import annotations

import math
import time
from typing import Annotated, Literal

from pydantic import AfterValidator, BaseModel, ConfigDict, Field

SequenceNumber = int | str
"""Sequence numbers arrive as ints or numeric strings; they compare as numbers."""


def sequence_value(value: SequenceNumber) -> int | float:
    """
    Return the numeric value of a sequence number.

    Integers and integer strings map to ``int`` so large sequence numbers keep
    full precision; anything else numeric falls back to ``float``.

    Raises:
        ValueError: If *value* is not numeric or not finite.
    """
    if isinstance(value, int):
        return value
    text = value.strip()
    try:
        return int(text)
    except ValueError:
        number = float(text)
    if not math.isfinite(number):
        raise ValueError(f"sequence number must be finite, got {value!r}")
    return number


def _checked_sequence(value: SequenceNumber) -> SequenceNumber:
    sequence_value(value)
    return value


ValidSequence = Annotated[int | str, AfterValidator(_checked_sequence)]


# ── Items ──────────────────────────────────────────────────────────────────────


class Item(BaseModel):
    """
    One immutable message snapshot in a conversation.

    Extra fields (text, author, reactions, ...) are kept as-is so the cache
    can hold whatever the remote source returns. An edit is a new ``Item``
    with the same ``id`` and ``sequence_number``.
    """

    model_config = ConfigDict(frozen=True, extra="allow")

    id: str
    conversation_id: str
    sequence_number: ValidSequence
    parent_id: str | None = None
    created_at: int = Field(default_factory=lambda: int(time.time() * 1000))
    """Unix millisecond timestamp."""
    deactivated: bool = False

    @property
    def seq(self) -> int | float:
        """Numeric value of ``sequence_number``."""
        return sequence_value(self.sequence_number)


# ── Page requests ──────────────────────────────────────────────────────────────


class _PageRequestBase(BaseModel):
    model_config = ConfigDict(frozen=True)

    conversation_id: str


class LatestPage(_PageRequestBase):
    """The newest ``limit`` items, with no cursor."""

    kind: Literal["latest"] = "latest"
    limit: int | None = Field(default=None, ge=1)


class BeforePage(_PageRequestBase):
    """Up to ``limit`` items older than ``before``."""

    kind: Literal["before"] = "before"
    before: ValidSequence
    limit: int | None = Field(default=None, ge=1)
    inclusive: bool = False


class AfterPage(_PageRequestBase):
    """Up to ``limit`` items newer than ``after``."""

    kind: Literal["after"] = "after"
    after: ValidSequence
    limit: int | None = Field(default=None, ge=1)
    inclusive: bool = False


class BetweenPage(_PageRequestBase):
    """Every item strictly between ``after`` and ``before`` (or including them)."""

    kind: Literal["between"] = "between"
    after: ValidSequence
    before: ValidSequence
    inclusive: bool = False


PageRequest = Annotated[
    LatestPage | BeforePage | AfterPage | BetweenPage,
    Field(discriminator="kind"),
]


def page_request(
    conversation_id: str,
    *,
    after: SequenceNumber | None = None,
    before: SequenceNumber | None = None,
    limit: int | None = None,
    inclusive: bool = False,
) -> LatestPage | BeforePage | AfterPage | BetweenPage:
    """
    Build the request variant matching a set of optional cursor fields.

    ``limit`` is ignored for a ``between`` request, which is bounded by its
    cursors.
    """
    if after is not None and before is not None:
        return BetweenPage(
            conversation_id=conversation_id, after=after, before=before, inclusive=inclusive
        )
    if after is not None:
        return AfterPage(
            conversation_id=conversation_id, after=after, limit=limit, inclusive=inclusive
        )
    if before is not None:
        return BeforePage(
            conversation_id=conversation_id, before=before, limit=limit, inclusive=inclusive
        )
    return LatestPage(conversation_id=conversation_id, limit=limit)


# ── Fetch responses and read results ───────────────────────────────────────────


class FetchedPage(BaseModel):
    """A page returned by the remote fetch function, sorted ascending."""

    items: list[Item] = Field(default_factory=list)
    more: bool = False
    """For requests without an ``after`` bound: older items exist beyond this page."""


class Hit(BaseModel):
    """A read the cache could answer."""

    items: list[Item] = Field(default_factory=list)
    more: bool = False


class Miss:
    """Read result meaning the window cannot answer and the caller must fetch."""

    __slots__ = ()

    def __repr__(self) -> str:
        return "MISS"


MISS = Miss()

ReadResult = Hit | Miss
